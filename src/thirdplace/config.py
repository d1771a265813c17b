"""Centralised configuration loaded from environment variables and dotenv."""

from __future__ import annotations

import os

from dotenv import load_dotenv

from thirdplace.models import Coordinates, FeedSection
from thirdplace.trend import AccrualRateEstimator, NoSignalEstimator, VelocityEstimator

load_dotenv()

# ── Geo ────────────────────────────────────────────────────────────────────
DISTANCE_UNIT: str = os.getenv("THIRDPLACE_DISTANCE_UNIT", "km")
# Map-view fallback when neither a user location nor any coordinates exist.
DEFAULT_CENTER = Coordinates(
    lat=float(os.getenv("THIRDPLACE_DEFAULT_CENTER_LAT", "51.5074")),
    lng=float(os.getenv("THIRDPLACE_DEFAULT_CENTER_LNG", "-0.1278")),
)
NEARBY_RADIUS: float = float(os.getenv("THIRDPLACE_NEARBY_RADIUS", "5"))

# ── Discovery feed ─────────────────────────────────────────────────────────
FEED_LIMIT: int = int(os.getenv("THIRDPLACE_FEED_LIMIT", "20"))
FEED_RADIUS: float = float(os.getenv("THIRDPLACE_FEED_RADIUS", "50"))
DIVERSITY_BONUS: int = int(os.getenv("THIRDPLACE_DIVERSITY_BONUS", "5"))
FANOUT_WORKERS: int = int(os.getenv("THIRDPLACE_FANOUT_WORKERS", "4"))
_FEED_SECTION_SIZES: str = os.getenv("THIRDPLACE_FEED_SECTION_SIZES", "5,3,5,3")

# ── Trend ──────────────────────────────────────────────────────────────────
VELOCITY_ESTIMATOR: str = os.getenv("THIRDPLACE_VELOCITY_ESTIMATOR", "none")

# ── Search index ───────────────────────────────────────────────────────────
INDEX_URL: str = os.getenv("THIRDPLACE_INDEX_URL", "")
INDEX_API_KEY: str = os.getenv("THIRDPLACE_INDEX_API_KEY", "")
INDEX_TIMEOUT: float = float(os.getenv("THIRDPLACE_INDEX_TIMEOUT", "30"))

# ── Logging ────────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("THIRDPLACE_LOG_LEVEL", "INFO")

_SECTION_ORDER: list[FeedSection] = [
    FeedSection.POPULAR_VENUES,
    FeedSection.TRENDING_VENUES,
    FeedSection.POPULAR_ARTICLES,
    FeedSection.TRENDING_ARTICLES,
]


def feed_section_sizes(raw: str | None = None) -> dict[str, int]:
    """Parse ``THIRDPLACE_FEED_SECTION_SIZES`` into section-name → size.

    Order: popular venues, trending venues, popular articles, trending articles.
    """
    source = raw if raw is not None else _FEED_SECTION_SIZES
    parts = [p.strip() for p in source.split(",")]
    if len(parts) != len(_SECTION_ORDER):
        raise ValueError(
            f"THIRDPLACE_FEED_SECTION_SIZES needs {len(_SECTION_ORDER)} values, got {len(parts)}"
        )
    sizes = {section.value: int(size) for section, size in zip(_SECTION_ORDER, parts)}
    negative = [name for name, size in sizes.items() if size < 0]
    if negative:
        raise ValueError(
            f"THIRDPLACE_FEED_SECTION_SIZES must be non-negative, got {source!r} "
            f"(negative: {', '.join(negative)})"
        )
    return sizes


def velocity_estimator(name: str | None = None) -> VelocityEstimator:
    """Build the configured velocity estimator (``none`` or ``accrual``)."""
    mapping: dict[str, type[VelocityEstimator]] = {
        "none": NoSignalEstimator,
        "accrual": AccrualRateEstimator,
    }
    key = (name or VELOCITY_ESTIMATOR).lower()
    if key not in mapping:
        raise ValueError(f"Unknown THIRDPLACE_VELOCITY_ESTIMATOR '{key}'")
    return mapping[key]()
