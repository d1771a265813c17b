"""Popularity scoring for venues and articles."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from datetime import datetime

from thirdplace.models import (
    Article,
    ArticleEngagement,
    ContentItem,
    ScoredItem,
    Timeframe,
    Venue,
)
from thirdplace.recency import age_in_days, decay_factor, format_relative_age, timeframe_days

logger = logging.getLogger(__name__)

# ── Venue weights ──────────────────────────────────────────────────────────
_W_REGULAR = 10.0
_W_BLOG_MENTION = 5.0
_BONUS_PHOTO = 5.0
_BONUS_DESCRIPTION = 3.0
_BONUS_TAGS = 2.0
_LONG_DESCRIPTION = 50

# ── Article weights ────────────────────────────────────────────────────────
_W_VIEW = 0.5
_W_LINKED_VENUE = 3.0
_BONUS_READING_TIME = 5.0
_READING_TIME_SWEET_SPOT = (3, 15)
# Articles decay over twice the timeframe window.
_ARTICLE_DECAY_STRETCH = 2.0

# Reason labels, highest threshold first.
_REASONS: list[tuple[int, str]] = [
    (50, "highly popular"),
    (30, "well-loved"),
    (15, "growing in popularity"),
]
_DEFAULT_REASON = "emerging"


def round_score(value: float) -> int:
    """Round half up, so 70.5 → 71 rather than banker's rounding."""
    return int(math.floor(value + 0.5))


def reason_label(score: int) -> str:
    for threshold, label in _REASONS:
        if score > threshold:
            return label
    return _DEFAULT_REASON


def reading_time_bonus(minutes: int) -> float:
    low, high = _READING_TIME_SWEET_SPOT
    return _BONUS_READING_TIME if low <= minutes <= high else 0.0


def _venue_score(venue: Venue, window: int, now: datetime) -> float:
    e = venue.engagement
    base = e.regulars * _W_REGULAR + e.blog_mentions * _W_BLOG_MENTION
    decayed = base * decay_factor(age_in_days(venue.created_at, now), window)

    # Completeness is added after decay so age does not discount it.
    c = venue.completeness
    if c.photo_count > 0:
        decayed += _BONUS_PHOTO
    if c.description_length > _LONG_DESCRIPTION:
        decayed += _BONUS_DESCRIPTION
    if venue.tags:
        decayed += _BONUS_TAGS
    return decayed


def _article_score(article: Article, window: int, now: datetime) -> float:
    base = (
        article.engagement.views * _W_VIEW
        + len(article.linked_venue_ids) * _W_LINKED_VENUE
        + reading_time_bonus(article.reading_time_minutes)
    )
    age = age_in_days(article.published_at, now)
    return base * decay_factor(age, window, stretch=_ARTICLE_DECAY_STRETCH)


def score(item: ContentItem, timeframe: Timeframe | str, now: datetime) -> int:
    """Compute the integer popularity score for a single item."""
    window = timeframe_days(timeframe)
    if isinstance(item, Venue):
        raw = _venue_score(item, window, now)
    elif isinstance(item, Article):
        raw = _article_score(item, window, now)
    else:
        raw = 0.0
    return round_score(raw)


def article_engagement(article: Article) -> ArticleEngagement:
    views = article.engagement.views
    reading_time = article.reading_time_minutes
    connections = len(article.linked_venue_ids)
    return ArticleEngagement(
        views=views,
        reading_time=reading_time,
        venue_connections=connections,
        engagement_score=round_score(views * 0.3 + reading_time * 2 + connections * 5),
    )


def annotate(item: ContentItem, timeframe: Timeframe | str, now: datetime) -> ScoredItem:
    popularity = score(item, timeframe, now)
    scored = ScoredItem(
        item=item,
        recommendation_type="popular",
        popularity_score=popularity,
        reason_label=reason_label(popularity),
    )
    if isinstance(item, Article):
        scored.engagement_metrics = article_engagement(item)
        scored.published_label = format_relative_age(item.published_at, now)
    return scored


def rank(
    items: Iterable[ContentItem],
    timeframe: Timeframe | str,
    now: datetime,
) -> list[ScoredItem]:
    """Score and sort items by popularity, descending; candidate order breaks ties."""
    scored = [annotate(item, timeframe, now) for item in items]
    ranked = sorted(scored, key=lambda s: -(s.popularity_score or 0))
    logger.info(
        "Ranked %d items by popularity; top score=%d",
        len(ranked),
        ranked[0].popularity_score if ranked else 0,
    )
    return ranked
