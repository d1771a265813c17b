"""Radius filtering, distance sorting and map centring for item lists."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from thirdplace import config
from thirdplace.geo import distance, format_distance, to_coordinates, within_radius
from thirdplace.models import Coordinates, ScoredItem

logger = logging.getLogger(__name__)


def filter_within_radius(
    center: Any,
    radius: float | None,
    items: Sequence[ScoredItem],
    unit: str = "km",
) -> list[ScoredItem]:
    """Keep items within *radius* of *center*; a no-op unless both are given."""
    if center is None or radius is None:
        return list(items)
    kept = [s for s in items if within_radius(center, radius, s.item, unit)]
    logger.debug("Radius filter %.2f%s: %d → %d", radius, unit, len(items), len(kept))
    return kept


def annotate_distances(
    center: Any, items: Sequence[ScoredItem], unit: str = "km"
) -> list[ScoredItem]:
    """Return copies of *items* carrying ``distance`` and ``distance_label``."""
    out: list[ScoredItem] = []
    for s in items:
        d = distance(center, s.item.coordinates, unit) if s.item.coordinates else None
        out.append(
            s.model_copy(
                update={
                    "distance": d,
                    "distance_label": format_distance(d, unit) if d is not None else None,
                }
            )
        )
    return out


def sort_by_distance(
    center: Any, items: Sequence[ScoredItem], unit: str = "km"
) -> list[ScoredItem]:
    """Closest first; items with unknown distance go last in their original order."""
    with_distance = annotate_distances(center, items, unit)
    return sorted(
        with_distance,
        key=lambda s: (s.distance is None, s.distance if s.distance is not None else 0.0),
    )


def compute_centroid(items: Sequence[ScoredItem]) -> Coordinates:
    points = [s.item.coordinates for s in items if s.item.coordinates is not None]
    if not points:
        return config.DEFAULT_CENTER
    return Coordinates(
        lat=sum(p.lat for p in points) / len(points),
        lng=sum(p.lng for p in points) / len(points),
    )


def map_center(items: Sequence[ScoredItem], location: Any = None) -> Coordinates:
    """The user's location when known, otherwise the centroid of *items*."""
    user = to_coordinates(location)
    if user is not None:
        return user
    return compute_centroid(items)
