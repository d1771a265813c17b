"""Great-circle distance math between coordinate pairs."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from thirdplace.models import ContentItem, Coordinates

EARTH_RADIUS: dict[str, float] = {"km": 6371.0, "miles": 3959.0}

# Sub-unit distances are shown in the smaller unit.
_SMALL_UNIT: dict[str, tuple[float, str]] = {
    "km": (1000.0, "m"),
    "miles": (5280.0, "ft"),
}


def to_coordinates(point: Any) -> Coordinates | None:
    """Coerce *point* into ``Coordinates``; ``None`` when missing or malformed.

    Accepts ``Coordinates``, mappings keyed ``lat``/``lng`` (or
    ``latitude``/``longitude``) and ``(lat, lng)`` pairs.
    """
    if point is None:
        return None
    if isinstance(point, Coordinates):
        return point
    if isinstance(point, Mapping):
        lat = point.get("lat", point.get("latitude"))
        lng = point.get("lng", point.get("longitude"))
    elif isinstance(point, (tuple, list)) and len(point) == 2:
        lat, lng = point
    else:
        return None
    try:
        lat_f, lng_f = float(lat), float(lng)
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(lat_f) and math.isfinite(lng_f)):
        return None
    return Coordinates(lat=lat_f, lng=lng_f)


def distance(a: Any, b: Any, unit: str = "km") -> float | None:
    """Haversine distance between *a* and *b*, rounded to 2 decimal places."""
    if unit not in EARTH_RADIUS:
        raise ValueError(f"Unknown distance unit: {unit!r}")
    p1 = to_coordinates(a)
    p2 = to_coordinates(b)
    if p1 is None or p2 is None:
        return None

    lat1 = math.radians(p1.lat)
    lat2 = math.radians(p2.lat)
    d_lat = math.radians(p2.lat - p1.lat)
    d_lng = math.radians(p2.lng - p1.lng)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    h = min(1.0, h)
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return round(EARTH_RADIUS[unit] * c, 2)


def within_radius(center: Any, radius: float, item: ContentItem, unit: str = "km") -> bool:
    if item.coordinates is None:
        return False
    d = distance(center, item.coordinates, unit)
    return d is not None and d <= radius


def format_distance(value: float | None, unit: str = "km") -> str:
    """Human label for a distance; unknown distances are never shown as zero."""
    if value is None:
        return "Distance unknown"
    if value < 1:
        factor, small = _SMALL_UNIT[unit]
        return f"{round(value * factor)}{small}"
    return f"{value}{unit}"
