"""Unit tests for Haversine distance and radius membership."""

import pytest

from thirdplace.geo import distance, format_distance, to_coordinates, within_radius
from thirdplace.models import Coordinates, Venue

LONDON = {"lat": 51.5074, "lng": -0.1278}
PARIS = {"lat": 48.8566, "lng": 2.3522}
NEW_YORK = Coordinates(lat=40.7128, lng=-74.0060)


def _venue(lat: float | None = None, lng: float | None = None) -> Venue:
    coords = Coordinates(lat=lat, lng=lng) if lat is not None and lng is not None else None
    return Venue(id="v", coordinates=coords)


class TestDistance:
    def test_identity(self) -> None:
        assert distance(LONDON, LONDON, "km") == 0

    def test_london_paris(self) -> None:
        d = distance(LONDON, PARIS)
        assert d is not None
        assert 340 < d < 347

    def test_symmetry(self) -> None:
        pairs = [(LONDON, PARIS), (PARIS, NEW_YORK), (LONDON, NEW_YORK)]
        for a, b in pairs:
            assert distance(a, b) == pytest.approx(distance(b, a))

    def test_miles_use_smaller_radius(self) -> None:
        km = distance(LONDON, PARIS, "km")
        miles = distance(LONDON, PARIS, "miles")
        assert km is not None and miles is not None
        assert miles == pytest.approx(km * 3959 / 6371, abs=0.05)

    def test_rounded_to_two_places(self) -> None:
        d = distance(LONDON, NEW_YORK)
        assert d == round(d, 2)

    def test_missing_point_is_none(self) -> None:
        assert distance(None, LONDON) is None
        assert distance(LONDON, {"lat": 51.5}) is None
        assert distance({"lat": "north", "lng": 0}, LONDON) is None

    def test_accepts_alternate_shapes(self) -> None:
        long_keys = {"latitude": 48.8566, "longitude": 2.3522}
        assert distance(LONDON, long_keys) == distance(LONDON, PARIS)
        assert distance((51.5074, -0.1278), PARIS) == distance(LONDON, PARIS)

    def test_zero_latitude_is_not_missing(self) -> None:
        assert to_coordinates({"lat": 0, "lng": 0}) == Coordinates(lat=0, lng=0)

    def test_unknown_unit(self) -> None:
        with pytest.raises(ValueError):
            distance(LONDON, PARIS, "furlongs")


class TestWithinRadius:
    def test_no_coordinates_is_outside(self) -> None:
        assert within_radius(LONDON, 10_000, _venue()) is False

    def test_monotonic_in_radius(self) -> None:
        paris = _venue(48.8566, 2.3522)
        assert within_radius(LONDON, 350, paris)
        for bigger in (351, 500, 10_000):
            assert within_radius(LONDON, bigger, paris)
        assert not within_radius(LONDON, 300, paris)

    def test_boundary_is_inclusive(self) -> None:
        paris = _venue(48.8566, 2.3522)
        d = distance(LONDON, paris.coordinates)
        assert d is not None
        assert within_radius(LONDON, d, paris)


class TestFormatDistance:
    def test_sub_kilometre_in_metres(self) -> None:
        assert format_distance(0.45, "km") == "450m"

    def test_sub_mile_in_feet(self) -> None:
        assert format_distance(0.5, "miles") == "2640ft"

    def test_whole_units(self) -> None:
        assert format_distance(12.34, "km") == "12.34km"
        assert format_distance(3.5, "miles") == "3.5miles"

    def test_zero_is_a_real_distance(self) -> None:
        assert format_distance(0.0) == "0m"

    def test_unknown(self) -> None:
        assert format_distance(None) == "Distance unknown"
