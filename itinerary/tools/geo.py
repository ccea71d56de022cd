"""Great-circle distance helpers."""
from __future__ import annotations

import math
from typing import Callable, Iterable, List, TypeVar

from itinerary.schemas import Location

EARTH_RADIUS_KM = 6371.0

T = TypeVar("T")


def haversine_km(a: Location, b: Location) -> float:
    """Return the Haversine distance between two locations in kilometres."""
    lat1, lon1 = math.radians(a.latitude), math.radians(a.longitude)
    lat2, lon2 = math.radians(b.latitude), math.radians(b.longitude)
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # rounding can push h a hair past 1 for antipodal points
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def within_radius(
    items: Iterable[T],
    center: Location,
    radius_km: float,
    *,
    key: Callable[[T], Location] = lambda item: item.coordinates,  # type: ignore[attr-defined]
) -> List[T]:
    """Items whose distance from ``center`` is at most ``radius_km`` (inclusive)."""
    return [item for item in items if haversine_km(center, key(item)) <= radius_km]
