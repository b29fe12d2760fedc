"""
Geographic helpers for discovery and maps.

- Haversine distance between two lat/lng points (km)
- Radius filtering with distance annotation
- Coordinate fuzzing so maps never show a family's exact home
"""

import math
import random
from typing import Any, Callable, Iterable, Optional

EARTH_RADIUS_KM = 6371.0
METERS_PER_DEGREE_LAT = 111320.0

Coords = tuple[Optional[float], Optional[float]]


def distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Haversine distance in km between two lat/lng points"""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    # Clamp against floating point drift above 1.0 for antipodal points
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def has_coords(coords: Coords) -> bool:
    lat, lng = coords
    return lat is not None and lng is not None


def within_radius(origin: Coords, point: Coords, radius_km: float) -> bool:
    """True when both points have coordinates and lie within radius_km of each other"""
    if not has_coords(origin) or not has_coords(point):
        return False
    return distance_km(origin[0], origin[1], point[0], point[1]) <= radius_km


def profile_coords(item: Any) -> Coords:
    return getattr(item, "location_lat", None), getattr(item, "location_lng", None)


def filter_by_radius(
    origin: Coords,
    items: Iterable[Any],
    radius_km: float,
    coords: Callable[[Any], Coords] = profile_coords,
) -> list[tuple[Any, Optional[float]]]:
    """
    Keep the items within radius_km of origin.

    Returns (item, distance_km) pairs. Items without coordinates are dropped.
    When origin itself has no coordinates nothing can be measured, so every item
    is returned with a distance of None.
    """
    if not has_coords(origin):
        return [(item, None) for item in items]

    results = []
    for item in items:
        point = coords(item)
        if not has_coords(point):
            continue
        dist = distance_km(origin[0], origin[1], point[0], point[1])
        if dist <= radius_km:
            results.append((item, round(dist, 2)))
    return results


def fuzz_coordinates(
    lat: float, lng: float, max_meters: int = 3000, rng: Optional[random.Random] = None
) -> tuple[float, float]:
    """Move a point a random distance (up to max_meters) in a random direction"""
    rng = rng or random
    angle = rng.random() * 2 * math.pi
    radius = rng.random() * max_meters
    lat_offset = (radius * math.cos(angle)) / METERS_PER_DEGREE_LAT
    lng_offset = (radius * math.sin(angle)) / (
        METERS_PER_DEGREE_LAT * max(math.cos(math.radians(lat)), 1e-6)
    )
    return lat + lat_offset, lng + lng_offset
