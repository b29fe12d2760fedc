"""Discover page and family map"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from .. import config
from ..auth import get_current_user
from ..database import get_db
from ..models import Profile
from ..schemas import ProfileSummary
from ..services.activity import format_last_active, is_online
from ..services.discovery import (
    discoverable_profiles,
    has_kid_in_range,
    last_name_key,
    parse_user_types,
    text_search,
)
from ..services.search_insights import record_search
from ..utils.geo import filter_by_radius, fuzz_coordinates, has_coords

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/discover", tags=["Discover"])


def _find_families(
    db: Session,
    viewer: Profile,
    search: Optional[str],
    radius_km: Optional[float],
    lat: Optional[float],
    lng: Optional[float],
    location: Optional[str],
    age_min: Optional[int],
    age_max: Optional[int],
    user_types: Optional[str],
    exclude: Optional[str],
) -> list[tuple[Profile, Optional[float]]]:
    if age_min is not None and age_max is not None and age_min > age_max:
        raise HTTPException(status_code=400, detail="age_min cannot be greater than age_max")
    if (lat is None) != (lng is None):
        raise HTTPException(status_code=400, detail="lat and lng must be given together")

    excluded = [x.strip() for x in exclude.split(",") if x.strip()] if exclude else None
    query = discoverable_profiles(db, viewer, exclude=excluded)

    if search and search.strip():
        query = text_search(query, search)

    types = parse_user_types(user_types)
    if types:
        query = query.filter(Profile.user_type.in_(types))

    origin = (lat, lng) if lat is not None else (viewer.location_lat, viewer.location_lng)
    use_radius = radius_km is not None and has_coords(origin)

    if not use_radius and location and location.strip():
        query = query.filter(Profile.location_name.ilike(f"%{location.strip()}%"))

    profiles = [p for p in query.all() if has_kid_in_range(p, age_min, age_max)]

    if use_radius:
        results = filter_by_radius(origin, profiles, radius_km)
    else:
        results = [(p, None) for p in profiles]

    results.sort(key=lambda pair: (last_name_key(pair[0]), pair[0].name.lower()))
    return results


@router.get("")
async def discover(
    search: Optional[str] = Query(None, max_length=100),
    radius_km: Optional[float] = Query(None, gt=0, le=500),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    location: Optional[str] = Query(None, max_length=255),
    age_min: Optional[int] = Query(None, ge=0, le=18),
    age_max: Optional[int] = Query(None, ge=0, le=18),
    user_types: Optional[str] = Query("all"),
    exclude: Optional[str] = Query(None, description="Comma separated profile ids hidden by the viewer"),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Families, teachers and businesses near the caller.

    With radius_km the origin is the explicit lat/lng, or else the caller's own
    coordinates, and each result carries distance_km. Without a usable radius the
    optional location substring filter applies instead. Sorted by last name.
    """
    results = _find_families(
        db, current_user, search, radius_km, lat, lng, location, age_min, age_max, user_types, exclude
    )

    if search and search.strip():
        record_search(db, "discover", search)

    payload = []
    for profile, distance in results:
        item = ProfileSummary.model_validate(profile).model_dump()
        item["bio"] = profile.bio
        item["is_online"] = is_online(profile.last_active_at)
        item["last_active_label"] = format_last_active(profile.last_active_at)
        if distance is not None:
            item["distance_km"] = distance
        payload.append(item)
    return payload


@router.get("/map")
async def discover_map(
    radius_km: Optional[float] = Query(None, gt=0, le=500),
    user_types: Optional[str] = Query("all"),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Map pins. Locations are moved up to a few km unless the profile opts into exact."""
    results = _find_families(
        db, current_user, None, radius_km, None, None, None, None, None, user_types, None
    )

    pins = []
    for profile, distance in results:
        if profile.location_lat is None or profile.location_lng is None:
            continue
        if profile.show_exact_location:
            pin_lat, pin_lng = profile.location_lat, profile.location_lng
        else:
            pin_lat, pin_lng = fuzz_coordinates(
                profile.location_lat, profile.location_lng, config.MAP_FUZZ_METERS
            )
        pins.append(
            {
                "id": profile.id,
                "name": profile.name,
                "avatar_url": profile.avatar_url,
                "user_type": profile.user_type,
                "location_name": profile.location_name,
                "kids_ages": profile.kids_ages or [],
                "lat": pin_lat,
                "lng": pin_lng,
                "exact": bool(profile.show_exact_location),
                "distance_km": distance,
            }
        )
    return pins
