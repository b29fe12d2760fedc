"""
Who shows up on the discover page and map.

Banned and deactivated profiles, the viewer, and anyone on either side of a
block are never listed.
"""

from typing import Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from ..models import Profile
from .blocking import blocked_ids


def discoverable_profiles(
    db: Session, viewer: Profile, exclude: Optional[Iterable[str]] = None
) -> Query:
    hidden = blocked_ids(db, viewer.id)
    if exclude:
        hidden.update(exclude)

    query = db.query(Profile).filter(
        Profile.id != viewer.id,
        Profile.is_banned.is_(False),
        Profile.is_active.is_(True),
    )
    if hidden:
        query = query.filter(Profile.id.notin_(hidden))
    return query


def text_search(query: Query, term: str) -> Query:
    """Case-insensitive match on name, username, location or bio"""
    pattern = f"%{term.strip()}%"
    return query.filter(
        or_(
            Profile.family_name.ilike(pattern),
            Profile.display_name.ilike(pattern),
            Profile.username.ilike(pattern),
            Profile.location_name.ilike(pattern),
            Profile.bio.ilike(pattern),
        )
    )


def last_name_key(profile: Profile) -> str:
    full_name = (profile.family_name or profile.display_name or "").strip()
    parts = full_name.split()
    return (parts[-1] if parts else "").lower()


def has_kid_in_range(profile: Profile, age_min: Optional[int], age_max: Optional[int]) -> bool:
    if age_min is None and age_max is None:
        return True
    low = 0 if age_min is None else age_min
    high = 18 if age_max is None else age_max
    return any(low <= age <= high for age in profile.kids_ages or [])


def parse_user_types(value: Optional[str]) -> Optional[list[str]]:
    """'family,teacher' -> ['family', 'teacher']; 'all' or blank -> None"""
    if not value:
        return None
    types = [t.strip().lower() for t in value.split(",") if t.strip()]
    if not types or "all" in types:
        return None
    return types
