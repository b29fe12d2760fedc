"""Global search across families, events and circles"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import config
from ..auth import get_current_user
from ..database import get_db
from ..models import Circle, Event, Profile
from ..rate_limiter import create_rate_limiter
from ..schemas import EventSummary, ProfileSummary
from ..services.discovery import discoverable_profiles, last_name_key, text_search
from ..services.search_insights import record_search

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["Search"])

RESULTS_PER_KIND = 20

rate_limit_search = create_rate_limiter(
    limit=config.RATE_LIMIT_SEARCH_PER_MINUTE, window_seconds=60, key_prefix="search", per="user"
)


@router.get("")
async def global_search(
    q: str = Query(..., min_length=1, max_length=100),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_search),
):
    term = q.strip()
    if len(term) < 2:
        return {"query": term, "profiles": [], "events": [], "circles": []}

    pattern = f"%{term}%"

    profiles = text_search(discoverable_profiles(db, current_user), term).all()
    profiles.sort(key=last_name_key)

    events = (
        db.query(Event)
        .filter(
            Event.is_private.is_(False),
            Event.is_cancelled.is_(False),
            Event.event_date >= date.today(),
            or_(
                Event.title.ilike(pattern),
                Event.description.ilike(pattern),
                Event.location_name.ilike(pattern),
            ),
        )
        .order_by(Event.event_date.asc())
        .limit(RESULTS_PER_KIND)
        .all()
    )

    circles = (
        db.query(Circle)
        .filter(
            Circle.is_active.is_(True),
            Circle.is_public.is_(True),
            or_(Circle.name.ilike(pattern), Circle.description.ilike(pattern)),
        )
        .order_by(Circle.member_count.desc())
        .limit(RESULTS_PER_KIND)
        .all()
    )

    record_search(db, "global", term)

    return {
        "query": term,
        "profiles": [
            ProfileSummary.model_validate(p).model_dump() for p in profiles[:RESULTS_PER_KIND]
        ],
        "events": [EventSummary.model_validate(e).model_dump() for e in events],
        "circles": [
            {
                "id": c.id,
                "name": c.name,
                "description": c.description,
                "emoji": c.emoji,
                "color": c.color,
                "member_count": c.member_count,
            }
            for c in circles
        ],
    }
