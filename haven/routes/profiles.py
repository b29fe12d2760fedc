import logging
from datetime import date, datetime

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..email_service import send_welcome_email
from ..models import Event, Profile
from ..schemas import EventSummary, ProfileResponse, ProfileUpdate, PublicProfile
from ..services.account_deletion import delete_account
from ..services.activity import format_last_active, is_online, should_record_activity
from ..services.blocking import is_blocked_between
from ..services.geocoding_service import geocode_suburb
from ..services.notification_service import deliver_email
from ..services.profile_completion import completion_message, completion_step
from ..shared.validators import validate_username

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profiles", tags=["Profiles"])

PUBLIC_EVENTS_SHOWN = 3


def _own_profile(profile: Profile) -> dict:
    data = ProfileResponse.model_validate(profile).model_dump()
    step = completion_step(profile)
    data["completion_step"] = step
    data["completion_message"] = completion_message(step)
    return data


@router.get("/me")
async def get_my_profile(current_user: Profile = Depends(get_current_user)):
    """Own profile plus the onboarding step still to do"""
    return _own_profile(current_user)


@router.patch("/me")
async def update_my_profile(
    data: ProfileUpdate,
    background_tasks: BackgroundTasks,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updates = data.model_dump(exclude_unset=True)

    username = updates.get("username")
    if username and username != current_user.username:
        taken = (
            db.query(Profile.id)
            .filter(func.lower(Profile.username) == username, Profile.id != current_user.id)
            .first()
        )
        if taken:
            raise HTTPException(status_code=409, detail="Username is already taken")

    location_changed = (
        "location_name" in updates and updates["location_name"] != current_user.location_name
    )
    coords_given = updates.get("location_lat") is not None and updates.get("location_lng") is not None

    if location_changed and not coords_given:
        new_location = (updates["location_name"] or "").strip()
        if not new_location:
            updates["location_lat"] = None
            updates["location_lng"] = None
        else:
            coords = await geocode_suburb(new_location)
            if coords:
                updates["location_lat"], updates["location_lng"] = coords
            else:
                logger.info(f"Could not geocode '{new_location}', keeping previous coordinates")

    newly_onboarded = updates.get("onboarding_complete") and not current_user.onboarding_complete

    for key, value in updates.items():
        if key in ("status", "contact_methods", "interests", "homeschool_approaches", "kids_ages"):
            value = value or []
        setattr(current_user, key, value)
    current_user.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(current_user)

    if newly_onboarded and current_user.email:
        background_tasks.add_task(
            deliver_email,
            send_welcome_email,
            "welcome",
            to=current_user.email,
            name=current_user.name,
        )

    return _own_profile(current_user)


@router.get("/username-available")
async def username_available(
    username: str = Query(..., min_length=1),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        normalized = validate_username(username)
    except ValueError as e:
        return {"username": username, "available": False, "reason": str(e)}

    owner = db.query(Profile.id).filter(func.lower(Profile.username) == normalized).first()
    available = owner is None or owner.id == current_user.id
    return {"username": normalized, "available": available}


@router.post("/me/activity")
async def record_activity(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Last-active ping. Writes at most once every five minutes."""
    now = datetime.utcnow()
    recorded = should_record_activity(current_user.last_active_at, now)
    if recorded:
        current_user.last_active_at = now
        try:
            db.commit()
        except Exception as e:
            db.rollback()
            logger.warning(f"Activity ping failed for {current_user.id}: {e}")
            recorded = False
    return {"recorded": recorded, "last_active_at": current_user.last_active_at}


@router.delete("/me")
async def delete_my_account(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    logger.info(f"Profile {current_user.id} deleting their own account")
    delete_account(db, current_user.id, reason="Deleted by owner")
    return {"message": "Account deleted"}


@router.get("/{profile_id}")
async def get_profile(
    profile_id: str,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Public view of another profile with a few of their upcoming public events"""
    profile = db.query(Profile).filter(Profile.id == profile_id).first()
    if (
        not profile
        or profile.is_banned
        or not profile.is_active
        or (profile.id != current_user.id and is_blocked_between(db, current_user.id, profile.id))
    ):
        raise HTTPException(status_code=404, detail="Profile not found")

    events = (
        db.query(Event)
        .filter(
            Event.host_id == profile.id,
            Event.event_date >= date.today(),
            Event.is_cancelled.is_(False),
            Event.is_private.is_(False),
        )
        .order_by(Event.event_date.asc(), Event.event_time.asc())
        .limit(PUBLIC_EVENTS_SHOWN)
        .all()
    )

    data = PublicProfile.model_validate(profile).model_dump()
    data["is_online"] = is_online(profile.last_active_at)
    data["last_active_label"] = format_last_active(profile.last_active_at)
    data["upcoming_events"] = [EventSummary.model_validate(e).model_dump() for e in events]
    return data
