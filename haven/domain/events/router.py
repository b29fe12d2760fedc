"""Event router - FastAPI endpoints for events"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Profile
from ...shared.validators import EVENT_CATEGORIES, validate_choice
from .schemas import (
    ChatMessageCreate,
    ChatMessageResponse,
    EventCreate,
    EventUpdate,
    InvitationCreate,
    InvitationResponse,
    RsvpResponse,
    RsvpUpdate,
)
from .service import EventService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["Events"])


def get_event_service(db: Session = Depends(get_db)) -> EventService:
    """Dependency injection for EventService"""
    return EventService(db)


# ============================================================================
# EVENTS
# ============================================================================


@router.post("", status_code=201)
async def create_event(
    data: EventCreate,
    current_user: Profile = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Create an event; the host is automatically RSVP'd as going"""
    event = service.create_event(data, current_user)
    return service.present(event, current_user, my_rsvp="going")


@router.get("")
async def list_events(
    category: Optional[str] = None,
    radius_km: Optional[float] = Query(None, gt=0, le=500),
    current_user: Profile = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Upcoming events visible to the caller, soonest first"""
    if category:
        try:
            validate_choice(category, EVENT_CATEGORIES, "category")
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
    return service.list_events(current_user, category, radius_km)


@router.get("/mine")
async def my_events(
    include_past: bool = False,
    current_user: Profile = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    return service.my_events(current_user, include_past)


# ============================================================================
# INVITATIONS
# ============================================================================


@router.get("/invitations", response_model=list[InvitationResponse])
async def my_invitations(
    current_user: Profile = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    return service.my_invitations(current_user)


@router.post("/invitations/{invitation_id}/accept", response_model=RsvpResponse)
async def accept_invitation(
    invitation_id: str,
    background_tasks: BackgroundTasks,
    current_user: Profile = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    return service.accept_invitation(invitation_id, current_user, background_tasks)


@router.post("/invitations/{invitation_id}/decline")
async def decline_invitation(
    invitation_id: str,
    current_user: Profile = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    return service.decline_invitation(invitation_id, current_user)


@router.post("/{event_id}/invitations", response_model=InvitationResponse, status_code=201)
async def invite_to_event(
    event_id: str,
    data: InvitationCreate,
    background_tasks: BackgroundTasks,
    current_user: Profile = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    return service.invite(event_id, data.invitee_id, current_user, background_tasks)


# ============================================================================
# SINGLE EVENT
# ============================================================================


@router.get("/{event_id}")
async def get_event(
    event_id: str,
    current_user: Profile = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    event = service.get_visible_event(event_id, current_user)
    rsvp = service.repo.get_rsvp(service.db, event.id, current_user.id)
    return service.present(event, current_user, my_rsvp=rsvp.status if rsvp else None)


@router.patch("/{event_id}")
async def update_event(
    event_id: str,
    data: EventUpdate,
    current_user: Profile = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    event = service.update_event(event_id, data, current_user)
    return service.present(event, current_user, my_rsvp="going")


@router.post("/{event_id}/cancel")
async def cancel_event(
    event_id: str,
    background_tasks: BackgroundTasks,
    current_user: Profile = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Cancel an event and notify everyone going or maybe"""
    event = service.cancel_event(event_id, current_user, background_tasks)
    return service.present(event, current_user, my_rsvp="going")


# ============================================================================
# RSVPS
# ============================================================================


@router.put("/{event_id}/rsvp", response_model=RsvpResponse)
async def rsvp_to_event(
    event_id: str,
    data: RsvpUpdate,
    background_tasks: BackgroundTasks,
    current_user: Profile = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    return service.rsvp(event_id, data.status, current_user, background_tasks)


@router.get("/{event_id}/attendees", response_model=list[RsvpResponse])
async def list_attendees(
    event_id: str,
    current_user: Profile = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    return service.attendees(event_id, current_user)


# ============================================================================
# CHAT
# ============================================================================


@router.get("/{event_id}/messages", response_model=list[ChatMessageResponse])
async def event_messages(
    event_id: str,
    current_user: Profile = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    return service.messages(event_id, current_user)


@router.post("/{event_id}/messages", response_model=ChatMessageResponse, status_code=201)
async def post_event_message(
    event_id: str,
    data: ChatMessageCreate,
    current_user: Profile = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    return service.post_message(event_id, data.content, current_user)
