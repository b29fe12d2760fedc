"""Circle router - FastAPI endpoints for circles"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Profile
from .schemas import (
    ChatMessageCreate,
    ChatMessageResponse,
    CircleCreate,
    CircleResponse,
    CircleUpdate,
    InvitationCreate,
    InvitationResponse,
    MemberResponse,
    RoleUpdate,
)
from .service import CircleService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/circles", tags=["Circles"])


def get_circle_service(db: Session = Depends(get_db)) -> CircleService:
    """Dependency injection for CircleService"""
    return CircleService(db)


# ============================================================================
# CIRCLES
# ============================================================================


@router.post("", response_model=CircleResponse, status_code=201)
async def create_circle(
    data: CircleCreate,
    current_user: Profile = Depends(get_current_user),
    service: CircleService = Depends(get_circle_service),
):
    """Create a circle; the creator becomes its first admin"""
    return service.create_circle(data, current_user)


@router.get("", response_model=list[CircleResponse])
async def my_circles(
    current_user: Profile = Depends(get_current_user),
    service: CircleService = Depends(get_circle_service),
):
    return service.my_circles(current_user)


@router.get("/discover")
async def discover_circles(
    radius_km: Optional[float] = Query(None, gt=0, le=500),
    current_user: Profile = Depends(get_current_user),
    service: CircleService = Depends(get_circle_service),
):
    results = service.discover(current_user, radius_km)
    payload = []
    for circle, distance in results:
        item = CircleResponse.model_validate(circle).model_dump()
        item["distance_km"] = distance
        payload.append(item)
    return payload


# ============================================================================
# INVITATIONS
# ============================================================================


@router.get("/invitations", response_model=list[InvitationResponse])
async def my_invitations(
    current_user: Profile = Depends(get_current_user),
    service: CircleService = Depends(get_circle_service),
):
    return service.my_invitations(current_user)


@router.post("/invitations/{invitation_id}/accept", response_model=MemberResponse)
async def accept_invitation(
    invitation_id: str,
    current_user: Profile = Depends(get_current_user),
    service: CircleService = Depends(get_circle_service),
):
    return service.accept_invitation(invitation_id, current_user)


@router.post("/invitations/{invitation_id}/decline")
async def decline_invitation(
    invitation_id: str,
    current_user: Profile = Depends(get_current_user),
    service: CircleService = Depends(get_circle_service),
):
    return service.decline_invitation(invitation_id, current_user)


@router.post("/{circle_id}/invitations", response_model=InvitationResponse, status_code=201)
async def invite_to_circle(
    circle_id: str,
    data: InvitationCreate,
    background_tasks: BackgroundTasks,
    current_user: Profile = Depends(get_current_user),
    service: CircleService = Depends(get_circle_service),
):
    return service.invite(circle_id, data.invitee_id, current_user, background_tasks)


# ============================================================================
# SINGLE CIRCLE
# ============================================================================


@router.get("/{circle_id}")
async def get_circle(
    circle_id: str,
    current_user: Profile = Depends(get_current_user),
    service: CircleService = Depends(get_circle_service),
):
    circle, membership = service.get_visible_circle(circle_id, current_user)
    data = CircleResponse.model_validate(circle).model_dump()
    data["my_role"] = membership.role if membership else None
    return data


@router.patch("/{circle_id}", response_model=CircleResponse)
async def update_circle(
    circle_id: str,
    data: CircleUpdate,
    current_user: Profile = Depends(get_current_user),
    service: CircleService = Depends(get_circle_service),
):
    return service.update_circle(circle_id, data, current_user)


@router.delete("/{circle_id}")
async def delete_circle(
    circle_id: str,
    current_user: Profile = Depends(get_current_user),
    service: CircleService = Depends(get_circle_service),
):
    return service.delete_circle(circle_id, current_user)


@router.post("/{circle_id}/join", response_model=MemberResponse)
async def join_circle(
    circle_id: str,
    current_user: Profile = Depends(get_current_user),
    service: CircleService = Depends(get_circle_service),
):
    return service.join(circle_id, current_user)


@router.post("/{circle_id}/leave")
async def leave_circle(
    circle_id: str,
    current_user: Profile = Depends(get_current_user),
    service: CircleService = Depends(get_circle_service),
):
    return service.leave(circle_id, current_user)


# ============================================================================
# MEMBERS
# ============================================================================


@router.get("/{circle_id}/members", response_model=list[MemberResponse])
async def list_members(
    circle_id: str,
    current_user: Profile = Depends(get_current_user),
    service: CircleService = Depends(get_circle_service),
):
    return service.members(circle_id, current_user)


@router.delete("/{circle_id}/members/{member_id}")
async def remove_member(
    circle_id: str,
    member_id: str,
    current_user: Profile = Depends(get_current_user),
    service: CircleService = Depends(get_circle_service),
):
    return service.remove_member(circle_id, member_id, current_user)


@router.patch("/{circle_id}/members/{member_id}", response_model=MemberResponse)
async def change_member_role(
    circle_id: str,
    member_id: str,
    data: RoleUpdate,
    current_user: Profile = Depends(get_current_user),
    service: CircleService = Depends(get_circle_service),
):
    return service.change_role(circle_id, member_id, data.role, current_user)


# ============================================================================
# CHAT
# ============================================================================


@router.get("/{circle_id}/messages", response_model=list[ChatMessageResponse])
async def circle_messages(
    circle_id: str,
    current_user: Profile = Depends(get_current_user),
    service: CircleService = Depends(get_circle_service),
):
    """Latest 50 messages, newest first"""
    return service.messages(circle_id, current_user)


@router.post("/{circle_id}/messages", response_model=ChatMessageResponse, status_code=201)
async def post_circle_message(
    circle_id: str,
    data: ChatMessageCreate,
    current_user: Profile = Depends(get_current_user),
    service: CircleService = Depends(get_circle_service),
):
    return service.post_message(circle_id, data.content, current_user)
