"""Circle service - Business logic for circles, membership and invitations"""

import logging
from typing import Optional

from fastapi import BackgroundTasks, HTTPException
from sqlalchemy.orm import Session

from ...email_service import send_circle_invite_email
from ...models import Circle, CircleInvitation, CircleMember, CircleMessage, Profile
from ...services.blocking import is_blocked_between
from ...services.notification_service import create_notification, schedule_email
from ...utils.geo import filter_by_radius, profile_coords
from ...utils.sanitization import clean_user_text
from .repository import CircleRepository
from .schemas import CircleCreate, CircleUpdate

logger = logging.getLogger(__name__)

CHAT_PAGE_SIZE = 50


class CircleService:
    """Service layer for circle business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CircleRepository()

    # ------------------------------------------------------------------
    # Access helpers
    # ------------------------------------------------------------------

    def get_circle(self, circle_id: str) -> Circle:
        circle = self.repo.get_circle(self.db, circle_id)
        if not circle:
            raise HTTPException(status_code=404, detail="Circle not found")
        return circle

    def get_visible_circle(self, circle_id: str, user: Profile) -> tuple[Circle, Optional[CircleMember]]:
        """Public circles are visible to everyone, private ones only to members"""
        circle = self.get_circle(circle_id)
        membership = self.repo.get_membership(self.db, circle.id, user.id)
        if not circle.is_public and not membership:
            raise HTTPException(status_code=404, detail="Circle not found")
        return circle, membership

    def require_member(self, circle_id: str, user: Profile) -> tuple[Circle, CircleMember]:
        circle, membership = self.get_visible_circle(circle_id, user)
        if not membership:
            raise HTTPException(status_code=403, detail="Only members can do this")
        return circle, membership

    def require_admin(self, circle_id: str, user: Profile) -> tuple[Circle, CircleMember]:
        circle, membership = self.require_member(circle_id, user)
        if membership.role != "admin":
            raise HTTPException(status_code=403, detail="Only circle admins can do this")
        return circle, membership

    # ------------------------------------------------------------------
    # Circles
    # ------------------------------------------------------------------

    def create_circle(self, data: CircleCreate, user: Profile) -> Circle:
        circle = Circle(
            name=data.name.strip(),
            description=(data.description or "").strip() or None,
            emoji=data.emoji,
            color=data.color,
            is_public=data.is_public,
            created_by=user.id,
            member_count=0,
        )
        self.db.add(circle)
        self.db.flush()
        self.repo.add_member(self.db, circle, user.id, role="admin")
        self.db.refresh(circle)
        logger.info(f"Circle {circle.id} created by {user.id}")
        return circle

    def my_circles(self, user: Profile) -> list[Circle]:
        return self.repo.get_member_circles(self.db, user.id)

    def discover(self, user: Profile, radius_km: Optional[float] = None) -> list[tuple[Circle, Optional[float]]]:
        """
        Public circles, optionally limited to those whose creator lives within
        radius_km of the caller. Without caller coordinates no radius applies.
        """
        circles = self.repo.get_public_circles(self.db)
        if radius_km is None:
            return [(c, None) for c in circles]
        return filter_by_radius(
            profile_coords(user),
            circles,
            radius_km,
            coords=lambda circle: profile_coords(circle.creator),
        )

    def update_circle(self, circle_id: str, data: CircleUpdate, user: Profile) -> Circle:
        circle, _ = self.require_admin(circle_id, user)
        for key, value in data.model_dump(exclude_unset=True).items():
            if key == "name" and value is not None:
                value = value.strip()
            if value is not None or key == "description":
                setattr(circle, key, value)
        self.db.commit()
        self.db.refresh(circle)
        return circle

    def delete_circle(self, circle_id: str, user: Profile) -> dict:
        """Soft delete: the circle disappears but its rows are kept"""
        circle, _ = self.require_admin(circle_id, user)
        circle.is_active = False
        self.db.commit()
        logger.info(f"Circle {circle.id} deactivated by {user.id}")
        return {"message": "Circle deleted"}

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def join(self, circle_id: str, user: Profile) -> CircleMember:
        circle = self.get_circle(circle_id)
        membership = self.repo.get_membership(self.db, circle.id, user.id)
        if membership:
            return membership
        if not circle.is_public:
            raise HTTPException(status_code=403, detail="This circle is invite only")
        return self.repo.add_member(self.db, circle, user.id)

    def leave(self, circle_id: str, user: Profile) -> dict:
        circle = self.get_circle(circle_id)
        membership = self.repo.get_membership(self.db, circle.id, user.id)
        if not membership:
            raise HTTPException(status_code=404, detail="You are not a member of this circle")

        if (
            membership.role == "admin"
            and self.repo.count_admins(self.db, circle.id) == 1
            and circle.member_count > 1
        ):
            raise HTTPException(
                status_code=400,
                detail="Make another member an admin before leaving this circle",
            )

        self.repo.remove_member(self.db, circle, membership)
        if circle.member_count == 0:
            circle.is_active = False
            self.db.commit()
            logger.info(f"Circle {circle.id} deactivated after its last member left")
        return {"message": "Left circle"}

    def members(self, circle_id: str, user: Profile) -> list[CircleMember]:
        circle, _ = self.get_visible_circle(circle_id, user)
        return self.repo.get_members(self.db, circle.id)

    def remove_member(self, circle_id: str, member_id: str, user: Profile) -> dict:
        circle, _ = self.require_admin(circle_id, user)
        if member_id == user.id:
            raise HTTPException(status_code=400, detail="Use leave to remove yourself")
        membership = self.repo.get_membership(self.db, circle.id, member_id)
        if not membership:
            raise HTTPException(status_code=404, detail="Member not found")
        self.repo.remove_member(self.db, circle, membership)
        return {"message": "Member removed"}

    def change_role(self, circle_id: str, member_id: str, role: str, user: Profile) -> CircleMember:
        circle, _ = self.require_admin(circle_id, user)
        membership = self.repo.get_membership(self.db, circle.id, member_id)
        if not membership:
            raise HTTPException(status_code=404, detail="Member not found")
        if (
            membership.role == "admin"
            and role != "admin"
            and self.repo.count_admins(self.db, circle.id) == 1
        ):
            raise HTTPException(status_code=400, detail="A circle needs at least one admin")
        membership.role = role
        self.db.commit()
        self.db.refresh(membership)
        return membership

    # ------------------------------------------------------------------
    # Invitations
    # ------------------------------------------------------------------

    def invite(
        self, circle_id: str, invitee_id: str, user: Profile, background_tasks: BackgroundTasks
    ) -> CircleInvitation:
        circle, _ = self.require_admin(circle_id, user)

        invitee = self.db.query(Profile).filter(Profile.id == invitee_id).first()
        if not invitee or invitee.is_banned or not invitee.is_active:
            raise HTTPException(status_code=404, detail="Profile not found")
        if is_blocked_between(self.db, user.id, invitee.id):
            raise HTTPException(status_code=403, detail="You cannot invite this profile")
        if self.repo.get_membership(self.db, circle.id, invitee.id):
            raise HTTPException(status_code=409, detail="Already a member of this circle")
        if self.repo.get_pending_invitation(self.db, circle.id, invitee.id):
            raise HTTPException(status_code=409, detail="An invitation is already pending")

        invitation = CircleInvitation(
            circle_id=circle.id, inviter_id=user.id, invitee_id=invitee.id, status="pending"
        )
        self.db.add(invitation)
        self.db.commit()
        self.db.refresh(invitation)

        create_notification(
            self.db,
            user_id=invitee.id,
            actor_id=user.id,
            notification_type="circle_invite",
            title=f"{user.name} invited you to join {circle.name}",
            body=circle.description,
            link="/circles/invitations",
            reference_id=circle.id,
            background_tasks=background_tasks,
        )
        schedule_email(
            background_tasks,
            invitee,
            "circle_invite",
            send_circle_invite_email,
            from_name=user.name,
            circle_name=circle.name,
        )
        return invitation

    def my_invitations(self, user: Profile) -> list[CircleInvitation]:
        return self.repo.get_pending_invitations_for(self.db, user.id)

    def _own_pending_invitation(self, invitation_id: str, user: Profile) -> CircleInvitation:
        invitation = self.repo.get_invitation(self.db, invitation_id)
        if not invitation or invitation.invitee_id != user.id:
            raise HTTPException(status_code=404, detail="Invitation not found")
        if invitation.status != "pending":
            raise HTTPException(status_code=400, detail="This invitation has already been answered")
        return invitation

    def accept_invitation(self, invitation_id: str, user: Profile) -> CircleMember:
        invitation = self._own_pending_invitation(invitation_id, user)
        circle = self.get_circle(invitation.circle_id)

        self.repo.respond_to_invitation(self.db, invitation, "accepted")
        membership = self.repo.get_membership(self.db, circle.id, user.id)
        if membership:
            self.db.commit()
            return membership
        return self.repo.add_member(self.db, circle, user.id)

    def decline_invitation(self, invitation_id: str, user: Profile) -> dict:
        invitation = self._own_pending_invitation(invitation_id, user)
        self.repo.respond_to_invitation(self.db, invitation, "declined")
        self.db.commit()
        return {"message": "Invitation declined"}

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    def messages(self, circle_id: str, user: Profile) -> list[CircleMessage]:
        circle, _ = self.require_member(circle_id, user)
        return self.repo.get_messages(self.db, circle.id, CHAT_PAGE_SIZE)

    def post_message(self, circle_id: str, content: str, user: Profile) -> CircleMessage:
        circle, _ = self.require_member(circle_id, user)
        try:
            content = clean_user_text(content, max_length=5000)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        message = CircleMessage(circle_id=circle.id, sender_id=user.id, content=content)
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)
        return message
