"""Circle repository - Database operations for circles"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Circle, CircleInvitation, CircleMember, CircleMessage


class CircleRepository:
    """Repository for circle database operations"""

    @staticmethod
    def get_circle(db: Session, circle_id: str) -> Optional[Circle]:
        return db.query(Circle).filter(Circle.id == circle_id, Circle.is_active.is_(True)).first()

    @staticmethod
    def get_member_circles(db: Session, member_id: str) -> list[Circle]:
        return (
            db.query(Circle)
            .join(CircleMember, CircleMember.circle_id == Circle.id)
            .filter(CircleMember.member_id == member_id, Circle.is_active.is_(True))
            .order_by(Circle.name.asc())
            .all()
        )

    @staticmethod
    def get_public_circles(db: Session) -> list[Circle]:
        """Public, active circles; largest first, then newest"""
        return (
            db.query(Circle)
            .options(joinedload(Circle.creator))
            .filter(Circle.is_public.is_(True), Circle.is_active.is_(True))
            .order_by(Circle.member_count.desc(), Circle.created_at.desc())
            .all()
        )

    @staticmethod
    def get_membership(db: Session, circle_id: str, member_id: str) -> Optional[CircleMember]:
        return (
            db.query(CircleMember)
            .filter(CircleMember.circle_id == circle_id, CircleMember.member_id == member_id)
            .first()
        )

    @staticmethod
    def get_members(db: Session, circle_id: str) -> list[CircleMember]:
        return (
            db.query(CircleMember)
            .options(joinedload(CircleMember.profile))
            .filter(CircleMember.circle_id == circle_id)
            .order_by(CircleMember.role.desc(), CircleMember.joined_at.asc())
            .all()
        )

    @staticmethod
    def count_admins(db: Session, circle_id: str) -> int:
        return (
            db.query(func.count(CircleMember.id))
            .filter(CircleMember.circle_id == circle_id, CircleMember.role == "admin")
            .scalar()
        )

    @staticmethod
    def sync_member_count(db: Session, circle: Circle) -> None:
        circle.member_count = (
            db.query(func.count(CircleMember.id)).filter(CircleMember.circle_id == circle.id).scalar()
            or 0
        )

    @staticmethod
    def add_member(db: Session, circle: Circle, member_id: str, role: str = "member") -> CircleMember:
        membership = CircleMember(circle_id=circle.id, member_id=member_id, role=role)
        db.add(membership)
        db.flush()
        CircleRepository.sync_member_count(db, circle)
        db.commit()
        db.refresh(membership)
        return membership

    @staticmethod
    def remove_member(db: Session, circle: Circle, membership: CircleMember) -> None:
        db.delete(membership)
        db.flush()
        CircleRepository.sync_member_count(db, circle)
        db.commit()

    @staticmethod
    def get_invitation(db: Session, invitation_id: str) -> Optional[CircleInvitation]:
        return db.query(CircleInvitation).filter(CircleInvitation.id == invitation_id).first()

    @staticmethod
    def get_pending_invitation(
        db: Session, circle_id: str, invitee_id: str
    ) -> Optional[CircleInvitation]:
        return (
            db.query(CircleInvitation)
            .filter(
                CircleInvitation.circle_id == circle_id,
                CircleInvitation.invitee_id == invitee_id,
                CircleInvitation.status == "pending",
            )
            .first()
        )

    @staticmethod
    def get_pending_invitations_for(db: Session, invitee_id: str) -> list[CircleInvitation]:
        return (
            db.query(CircleInvitation)
            .join(Circle, Circle.id == CircleInvitation.circle_id)
            .filter(
                CircleInvitation.invitee_id == invitee_id,
                CircleInvitation.status == "pending",
                Circle.is_active.is_(True),
            )
            .order_by(CircleInvitation.created_at.desc())
            .all()
        )

    @staticmethod
    def respond_to_invitation(db: Session, invitation: CircleInvitation, status: str) -> None:
        invitation.status = status
        invitation.responded_at = datetime.utcnow()

    @staticmethod
    def get_messages(db: Session, circle_id: str, limit: int = 50) -> list[CircleMessage]:
        return (
            db.query(CircleMessage)
            .options(joinedload(CircleMessage.sender))
            .filter(CircleMessage.circle_id == circle_id)
            .order_by(CircleMessage.created_at.desc())
            .limit(limit)
            .all()
        )
