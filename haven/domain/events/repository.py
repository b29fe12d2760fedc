"""Event repository - Database operations for events"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload

from ...models import Event, EventInvitation, EventMessage, EventRsvp


class EventRepository:
    """Repository for event database operations"""

    @staticmethod
    def get_event(db: Session, event_id: str) -> Optional[Event]:
        return (
            db.query(Event).options(joinedload(Event.host)).filter(Event.id == event_id).first()
        )

    @staticmethod
    def get_upcoming_visible(
        db: Session, viewer_id: str, category: Optional[str] = None, today: Optional[date] = None
    ) -> list[Event]:
        """Upcoming, not cancelled, and public unless the viewer hosts or was invited"""
        today = today or date.today()
        invited = select(EventInvitation.event_id).where(EventInvitation.invitee_id == viewer_id)
        query = (
            db.query(Event)
            .options(joinedload(Event.host))
            .filter(
                Event.event_date >= today,
                Event.is_cancelled.is_(False),
                or_(
                    Event.is_private.is_(False),
                    Event.host_id == viewer_id,
                    Event.id.in_(invited),
                ),
            )
        )
        if category:
            query = query.filter(Event.category == category)
        return query.order_by(Event.event_date.asc(), Event.event_time.asc()).all()

    @staticmethod
    def get_hosted(db: Session, host_id: str, since: Optional[date] = None) -> list[Event]:
        query = db.query(Event).filter(Event.host_id == host_id)
        if since:
            query = query.filter(Event.event_date >= since)
        return query.order_by(Event.event_date.asc()).all()

    @staticmethod
    def get_attending(db: Session, profile_id: str, since: Optional[date] = None) -> list[Event]:
        query = (
            db.query(Event)
            .join(EventRsvp, EventRsvp.event_id == Event.id)
            .filter(
                EventRsvp.profile_id == profile_id,
                EventRsvp.status == "going",
                Event.host_id != profile_id,
                Event.is_cancelled.is_(False),
            )
        )
        if since:
            query = query.filter(Event.event_date >= since)
        return query.order_by(Event.event_date.asc()).all()

    @staticmethod
    def going_counts(db: Session, event_ids: list[str]) -> dict[str, int]:
        if not event_ids:
            return {}
        return dict(
            db.query(EventRsvp.event_id, func.count(EventRsvp.id))
            .filter(EventRsvp.event_id.in_(event_ids), EventRsvp.status == "going")
            .group_by(EventRsvp.event_id)
            .all()
        )

    @staticmethod
    def get_rsvp(db: Session, event_id: str, profile_id: str) -> Optional[EventRsvp]:
        return (
            db.query(EventRsvp)
            .filter(EventRsvp.event_id == event_id, EventRsvp.profile_id == profile_id)
            .first()
        )

    @staticmethod
    def rsvps_for(db: Session, profile_id: str, event_ids: list[str]) -> dict[str, str]:
        if not event_ids:
            return {}
        return dict(
            db.query(EventRsvp.event_id, EventRsvp.status)
            .filter(EventRsvp.profile_id == profile_id, EventRsvp.event_id.in_(event_ids))
            .all()
        )

    @staticmethod
    def upsert_rsvp(db: Session, event_id: str, profile_id: str, status: str) -> EventRsvp:
        existing = EventRepository.get_rsvp(db, event_id, profile_id)
        if existing:
            existing.status = status
            existing.updated_at = datetime.utcnow()
            return existing
        created = EventRsvp(event_id=event_id, profile_id=profile_id, status=status)
        db.add(created)
        return created

    @staticmethod
    def get_attendees(db: Session, event_id: str) -> list[EventRsvp]:
        return (
            db.query(EventRsvp)
            .options(joinedload(EventRsvp.profile))
            .filter(EventRsvp.event_id == event_id, EventRsvp.status.in_(("going", "maybe")))
            .order_by(EventRsvp.created_at.asc())
            .all()
        )

    @staticmethod
    def is_invited(db: Session, event_id: str, profile_id: str) -> bool:
        return (
            db.query(EventInvitation.id)
            .filter(EventInvitation.event_id == event_id, EventInvitation.invitee_id == profile_id)
            .first()
            is not None
        )

    @staticmethod
    def get_invitation(db: Session, invitation_id: str) -> Optional[EventInvitation]:
        return db.query(EventInvitation).filter(EventInvitation.id == invitation_id).first()

    @staticmethod
    def get_pending_invitation(
        db: Session, event_id: str, invitee_id: str
    ) -> Optional[EventInvitation]:
        return (
            db.query(EventInvitation)
            .filter(
                EventInvitation.event_id == event_id,
                EventInvitation.invitee_id == invitee_id,
                EventInvitation.status == "pending",
            )
            .first()
        )

    @staticmethod
    def get_pending_invitations_for(db: Session, invitee_id: str) -> list[EventInvitation]:
        return (
            db.query(EventInvitation)
            .join(Event, Event.id == EventInvitation.event_id)
            .filter(
                EventInvitation.invitee_id == invitee_id,
                EventInvitation.status == "pending",
                Event.is_cancelled.is_(False),
            )
            .order_by(Event.event_date.asc())
            .all()
        )

    @staticmethod
    def get_messages(db: Session, event_id: str, limit: int = 50) -> list[EventMessage]:
        return (
            db.query(EventMessage)
            .options(joinedload(EventMessage.sender))
            .filter(EventMessage.event_id == event_id)
            .order_by(EventMessage.created_at.desc())
            .limit(limit)
            .all()
        )
