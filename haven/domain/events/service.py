"""Event service - Business logic for events, RSVPs and invitations"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import BackgroundTasks, HTTPException
from sqlalchemy.orm import Session

from ...email_service import send_rsvp_email
from ...models import Event, EventInvitation, EventMessage, EventRsvp, Profile
from ...services.blocking import is_blocked_between
from ...services.notification_service import create_notification, schedule_email
from ...utils.geo import filter_by_radius, profile_coords
from ...utils.sanitization import clean_user_text
from .repository import EventRepository
from .schemas import EventCreate, EventResponse, EventUpdate

logger = logging.getLogger(__name__)

CHAT_PAGE_SIZE = 50


class EventService:
    """Service layer for event business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = EventRepository()

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    def present(
        self,
        event: Event,
        viewer: Profile,
        going_count: Optional[int] = None,
        my_rsvp: Optional[str] = None,
        distance_km: Optional[float] = None,
    ) -> dict:
        """Event as JSON; exact coordinates only when the host shares them or for the host"""
        data = EventResponse.model_validate(event).model_dump()
        if not event.show_exact_location and event.host_id != viewer.id:
            data["location_lat"] = None
            data["location_lng"] = None
        if going_count is None:
            going_count = self.repo.going_counts(self.db, [event.id]).get(event.id, 0)
        data["going_count"] = going_count
        data["spots_left"] = (
            max(0, event.max_attendees - going_count) if event.max_attendees else None
        )
        data["my_rsvp"] = my_rsvp
        data["is_host"] = event.host_id == viewer.id
        if distance_km is not None:
            data["distance_km"] = distance_km
        return data

    def present_many(
        self, events: list[Event], viewer: Profile, distances: Optional[dict] = None
    ) -> list[dict]:
        ids = [e.id for e in events]
        counts = self.repo.going_counts(self.db, ids)
        mine = self.repo.rsvps_for(self.db, viewer.id, ids)
        distances = distances or {}
        return [
            self.present(e, viewer, counts.get(e.id, 0), mine.get(e.id), distances.get(e.id))
            for e in events
        ]

    # ------------------------------------------------------------------
    # Access helpers
    # ------------------------------------------------------------------

    def get_event(self, event_id: str) -> Event:
        event = self.repo.get_event(self.db, event_id)
        if not event:
            raise HTTPException(status_code=404, detail="Event not found")
        return event

    def get_visible_event(self, event_id: str, user: Profile) -> Event:
        """Private events are only visible to the host, invitees and attendees"""
        event = self.get_event(event_id)
        if (
            event.is_private
            and event.host_id != user.id
            and not self.repo.is_invited(self.db, event.id, user.id)
            and not self.repo.get_rsvp(self.db, event.id, user.id)
        ):
            raise HTTPException(status_code=404, detail="Event not found")
        return event

    def require_host(self, event_id: str, user: Profile) -> Event:
        event = self.get_event(event_id)
        if event.host_id != user.id:
            raise HTTPException(status_code=403, detail="Only the host can do this")
        return event

    def require_participant(self, event_id: str, user: Profile) -> Event:
        """Host or anyone who RSVP'd going/maybe"""
        event = self.get_visible_event(event_id, user)
        if event.host_id == user.id:
            return event
        rsvp = self.repo.get_rsvp(self.db, event.id, user.id)
        if not rsvp or rsvp.status not in ("going", "maybe"):
            raise HTTPException(status_code=403, detail="Only attendees can do this")
        return event

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def create_event(self, data: EventCreate, user: Profile) -> Event:
        if data.event_date < date.today():
            raise HTTPException(status_code=400, detail="Event date cannot be in the past")

        event = Event(host_id=user.id, **data.model_dump())
        event.title = event.title.strip()
        self.db.add(event)
        self.db.flush()
        self.repo.upsert_rsvp(self.db, event.id, user.id, "going")
        self.db.commit()
        self.db.refresh(event)
        logger.info(f"Event {event.id} ({event.category}) created by {user.id}")
        return event

    def list_events(
        self, user: Profile, category: Optional[str] = None, radius_km: Optional[float] = None
    ) -> list[dict]:
        events = self.repo.get_upcoming_visible(self.db, user.id, category)
        distances = None
        if radius_km is not None:
            pairs = filter_by_radius(profile_coords(user), events, radius_km)
            events = [e for e, _ in pairs]
            distances = {e.id: d for e, d in pairs if d is not None}
        return self.present_many(events, user, distances)

    def my_events(self, user: Profile, include_past: bool = False) -> dict:
        since = None if include_past else date.today()
        return {
            "hosting": self.present_many(self.repo.get_hosted(self.db, user.id, since), user),
            "going": self.present_many(self.repo.get_attending(self.db, user.id, since), user),
        }

    def update_event(self, event_id: str, data: EventUpdate, user: Profile) -> Event:
        event = self.require_host(event_id, user)
        if event.is_cancelled:
            raise HTTPException(status_code=400, detail="Cancelled events cannot be edited")

        updates = data.model_dump(exclude_unset=True)
        if "max_attendees" in updates and updates["max_attendees"] is not None:
            going = self.repo.going_counts(self.db, [event.id]).get(event.id, 0)
            if updates["max_attendees"] < going:
                raise HTTPException(
                    status_code=400,
                    detail=f"{going} families are already going; max_attendees cannot be lower",
                )

        nullable = {"description", "event_time", "location_details", "age_range", "max_attendees",
                    "location_lat", "location_lng"}
        for key, value in updates.items():
            if value is not None or key in nullable:
                setattr(event, key, value)
        self.db.commit()
        self.db.refresh(event)
        return event

    def cancel_event(self, event_id: str, user: Profile, background_tasks: BackgroundTasks) -> Event:
        event = self.require_host(event_id, user)
        if event.is_cancelled:
            return event

        event.is_cancelled = True
        self.db.commit()
        self.db.refresh(event)
        logger.info(f"Event {event.id} cancelled by host {user.id}")

        for rsvp in self.repo.get_attendees(self.db, event.id):
            if rsvp.profile_id == user.id:
                continue
            create_notification(
                self.db,
                user_id=rsvp.profile_id,
                actor_id=user.id,
                notification_type="event_cancelled",
                title=f"{event.title} has been cancelled",
                body=f"{user.name} cancelled the event on {event.event_date.isoformat()}.",
                link="/events",
                reference_id=event.id,
                background_tasks=background_tasks,
            )
        return event

    # ------------------------------------------------------------------
    # RSVPs
    # ------------------------------------------------------------------

    def _check_capacity(self, event: Event, user: Profile) -> None:
        if not event.max_attendees:
            return
        existing = self.repo.get_rsvp(self.db, event.id, user.id)
        if existing and existing.status == "going":
            return
        going = self.repo.going_counts(self.db, [event.id]).get(event.id, 0)
        if going >= event.max_attendees:
            raise HTTPException(status_code=409, detail="This event is full")

    def rsvp(
        self, event_id: str, status: str, user: Profile, background_tasks: BackgroundTasks
    ) -> EventRsvp:
        event = self.get_visible_event(event_id, user)
        if event.is_cancelled:
            raise HTTPException(status_code=400, detail="This event has been cancelled")
        if event.host_id == user.id and status != "going":
            raise HTTPException(status_code=400, detail="The host is always going")
        if event.host_id != user.id and is_blocked_between(self.db, user.id, event.host_id):
            raise HTTPException(status_code=403, detail="You cannot RSVP to this event")

        previous = self.repo.get_rsvp(self.db, event.id, user.id)
        was_going = previous is not None and previous.status == "going"

        if status == "going":
            self._check_capacity(event, user)

        rsvp = self.repo.upsert_rsvp(self.db, event.id, user.id, status)
        self.db.commit()
        self.db.refresh(rsvp)

        if status == "going" and not was_going and event.host_id != user.id:
            self._notify_host(event, user, background_tasks)
        return rsvp

    def _notify_host(self, event: Event, attendee: Profile, background_tasks: BackgroundTasks):
        create_notification(
            self.db,
            user_id=event.host_id,
            actor_id=attendee.id,
            notification_type="event_rsvp",
            title=f"{attendee.name} is going to {event.title}",
            body=f"{event.event_date.isoformat()}{' at ' + event.event_time if event.event_time else ''}",
            link="/events/my",
            reference_id=event.id,
            background_tasks=background_tasks,
        )
        schedule_email(
            background_tasks,
            event.host,
            "event_rsvp",
            send_rsvp_email,
            event_title=event.title,
            event_date=event.event_date.isoformat(),
            attendee_name=attendee.name,
        )

    def attendees(self, event_id: str, user: Profile) -> list[EventRsvp]:
        event = self.get_visible_event(event_id, user)
        return self.repo.get_attendees(self.db, event.id)

    # ------------------------------------------------------------------
    # Invitations
    # ------------------------------------------------------------------

    def invite(
        self, event_id: str, invitee_id: str, user: Profile, background_tasks: BackgroundTasks
    ) -> EventInvitation:
        event = self.require_host(event_id, user)
        if event.is_cancelled:
            raise HTTPException(status_code=400, detail="This event has been cancelled")
        if invitee_id == user.id:
            raise HTTPException(status_code=400, detail="You cannot invite yourself")

        invitee = self.db.query(Profile).filter(Profile.id == invitee_id).first()
        if not invitee or invitee.is_banned or not invitee.is_active:
            raise HTTPException(status_code=404, detail="Profile not found")
        if is_blocked_between(self.db, user.id, invitee.id):
            raise HTTPException(status_code=403, detail="You cannot invite this profile")
        if self.repo.get_pending_invitation(self.db, event.id, invitee.id):
            raise HTTPException(status_code=409, detail="An invitation is already pending")

        invitation = EventInvitation(
            event_id=event.id, inviter_id=user.id, invitee_id=invitee.id, status="pending"
        )
        self.db.add(invitation)
        self.db.commit()
        self.db.refresh(invitation)

        create_notification(
            self.db,
            user_id=invitee.id,
            actor_id=user.id,
            notification_type="event_invite",
            title=f"{user.name} invited you to {event.title}",
            body=f"{event.event_date.isoformat()} · {event.location_name}",
            link="/events/invitations",
            reference_id=event.id,
            background_tasks=background_tasks,
        )
        return invitation

    def my_invitations(self, user: Profile) -> list[EventInvitation]:
        return self.repo.get_pending_invitations_for(self.db, user.id)

    def _own_pending_invitation(self, invitation_id: str, user: Profile) -> EventInvitation:
        invitation = self.repo.get_invitation(self.db, invitation_id)
        if not invitation or invitation.invitee_id != user.id:
            raise HTTPException(status_code=404, detail="Invitation not found")
        if invitation.status != "pending":
            raise HTTPException(status_code=400, detail="This invitation has already been answered")
        return invitation

    def accept_invitation(
        self, invitation_id: str, user: Profile, background_tasks: BackgroundTasks
    ) -> EventRsvp:
        """Accepting an invitation is an RSVP of "going" """
        invitation = self._own_pending_invitation(invitation_id, user)
        rsvp = self.rsvp(invitation.event_id, "going", user, background_tasks)
        invitation.status = "accepted"
        invitation.responded_at = datetime.utcnow()
        self.db.commit()
        return rsvp

    def decline_invitation(self, invitation_id: str, user: Profile) -> dict:
        invitation = self._own_pending_invitation(invitation_id, user)
        invitation.status = "declined"
        invitation.responded_at = datetime.utcnow()
        self.db.commit()
        return {"message": "Invitation declined"}

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    def messages(self, event_id: str, user: Profile) -> list[EventMessage]:
        event = self.require_participant(event_id, user)
        return self.repo.get_messages(self.db, event.id, CHAT_PAGE_SIZE)

    def post_message(self, event_id: str, content: str, user: Profile) -> EventMessage:
        event = self.require_participant(event_id, user)
        try:
            content = clean_user_text(content, max_length=5000)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        message = EventMessage(event_id=event.id, sender_id=user.id, content=content)
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)
        return message
