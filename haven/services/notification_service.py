"""
Unified Notification Service
Writes the in-app notification row, then fans out to push and email in the background.
Delivery failures are logged and never break the action that triggered them.
"""

import logging
from typing import Optional

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from ..models import Notification, Profile
from ..utils.sanitization import truncate
from .push_service import push_in_background

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = (
    "connection_request",
    "connection_accepted",
    "circle_invite",
    "event_rsvp",
    "event_cancelled",
    "event_invite",
    "message",
    "announcement",
)

# Profile preference that gates push/email for each type
PREFERENCE_BY_TYPE = {
    "connection_request": "notify_connection_requests",
    "connection_accepted": "notify_connection_requests",
    "circle_invite": "notify_circle_invites",
    "event_rsvp": "notify_event_rsvps",
    "event_cancelled": "notify_event_rsvps",
    "event_invite": "notify_event_rsvps",
    "message": "notify_messages",
    "announcement": "notify_announcements",
}


def wants(profile: Optional[Profile], notification_type: str) -> bool:
    """Whether the recipient has this kind of notification switched on"""
    if profile is None:
        return False
    field = PREFERENCE_BY_TYPE.get(notification_type)
    if not field:
        return True
    value = getattr(profile, field, True)
    return True if value is None else bool(value)


def create_notification(
    db: Session,
    user_id: str,
    notification_type: str,
    title: str,
    body: Optional[str] = None,
    link: Optional[str] = None,
    actor_id: Optional[str] = None,
    reference_id: Optional[str] = None,
    background_tasks: Optional[BackgroundTasks] = None,
) -> Optional[Notification]:
    """
    Record an in-app notification and schedule a push for it.

    The row is always written so the notification centre keeps a full history;
    the push only goes out when the recipient's preference allows it.
    Returns None if the row could not be written.
    """
    if notification_type not in NOTIFICATION_TYPES:
        raise ValueError(f"Unknown notification type: {notification_type}")

    try:
        notification = Notification(
            user_id=user_id,
            actor_id=actor_id,
            type=notification_type,
            title=title,
            body=truncate(body, 300) if body else None,
            link=link,
            reference_id=reference_id,
            read=False,
        )
        db.add(notification)
        db.commit()
        db.refresh(notification)
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to create {notification_type} notification for {user_id}: {e}")
        return None

    if background_tasks is not None:
        recipient = db.query(Profile).filter(Profile.id == user_id).first()
        if wants(recipient, notification_type):
            background_tasks.add_task(
                push_in_background, user_id, title, body or "", link or "/notifications"
            )

    return notification


async def deliver_email(email_func, notification_type: str, **email_kwargs) -> bool:
    """Run an email_service sender, logging instead of raising"""
    try:
        await email_func(**email_kwargs)
        return True
    except Exception as e:
        logger.error(f"Failed to send {notification_type} email to {email_kwargs.get('to')}: {e}")
        return False


def schedule_email(
    background_tasks: BackgroundTasks,
    recipient: Optional[Profile],
    notification_type: str,
    email_func,
    **email_kwargs,
) -> bool:
    """
    Queue a transactional email when the recipient has an address and allows
    email notifications for this type. Returns whether it was queued.
    """
    if recipient is None or not recipient.email:
        logger.debug(f"No email address for {notification_type} notification")
        return False
    if not recipient.email_notifications or not wants(recipient, notification_type):
        logger.debug(f"{recipient.id} opted out of {notification_type} emails")
        return False

    background_tasks.add_task(
        deliver_email, email_func, notification_type, to=recipient.email, **email_kwargs
    )
    return True
