"""
Account deletion.

Rows are removed child-first so foreign keys never point at a deleted parent.
Used by DELETE /profiles/me and the admin delete/cleanup endpoints.
"""

import logging
from typing import Iterable, Optional

from fastapi import HTTPException
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..models import (
    BlockedUser,
    Broadcast,
    BugReport,
    CalendarNote,
    Circle,
    CircleInvitation,
    CircleMember,
    CircleMessage,
    CommunityPost,
    Connection,
    Conversation,
    Event,
    EventInvitation,
    EventMessage,
    EventRsvp,
    Feedback,
    Message,
    Notification,
    Profile,
    PushSubscription,
    Report,
)

logger = logging.getLogger(__name__)


def _delete(query) -> int:
    return query.delete(synchronize_session=False)


def _recount_members(db: Session, circle_ids: Iterable[str]) -> None:
    for circle_id in circle_ids:
        count = (
            db.query(func.count(CircleMember.id)).filter(CircleMember.circle_id == circle_id).scalar()
        )
        db.query(Circle).filter(Circle.id == circle_id).update(
            {Circle.member_count: count or 0}, synchronize_session=False
        )


def _longest_standing(db: Session, circle_id: str, user_id: str) -> Optional[CircleMember]:
    return (
        db.query(CircleMember)
        .filter(CircleMember.circle_id == circle_id, CircleMember.member_id != user_id)
        .order_by(CircleMember.role.asc(), CircleMember.joined_at.asc())
        .first()
    )


def _hand_over_circles(db: Session, user_id: str) -> None:
    """
    Circles the user created pass to their longest-standing remaining member
    (promoted to admin). Circles with nobody left are deleted.
    """
    for circle in db.query(Circle).filter(Circle.created_by == user_id).all():
        successor = _longest_standing(db, circle.id, user_id)
        if successor:
            successor.role = "admin"
            circle.created_by = successor.member_id
            continue

        _delete(db.query(CircleMessage).filter(CircleMessage.circle_id == circle.id))
        _delete(db.query(CircleInvitation).filter(CircleInvitation.circle_id == circle.id))
        _delete(db.query(CircleMember).filter(CircleMember.circle_id == circle.id))
        db.delete(circle)
    db.flush()


def _promote_where_adminless(db: Session, circle_ids: Iterable[str], user_id: str) -> None:
    """Circles left without an admin promote their longest-standing member"""
    for circle_id in circle_ids:
        has_admin = (
            db.query(CircleMember.id)
            .filter(CircleMember.circle_id == circle_id, CircleMember.role == "admin")
            .first()
        )
        if has_admin:
            continue
        successor = _longest_standing(db, circle_id, user_id)
        if successor:
            successor.role = "admin"
            logger.info(f"Promoted {successor.member_id} to admin of circle {circle_id}")
    db.flush()


def delete_account(db: Session, user_id: str, reason: Optional[str] = None) -> None:
    """
    Delete a profile and everything that references it.

    Raises:
        HTTPException 404: unknown profile
        HTTPException 500: database failure (the session is rolled back)
    """
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")

    logger.info(f"Deleting account {user_id}" + (f" - Reason: {reason}" if reason else ""))

    try:
        _delete(
            db.query(BlockedUser).filter(
                or_(BlockedUser.blocker_id == user_id, BlockedUser.blocked_id == user_id)
            )
        )
        _delete(db.query(Report).filter(or_(Report.reporter_id == user_id, Report.reported_id == user_id)))
        _delete(db.query(PushSubscription).filter(PushSubscription.user_id == user_id))

        _delete(db.query(CircleMessage).filter(CircleMessage.sender_id == user_id))
        _delete(db.query(EventMessage).filter(EventMessage.sender_id == user_id))

        member_of = [
            row.circle_id
            for row in db.query(CircleMember.circle_id).filter(CircleMember.member_id == user_id)
        ]
        _delete(db.query(CircleMember).filter(CircleMember.member_id == user_id))
        _delete(
            db.query(CircleInvitation).filter(
                or_(CircleInvitation.inviter_id == user_id, CircleInvitation.invitee_id == user_id)
            )
        )
        db.flush()
        _hand_over_circles(db, user_id)
        _promote_where_adminless(db, member_of, user_id)
        _recount_members(db, member_of)

        _delete(
            db.query(EventInvitation).filter(
                or_(EventInvitation.inviter_id == user_id, EventInvitation.invitee_id == user_id)
            )
        )
        _delete(db.query(EventRsvp).filter(EventRsvp.profile_id == user_id))

        hosted = [row.id for row in db.query(Event.id).filter(Event.host_id == user_id)]
        if hosted:
            _delete(db.query(EventMessage).filter(EventMessage.event_id.in_(hosted)))
            _delete(db.query(EventInvitation).filter(EventInvitation.event_id.in_(hosted)))
            _delete(db.query(EventRsvp).filter(EventRsvp.event_id.in_(hosted)))
            _delete(db.query(Event).filter(Event.id.in_(hosted)))

        _delete(db.query(CommunityPost).filter(CommunityPost.author_id == user_id))
        _delete(db.query(CalendarNote).filter(CalendarNote.profile_id == user_id))
        _delete(db.query(Message).filter(Message.sender_id == user_id))

        conversations = [
            row.id
            for row in db.query(Conversation.id).filter(
                or_(Conversation.participant_1 == user_id, Conversation.participant_2 == user_id)
            )
        ]
        if conversations:
            _delete(db.query(Message).filter(Message.conversation_id.in_(conversations)))
            _delete(db.query(Conversation).filter(Conversation.id.in_(conversations)))

        _delete(
            db.query(Connection).filter(
                or_(Connection.requester_id == user_id, Connection.receiver_id == user_id)
            )
        )
        _delete(db.query(Notification).filter(Notification.user_id == user_id))

        # Keep tickets and broadcast history, just detach them
        for model, column in ((BugReport, BugReport.user_id), (Feedback, Feedback.user_id)):
            db.query(model).filter(column == user_id).update(
                {column: None}, synchronize_session=False
            )
        db.query(Broadcast).filter(Broadcast.sent_by == user_id).update(
            {Broadcast.sent_by: None}, synchronize_session=False
        )

        db.delete(profile)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Account deletion failed for {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Account deletion failed") from e

    logger.info(f"Account {user_id} deleted")


def cleanup_accounts(db: Session, user_ids: list[str], reason: str = "Test account cleanup") -> dict:
    """Bulk delete; one failure does not stop the rest"""
    deleted: list[str] = []
    failed: list[dict] = []
    for user_id in user_ids:
        try:
            delete_account(db, user_id, reason=reason)
            deleted.append(user_id)
        except HTTPException as e:
            failed.append({"id": user_id, "error": e.detail})
    return {"deleted": deleted, "failed": failed}
