"""
Direct messages.

One conversation per pair of profiles, whichever of them started it. The
conversation row keeps a copy of the latest message for the inbox list.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from .. import config
from ..auth import get_current_user
from ..database import get_db
from ..models import Conversation, Message, Profile
from ..rate_limiter import create_rate_limiter
from ..schemas import ProfileSummary
from ..services.activity import is_online
from ..services.blocking import is_blocked_between
from ..services.notification_service import create_notification
from ..utils.sanitization import clean_user_text, truncate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Messages"])

rate_limit_messages = create_rate_limiter(
    limit=config.RATE_LIMIT_MESSAGES_PER_MINUTE,
    window_seconds=60,
    key_prefix="messages",
    per="user",
)


class StartConversation(BaseModel):
    user_id: str


class SendMessage(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


def _message_dict(message: Message) -> dict:
    return {
        "id": message.id,
        "conversation_id": message.conversation_id,
        "sender_id": message.sender_id,
        "content": message.content,
        "read_at": message.read_at,
        "created_at": message.created_at,
    }


def _conversation_dict(conversation: Conversation, other: Profile, unread: int = 0) -> dict:
    return {
        "id": conversation.id,
        "participant_1": conversation.participant_1,
        "participant_2": conversation.participant_2,
        "last_message_text": conversation.last_message_text,
        "last_message_at": conversation.last_message_at,
        "last_message_by": conversation.last_message_by,
        "created_at": conversation.created_at,
        "unread_count": unread,
        "other": ProfileSummary.model_validate(other).model_dump() if other else None,
        "other_online": is_online(other.last_active_at) if other else False,
    }


def _get_conversation(db: Session, conversation_id: str, user: Profile) -> Conversation:
    conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if not conversation or not conversation.has_participant(user.id):
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation


def _refresh_summary(db: Session, conversation: Conversation) -> None:
    latest = (
        db.query(Message)
        .filter(Message.conversation_id == conversation.id)
        .order_by(Message.created_at.desc())
        .first()
    )
    conversation.last_message_text = truncate(latest.content) if latest else None
    conversation.last_message_at = latest.created_at if latest else None
    conversation.last_message_by = latest.sender_id if latest else None


@router.get("/conversations")
async def list_conversations(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    conversations = (
        db.query(Conversation)
        .filter(
            or_(
                Conversation.participant_1 == current_user.id,
                Conversation.participant_2 == current_user.id,
            )
        )
        .all()
    )
    if not conversations:
        return []

    ids = [c.id for c in conversations]
    unread = dict(
        db.query(Message.conversation_id, func.count(Message.id))
        .filter(
            Message.conversation_id.in_(ids),
            Message.sender_id != current_user.id,
            Message.read_at.is_(None),
        )
        .group_by(Message.conversation_id)
        .all()
    )
    other_ids = {c.other_participant(current_user.id) for c in conversations}
    others = {p.id: p for p in db.query(Profile).filter(Profile.id.in_(other_ids)).all()}

    conversations.sort(key=lambda c: c.last_message_at or c.created_at, reverse=True)
    return [
        _conversation_dict(c, others.get(c.other_participant(current_user.id)), unread.get(c.id, 0))
        for c in conversations
    ]


@router.post("/conversations")
async def start_conversation(
    data: StartConversation,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_messages),
):
    """Get or create the conversation with another profile"""
    if data.user_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot message yourself")

    other = db.query(Profile).filter(Profile.id == data.user_id).first()
    if not other or other.is_banned or not other.is_active:
        raise HTTPException(status_code=404, detail="Profile not found")
    if is_blocked_between(db, current_user.id, other.id):
        raise HTTPException(status_code=403, detail="You cannot message this profile")

    conversation = (
        db.query(Conversation)
        .filter(
            or_(
                and_(
                    Conversation.participant_1 == current_user.id,
                    Conversation.participant_2 == other.id,
                ),
                and_(
                    Conversation.participant_1 == other.id,
                    Conversation.participant_2 == current_user.id,
                ),
            )
        )
        .first()
    )
    if not conversation:
        conversation = Conversation(participant_1=current_user.id, participant_2=other.id)
        db.add(conversation)
        db.commit()
        db.refresh(conversation)
        logger.info(f"Conversation {conversation.id} started by {current_user.id}")

    return _conversation_dict(conversation, other)


@router.get("/conversations/{conversation_id}/messages")
async def list_messages(
    conversation_id: str,
    limit: int = Query(200, ge=1, le=500),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    conversation = _get_conversation(db, conversation_id, current_user)
    latest = (
        db.query(Message)
        .filter(Message.conversation_id == conversation.id)
        .order_by(Message.created_at.desc())
        .limit(limit)
        .all()
    )
    return [_message_dict(m) for m in reversed(latest)]


@router.post("/conversations/{conversation_id}/messages", status_code=201)
async def send_message(
    conversation_id: str,
    data: SendMessage,
    background_tasks: BackgroundTasks,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_messages),
):
    conversation = _get_conversation(db, conversation_id, current_user)
    recipient_id = conversation.other_participant(current_user.id)

    if is_blocked_between(db, current_user.id, recipient_id):
        raise HTTPException(status_code=403, detail="You cannot message this profile")

    try:
        content = clean_user_text(data.content, max_length=5000)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    now = datetime.utcnow()
    message = Message(
        conversation_id=conversation.id,
        sender_id=current_user.id,
        content=content,
        created_at=now,
    )
    db.add(message)
    conversation.last_message_text = truncate(content)
    conversation.last_message_at = now
    conversation.last_message_by = current_user.id
    db.commit()
    db.refresh(message)

    create_notification(
        db,
        user_id=recipient_id,
        actor_id=current_user.id,
        notification_type="message",
        title=f"New message from {current_user.name}",
        body=truncate(content),
        link=f"/messages?conversation={conversation.id}",
        reference_id=conversation.id,
        background_tasks=background_tasks,
    )
    return _message_dict(message)


@router.post("/conversations/{conversation_id}/read")
async def mark_conversation_read(
    conversation_id: str,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    conversation = _get_conversation(db, conversation_id, current_user)
    updated = (
        db.query(Message)
        .filter(
            Message.conversation_id == conversation.id,
            Message.sender_id != current_user.id,
            Message.read_at.is_(None),
        )
        .update({Message.read_at: datetime.utcnow()}, synchronize_session=False)
    )
    db.commit()
    return {"marked_read": updated}


@router.delete("/messages/{message_id}")
async def delete_message(
    message_id: str,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    message = db.query(Message).filter(Message.id == message_id).first()
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    if message.sender_id != current_user.id:
        raise HTTPException(status_code=403, detail="You can only delete your own messages")

    conversation = message.conversation
    db.delete(message)
    db.flush()
    if conversation:
        _refresh_summary(db, conversation)
    db.commit()
    return {"message": "Message deleted"}


@router.delete("/conversations/{conversation_id}")
async def delete_conversation(
    conversation_id: str,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    conversation = _get_conversation(db, conversation_id, current_user)
    db.query(Message).filter(Message.conversation_id == conversation.id).delete(
        synchronize_session=False
    )
    db.delete(conversation)
    db.commit()
    logger.info(f"Conversation {conversation_id} deleted by {current_user.id}")
    return {"message": "Conversation deleted"}
