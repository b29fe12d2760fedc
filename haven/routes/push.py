"""
Web Push subscription management and delivery.

Payloads are {"title", "body", "url"}, which the service worker shows as a
notification and opens on click.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .. import config
from ..auth import get_current_user
from ..database import get_db
from ..models import Profile, PushSubscription
from ..services.push_service import send_push_to_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/push", tags=["Push"])


class SubscriptionKeys(BaseModel):
    p256dh: str
    auth: str


class BrowserSubscription(BaseModel):
    endpoint: str
    expirationTime: Optional[float] = None
    keys: SubscriptionKeys


class SubscribeRequest(BaseModel):
    subscription: BrowserSubscription


class UnsubscribeRequest(BaseModel):
    endpoint: str


class PushSendRequest(BaseModel):
    recipient_id: Optional[str] = None
    title: Optional[str] = None
    body: str = ""
    url: str = "/notifications"


@router.get("/vapid-public-key")
async def vapid_public_key():
    if not config.VAPID_PUBLIC_KEY:
        raise HTTPException(status_code=503, detail="Push notifications are not configured")
    return {"public_key": config.VAPID_PUBLIC_KEY}


@router.post("/subscribe")
async def subscribe(
    data: SubscribeRequest,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Register this browser; re-subscribing the same endpoint updates the keys"""
    subscription = data.subscription
    existing = (
        db.query(PushSubscription)
        .filter(
            PushSubscription.user_id == current_user.id,
            PushSubscription.endpoint == subscription.endpoint,
        )
        .first()
    )
    if existing:
        existing.subscription = subscription.model_dump()
        existing.updated_at = datetime.utcnow()
    else:
        db.add(
            PushSubscription(
                user_id=current_user.id,
                endpoint=subscription.endpoint,
                subscription=subscription.model_dump(),
            )
        )
    db.commit()
    return {"ok": True}


@router.delete("/subscribe")
async def unsubscribe(
    data: UnsubscribeRequest,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    db.query(PushSubscription).filter(
        PushSubscription.user_id == current_user.id,
        PushSubscription.endpoint == data.endpoint,
    ).delete(synchronize_session=False)
    db.commit()
    return {"ok": True}


@router.post("/send")
async def send_push(
    data: PushSendRequest,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not data.recipient_id or not data.title:
        raise HTTPException(status_code=400, detail="Missing recipient_id or title")

    sent = send_push_to_user(db, data.recipient_id, data.title, data.body, data.url)
    logger.info(f"Push from {current_user.id} to {data.recipient_id}: {sent} delivered")
    return {"sent": sent}
