"""
Web Push delivery (VAPID) via pywebpush.

The payload is the JSON the browser service worker expects: {"title", "body", "url"}.
Subscriptions the push service reports as gone (404/410) are deleted.
"""

import json
import logging

from pywebpush import WebPushException, webpush
from sqlalchemy.orm import Session

from .. import config
from ..database import SessionLocal
from ..models import PushSubscription

logger = logging.getLogger(__name__)

STALE_STATUS_CODES = (404, 410)


def build_payload(title: str, body: str = "", url: str = "/notifications") -> str:
    return json.dumps({"title": title, "body": body or "", "url": url or "/notifications"})


def push_configured() -> bool:
    return bool(config.VAPID_PUBLIC_KEY and config.VAPID_PRIVATE_KEY)


def send_push_to_user(
    db: Session, user_id: str, title: str, body: str = "", url: str = "/notifications"
) -> int:
    """
    Send a push to every subscription the user has registered.

    Returns:
        Number of subscriptions the push service accepted
    """
    subscriptions = db.query(PushSubscription).filter(PushSubscription.user_id == user_id).all()
    if not subscriptions:
        return 0

    if not push_configured():
        logger.info("VAPID keys not configured, skipping push delivery")
        return 0

    payload = build_payload(title, body, url)
    sent = 0
    stale = []

    for sub in subscriptions:
        info = sub.subscription
        if isinstance(info, str):
            info = json.loads(info)
        try:
            webpush(
                subscription_info=info,
                data=payload,
                vapid_private_key=config.VAPID_PRIVATE_KEY,
                vapid_claims={"sub": config.VAPID_EMAIL},
            )
            sent += 1
        except WebPushException as e:
            status_code = getattr(e.response, "status_code", None)
            if status_code in STALE_STATUS_CODES:
                stale.append(sub)
            else:
                logger.warning(f"Push to {sub.endpoint[:60]} failed: {e}")

    if stale:
        for sub in stale:
            db.delete(sub)
        db.commit()
        logger.info(f"Removed {len(stale)} stale push subscriptions for {user_id}")

    return sent


def push_in_background(user_id: str, title: str, body: str = "", url: str = "/notifications"):
    """
    BackgroundTasks entry point. Opens its own session because the request
    session is closed by the time this runs. Never raises.
    """
    db = SessionLocal()
    try:
        send_push_to_user(db, user_id, title, body, url)
    except Exception as e:
        logger.warning(f"Background push to {user_id} failed: {e}")
        db.rollback()
    finally:
        db.close()
