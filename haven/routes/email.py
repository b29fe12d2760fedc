"""
Email Routes - transactional email proxy for the web client
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from .. import config
from ..auth import get_current_user
from ..email_service import (
    EmailDeliveryError,
    send_circle_invite_email,
    send_connection_request_email,
    send_rsvp_email,
    send_welcome_email,
)
from ..models import Profile
from ..rate_limiter import create_rate_limiter
from ..shared.validators import validate_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/email", tags=["Email"])

rate_limit_email = create_rate_limiter(
    limit=config.RATE_LIMIT_EMAIL_PER_MINUTE, window_seconds=60, key_prefix="email", per="user"
)

# type -> (sender, {request field: sender kwarg})
EMAIL_TYPES = {
    "connection_request": (send_connection_request_email, {"from_name": "from_name"}),
    "rsvp": (
        send_rsvp_email,
        {"event_title": "event_title", "event_date": "event_date", "attendee_name": "attendee_name"},
    ),
    "circle_invite": (
        send_circle_invite_email,
        {"from_name": "from_name", "circle_name": "circle_name"},
    ),
    "welcome": (send_welcome_email, {"name": "name"}),
}


class SendEmailRequest(BaseModel):
    type: str
    to: Optional[str] = None
    from_name: Optional[str] = None
    event_title: Optional[str] = None
    event_date: Optional[str] = None
    attendee_name: Optional[str] = None
    circle_name: Optional[str] = None
    name: Optional[str] = None


@router.post("")
async def send_transactional_email(
    data: SendEmailRequest,
    current_user: Profile = Depends(get_current_user),
    _: None = Depends(rate_limit_email),
):
    if data.type not in EMAIL_TYPES:
        raise HTTPException(status_code=400, detail="Unknown email type")

    try:
        to = validate_email(data.to)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    if not to:
        raise HTTPException(status_code=400, detail="Missing recipient")

    sender, fields = EMAIL_TYPES[data.type]
    kwargs = {}
    for field, kwarg in fields.items():
        value = getattr(data, field)
        if not value:
            raise HTTPException(status_code=400, detail=f"Missing {field}")
        kwargs[kwarg] = value

    try:
        await sender(to=to, **kwargs)
    except EmailDeliveryError as e:
        logger.error(f"Email send error ({data.type}) requested by {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to send email") from e

    return {"ok": True}
