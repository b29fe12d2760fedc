"""Bug reports and feedback from the in-app help menu"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import BugReport, Feedback, Profile
from ..shared.validators import BUG_PRIORITIES, FEEDBACK_TYPES, validate_choice

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Feedback"])


class BugReportCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=5000)
    subject: Optional[str] = Field(None, max_length=255)
    priority: str = "medium"

    @field_validator("priority")
    @classmethod
    def check_priority(cls, v):
        return validate_choice(v, BUG_PRIORITIES, "priority")


class FeedbackCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=5000)
    subject: Optional[str] = Field(None, max_length=255)
    type: str = "suggestion"

    @field_validator("type")
    @classmethod
    def check_type(cls, v):
        return validate_choice(v, FEEDBACK_TYPES, "type")


@router.post("/bug-reports", status_code=201)
async def submit_bug_report(
    data: BugReportCreate,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    report = BugReport(
        user_id=current_user.id,
        user_name=current_user.display_name or current_user.family_name,
        email=current_user.email,
        subject=(data.subject or "").strip() or "Bug Report",
        message=data.message.strip(),
        priority=data.priority,
        status="new",
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    logger.info(f"Bug report {report.id} ({report.priority}) from {current_user.id}")
    return {"id": report.id, "status": report.status}


@router.post("/feedback", status_code=201)
async def submit_feedback(
    data: FeedbackCreate,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    feedback = Feedback(
        user_id=current_user.id,
        user_name=current_user.display_name or current_user.family_name,
        email=current_user.email,
        subject=(data.subject or "").strip() or "Feedback & Suggestions",
        message=data.message.strip(),
        type=data.type,
        status="new",
    )
    db.add(feedback)
    db.commit()
    db.refresh(feedback)
    return {"id": feedback.id, "status": feedback.status}
