import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from .. import config
from ..auth import get_current_user
from ..database import get_db
from ..models import Profile, Report
from ..rate_limiter import create_rate_limiter
from ..shared.validators import validate_choice

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Moderation"])

CONTENT_TYPES = ("profile", "message", "post", "event", "circle")

rate_limit_reports = create_rate_limiter(
    limit=config.RATE_LIMIT_REPORTS_PER_HOUR, window_seconds=3600, key_prefix="reports", per="user"
)


class ReportCreate(BaseModel):
    reported_id: str
    reason: str = Field(..., min_length=1, max_length=100)
    details: Optional[str] = Field(None, max_length=2000)
    content_type: Optional[str] = None
    content_id: Optional[str] = None

    @field_validator("content_type")
    @classmethod
    def check_content_type(cls, v):
        return validate_choice(v, CONTENT_TYPES, "content_type")


@router.post("", status_code=201)
async def create_report(
    data: ReportCreate,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_reports),
):
    if data.reported_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot report yourself")
    if not db.query(Profile.id).filter(Profile.id == data.reported_id).first():
        raise HTTPException(status_code=404, detail="Profile not found")

    report = Report(
        reporter_id=current_user.id,
        reported_id=data.reported_id,
        reason=data.reason.strip(),
        details=(data.details or "").strip() or None,
        content_type=data.content_type,
        content_id=data.content_id,
        status="pending",
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    logger.info(f"Report {report.id} filed against {data.reported_id} ({report.reason})")
    return {"id": report.id, "status": report.status, "created_at": report.created_at}
