"""
Admin back office routes.

Every route requires an admin level via require_admin_level:
bronze < silver < gold. Legacy is_admin profiles count as gold.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..auth import admin_level_of, has_admin_access, require_admin_level
from ..cache import ADMIN_STATS_KEY, ADMIN_STATS_TTL, cache, invalidate_admin_stats
from ..database import get_db
from ..email_service import send_announcement_email
from ..models import (
    BugReport,
    Broadcast,
    Circle,
    CommunityPost,
    Connection,
    Conversation,
    Event,
    Feedback,
    Message,
    Notification,
    Profile,
    Report,
    SearchInsight,
)
from ..services.account_deletion import cleanup_accounts, delete_account
from ..services.analytics import top_locations, weekly_buckets
from ..services.notification_service import schedule_email, wants
from ..services.push_service import push_in_background
from ..shared.validators import ADMIN_LEVELS, REPORT_STATUSES, TICKET_STATUSES, validate_choice
from ..utils.sanitization import truncate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

FEED_SOURCE_LIMIT = 10
FEED_LIMIT = 30


# ============================================================================
# Schemas
# ============================================================================


class AdminUserResponse(BaseModel):
    id: str
    email: Optional[str] = None
    family_name: Optional[str] = None
    display_name: Optional[str] = None
    username: Optional[str] = None
    user_type: str
    location_name: Optional[str] = None
    is_admin: bool
    admin_level: Optional[str] = None
    is_banned: bool
    banned_at: Optional[datetime] = None
    ban_reason: Optional[str] = None
    is_active: bool
    last_active_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BanRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class CleanupRequest(BaseModel):
    user_ids: list[str] = Field(..., min_length=1, max_length=200)
    reason: Optional[str] = Field(None, max_length=1000)


class AdminLevelUpdate(BaseModel):
    level: Optional[str] = None

    @field_validator("level")
    @classmethod
    def check_level(cls, v):
        return validate_choice(v, ADMIN_LEVELS, "level")


class BroadcastCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1, max_length=5000)
    target_type: str = "all"
    target_value: Optional[str] = Field(None, max_length=255)
    send_push: bool = True
    send_email: bool = False

    @field_validator("target_type")
    @classmethod
    def check_target_type(cls, v):
        return validate_choice(v, ("all", "location"), "target_type")


class BroadcastResponse(BaseModel):
    id: str
    title: str
    content: str
    target_type: str
    target_value: Optional[str] = None
    sent_by: Optional[str] = None
    recipient_count: int
    sent_at: datetime

    class Config:
        from_attributes = True


class TicketUpdate(BaseModel):
    status: Optional[str] = None
    admin_notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        return validate_choice(v, TICKET_STATUSES, "status")


class ReportUpdate(BaseModel):
    status: Optional[str] = None
    admin_notes: Optional[str] = Field(None, max_length=5000)
    ban_user: bool = False
    ban_reason: Optional[str] = Field(None, max_length=1000)

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        return validate_choice(v, REPORT_STATUSES, "status")


def _ticket_dict(ticket) -> dict:
    data = {
        "id": ticket.id,
        "user_id": ticket.user_id,
        "user_name": ticket.user_name,
        "email": ticket.email,
        "subject": ticket.subject,
        "message": ticket.message,
        "status": ticket.status,
        "admin_notes": ticket.admin_notes,
        "created_at": ticket.created_at,
        "updated_at": ticket.updated_at,
    }
    if isinstance(ticket, BugReport):
        data["priority"] = ticket.priority
    else:
        data["type"] = ticket.type
    return data


def _report_dict(report: Report, names: dict[str, str]) -> dict:
    return {
        "id": report.id,
        "reporter_id": report.reporter_id,
        "reporter_name": names.get(report.reporter_id),
        "reported_id": report.reported_id,
        "reported_name": names.get(report.reported_id),
        "reason": report.reason,
        "details": report.details,
        "content_type": report.content_type,
        "content_id": report.content_id,
        "status": report.status,
        "admin_notes": report.admin_notes,
        "reviewed_by": report.reviewed_by,
        "reviewed_at": report.reviewed_at,
        "created_at": report.created_at,
    }


def _get_profile_or_404(db: Session, user_id: str) -> Profile:
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")
    return profile


def _ban(profile: Profile, admin: Profile, reason: str) -> None:
    profile.is_banned = True
    profile.banned_at = datetime.utcnow()
    profile.banned_by = admin.id
    profile.ban_reason = reason


# ============================================================================
# Overview
# ============================================================================


@router.get("/me")
async def admin_me(admin: Profile = Depends(require_admin_level("bronze"))):
    return {"id": admin.id, "admin_level": admin_level_of(admin)}


def compute_stats(db: Session, now: Optional[datetime] = None) -> dict:
    """Headline counters for the admin dashboard"""
    now = now or datetime.utcnow()
    today_start = datetime(now.year, now.month, now.day)
    week_ago = now - timedelta(days=7)
    month_start = datetime(now.year, now.month, 1)

    def count(model, *criteria) -> int:
        return db.query(func.count(model.id)).filter(*criteria).scalar() or 0

    return {
        "total_active_users": count(Profile, Profile.is_active.is_(True), Profile.is_banned.is_(False)),
        "total_users": count(Profile),
        "new_users_this_week": count(Profile, Profile.created_at >= week_ago),
        "new_users_this_month": count(Profile, Profile.created_at >= month_start),
        "families": count(Profile, Profile.user_type == "family"),
        "teachers": count(Profile, Profile.user_type == "teacher"),
        "businesses": count(Profile, Profile.user_type == "business"),
        "banned_users": count(Profile, Profile.is_banned.is_(True)),
        "total_events": count(Event),
        "active_events": count(Event, Event.is_cancelled.is_(False), Event.event_date >= now.date()),
        "total_circles": count(Circle, Circle.is_active.is_(True)),
        "public_circles": count(Circle, Circle.is_active.is_(True), Circle.is_public.is_(True)),
        "board_posts": count(CommunityPost),
        "board_posts_this_week": count(CommunityPost, CommunityPost.created_at >= week_ago),
        "messages_today": count(Message, Message.created_at >= today_start),
        "conversations_today": count(Conversation, Conversation.created_at >= today_start),
        "announcements_this_month": count(Broadcast, Broadcast.sent_at >= month_start),
    }


@router.get("/stats")
async def admin_stats(
    admin: Profile = Depends(require_admin_level("bronze")),
    db: Session = Depends(get_db),
):
    """Dashboard counters, cached briefly in Redis"""
    cached = cache.get(ADMIN_STATS_KEY)
    if cached is not None:
        return cached

    stats = compute_stats(db)
    cache.set(ADMIN_STATS_KEY, stats, ttl=ADMIN_STATS_TTL)
    return stats


@router.get("/search-insights")
async def search_insights(
    context: Optional[str] = None,
    admin: Profile = Depends(require_admin_level("bronze")),
    db: Session = Depends(get_db),
):
    query = db.query(SearchInsight)
    if context:
        query = query.filter(SearchInsight.context == context)
    rows = query.order_by(SearchInsight.count.desc(), SearchInsight.last_searched_at.desc()).limit(100).all()
    return [
        {
            "context": row.context,
            "term": row.term,
            "count": row.count,
            "last_searched_at": row.last_searched_at,
        }
        for row in rows
    ]


@router.get("/feed")
async def activity_feed(
    admin: Profile = Depends(require_admin_level("bronze")),
    db: Session = Depends(get_db),
):
    """Latest signups, connections, posts, events and circles merged newest first"""
    items = []

    for p in db.query(Profile).order_by(Profile.created_at.desc()).limit(FEED_SOURCE_LIMIT):
        items.append({
            "id": f"signup-{p.id}",
            "type": "signup",
            "label": f"New {p.user_type or 'family'} joined",
            "sub": p.display_name or p.family_name or "Unknown",
            "time": p.created_at,
        })

    connections = (
        db.query(Connection)
        .filter(Connection.status == "accepted")
        .order_by(Connection.updated_at.desc())
        .limit(FEED_SOURCE_LIMIT)
    )
    for c in connections:
        requester = c.requester.name if c.requester else "?"
        receiver = c.receiver.name if c.receiver else "?"
        items.append({
            "id": f"conn-{c.id}",
            "type": "connection",
            "label": "New connection",
            "sub": f"{requester} & {receiver}",
            "time": c.updated_at or c.created_at,
        })

    for post in db.query(CommunityPost).order_by(CommunityPost.created_at.desc()).limit(FEED_SOURCE_LIMIT):
        items.append({
            "id": f"post-{post.id}", "type": "post", "label": "Board post",
            "sub": post.title, "time": post.created_at,
        })

    for e in db.query(Event).order_by(Event.created_at.desc()).limit(FEED_SOURCE_LIMIT):
        items.append({
            "id": f"event-{e.id}", "type": "event", "label": "Event created",
            "sub": e.title, "time": e.created_at,
        })

    for c in db.query(Circle).order_by(Circle.created_at.desc()).limit(FEED_SOURCE_LIMIT):
        items.append({
            "id": f"circle-{c.id}", "type": "circle", "label": "Circle created",
            "sub": c.name, "time": c.created_at,
        })

    items.sort(key=lambda item: item["time"], reverse=True)
    return items[:FEED_LIMIT]


@router.get("/analytics")
async def analytics(
    weeks: int = Query(8, ge=1, le=52),
    admin: Profile = Depends(require_admin_level("silver")),
    db: Session = Depends(get_db),
):
    now = datetime.utcnow()
    since = now - timedelta(weeks=weeks)

    signups = [row[0] for row in db.query(Profile.created_at).filter(Profile.created_at >= since)]
    messages = [row[0] for row in db.query(Message.created_at).filter(Message.created_at >= since)]
    events = [row[0] for row in db.query(Event.created_at).filter(Event.created_at >= since)]
    circles = [row[0] for row in db.query(Circle.created_at).filter(Circle.created_at >= since)]
    locations = [row[0] for row in db.query(Profile.location_name).filter(Profile.is_banned.is_(False))]
    user_types = dict(db.query(Profile.user_type, func.count(Profile.id)).group_by(Profile.user_type).all())

    return {
        "weeks": weeks,
        "signups": weekly_buckets(signups, weeks, now),
        "messages": weekly_buckets(messages, weeks, now),
        "events": weekly_buckets(events, weeks, now),
        "circles": weekly_buckets(circles, weeks, now),
        "top_locations": top_locations(locations),
        "user_types": {t: user_types.get(t, 0) for t in ("family", "teacher", "business")},
    }


# ============================================================================
# Users
# ============================================================================


@router.get("/users", response_model=list[AdminUserResponse])
async def list_users(
    search: Optional[str] = None,
    banned: Optional[bool] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: Profile = Depends(require_admin_level("bronze")),
    db: Session = Depends(get_db),
):
    query = db.query(Profile)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Profile.family_name.ilike(pattern),
                Profile.display_name.ilike(pattern),
                Profile.location_name.ilike(pattern),
                Profile.email.ilike(pattern),
            )
        )
    if banned is not None:
        query = query.filter(Profile.is_banned.is_(banned))
    return query.order_by(Profile.created_at.desc()).offset(offset).limit(limit).all()


@router.post("/users/cleanup")
async def cleanup_users(
    data: CleanupRequest,
    admin: Profile = Depends(require_admin_level("gold")),
    db: Session = Depends(get_db),
):
    """Bulk delete (test accounts and the like)"""
    if admin.id in data.user_ids:
        raise HTTPException(status_code=400, detail="You cannot delete your own account here")
    result = cleanup_accounts(db, data.user_ids, reason=data.reason or "Admin cleanup")
    invalidate_admin_stats()
    logger.info(f"Admin {admin.id} cleaned up {len(result['deleted'])} accounts")
    return result


@router.post("/users/{user_id}/ban", response_model=AdminUserResponse)
async def ban_user(
    user_id: str,
    data: BanRequest,
    admin: Profile = Depends(require_admin_level("silver")),
    db: Session = Depends(get_db),
):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot ban yourself")
    profile = _get_profile_or_404(db, user_id)
    _ban(profile, admin, data.reason.strip())
    db.commit()
    db.refresh(profile)
    invalidate_admin_stats()
    logger.info(f"Admin {admin.id} banned {user_id}")
    return profile


@router.post("/users/{user_id}/unban", response_model=AdminUserResponse)
async def unban_user(
    user_id: str,
    admin: Profile = Depends(require_admin_level("silver")),
    db: Session = Depends(get_db),
):
    profile = _get_profile_or_404(db, user_id)
    profile.is_banned = False
    profile.banned_at = None
    profile.banned_by = None
    profile.ban_reason = None
    db.commit()
    db.refresh(profile)
    invalidate_admin_stats()
    logger.info(f"Admin {admin.id} unbanned {user_id}")
    return profile


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    reason: Optional[str] = Query(None, max_length=1000),
    admin: Profile = Depends(require_admin_level("gold")),
    db: Session = Depends(get_db),
):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="Use account settings to delete your own account")
    delete_account(db, user_id, reason=reason)
    invalidate_admin_stats()
    logger.info(f"Admin {admin.id} deleted {user_id}")
    return {"message": "User deleted", "id": user_id}


# ============================================================================
# Admin roles
# ============================================================================


@router.get("/admins", response_model=list[AdminUserResponse])
async def list_admins(
    admin: Profile = Depends(require_admin_level("bronze")),
    db: Session = Depends(get_db),
):
    return (
        db.query(Profile)
        .filter(or_(Profile.admin_level.isnot(None), Profile.is_admin.is_(True)))
        .order_by(Profile.created_at.asc())
        .all()
    )


@router.put("/admins/{user_id}", response_model=AdminUserResponse)
async def set_admin_level(
    user_id: str,
    data: AdminLevelUpdate,
    admin: Profile = Depends(require_admin_level("gold")),
    db: Session = Depends(get_db),
):
    """Grant a level, or revoke with level null"""
    if user_id == admin.id and data.level != "gold":
        raise HTTPException(status_code=400, detail="You cannot lower your own admin level")

    profile = _get_profile_or_404(db, user_id)
    profile.admin_level = data.level
    profile.is_admin = data.level is not None
    db.commit()
    db.refresh(profile)
    logger.info(f"Admin {admin.id} set admin level of {user_id} to {data.level}")
    return profile


# ============================================================================
# Broadcasts
# ============================================================================


@router.post("/broadcasts", response_model=BroadcastResponse, status_code=201)
async def create_broadcast(
    data: BroadcastCreate,
    background_tasks: BackgroundTasks,
    admin: Profile = Depends(require_admin_level("silver")),
    db: Session = Depends(get_db),
):
    """Announcement to everyone, or to users whose location contains target_value"""
    target_value = (data.target_value or "").strip() or None
    if data.target_type == "location" and not target_value:
        raise HTTPException(status_code=400, detail="target_value is required for location broadcasts")

    query = db.query(Profile).filter(Profile.is_banned.is_(False), Profile.is_active.is_(True))
    if data.target_type == "location":
        query = query.filter(Profile.location_name.ilike(f"%{target_value}%"))
    recipients = query.all()

    broadcast = Broadcast(
        title=data.title.strip(),
        content=data.content.strip(),
        target_type=data.target_type,
        target_value=target_value,
        sent_by=admin.id,
        recipient_count=len(recipients),
    )
    db.add(broadcast)
    db.flush()

    body = truncate(broadcast.content, 300)
    for recipient in recipients:
        db.add(
            Notification(
                user_id=recipient.id,
                actor_id=admin.id,
                type="announcement",
                title=broadcast.title,
                body=body,
                link="/notifications",
                reference_id=broadcast.id,
                read=False,
            )
        )
    db.commit()
    db.refresh(broadcast)

    for recipient in recipients:
        if data.send_push and wants(recipient, "announcement"):
            background_tasks.add_task(
                push_in_background, recipient.id, broadcast.title, body, "/notifications"
            )
        if data.send_email:
            schedule_email(
                background_tasks,
                recipient,
                "announcement",
                send_announcement_email,
                title=broadcast.title,
                content=broadcast.content,
            )

    invalidate_admin_stats()
    logger.info(f"Broadcast {broadcast.id} sent to {len(recipients)} users by {admin.id}")
    return broadcast


@router.get("/broadcasts", response_model=list[BroadcastResponse])
async def list_broadcasts(
    admin: Profile = Depends(require_admin_level("bronze")),
    db: Session = Depends(get_db),
):
    return db.query(Broadcast).order_by(Broadcast.sent_at.desc()).limit(20).all()


# ============================================================================
# Bug reports and feedback
# ============================================================================


def _update_ticket(ticket, data: TicketUpdate, db: Session) -> dict:
    if data.status is not None:
        ticket.status = data.status
    if data.admin_notes is not None:
        ticket.admin_notes = data.admin_notes.strip() or None
    ticket.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(ticket)
    return _ticket_dict(ticket)


@router.get("/bug-reports")
async def list_bug_reports(
    status: Optional[str] = None,
    admin: Profile = Depends(require_admin_level("bronze")),
    db: Session = Depends(get_db),
):
    query = db.query(BugReport)
    if status:
        query = query.filter(BugReport.status == status)
    return [_ticket_dict(t) for t in query.order_by(BugReport.created_at.desc()).all()]


@router.patch("/bug-reports/{report_id}")
async def update_bug_report(
    report_id: str,
    data: TicketUpdate,
    admin: Profile = Depends(require_admin_level("bronze")),
    db: Session = Depends(get_db),
):
    ticket = db.query(BugReport).filter(BugReport.id == report_id).first()
    if not ticket:
        raise HTTPException(status_code=404, detail="Bug report not found")
    return _update_ticket(ticket, data, db)


@router.get("/feedback")
async def list_feedback(
    status: Optional[str] = None,
    admin: Profile = Depends(require_admin_level("bronze")),
    db: Session = Depends(get_db),
):
    query = db.query(Feedback)
    if status:
        query = query.filter(Feedback.status == status)
    return [_ticket_dict(t) for t in query.order_by(Feedback.created_at.desc()).all()]


@router.patch("/feedback/{feedback_id}")
async def update_feedback(
    feedback_id: str,
    data: TicketUpdate,
    admin: Profile = Depends(require_admin_level("bronze")),
    db: Session = Depends(get_db),
):
    ticket = db.query(Feedback).filter(Feedback.id == feedback_id).first()
    if not ticket:
        raise HTTPException(status_code=404, detail="Feedback not found")
    return _update_ticket(ticket, data, db)


# ============================================================================
# Reports and board moderation
# ============================================================================


@router.get("/reports")
async def list_reports(
    status: Optional[str] = None,
    admin: Profile = Depends(require_admin_level("bronze")),
    db: Session = Depends(get_db),
):
    query = db.query(Report)
    if status:
        query = query.filter(Report.status == status)
    reports = query.order_by(Report.created_at.desc()).all()

    ids = {r.reporter_id for r in reports} | {r.reported_id for r in reports}
    names = {}
    if ids:
        names = {p.id: p.name for p in db.query(Profile).filter(Profile.id.in_(ids)).all()}
    return [_report_dict(r, names) for r in reports]


@router.patch("/reports/{report_id}")
async def update_report(
    report_id: str,
    data: ReportUpdate,
    admin: Profile = Depends(require_admin_level("bronze")),
    db: Session = Depends(get_db),
):
    """Review a report; actioning with ban_user also bans the reported profile (silver)"""
    report = db.query(Report).filter(Report.id == report_id).first()
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")

    if data.ban_user:
        if data.status != "actioned":
            raise HTTPException(status_code=400, detail="Only actioned reports can ban a user")
        if not has_admin_access(admin, "silver"):
            raise HTTPException(status_code=403, detail="Banning requires silver admin or above")
        if report.reported_id == admin.id:
            raise HTTPException(status_code=400, detail="You cannot ban yourself")

    if data.status is not None:
        report.status = data.status
    if data.admin_notes is not None:
        report.admin_notes = data.admin_notes.strip() or None
    report.reviewed_by = admin.id
    report.reviewed_at = datetime.utcnow()

    if data.ban_user:
        reported = db.query(Profile).filter(Profile.id == report.reported_id).first()
        if reported:
            _ban(reported, admin, (data.ban_reason or report.reason).strip())
            logger.info(f"Admin {admin.id} banned {reported.id} via report {report.id}")

    db.commit()
    db.refresh(report)
    if data.ban_user:
        invalidate_admin_stats()

    names = {p.id: p.name for p in db.query(Profile).filter(
        Profile.id.in_([report.reporter_id, report.reported_id])
    ).all()}
    return _report_dict(report, names)


@router.delete("/cache/geocoding")
async def clear_geocoding_cache(
    admin: Profile = Depends(require_admin_level("gold")),
):
    """Drop cached suburb lookups and autocomplete results, e.g. after changing country settings"""
    removed = cache.delete_pattern("geo:*")
    logger.info(f"Admin {admin.id} cleared {removed} cached geocoding entries")
    return {"removed": removed}


@router.delete("/board/{post_id}")
async def delete_board_post(
    post_id: str,
    admin: Profile = Depends(require_admin_level("bronze")),
    db: Session = Depends(get_db),
):
    post = db.query(CommunityPost).filter(CommunityPost.id == post_id).first()
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    db.delete(post)
    db.commit()
    invalidate_admin_stats()
    logger.info(f"Admin {admin.id} removed board post {post_id}")
    return {"message": "Post deleted"}
