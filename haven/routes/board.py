"""Community board posts"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..auth import get_current_user, has_admin_access
from ..database import get_db
from ..models import CommunityPost, Profile
from ..schemas import ProfileSummary
from ..services.search_insights import record_search
from ..utils.sanitization import clean_user_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/board", tags=["Board"])


class PostCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=5000)
    tag: Optional[str] = Field(None, max_length=50)


class PostResponse(BaseModel):
    id: str
    author_id: str
    title: str
    content: str
    tag: Optional[str] = None
    created_at: datetime
    author: Optional[ProfileSummary] = None

    class Config:
        from_attributes = True


@router.get("", response_model=list[PostResponse])
async def list_posts(
    tag: Optional[str] = None,
    search: Optional[str] = Query(None, max_length=100),
    limit: int = Query(50, ge=1, le=200),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(CommunityPost)
    tag = (tag or "").strip().lower()
    if tag:
        query = query.filter(CommunityPost.tag == tag)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(CommunityPost.title.ilike(pattern), CommunityPost.content.ilike(pattern))
        )
        record_search(db, "board", search)
    return query.order_by(CommunityPost.created_at.desc()).limit(limit).all()


@router.post("", response_model=PostResponse, status_code=201)
async def create_post(
    data: PostCreate,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        title = clean_user_text(data.title, max_length=200)
        content = clean_user_text(data.content, max_length=5000)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    post = CommunityPost(
        author_id=current_user.id,
        title=title,
        content=content,
        tag=(data.tag or "").strip().lower() or None,
    )
    db.add(post)
    db.commit()
    db.refresh(post)
    return post


@router.delete("/{post_id}")
async def delete_post(
    post_id: str,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Authors can delete their own posts; any admin can delete any post"""
    post = db.query(CommunityPost).filter(CommunityPost.id == post_id).first()
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    if post.author_id != current_user.id and not has_admin_access(current_user, "bronze"):
        raise HTTPException(status_code=403, detail="You can only delete your own posts")

    db.delete(post)
    db.commit()
    logger.info(f"Board post {post_id} deleted by {current_user.id}")
    return {"message": "Post deleted"}
