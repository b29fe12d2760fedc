import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import BlockedUser, Connection, Profile
from ..schemas import ProfileSummary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blocks", tags=["Moderation"])


class BlockCreate(BaseModel):
    user_id: str


@router.get("")
async def list_blocks(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rows = (
        db.query(BlockedUser, Profile)
        .join(Profile, Profile.id == BlockedUser.blocked_id)
        .filter(BlockedUser.blocker_id == current_user.id)
        .order_by(BlockedUser.created_at.desc())
        .all()
    )
    return [
        {
            "blocked_id": block.blocked_id,
            "created_at": block.created_at,
            "profile": ProfileSummary.model_validate(profile).model_dump(),
        }
        for block, profile in rows
    ]


@router.post("", status_code=201)
async def block_user(
    data: BlockCreate,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Block a profile. Any connection or pending request between the two is removed."""
    if data.user_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot block yourself")
    if not db.query(Profile.id).filter(Profile.id == data.user_id).first():
        raise HTTPException(status_code=404, detail="Profile not found")

    existing = (
        db.query(BlockedUser)
        .filter(BlockedUser.blocker_id == current_user.id, BlockedUser.blocked_id == data.user_id)
        .first()
    )
    if not existing:
        db.add(BlockedUser(blocker_id=current_user.id, blocked_id=data.user_id))

    db.query(Connection).filter(
        or_(
            and_(Connection.requester_id == current_user.id, Connection.receiver_id == data.user_id),
            and_(Connection.requester_id == data.user_id, Connection.receiver_id == current_user.id),
        )
    ).delete(synchronize_session=False)
    db.commit()

    logger.info(f"{current_user.id} blocked {data.user_id}")
    return {"blocked_id": data.user_id}


@router.delete("/{user_id}")
async def unblock_user(
    user_id: str,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    deleted = (
        db.query(BlockedUser)
        .filter(BlockedUser.blocker_id == current_user.id, BlockedUser.blocked_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    if not deleted:
        raise HTTPException(status_code=404, detail="Block not found")
    return {"message": "Profile unblocked"}
