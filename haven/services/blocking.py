"""Block lookups shared by discovery, profiles, connections and messaging"""

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ..models import BlockedUser


def blocked_ids(db: Session, user_id: str) -> set[str]:
    """Profiles hidden from user_id: those it blocked and those that blocked it"""
    rows = (
        db.query(BlockedUser.blocker_id, BlockedUser.blocked_id)
        .filter(or_(BlockedUser.blocker_id == user_id, BlockedUser.blocked_id == user_id))
        .all()
    )
    hidden = set()
    for blocker_id, blocked_id in rows:
        hidden.add(blocked_id if blocker_id == user_id else blocker_id)
    return hidden


def is_blocked_between(db: Session, a: str, b: str) -> bool:
    return (
        db.query(BlockedUser.id)
        .filter(
            or_(
                and_(BlockedUser.blocker_id == a, BlockedUser.blocked_id == b),
                and_(BlockedUser.blocker_id == b, BlockedUser.blocked_id == a),
            )
        )
        .first()
        is not None
    )
