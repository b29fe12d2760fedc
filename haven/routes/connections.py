import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..email_service import send_connection_request_email
from ..models import Connection, Profile
from ..schemas import ProfileSummary
from ..services.blocking import is_blocked_between
from ..services.notification_service import create_notification, schedule_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/connections", tags=["Connections"])


class ConnectionRequest(BaseModel):
    receiver_id: str


def _between(db: Session, a: str, b: str):
    return (
        db.query(Connection)
        .filter(
            or_(
                and_(Connection.requester_id == a, Connection.receiver_id == b),
                and_(Connection.requester_id == b, Connection.receiver_id == a),
            )
        )
        .first()
    )


def _serialize(connection: Connection, other: Profile) -> dict:
    return {
        "id": connection.id,
        "status": connection.status,
        "requester_id": connection.requester_id,
        "receiver_id": connection.receiver_id,
        "created_at": connection.created_at,
        "updated_at": connection.updated_at,
        "profile": ProfileSummary.model_validate(other).model_dump() if other else None,
    }


def _get_connection(db: Session, connection_id: str) -> Connection:
    connection = db.query(Connection).filter(Connection.id == connection_id).first()
    if not connection:
        raise HTTPException(status_code=404, detail="Connection not found")
    return connection


@router.post("", status_code=201)
async def request_connection(
    data: ConnectionRequest,
    background_tasks: BackgroundTasks,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if data.receiver_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot connect with yourself")

    receiver = db.query(Profile).filter(Profile.id == data.receiver_id).first()
    if not receiver or receiver.is_banned or not receiver.is_active:
        raise HTTPException(status_code=404, detail="Profile not found")

    if is_blocked_between(db, current_user.id, receiver.id):
        raise HTTPException(status_code=403, detail="You cannot connect with this profile")

    if _between(db, current_user.id, receiver.id):
        raise HTTPException(status_code=409, detail="A connection already exists")

    connection = Connection(requester_id=current_user.id, receiver_id=receiver.id, status="pending")
    db.add(connection)
    db.commit()
    db.refresh(connection)
    logger.info(f"Connection request {current_user.id} -> {receiver.id}")

    create_notification(
        db,
        user_id=receiver.id,
        actor_id=current_user.id,
        notification_type="connection_request",
        title=f"{current_user.name} wants to connect",
        body="Tap to view their profile and respond.",
        link="/connections",
        reference_id=connection.id,
        background_tasks=background_tasks,
    )
    schedule_email(
        background_tasks,
        receiver,
        "connection_request",
        send_connection_request_email,
        from_name=current_user.name,
    )

    return _serialize(connection, receiver)


@router.get("")
async def list_connections(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Accepted connections with the other family's profile"""
    connections = (
        db.query(Connection)
        .filter(
            Connection.status == "accepted",
            or_(Connection.requester_id == current_user.id, Connection.receiver_id == current_user.id),
        )
        .order_by(Connection.updated_at.desc())
        .all()
    )
    return [
        _serialize(c, c.receiver if c.requester_id == current_user.id else c.requester)
        for c in connections
    ]


@router.get("/requests")
async def incoming_requests(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    connections = (
        db.query(Connection)
        .filter(Connection.receiver_id == current_user.id, Connection.status == "pending")
        .order_by(Connection.created_at.desc())
        .all()
    )
    return [_serialize(c, c.requester) for c in connections]


@router.get("/sent")
async def sent_requests(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    connections = (
        db.query(Connection)
        .filter(Connection.requester_id == current_user.id, Connection.status == "pending")
        .order_by(Connection.created_at.desc())
        .all()
    )
    return [_serialize(c, c.receiver) for c in connections]


@router.get("/status/{user_id}")
async def connection_status(
    user_id: str,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    connection = _between(db, current_user.id, user_id)
    if not connection:
        status = "none"
    elif connection.status == "accepted":
        status = "accepted"
    elif connection.requester_id == current_user.id:
        status = "pending_sent"
    else:
        status = "pending_received"
    return {"status": status, "connection_id": connection.id if connection else None}


@router.post("/{connection_id}/accept")
async def accept_connection(
    connection_id: str,
    background_tasks: BackgroundTasks,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    connection = _get_connection(db, connection_id)
    if connection.receiver_id != current_user.id:
        raise HTTPException(status_code=403, detail="Only the recipient can accept this request")
    if connection.status != "pending":
        raise HTTPException(status_code=400, detail="This request is no longer pending")

    connection.status = "accepted"
    db.commit()
    db.refresh(connection)

    create_notification(
        db,
        user_id=connection.requester_id,
        actor_id=current_user.id,
        notification_type="connection_accepted",
        title=f"{current_user.name} accepted your connection request",
        body="You can now message each other.",
        link=f"/profile/{current_user.id}",
        reference_id=connection.id,
        background_tasks=background_tasks,
    )
    return _serialize(connection, connection.requester)


@router.post("/{connection_id}/decline")
async def decline_connection(
    connection_id: str,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Declining removes the request so it can be sent again later"""
    connection = _get_connection(db, connection_id)
    if connection.receiver_id != current_user.id:
        raise HTTPException(status_code=403, detail="Only the recipient can decline this request")
    if connection.status != "pending":
        raise HTTPException(status_code=400, detail="This request is no longer pending")

    db.delete(connection)
    db.commit()
    return {"message": "Connection request declined"}


@router.delete("/{connection_id}")
async def remove_connection(
    connection_id: str,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    connection = _get_connection(db, connection_id)
    if current_user.id not in (connection.requester_id, connection.receiver_id):
        raise HTTPException(status_code=404, detail="Connection not found")

    db.delete(connection)
    db.commit()
    return {"message": "Connection removed"}
