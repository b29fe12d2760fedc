from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import CalendarNote, Profile

router = APIRouter(prefix="/calendar", tags=["Calendar"])


class NoteCreate(BaseModel):
    note_date: date
    title: str = Field(..., min_length=1, max_length=200)
    content: Optional[str] = Field(None, max_length=5000)


class NoteUpdate(BaseModel):
    note_date: Optional[date] = None
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, max_length=5000)


class NoteResponse(BaseModel):
    id: str
    note_date: date
    title: str
    content: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


def _get_note(db: Session, note_id: str, user: Profile) -> CalendarNote:
    note = (
        db.query(CalendarNote)
        .filter(CalendarNote.id == note_id, CalendarNote.profile_id == user.id)
        .first()
    )
    if not note:
        raise HTTPException(status_code=404, detail="Note not found")
    return note


@router.get("/notes", response_model=list[NoteResponse])
async def list_notes(
    start: Optional[date] = None,
    end: Optional[date] = None,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(CalendarNote).filter(CalendarNote.profile_id == current_user.id)
    if start:
        query = query.filter(CalendarNote.note_date >= start)
    if end:
        query = query.filter(CalendarNote.note_date <= end)
    return query.order_by(CalendarNote.note_date.asc(), CalendarNote.created_at.asc()).all()


@router.post("/notes", response_model=NoteResponse, status_code=201)
async def create_note(
    data: NoteCreate,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    note = CalendarNote(profile_id=current_user.id, **data.model_dump())
    db.add(note)
    db.commit()
    db.refresh(note)
    return note


@router.patch("/notes/{note_id}", response_model=NoteResponse)
async def update_note(
    note_id: str,
    data: NoteUpdate,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    note = _get_note(db, note_id, current_user)
    for key, value in data.model_dump(exclude_unset=True).items():
        if value is not None or key == "content":
            setattr(note, key, value)
    db.commit()
    db.refresh(note)
    return note


@router.delete("/notes/{note_id}")
async def delete_note(
    note_id: str,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    note = _get_note(db, note_id, current_user)
    db.delete(note)
    db.commit()
    return {"message": "Note deleted"}
