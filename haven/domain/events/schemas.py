"""Event domain schemas - Pydantic models for validation"""

import re
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...schemas import ProfileSummary
from ...shared.validators import (
    EVENT_CATEGORIES,
    RSVP_STATUSES,
    validate_choice,
    validate_coordinates,
)

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _check_time(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    if not TIME_PATTERN.match(v):
        raise ValueError("event_time must be HH:MM (24 hour)")
    return v


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    category: str
    event_date: date
    event_time: Optional[str] = None
    location_name: str = Field(..., min_length=1, max_length=255)
    location_details: Optional[str] = Field(None, max_length=1000)
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    show_exact_location: bool = False
    age_range: Optional[str] = Field(None, max_length=50)
    max_attendees: Optional[int] = Field(None, ge=1, le=1000)
    is_private: bool = False

    @field_validator("category")
    @classmethod
    def check_category(cls, v):
        return validate_choice(v, EVENT_CATEGORIES, "category")

    @field_validator("event_time")
    @classmethod
    def check_time(cls, v):
        return _check_time(v)

    @field_validator("location_lat")
    @classmethod
    def check_lat(cls, v):
        validate_coordinates(v, None)
        return v

    @field_validator("location_lng")
    @classmethod
    def check_lng(cls, v):
        validate_coordinates(None, v)
        return v


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    category: Optional[str] = None
    event_date: Optional[date] = None
    event_time: Optional[str] = None
    location_name: Optional[str] = Field(None, min_length=1, max_length=255)
    location_details: Optional[str] = Field(None, max_length=1000)
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    show_exact_location: Optional[bool] = None
    age_range: Optional[str] = Field(None, max_length=50)
    max_attendees: Optional[int] = Field(None, ge=1, le=1000)
    is_private: Optional[bool] = None

    @field_validator("category")
    @classmethod
    def check_category(cls, v):
        return validate_choice(v, EVENT_CATEGORIES, "category")

    @field_validator("event_time")
    @classmethod
    def check_time(cls, v):
        return _check_time(v)


class EventResponse(BaseModel):
    id: str
    host_id: str
    title: str
    description: Optional[str] = None
    category: str
    event_date: date
    event_time: Optional[str] = None
    location_name: str
    location_details: Optional[str] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    show_exact_location: bool
    age_range: Optional[str] = None
    max_attendees: Optional[int] = None
    is_private: bool
    is_cancelled: bool
    created_at: datetime
    host: Optional[ProfileSummary] = None

    class Config:
        from_attributes = True


class RsvpUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        return validate_choice(v, RSVP_STATUSES, "status")


class RsvpResponse(BaseModel):
    id: str
    event_id: str
    profile_id: str
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    profile: Optional[ProfileSummary] = None

    class Config:
        from_attributes = True


class InvitationCreate(BaseModel):
    invitee_id: str


class InvitationResponse(BaseModel):
    id: str
    event_id: str
    inviter_id: str
    invitee_id: str
    status: str
    created_at: datetime
    responded_at: Optional[datetime] = None
    event: Optional[EventResponse] = None

    class Config:
        from_attributes = True


class ChatMessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class ChatMessageResponse(BaseModel):
    id: str
    sender_id: str
    content: str
    created_at: datetime
    sender: Optional[ProfileSummary] = None

    class Config:
        from_attributes = True
