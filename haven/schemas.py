from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .shared.validators import (
    USER_TYPES,
    validate_choice,
    validate_coordinates,
    validate_kids_ages,
    validate_username,
)


class ProfileSummary(BaseModel):
    """What other families see in lists, search results and chat headers"""

    id: str
    name: str
    family_name: Optional[str] = None
    display_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    user_type: str = "family"
    location_name: Optional[str] = None
    kids_ages: list[int] = []
    is_verified: bool = False
    last_active_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PublicProfile(ProfileSummary):
    bio: Optional[str] = None
    status: list[str] = []
    interests: list[str] = []
    homeschool_approaches: list[str] = []
    contact_methods: list[str] = []
    created_at: Optional[datetime] = None


class ProfileResponse(PublicProfile):
    email: Optional[str] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    show_exact_location: bool = False
    onboarding_complete: bool = False
    is_admin: bool = False
    admin_level: Optional[str] = None
    notify_connection_requests: bool = True
    notify_messages: bool = True
    notify_circle_invites: bool = True
    notify_event_rsvps: bool = True
    notify_announcements: bool = True
    email_notifications: bool = True
    updated_at: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    family_name: Optional[str] = Field(None, max_length=255)
    display_name: Optional[str] = Field(None, max_length=255)
    username: Optional[str] = None
    avatar_url: Optional[str] = Field(None, max_length=500)
    bio: Optional[str] = Field(None, max_length=2000)
    user_type: Optional[str] = None
    location_name: Optional[str] = Field(None, max_length=255)
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    show_exact_location: Optional[bool] = None
    kids_ages: Optional[list[int]] = None
    status: Optional[list[str]] = None
    contact_methods: Optional[list[str]] = None
    interests: Optional[list[str]] = None
    homeschool_approaches: Optional[list[str]] = None
    onboarding_complete: Optional[bool] = None

    @field_validator("username")
    @classmethod
    def check_username(cls, v):
        return validate_username(v)

    @field_validator("kids_ages")
    @classmethod
    def check_kids_ages(cls, v):
        return validate_kids_ages(v)

    @field_validator("user_type")
    @classmethod
    def check_user_type(cls, v):
        return validate_choice(v, USER_TYPES, "user_type")

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


class NotificationPreferences(BaseModel):
    notify_connection_requests: bool = True
    notify_messages: bool = True
    notify_circle_invites: bool = True
    notify_event_rsvps: bool = True
    notify_announcements: bool = True
    email_notifications: bool = True

    class Config:
        from_attributes = True


class NotificationResponse(BaseModel):
    id: str
    actor_id: Optional[str] = None
    type: str
    title: str
    body: Optional[str] = None
    link: Optional[str] = None
    reference_id: Optional[str] = None
    read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    message: str


class EventSummary(BaseModel):
    id: str
    title: str
    category: str
    event_date: date
    event_time: Optional[str] = None
    location_name: str

    class Config:
        from_attributes = True
