"""Circle domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...schemas import ProfileSummary
from ...shared.validators import validate_choice

MEMBER_ROLES = ("admin", "member")


class CircleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    emoji: Optional[str] = Field(None, max_length=16)
    color: Optional[str] = Field(None, max_length=20)
    is_public: bool = True


class CircleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    emoji: Optional[str] = Field(None, max_length=16)
    color: Optional[str] = Field(None, max_length=20)
    is_public: Optional[bool] = None


class CircleResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    emoji: Optional[str] = None
    color: Optional[str] = None
    is_public: bool
    is_active: bool
    member_count: int
    created_by: str
    created_at: datetime

    class Config:
        from_attributes = True


class MemberResponse(BaseModel):
    member_id: str
    role: str
    joined_at: datetime
    profile: Optional[ProfileSummary] = None

    class Config:
        from_attributes = True


class RoleUpdate(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def check_role(cls, v):
        return validate_choice(v, MEMBER_ROLES, "role")


class InvitationCreate(BaseModel):
    invitee_id: str


class InvitationResponse(BaseModel):
    id: str
    circle_id: str
    inviter_id: str
    invitee_id: str
    status: str
    created_at: datetime
    responded_at: Optional[datetime] = None
    circle: Optional[CircleResponse] = None
    inviter: Optional[ProfileSummary] = None

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
