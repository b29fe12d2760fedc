import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base


def generate_id():
    """Generate a UUID string primary key"""
    return str(uuid.uuid4())


class Profile(Base):
    __tablename__ = "profiles"

    # Same id as the hosted auth user (JWT "sub")
    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), index=True, nullable=True)
    family_name = Column(String(255), nullable=True)
    display_name = Column(String(255), nullable=True)
    username = Column(String(30), unique=True, index=True, nullable=True)
    avatar_url = Column(String(500), nullable=True)
    bio = Column(Text, nullable=True)
    user_type = Column(String(20), default="family", nullable=False)  # family, teacher, business
    location_name = Column(String(255), nullable=True)
    location_lat = Column(Float, nullable=True)
    location_lng = Column(Float, nullable=True)
    show_exact_location = Column(Boolean, default=False, nullable=False)
    kids_ages = Column(JSON, default=list, nullable=False)
    status = Column(JSON, default=list, nullable=False)  # e.g. ["homeschooling", "considering"]
    contact_methods = Column(JSON, default=list, nullable=False)
    interests = Column(JSON, default=list, nullable=False)
    homeschool_approaches = Column(JSON, default=list, nullable=False)
    onboarding_complete = Column(Boolean, default=False, nullable=False)

    # Administration
    is_admin = Column(Boolean, default=False, nullable=False)
    admin_level = Column(String(10), nullable=True)  # bronze, silver, gold
    is_banned = Column(Boolean, default=False, nullable=False)
    banned_at = Column(DateTime, nullable=True)
    banned_by = Column(String(36), nullable=True)
    ban_reason = Column(Text, nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Notification preferences
    notify_connection_requests = Column(Boolean, default=True, nullable=False)
    notify_messages = Column(Boolean, default=True, nullable=False)
    notify_circle_invites = Column(Boolean, default=True, nullable=False)
    notify_event_rsvps = Column(Boolean, default=True, nullable=False)
    notify_announcements = Column(Boolean, default=True, nullable=False)
    email_notifications = Column(Boolean, default=True, nullable=False)

    last_active_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def name(self) -> str:
        return self.display_name or self.family_name or "A Haven family"


class Connection(Base):
    __tablename__ = "connections"

    id = Column(String(36), primary_key=True, default=generate_id)
    requester_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    receiver_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, accepted
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    requester = relationship("Profile", foreign_keys=[requester_id])
    receiver = relationship("Profile", foreign_keys=[receiver_id])

    __table_args__ = (UniqueConstraint("requester_id", "receiver_id", name="uq_connection_pair"),)


class BlockedUser(Base):
    __tablename__ = "blocked_users"

    id = Column(String(36), primary_key=True, default=generate_id)
    blocker_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    blocked_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("blocker_id", "blocked_id", name="uq_block_pair"),)


class Report(Base):
    __tablename__ = "reports"

    id = Column(String(36), primary_key=True, default=generate_id)
    reporter_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    reported_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    reason = Column(String(100), nullable=False)
    details = Column(Text, nullable=True)
    content_type = Column(String(30), nullable=True)  # profile, message, post, event, circle
    content_id = Column(String(36), nullable=True)
    status = Column(String(20), default="pending", nullable=False)
    admin_notes = Column(Text, nullable=True)
    reviewed_by = Column(String(36), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=generate_id)
    participant_1 = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    participant_2 = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    last_message_text = Column(Text, nullable=True)
    last_message_at = Column(DateTime, nullable=True)
    last_message_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    messages = relationship("Message", back_populates="conversation")

    def other_participant(self, profile_id: str) -> str:
        return self.participant_2 if self.participant_1 == profile_id else self.participant_1

    def has_participant(self, profile_id: str) -> bool:
        return profile_id in (self.participant_1, self.participant_2)


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=generate_id)
    conversation_id = Column(
        String(36), ForeignKey("conversations.id"), index=True, nullable=False
    )
    sender_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    content = Column(Text, nullable=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    conversation = relationship("Conversation", back_populates="messages")


class Circle(Base):
    __tablename__ = "circles"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    emoji = Column(String(16), nullable=True)
    color = Column(String(20), nullable=True)
    is_public = Column(Boolean, default=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    member_count = Column(Integer, default=0, nullable=False)
    created_by = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    creator = relationship("Profile", foreign_keys=[created_by])
    members = relationship("CircleMember", back_populates="circle")


class CircleMember(Base):
    __tablename__ = "circle_members"

    id = Column(String(36), primary_key=True, default=generate_id)
    circle_id = Column(String(36), ForeignKey("circles.id"), index=True, nullable=False)
    member_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    role = Column(String(10), default="member", nullable=False)  # admin, member
    joined_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    circle = relationship("Circle", back_populates="members")
    profile = relationship("Profile")

    __table_args__ = (UniqueConstraint("circle_id", "member_id", name="uq_circle_member"),)


class CircleInvitation(Base):
    __tablename__ = "circle_invitations"

    id = Column(String(36), primary_key=True, default=generate_id)
    circle_id = Column(String(36), ForeignKey("circles.id"), index=True, nullable=False)
    inviter_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    invitee_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, accepted, declined
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    responded_at = Column(DateTime, nullable=True)

    circle = relationship("Circle")
    inviter = relationship("Profile", foreign_keys=[inviter_id])


class CircleMessage(Base):
    __tablename__ = "circle_messages"

    id = Column(String(36), primary_key=True, default=generate_id)
    circle_id = Column(String(36), ForeignKey("circles.id"), index=True, nullable=False)
    sender_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    sender = relationship("Profile")


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=generate_id)
    host_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(20), nullable=False)  # playdate, learning, co-op
    event_date = Column(Date, index=True, nullable=False)
    event_time = Column(String(10), nullable=True)  # "HH:MM"
    location_name = Column(String(255), nullable=False)
    location_details = Column(Text, nullable=True)
    location_lat = Column(Float, nullable=True)
    location_lng = Column(Float, nullable=True)
    show_exact_location = Column(Boolean, default=False, nullable=False)
    age_range = Column(String(50), nullable=True)
    max_attendees = Column(Integer, nullable=True)
    is_private = Column(Boolean, default=False, nullable=False)
    is_cancelled = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    host = relationship("Profile", foreign_keys=[host_id])
    rsvps = relationship("EventRsvp", back_populates="event")


class EventRsvp(Base):
    __tablename__ = "event_rsvps"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_id = Column(String(36), ForeignKey("events.id"), index=True, nullable=False)
    profile_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    status = Column(String(20), default="going", nullable=False)  # going, maybe, cancelled
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    event = relationship("Event", back_populates="rsvps")
    profile = relationship("Profile")

    __table_args__ = (UniqueConstraint("event_id", "profile_id", name="uq_event_rsvp"),)


class EventInvitation(Base):
    __tablename__ = "event_invitations"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_id = Column(String(36), ForeignKey("events.id"), index=True, nullable=False)
    inviter_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    invitee_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    status = Column(String(20), default="pending", nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    responded_at = Column(DateTime, nullable=True)

    event = relationship("Event")


class EventMessage(Base):
    __tablename__ = "event_messages"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_id = Column(String(36), ForeignKey("events.id"), index=True, nullable=False)
    sender_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    sender = relationship("Profile")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    actor_id = Column(String(36), nullable=True)
    type = Column(String(30), nullable=False)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=True)
    link = Column(String(500), nullable=True)
    reference_id = Column(String(36), nullable=True)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True, nullable=False)


class Broadcast(Base):
    __tablename__ = "broadcasts"

    id = Column(String(36), primary_key=True, default=generate_id)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    target_type = Column(String(20), default="all", nullable=False)  # all, location
    target_value = Column(String(255), nullable=True)
    sent_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    recipient_count = Column(Integer, default=0, nullable=False)
    sent_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class PushSubscription(Base):
    __tablename__ = "push_subscriptions"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    endpoint = Column(String(1000), nullable=False)
    subscription = Column(JSON, nullable=False)  # {"endpoint", "keys": {"p256dh", "auth"}}
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (UniqueConstraint("user_id", "endpoint", name="uq_push_endpoint"),)


class BugReport(Base):
    __tablename__ = "bug_reports"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=True)
    user_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    subject = Column(String(255), default="Bug Report", nullable=False)
    message = Column(Text, nullable=False)
    priority = Column(String(10), default="medium", nullable=False)
    status = Column(String(20), default="new", nullable=False)  # new, in_progress, resolved, closed
    admin_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Feedback(Base):
    __tablename__ = "feedback"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=True)
    user_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    subject = Column(String(255), default="Feedback & Suggestions", nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(30), default="suggestion", nullable=False)
    status = Column(String(20), default="new", nullable=False)
    admin_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class CommunityPost(Base):
    __tablename__ = "community_posts"

    id = Column(String(36), primary_key=True, default=generate_id)
    author_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    tag = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    author = relationship("Profile")


class CalendarNote(Base):
    __tablename__ = "calendar_notes"

    id = Column(String(36), primary_key=True, default=generate_id)
    profile_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    note_date = Column(Date, nullable=False)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class SearchInsight(Base):
    __tablename__ = "search_insights"

    id = Column(Integer, primary_key=True, autoincrement=True)
    context = Column(String(30), nullable=False)  # global, discover, board
    term = Column(String(100), nullable=False)
    count = Column(Integer, default=0, nullable=False)
    last_searched_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("context", "term", name="uq_search_term"),)
