"""Shared validation utilities"""

import re
from typing import Optional

USERNAME_PATTERN = re.compile(r"^[a-z0-9_]{3,30}$")

USER_TYPES = ("family", "teacher", "business")
ADMIN_LEVELS = ("bronze", "silver", "gold")
EVENT_CATEGORIES = ("playdate", "learning", "co-op")
RSVP_STATUSES = ("going", "maybe", "cancelled")
REPORT_STATUSES = ("pending", "reviewed", "actioned", "dismissed")
TICKET_STATUSES = ("new", "in_progress", "resolved", "closed")
BUG_PRIORITIES = ("low", "medium", "high", "critical")
FEEDBACK_TYPES = ("suggestion", "feature_request", "compliment", "complaint", "other")


def validate_username(username: Optional[str]) -> Optional[str]:
    """
    Normalize and validate a username.

    Usernames are lowercased, 3-30 characters, letters, digits and underscores only.

    Raises:
        ValueError: If the username is invalid
    """
    if username is None:
        return None
    normalized = username.strip().lower()
    if not USERNAME_PATTERN.match(normalized):
        raise ValueError(
            "Username must be 3-30 characters using lowercase letters, numbers or underscores"
        )
    return normalized


def validate_kids_ages(ages: Optional[list[int]]) -> Optional[list[int]]:
    """Kids' ages must be whole years between 0 and 18, returned sorted"""
    if ages is None:
        return None
    for age in ages:
        if not isinstance(age, int) or age < 0 or age > 18:
            raise ValueError("Kids' ages must be between 0 and 18")
    return sorted(ages)


def validate_coordinates(lat: Optional[float], lng: Optional[float]) -> None:
    if lat is not None and not -90 <= lat <= 90:
        raise ValueError("Latitude must be between -90 and 90")
    if lng is not None and not -180 <= lng <= 180:
        raise ValueError("Longitude must be between -180 and 180")


def validate_choice(value: Optional[str], choices: tuple[str, ...], field: str) -> Optional[str]:
    """Validate that a value is one of the allowed choices"""
    if value is None:
        return None
    if value not in choices:
        raise ValueError(f"{field} must be one of: {', '.join(choices)}")
    return value


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()
    pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    if not re.match(pattern, email):
        raise ValueError("Invalid email format")
    return email
