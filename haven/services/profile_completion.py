"""Which onboarding step a profile still needs"""

from typing import Optional

from ..models import Profile

STEPS = ("about-you", "kids", "contact", "complete")

MESSAGES = {
    "about-you": "Complete your profile - Tell us about you",
    "kids": "Complete your profile - Add your kids' ages",
    "contact": "Complete your profile - Choose how to connect",
    "complete": "Profile complete",
}


def _blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return len(value) == 0


def completion_step(profile: Optional[Profile]) -> str:
    """
    Families need a name, username, location, status, kids' ages and a bio.
    Teachers and businesses need everything except kids' ages.
    """
    if profile is None:
        return "about-you"

    name = profile.family_name or profile.display_name
    if any(_blank(v) for v in (name, profile.username, profile.location_name, profile.status)):
        return "about-you"

    user_type = profile.user_type or "family"
    if user_type == "family" and _blank(profile.kids_ages):
        return "about-you"
    if _blank(profile.bio):
        return "about-you"

    return "complete"


def completion_message(step: str) -> str:
    return MESSAGES.get(step, MESSAGES["complete"])
