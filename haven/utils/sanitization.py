import html
from typing import Optional

import bleach


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Sanitize a string by escaping HTML special characters to prevent XSS.
    Returns None if input is None.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    return html.escape(str(value), quote=True)


def clean_user_text(value: str, max_length: int = 5000) -> str:
    """
    Strip markup from user-authored text (messages, posts, notes).

    Tags are removed. Stray angle brackets and ampersands come back as HTML
    entities, so the stored text is safe to render in every client.

    Raises:
        ValueError: If the cleaned text is empty or too long
    """
    # Decode entities first so encoded markup is stripped too; the output stays escaped
    cleaned = bleach.clean(html.unescape(value or ""), tags=[], attributes={}, strip=True).strip()
    if not cleaned:
        raise ValueError("Text cannot be empty")
    if len(cleaned) > max_length:
        raise ValueError(f"Text must be at most {max_length} characters")
    return cleaned


def truncate(value: Optional[str], length: int = 100) -> str:
    """Shorten text for previews (conversation summaries, push bodies)"""
    if not value:
        return ""
    if len(value) <= length:
        return value
    return value[: length - 1].rstrip() + "…"
