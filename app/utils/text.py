"""Title and slug helpers."""
import re
from typing import Optional

TITLE_MAX_CHARS = 30
TITLE_ELLIPSIS = "…"
EMPTY_SESSION_TITLE = "New Conversation"


def make_title(content: Optional[str]) -> str:
    """First 30 characters of the opening message, with an ellipsis when cut."""
    if not content:
        return EMPTY_SESSION_TITLE
    if len(content) > TITLE_MAX_CHARS:
        return content[:TITLE_MAX_CHARS] + TITLE_ELLIPSIS
    return content


def slugify(value: str, separator: str = "_") -> str:
    """Lowercase, whitespace to separator, drop anything that is not a word character."""
    slug = re.sub(r"\s+", separator, value.strip().lower())
    slug = re.sub(r"[^\w-]", "", slug)
    return slug.strip(separator + "-")
