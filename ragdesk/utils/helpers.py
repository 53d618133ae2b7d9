"""
Utility helper functions.
"""
from typing import Optional

PREVIEW_CHARS = 200


def truncate_content(content: Optional[str], max_length: int = PREVIEW_CHARS) -> str:
    """
    Shorten text for citation previews.

    Returns the text unchanged when it fits, otherwise its first
    `max_length` characters followed by "...".

    Example:
        >>> truncate_content("a" * 250)[-5:]
        'aa...'
    """
    if not content:
        return ""
    if len(content) <= max_length:
        return content
    return content[:max_length] + "..."
