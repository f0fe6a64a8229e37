"""File and folder naming for archived pages."""

import hashlib
import re
from typing import Optional

MAX_NAME_LENGTH = 200


def sanitize_name(value: Optional[str], fallback: str = "page") -> str:
    """Sanitize a title for use as a file or folder name.

    Args:
        value: Title to sanitize
        fallback: Name used when nothing usable remains

    Returns:
        Sanitized name
    """
    if not value or not isinstance(value, str):
        return fallback

    name = re.sub(r'[\\/:*?"<>|]', "-", value)
    name = re.sub(r"\s+", "-", name)
    name = re.sub(r"-+", "-", name)
    name = name.strip("-")

    # Limit length
    if len(name) > MAX_NAME_LENGTH:
        # Hash the overflow to prevent collisions
        overflow = name[180:]
        name_hash = hashlib.md5(overflow.encode()).hexdigest()[:8]
        name = name[:180] + "-" + name_hash

    return name or fallback


def sanitize_folder_name(value: Optional[str]) -> str:
    return sanitize_name(value, "deepwiki")


def unique_file_name(desired: Optional[str], used: set[str]) -> str:
    """Return a sanitized name not yet in ``used`` and record it.

    Collisions get a numeric suffix: ``name``, ``name-1``, ``name-2``.
    """
    base = sanitize_name(desired, "page")
    candidate = base
    counter = 1
    while candidate in used:
        candidate = f"{base}-{counter}"
        counter += 1
    used.add(candidate)
    return candidate


def single_page_file_name(head_title: Optional[str], title: Optional[str]) -> str:
    """Name a standalone page export ``{head}-{title}.md``, or ``{title}.md`` without a head title."""
    head = sanitize_name(head_title, "")
    name = sanitize_name(title, "page")
    return f"{head}-{name}.md" if head else f"{name}.md"
