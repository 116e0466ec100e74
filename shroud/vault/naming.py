"""
Secret and category names.

Names and categories become file and directory names under the vault
root, so both are sanitized before any path is built from them.
"""
import re
from typing import Optional

from ..exceptions import MissingName

UNCATEGORIZED = "uncategorized"

_MAX_NAME_BYTES = 255
_FORBIDDEN = re.compile(r'[/\\?<>:*|"\x00-\x1f\x80-\x9f]')


def sanitize(value: Optional[str]) -> str:
    """Strip path-unsafe characters from ``value``.

    Returns an empty string when nothing usable remains.
    """
    if not value:
        return ""
    cleaned = _FORBIDDEN.sub("", str(value)).strip()
    cleaned = cleaned.lstrip(".").strip()
    encoded = cleaned.encode("utf-8")
    if len(encoded) > _MAX_NAME_BYTES:
        cleaned = encoded[:_MAX_NAME_BYTES].decode("utf-8", errors="ignore")
    return cleaned


def sanitize_name(name: Optional[str]) -> str:
    """Sanitize a secret name.

    Raises:
        MissingName: If the name is absent or empty after sanitization.
    """
    cleaned = sanitize(name)
    if not cleaned:
        raise MissingName(f"A secret name is required (got {name!r})")
    return cleaned


def sanitize_category(category: Optional[str]) -> Optional[str]:
    """Sanitize a category; empty or ``uncategorized`` means no category."""
    cleaned = sanitize(category)
    if not cleaned or cleaned == UNCATEGORIZED:
        return None
    return cleaned


def split_secret_path(path: str) -> tuple[str, Optional[str]]:
    """Split a combined ``"category/name"`` path.

    Returns:
        Tuple of (name, category); category is None when ``path`` has no
        separator or an empty category part.
    """
    category, sep, name = path.partition("/")
    if not sep:
        return path, None
    return name, category or None
