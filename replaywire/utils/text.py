"""Text utilities"""

import hashlib
import re

_UNSAFE_PATH_CHARS = re.compile(r"[^A-Za-z0-9._\-]")


def hash_bytes(data: bytes, length: int = 16) -> str:
    """Generate a hash of raw bytes.

    Args:
        data: Input bytes
        length: Hash length (max 64 for sha256)

    Returns:
        Hash string
    """
    return hashlib.sha256(data).hexdigest()[:length]


def hash_text(text: str, length: int = 16) -> str:
    """Generate a hash of the text."""
    return hash_bytes(text.encode(), length=length)


def safe_path(text: str, default: str = "request") -> str:
    """Turn a slash separated string into a relative path safe to join.

    Each segment keeps letters, digits, ``.``, ``_`` and ``-``; everything
    else becomes ``_``. Empty, ``.`` and ``..`` segments are dropped so the
    result can never escape the directory it is joined to.

    Args:
        text: Input text, e.g. ``api.example.com/v1/users``
        default: Value returned when nothing survives

    Returns:
        Relative path string using ``/`` separators
    """
    segments = []
    for segment in text.split("/"):
        cleaned = _UNSAFE_PATH_CHARS.sub("_", segment)
        if cleaned in ("", ".", ".."):
            continue
        segments.append(cleaned)

    return "/".join(segments) or default


def truncate(text: str, max_length: int = 300, suffix: str = "...") -> str:
    """Truncate text to specified length.

    Args:
        text: Input text
        max_length: Maximum length
        suffix: Suffix to append if truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text

    return text[: max_length - len(suffix)] + suffix
