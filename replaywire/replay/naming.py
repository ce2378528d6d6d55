"""File naming for chains and their sibling body files"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .fingerprint import ChainKey

CHAIN_EXTENSION = "json"

# Bodies of these media types live in their own file next to the chain.
EXTENSIONS = {
    "application/json": "json",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
}


class FileRole(Enum):
    """Kinds of file belonging to one chain"""
    CHAIN = "chain"
    REQUEST_BODY = "request"
    RESPONSE_BODY = "response"


@dataclass(frozen=True)
class AsFile:
    """Store under ``name``, relative to the chain store root."""
    name: str


@dataclass(frozen=True)
class Inline:
    """Embed the body in the chain file."""


INLINE = Inline()

Placement = Union[AsFile, Inline]


def extension_for(content_type: Optional[str]) -> Optional[str]:
    """Sibling file extension for a media type, or None to embed inline."""
    if not content_type:
        return None
    content_type = content_type.split(";", 1)[0].strip().lower()
    if content_type in EXTENSIONS:
        return EXTENSIONS[content_type]
    if content_type.endswith("+json"):
        return "json"
    return None


def chain_file_name(key: ChainKey) -> str:
    return f"{key.name}.{CHAIN_EXTENSION}"


def file_name(
    role: FileRole,
    key: ChainKey,
    sequence_index: int = 0,
    content_type: Optional[str] = None,
) -> Placement:
    """Where a piece of a recording lives.

    Args:
        role: Chain file, request body or response body
        key: Chain key of the request
        sequence_index: Position of the exchange in its chain (bodies only)
        content_type: Media type of the body (bodies only)

    Returns:
        ``AsFile(name)`` or ``INLINE`` for bodies without a known extension.
        The chain role always yields ``AsFile``.
    """
    if role is FileRole.CHAIN:
        return AsFile(chain_file_name(key))

    extension = extension_for(content_type)
    if extension is None:
        return INLINE
    return AsFile(f"{key.name}-{role.value}-{sequence_index}.{extension}")
