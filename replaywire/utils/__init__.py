"""Utility modules"""

from .logging import get_logger, setup_logging
from .text import hash_bytes, hash_text, safe_path
from .time import get_now, utc_timestamp

__all__ = [
    "get_logger",
    "setup_logging",
    "hash_bytes",
    "hash_text",
    "safe_path",
    "get_now",
    "utc_timestamp",
]
