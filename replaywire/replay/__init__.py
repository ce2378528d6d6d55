"""Replay Module

支援 record/replay 測試模式。
"""

from .chain_store import ChainStore
from .context import ReplayContext
from .errors import ChainDecodeError, PersistError, ReplayError, ReplayNotFoundError
from .fingerprint import ChainKey, chain_key, fingerprint
from .fixture_manager import FixtureManager
from .handlers import HandlerRegistry
from .models import (
    MockResponse,
    RecordedExchange,
    RecordedRequest,
    RecordedResponse,
    ReplayResult,
    ReplaySource,
)
from .naming import INLINE, AsFile, FileRole, file_name
from .recorder import ReplayRecorder
from .sequence import SequenceTracker
from .transport import AsyncReplayTransport, ReplayTransport

__all__ = [
    "AsFile",
    "AsyncReplayTransport",
    "ChainDecodeError",
    "ChainKey",
    "ChainStore",
    "FileRole",
    "FixtureManager",
    "HandlerRegistry",
    "INLINE",
    "MockResponse",
    "PersistError",
    "RecordedExchange",
    "RecordedRequest",
    "RecordedResponse",
    "ReplayContext",
    "ReplayError",
    "ReplayNotFoundError",
    "ReplayRecorder",
    "ReplayResult",
    "ReplaySource",
    "ReplayTransport",
    "SequenceTracker",
    "chain_key",
    "file_name",
    "fingerprint",
]
