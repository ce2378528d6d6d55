"""replaywire - record and replay HTTP traffic for deterministic tests"""

from .config import ReplayConfig, ReplayMode, load_config
from .replay import (
    AsyncReplayTransport,
    ChainDecodeError,
    MockResponse,
    PersistError,
    ReplayContext,
    ReplayError,
    ReplayNotFoundError,
    ReplayRecorder,
    ReplayTransport,
)
from .utils.http import create_async_http_client, create_http_client

__version__ = "0.1.0"

__all__ = [
    "AsyncReplayTransport",
    "ChainDecodeError",
    "MockResponse",
    "PersistError",
    "ReplayConfig",
    "ReplayContext",
    "ReplayError",
    "ReplayMode",
    "ReplayNotFoundError",
    "ReplayRecorder",
    "ReplayTransport",
    "create_async_http_client",
    "create_http_client",
    "load_config",
]
