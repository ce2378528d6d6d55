"""Replay context

One object owning everything a replay session needs: configuration,
handlers, sequence counters and the recorder. Create one per test (or per
suite), hand its transports to your clients, and close it on teardown.
"""

from dataclasses import replace
from pathlib import Path
from typing import Optional, Union

import httpx

from ..config import ReplayConfig
from ..utils.logging import get_logger
from .handlers import HandlerRegistry, RequestHandler
from .recorder import ReplayRecorder
from .sequence import SequenceTracker
from .transport import AsyncReplayTransport, ReplayTransport

logger = get_logger(__name__)


class ReplayContext:
    """Owner of a replay session's state."""

    def __init__(self, config: Optional[ReplayConfig] = None):
        self.handlers = HandlerRegistry()
        self.tracker = SequenceTracker()
        self.recorder = ReplayRecorder(
            config=config or ReplayConfig(),
            handlers=self.handlers,
            tracker=self.tracker,
        )

    @property
    def config(self) -> ReplayConfig:
        return self.recorder.config

    def _update(self, **changes) -> None:
        self.recorder.config = replace(self.recorder.config, **changes)

    # Handlers

    def register_handler(self, handler: RequestHandler) -> RequestHandler:
        """Register a request handler; usable as a decorator."""
        return self.handlers.register(handler)

    def unregister_all_handlers(self) -> None:
        self.handlers.unregister_all()

    # Configuration

    def set_loading_dir(self, path: Optional[Union[str, Path]]) -> None:
        self._update(loading_dir=path)
        if path is not None:
            logger.info(f"Loading network requests from: {path}")
        else:
            logger.info("No longer loading network requests from disk")

    def set_recording_dir(self, path: Optional[Union[str, Path]]) -> None:
        self._update(recording_dir=path)
        if path is not None:
            logger.info(f"Recording network requests to: {path}")
        else:
            logger.info("No longer recording network requests")

    def set_fallback_to_network(self, enabled: bool) -> None:
        self._update(fallback_to_network=enabled)

    def set_enabled(self, enabled: bool) -> None:
        self._update(enabled=enabled)

    def reset_sequences(self) -> None:
        self.tracker.reset()

    # Interception

    def transport(self, wrapped: Optional[httpx.BaseTransport] = None) -> ReplayTransport:
        return ReplayTransport(self.recorder, wrapped)

    def async_transport(
        self,
        wrapped: Optional[httpx.AsyncBaseTransport] = None,
    ) -> AsyncReplayTransport:
        return AsyncReplayTransport(self.recorder, wrapped)

    # Teardown

    def close(self) -> None:
        self.unregister_all_handlers()
        self.reset_sequences()

    def __enter__(self) -> "ReplayContext":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
