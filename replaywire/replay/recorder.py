"""Replay Recorder

記錄與重播 HTTP 回應。每個請求依序經過：
request handlers → 磁碟上的 chain → 真實網路（可關閉）→ 記錄。
"""

import threading
import time
from pathlib import Path
from typing import Awaitable, Callable, Optional

import httpx

from ..config import ReplayConfig
from ..utils.logging import get_logger
from .chain_store import ChainStore
from .errors import ChainDecodeError, PersistError, ReplayNotFoundError
from .fingerprint import ChainKey, chain_key
from .handlers import HandlerRegistry
from .models import RecordedExchange, ReplayResult, ReplaySource
from .naming import chain_file_name
from .sequence import FingerprintLocks, SequenceTracker

logger = get_logger(__name__)

SendFn = Callable[[httpx.Request], httpx.Response]
AsyncSendFn = Callable[[httpx.Request], Awaitable[httpx.Response]]


class ReplayRecorder:
    """重播記錄器

    Decides, for each outgoing request, whether it is answered by a
    handler, by a recorded chain or by the network, and records live
    answers. Request bodies must already be read.
    """

    def __init__(
        self,
        config: Optional[ReplayConfig] = None,
        handlers: Optional[HandlerRegistry] = None,
        tracker: Optional[SequenceTracker] = None,
    ):
        """初始化重播記錄器

        Args:
            config: Replay configuration (defaults to live mode)
            handlers: Handler registry, shared with the owning context
            tracker: Sequence tracker, shared with the owning context
        """
        self.config = config or ReplayConfig()
        self.handlers = handlers if handlers is not None else HandlerRegistry()
        self.tracker = tracker if tracker is not None else SequenceTracker()
        self.locks = FingerprintLocks()

        self._stores: dict[Path, ChainStore] = {}
        self._stores_lock = threading.Lock()
        self._stats_lock = threading.Lock()

        self.last_persist_error: Optional[PersistError] = None

        # 統計
        self.stats = {
            "handler_hits": 0,
            "disk_hits": 0,
            "disk_misses": 0,
            "decode_errors": 0,
            "live_calls": 0,
            "recorded": 0,
            "persist_errors": 0,
            "rejected": 0,
        }

    # Stores

    def _store_for(self, root: Optional[Path]) -> Optional[ChainStore]:
        if root is None:
            return None
        with self._stores_lock:
            store = self._stores.get(root)
            if store is None:
                store = self._stores[root] = ChainStore(root)
            return store

    @property
    def loading_store(self) -> Optional[ChainStore]:
        return self._store_for(self.config.loading_dir)

    @property
    def recording_store(self) -> Optional[ChainStore]:
        return self._store_for(self.config.recording_dir)

    def _count(self, name: str) -> None:
        with self._stats_lock:
            self.stats[name] += 1

    # Dispatch

    def key_for(self, request: httpx.Request) -> ChainKey:
        return chain_key(request, self.config.normalize_request)

    def _check_handlers(self, request: httpx.Request) -> Optional[ReplayResult]:
        response = self.handlers.dispatch(request)
        if response is None:
            return None

        body = response.read()
        self._count("handler_hits")
        logger.debug(f"Handler hit: {request.method} {request.url}")
        return ReplayResult(
            source=ReplaySource.HANDLER,
            exchange=RecordedExchange.from_httpx(request, response, body),
        )

    def _load_from_disk(self, request: httpx.Request, key: ChainKey) -> Optional[ReplayResult]:
        """Serve the exchange at the current index. Caller holds the key lock."""
        store = self.loading_store
        sequence_key = chain_file_name(key)

        if store is None:
            self._count("disk_misses")
            return None

        index = self.tracker.current_index(sequence_key)
        try:
            loaded = store.load_exchange(key, index)
        except ChainDecodeError as e:
            self._count("decode_errors")
            self._count("disk_misses")
            logger.warning(f"Replay decode error for {request.method} {request.url}: {e}")
            return None

        if loaded is None:
            self._count("disk_misses")
            logger.debug(
                f"Replay miss: {request.method} {request.url} -> {store.chain_path(key)}"
            )
            return None

        exchange, resolved = loaded
        self.tracker.advance(sequence_key)
        self._count("disk_hits")
        logger.debug(
            f"Replay hit: {request.method} {request.url} -> {sequence_key} [{resolved}]"
        )
        return ReplayResult(source=ReplaySource.DISK, exchange=exchange, index=resolved)

    def _reject(self, request: httpx.Request, key: ChainKey) -> ReplayNotFoundError:
        expected = chain_file_name(key)
        self._count("rejected")
        logger.warning(
            f"No mock for {request.method} {request.url} (expected {expected}), "
            f"network fallback disabled"
        )
        if self.config.on_not_found is not None:
            self.config.on_not_found(request, expected)
        return ReplayNotFoundError(request, expected)

    def _record(
        self,
        request: httpx.Request,
        key: ChainKey,
        response: httpx.Response,
        body: bytes,
        elapsed_ms: float,
    ) -> ReplayResult:
        """Persist a live answer and advance. Caller holds the key lock."""
        body = self.config.normalize_response_body(body, request)
        exchange = RecordedExchange.from_httpx(request, response, body, elapsed_ms=elapsed_ms)

        index = None
        store = self.recording_store
        if store is not None:
            try:
                index = store.append(key, exchange)
                self._count("recorded")
            except PersistError as e:
                # The live response is still served.
                self.last_persist_error = e
                self._count("persist_errors")
                logger.error(f"Recording failed for {request.method} {request.url}: {e}")

        self.tracker.advance(chain_file_name(key))
        return ReplayResult(source=ReplaySource.LIVE, exchange=exchange, index=index)

    def lookup(self, request: httpx.Request) -> Optional[ReplayResult]:
        """Answer from handlers or disk only; None when neither has it.

        Args:
            request: Outgoing request (body already read)

        Returns:
            ReplayResult or None
        """
        key = self.key_for(request)
        result = self._check_handlers(request)
        if result is not None:
            return result

        with self.locks.sync_lock(chain_file_name(key)):
            return self._load_from_disk(request, key)

    def handle(self, request: httpx.Request, send: SendFn) -> ReplayResult:
        """Resolve a request, calling ``send`` at most once on a miss.

        Args:
            request: Outgoing request (body already read)
            send: Performs the real call, e.g. a wrapped transport's
                ``handle_request``

        Returns:
            ReplayResult

        Raises:
            ReplayNotFoundError: miss with network fallback disabled
            httpx.TransportError: from ``send``, unchanged
        """
        key = self.key_for(request)
        result = self._check_handlers(request)
        if result is not None:
            return result

        with self.locks.sync_lock(chain_file_name(key)):
            result = self._load_from_disk(request, key)
            if result is not None:
                return result

            if not self.config.fallback_to_network:
                raise self._reject(request, key)

            self._count("live_calls")
            logger.debug(f"Falling back to network: {request.method} {request.url}")
            started = time.monotonic()
            response = send(request)
            try:
                body = response.read()
            finally:
                response.close()
            elapsed_ms = (time.monotonic() - started) * 1000

            return self._record(request, key, response, body, elapsed_ms)

    async def ahandle(self, request: httpx.Request, send: AsyncSendFn) -> ReplayResult:
        """Async counterpart of :meth:`handle`.

        Cancelling while the live call is in flight cancels that call and
        leaves no trace: nothing is recorded and the sequence is unchanged.
        """
        key = self.key_for(request)
        sequence_key = chain_file_name(key)
        result = self._check_handlers(request)
        if result is not None:
            return result

        async with self.locks.async_lock(sequence_key):
            async with self.locks.hold_sync_lock(sequence_key):
                result = self._load_from_disk(request, key)
            if result is not None:
                return result

            if not self.config.fallback_to_network:
                raise self._reject(request, key)

            self._count("live_calls")
            logger.debug(f"Falling back to network: {request.method} {request.url}")
            started = time.monotonic()
            response = await send(request)
            try:
                body = await response.aread()
            finally:
                await response.aclose()
            elapsed_ms = (time.monotonic() - started) * 1000

            async with self.locks.hold_sync_lock(sequence_key):
                return self._record(request, key, response, body, elapsed_ms)

    def get_stats(self) -> dict:
        """取得統計資訊"""
        with self._stats_lock:
            stats = dict(self.stats)
        return {
            **stats,
            "loading_dir": str(self.config.loading_dir) if self.config.loading_dir else None,
            "recording_dir": str(self.config.recording_dir) if self.config.recording_dir else None,
            "fallback_to_network": self.config.fallback_to_network,
            "sequences": self.tracker.snapshot(),
        }
