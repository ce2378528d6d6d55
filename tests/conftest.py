"""Shared fixtures"""

from typing import Any, Optional

import httpx
import pytest

from replaywire.config import ReplayConfig
from replaywire.replay.chain_store import ChainStore
from replaywire.replay.fingerprint import chain_key
from replaywire.replay.models import RecordedExchange
from replaywire.replay.recorder import ReplayRecorder

API_URL = "https://api.example.com/v1/users/42"


def make_exchange(
    request: httpx.Request,
    status_code: int = 200,
    json: Any = None,
    content: Optional[bytes] = None,
    headers: Optional[dict] = None,
) -> RecordedExchange:
    """Build an exchange the way a live recording would."""
    response = httpx.Response(status_code, json=json, content=content, headers=headers)
    return RecordedExchange.from_httpx(request, response, response.read())


class FakeNetwork:
    """Counts live calls and answers each with the next payload."""

    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.calls: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        return httpx.Response(
            self.status_code,
            json={"call": len(self.calls), "url": str(request.url)},
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def send(self, request: httpx.Request) -> httpx.Response:
        return self.transport().handle_request(request)


@pytest.fixture
def api_request() -> httpx.Request:
    return httpx.Request("GET", API_URL)


@pytest.fixture
def network() -> FakeNetwork:
    return FakeNetwork()


@pytest.fixture
def store(tmp_path) -> ChainStore:
    return ChainStore(tmp_path)


@pytest.fixture
def seeded_store(store, api_request) -> ChainStore:
    """A chain of two exchanges for ``api_request``."""
    key = chain_key(api_request)
    store.append(key, make_exchange(api_request, json={"seq": 0}))
    store.append(key, make_exchange(api_request, json={"seq": 1}))
    return store


@pytest.fixture
def replay_recorder(tmp_path) -> ReplayRecorder:
    """建立 replay 模式的 recorder"""
    return ReplayRecorder(ReplayConfig.from_mode("replay", fixture_dir=tmp_path))


@pytest.fixture
def record_recorder(tmp_path) -> ReplayRecorder:
    """建立 record 模式的 recorder"""
    return ReplayRecorder(ReplayConfig.from_mode("record", fixture_dir=tmp_path))
