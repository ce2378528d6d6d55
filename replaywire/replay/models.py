"""Replay data model

Recorded requests, responses and the exchanges that pair them, plus the
result types handed back by the recorder.
"""

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

import httpx

from ..utils.time import utc_timestamp

# Headers that describe the wire encoding of a body. Recorded bodies are
# stored decoded, so these would lie on replay.
_WIRE_HEADERS = {"content-encoding", "transfer-encoding", "content-length"}

Headers = list[list[str]]


def header_pairs(headers: httpx.Headers) -> Headers:
    """Ordered ``[name, value]`` pairs, duplicates preserved."""
    return [[name, value] for name, value in headers.multi_items()]


def parse_headers(raw: Any) -> Headers:
    """Validate serialized headers as a list of ``[name, value]`` string pairs.

    Raises:
        ValueError: anything else
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError(f"Headers must be a list, got {type(raw).__name__}")

    headers = []
    for pair in raw:
        if (
            not isinstance(pair, list)
            or len(pair) != 2
            or not all(isinstance(part, str) for part in pair)
        ):
            raise ValueError(f"Malformed header pair: {pair!r}")
        headers.append(list(pair))
    return headers


def content_type_of(headers: Headers) -> Optional[str]:
    """Media type from a header list, without parameters, lower-cased."""
    for name, value in headers:
        if name.lower() == "content-type":
            media_type = value.split(";", 1)[0].strip().lower()
            return media_type or None
    return None


def encode_body(body: bytes) -> dict:
    """Inline representation of a body inside a chain file."""
    try:
        return {"encoding": "utf-8", "data": body.decode("utf-8")}
    except UnicodeDecodeError:
        return {"encoding": "base64", "data": base64.b64encode(body).decode("ascii")}


def decode_body(data: Optional[dict]) -> Optional[bytes]:
    """Inverse of :func:`encode_body`.

    Raises:
        ValueError: unknown encoding or malformed payload
    """
    if data is None:
        return None
    if not isinstance(data, dict) or not isinstance(data.get("data"), str):
        raise ValueError(f"Malformed inline body: {data!r}")

    encoding = data.get("encoding")
    if encoding == "utf-8":
        return data["data"].encode("utf-8")
    if encoding == "base64":
        return base64.b64decode(data["data"], validate=True)
    raise ValueError(f"Unsupported body encoding: {encoding!r}")


@dataclass
class RecordedRequest:
    """記錄的請求"""

    method: str
    url: str
    headers: Headers = field(default_factory=list)
    body: Optional[bytes] = None

    @property
    def content_type(self) -> Optional[str]:
        return content_type_of(self.headers)

    @classmethod
    def from_httpx(cls, request: httpx.Request) -> "RecordedRequest":
        """Snapshot an httpx request. The request must already be read."""
        return cls(
            method=request.method,
            url=str(request.url),
            headers=header_pairs(request.headers),
            body=request.content,
        )

    def to_dict(self, inline_body: bool = True) -> dict:
        return {
            "method": self.method,
            "url": self.url,
            "headers": self.headers,
            "body": encode_body(self.body or b"") if inline_body else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RecordedRequest":
        return cls(
            method=data["method"],
            url=data["url"],
            headers=parse_headers(data.get("headers")),
            body=decode_body(data.get("body")),
        )


@dataclass
class RecordedResponse:
    """記錄的回應"""

    status_code: int
    headers: Headers = field(default_factory=list)
    body: Optional[bytes] = None

    @property
    def content_type(self) -> Optional[str]:
        return content_type_of(self.headers)

    @classmethod
    def from_httpx(cls, response: httpx.Response, body: bytes) -> "RecordedResponse":
        """Snapshot a read response, rewriting wire headers for ``body``."""
        headers = [
            pair for pair in header_pairs(response.headers)
            if pair[0].lower() not in _WIRE_HEADERS
        ]
        headers.append(["content-length", str(len(body))])
        return cls(status_code=response.status_code, headers=headers, body=body)

    def to_httpx(self, request: Optional[httpx.Request] = None) -> httpx.Response:
        headers = [
            (name, value) for name, value in self.headers
            if name.lower() != "content-length"
        ]
        return httpx.Response(
            status_code=self.status_code,
            headers=headers,
            content=self.body or b"",
            request=request,
        )

    def to_dict(self, inline_body: bool = True) -> dict:
        return {
            "status_code": self.status_code,
            "headers": self.headers,
            "body": encode_body(self.body or b"") if inline_body else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RecordedResponse":
        return cls(
            status_code=int(data["status_code"]),
            headers=parse_headers(data.get("headers")),
            body=decode_body(data.get("body")),
        )


@dataclass
class RecordedExchange:
    """One request/response pair inside a chain."""

    request: RecordedRequest
    response: RecordedResponse
    recorded_at: str = field(default_factory=utc_timestamp)
    elapsed_ms: float = 0.0

    @classmethod
    def from_httpx(
        cls,
        request: httpx.Request,
        response: httpx.Response,
        body: bytes,
        elapsed_ms: float = 0.0,
    ) -> "RecordedExchange":
        return cls(
            request=RecordedRequest.from_httpx(request),
            response=RecordedResponse.from_httpx(response, body),
            elapsed_ms=elapsed_ms,
        )

    def to_dict(self, inline_request_body: bool = True, inline_response_body: bool = True) -> dict:
        return {
            "request": self.request.to_dict(inline_body=inline_request_body),
            "response": self.response.to_dict(inline_body=inline_response_body),
            "recorded_at": self.recorded_at,
            "elapsed_ms": self.elapsed_ms,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RecordedExchange":
        return cls(
            request=RecordedRequest.from_dict(data["request"]),
            response=RecordedResponse.from_dict(data["response"]),
            recorded_at=data.get("recorded_at", ""),
            elapsed_ms=data.get("elapsed_ms", 0.0),
        )


@dataclass
class MockResponse:
    """A response returned by a request handler.

    At most one of ``content``, ``text`` and ``json`` should be set.
    """

    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    content: Optional[bytes] = None
    text: Optional[str] = None
    json: Any = None

    def to_httpx(self, request: Optional[httpx.Request] = None) -> httpx.Response:
        return httpx.Response(
            status_code=self.status_code,
            headers=self.headers,
            content=self.content,
            text=self.text,
            json=self.json,
            request=request,
        )


class ReplaySource(Enum):
    """Where a replay result came from"""
    HANDLER = "handler"
    DISK = "disk"
    LIVE = "live"


@dataclass
class ReplayResult:
    """Outcome of handling one request.

    ``index`` is the chain position served (disk) or written (live), and
    None for handler results or when nothing was persisted.
    """

    source: ReplaySource
    exchange: RecordedExchange
    index: Optional[int] = None

    def to_httpx(self, request: Optional[httpx.Request] = None) -> httpx.Response:
        return self.exchange.response.to_httpx(request)
