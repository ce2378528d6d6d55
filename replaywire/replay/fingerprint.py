"""Request fingerprinting

兩個指紋相同的請求視為同一個邏輯呼叫。
"""

from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from ..utils.text import hash_bytes, safe_path

RequestNormalizer = Callable[[httpx.Request], httpx.Request]


def identity(request: httpx.Request) -> httpx.Request:
    return request


@dataclass(frozen=True)
class ChainKey:
    """Identity of a chain on disk.

    ``base_name`` groups chains by host and path and may contain ``/``;
    ``fingerprint`` tells apart requests to the same endpoint.
    """

    base_name: str
    fingerprint: str

    @property
    def name(self) -> str:
        return f"{self.base_name}-{self.fingerprint}"


def canonical_bytes(request: httpx.Request) -> bytes:
    """Canonical representation hashed into the fingerprint.

    Args:
        request: A request whose body has been read

    Returns:
        ``METHOD\\nURL\\n`` followed by the body bytes
    """
    head = f"{request.method.upper()}\n{request.url}\n".encode()
    return head + request.content


def fingerprint(request: httpx.Request, normalizer: Optional[RequestNormalizer] = None) -> str:
    """Derive the identity hash of a request.

    The normalizer may strip volatile query parameters or clear the body so
    that similar requests share a chain. Collisions are by definition the
    same request.

    Args:
        request: Outgoing request (body already read)
        normalizer: Hook applied before hashing, default identity

    Returns:
        16 character hex digest
    """
    normalized = (normalizer or identity)(request)
    return hash_bytes(canonical_bytes(normalized))


def base_name(request: httpx.Request) -> str:
    """``host/path`` of a request, made safe for use as a relative path."""
    url = request.url
    return safe_path(f"{url.host}/{url.path}", default=url.host or "request")


def chain_key(request: httpx.Request, normalizer: Optional[RequestNormalizer] = None) -> ChainKey:
    """Build the chain key for a request.

    Both parts come from the normalized request so a normalizer that
    rewrites the URL also moves the chain.
    """
    normalized = (normalizer or identity)(request)
    return ChainKey(
        base_name=base_name(normalized),
        fingerprint=hash_bytes(canonical_bytes(normalized)),
    )
