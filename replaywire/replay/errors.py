"""Replay errors"""

from pathlib import Path
from typing import Optional

import httpx


class ReplayError(Exception):
    """Base class for record/replay failures."""


class ChainDecodeError(ReplayError):
    """A chain file or one of its sibling body files could not be read.

    Treated as a miss for the request that hit it; other chains are
    unaffected.
    """

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class PersistError(ReplayError):
    """Writing a recording to disk failed."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class ReplayNotFoundError(httpx.ConnectError):
    """No mock matched and falling back to the network is disabled.

    Subclasses ``httpx.ConnectError`` so callers see the same failure they
    would get from an unreachable network.
    """

    def __init__(self, request: httpx.Request, chain_file: str):
        super().__init__(
            f"No recorded response for {request.method} {request.url} "
            f"(expected {chain_file}) and network fallback is disabled",
            request=request,
        )
        self.chain_file = chain_file
