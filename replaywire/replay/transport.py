"""httpx transports routing requests through a ReplayRecorder

Install once per client::

    client = httpx.Client(transport=ReplayTransport(recorder))
"""

from typing import Optional

import httpx

from .recorder import ReplayRecorder


def _bypass(recorder: ReplayRecorder, request: httpx.Request) -> bool:
    config = recorder.config
    return not config.enabled or not config.should_intercept(request)


class ReplayTransport(httpx.BaseTransport):
    """Sync transport: mocks, recorded chains, then the wrapped transport."""

    def __init__(self, recorder: ReplayRecorder, wrapped: Optional[httpx.BaseTransport] = None):
        self.recorder = recorder
        self.wrapped = wrapped if wrapped is not None else httpx.HTTPTransport()

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        if _bypass(self.recorder, request):
            return self.wrapped.handle_request(request)

        request.read()
        result = self.recorder.handle(request, self.wrapped.handle_request)
        return result.to_httpx(request)

    def close(self) -> None:
        self.wrapped.close()


class AsyncReplayTransport(httpx.AsyncBaseTransport):
    """Async transport: mocks, recorded chains, then the wrapped transport."""

    def __init__(
        self,
        recorder: ReplayRecorder,
        wrapped: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.recorder = recorder
        self.wrapped = wrapped if wrapped is not None else httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if _bypass(self.recorder, request):
            return await self.wrapped.handle_async_request(request)

        await request.aread()
        result = await self.recorder.ahandle(request, self.wrapped.handle_async_request)
        return result.to_httpx(request)

    async def aclose(self) -> None:
        await self.wrapped.aclose()
