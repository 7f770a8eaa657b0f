"""Dispatch to remote HTTP destinations.

Each remote destination receives a clone of the inbound request: same
method, the received headers copied verbatim and the captured body. The
response is closed unread; mirroring is fire-and-forget, not a proxy.
"""

from __future__ import annotations

import logging

import httpx

from ..models import DestinationKind, DispatchOutcome, FailureKind, RequestSnapshot

logger = logging.getLogger(__name__)


def _failed(url: str, detail: str, status_code: int | None = None) -> DispatchOutcome:
    return DispatchOutcome.failed(
        DestinationKind.REMOTE,
        url,
        detail,
        failure=FailureKind.REMOTE_TRANSPORT_FAILURE,
        status_code=status_code,
    )


class RemoteDispatcher:
    """Default remote processor backed by a shared ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient, *, timeout: float = 10.0) -> None:
        self.client = client
        self.timeout = timeout

    def build_request(self, url: str, snapshot: RequestSnapshot) -> httpx.Request:
        # Built directly so the client's default headers are not merged in.
        # Headers go back out as the latin-1 bytes they arrived as.
        return httpx.Request(
            snapshot.method,
            url,
            headers=[
                (name.encode("latin-1"), value.encode("latin-1"))
                for name, value in snapshot.headers
            ],
            content=snapshot.body,
            extensions={"timeout": httpx.Timeout(self.timeout).as_dict()},
        )

    async def dispatch(self, url: str, snapshot: RequestSnapshot) -> DispatchOutcome:
        try:
            request = self.build_request(url, snapshot)
            response = await self.client.send(request, stream=True)
        except httpx.TimeoutException:
            return _failed(url, "timeout")
        except httpx.InvalidURL as exc:
            return _failed(url, f"malformed url: {exc}")
        except httpx.HTTPError as exc:
            return _failed(url, str(exc) or type(exc).__name__)

        try:
            status_code = response.status_code
        finally:
            await response.aclose()

        logger.debug(f"Remote destination {url} answered {status_code}")
        if not response.is_success:
            return _failed(url, f"HTTP {status_code}", status_code=status_code)
        return DispatchOutcome.ok(DestinationKind.REMOTE, url, status_code=status_code)
