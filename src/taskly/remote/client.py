# src/taskly/remote/client.py

"""
Thin async wrapper around the Taskly HTTP API.

One attempt per call: no retries, no backoff. Failures are classified into
SessionExpired / RequestFailed / Unreachable and left to the SyncGateway.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .errors import RequestFailed, SessionExpired, Unreachable

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Best-effort: pull a human message out of an error body."""
    try:
        data = response.json()
    except ValueError:
        return ""
    if isinstance(data, dict):
        for key in ("error", "message", "detail"):
            val = data.get(key)
            if isinstance(val, str) and val.strip():
                return val.strip()
    return ""


class RemoteClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        # timeout=None disables httpx timeouts: a stalled request waits for the transport.
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: dict[str, Any] | None = None,
        token: str | None = None,
    ) -> dict[str, Any]:
        headers: dict[str, str] = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        method = method.upper()
        logger.debug("API %s %s auth=%s", method, endpoint, bool(token))

        try:
            response = await self._client.request(method, endpoint, json=body, headers=headers)
        except httpx.TransportError as e:
            logger.info("API %s %s unreachable (%s)", method, endpoint, e.__class__.__name__)
            raise Unreachable(str(e) or e.__class__.__name__) from e

        status = response.status_code

        if status == 401:
            logger.warning("API %s %s -> 401, session expired", method, endpoint)
            raise SessionExpired()

        if not response.is_success:
            message = _error_message(response)
            logger.info("API %s %s -> %s %s", method, endpoint, status, message)
            raise RequestFailed(status, message)

        if not response.content:
            return {"success": True}

        try:
            data = response.json()
        except ValueError as e:
            raise RequestFailed(status, "Server returned invalid JSON") from e

        if not isinstance(data, dict):
            raise RequestFailed(status, "Server returned an unexpected response shape")

        return data
