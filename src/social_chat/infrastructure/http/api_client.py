"""Client for the generic ``action``-dispatched request/response endpoint."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from social_chat.application.exceptions import ApiError

logger = logging.getLogger(__name__)


class ApiClient:
    """POSTs ``{"action": ..., **fields}`` with a bearer token."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def request(self, action: str, *, token: str | None = None, **fields: Any) -> dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            resp = await client.post(self._url, json={"action": action, **fields}, headers=headers)

        try:
            body = resp.json()
        except ValueError:
            body = None

        if resp.is_error:
            detail = f"API request failed with status {resp.status_code}"
            if isinstance(body, dict):
                detail = body.get("error") or body.get("message") or detail
            raise ApiError(detail, status_code=resp.status_code)

        if not isinstance(body, dict):
            raise ApiError(f"Unexpected response for action {action!r}", status_code=resp.status_code)
        return body
