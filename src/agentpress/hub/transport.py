# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""HTTP transport for the Hub REST API.

Every call returns a :class:`RequestOutcome`, whatever the status code.
Only transport-level failures (DNS, refused connection, timeout) raise, as
:class:`~agentpress.core.exceptions.TransportError`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..core.config import PressConfig
from ..core.exceptions import HubAPIError, TransportError

logger = logging.getLogger(__name__)


def extract_request_id(headers: dict[str, str] | None) -> str:
    if not headers:
        return ""
    return str(headers.get("x-request-id") or headers.get("X-Request-Id") or "").strip()


@dataclass(frozen=True)
class RequestOutcome:
    """Normalized result of one HTTP exchange."""

    status: int
    data: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    request_id: str = ""
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def error_text(self) -> str:
        error = self.data.get("error")
        if isinstance(error, dict):
            return str(error.get("message") or error.get("code") or "")
        return str(error or "")

    @property
    def retry_after(self) -> str:
        return str(self.headers.get("retry-after") or "").strip()


def format_api_error(label: str, outcome: RequestOutcome | None, fallback: str = "unknown error") -> str:
    """Render ``<Label> (<status>): <error> [request_id=...] [retry_after=...s]``."""
    status = outcome.status if outcome is not None else 0
    error_text = (outcome.error_text if outcome is not None else "") or fallback
    message = f"{label} ({status}): {error_text}"
    if outcome is not None and outcome.request_id:
        message += f" [request_id={outcome.request_id}]"
    if outcome is not None and outcome.retry_after:
        message += f" [retry_after={outcome.retry_after}s]"
    return message


def api_error(label: str, outcome: RequestOutcome, fallback: str = "unknown error") -> HubAPIError:
    """Convert an HTTP failure into the exception the CLI reports."""
    return HubAPIError(
        format_api_error(label, outcome, fallback),
        label=label,
        status_code=outcome.status,
        error=outcome.error_text or fallback,
        request_id=outcome.request_id,
        retry_after=outcome.retry_after,
    )


class HubTransport:
    """Thin async HTTP client for the Hub.

    ``transport`` lets tests plug in an ``httpx.MockTransport``.
    """

    def __init__(self, config: PressConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = config.hub_url.rstrip("/")
        self.timeout = config.timeout
        self._transport = transport

    def url(self, route: str) -> str:
        if route.startswith(("http://", "https://")):
            return route
        return f"{self.base_url}{route}"

    async def request_json(
        self,
        route: str,
        method: str = "GET",
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        token: str | None = None,
    ) -> RequestOutcome:
        """Send a JSON request; a non-object or unparsable body becomes ``{}``."""
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        resp = await self._send(method, route, headers=headers, params=params, body=body)

        data: dict[str, Any] = {}
        if resp.content:
            try:
                parsed = resp.json()
            except (json.JSONDecodeError, UnicodeDecodeError):
                parsed = None
            if isinstance(parsed, dict):
                data = parsed
        return self._outcome(resp, data=data)

    async def request_raw(
        self,
        route: str,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        token: str | None = None,
    ) -> RequestOutcome:
        """Send a request and keep the body as text (feeds)."""
        request_headers = dict(headers or {})
        if token:
            request_headers["Authorization"] = f"Bearer {token}"
        resp = await self._send(method, route, headers=request_headers)
        return self._outcome(resp, text=resp.text)

    async def _send(
        self,
        method: str,
        route: str,
        headers: dict[str, str],
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        url = self.url(route)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.request(
                    method,
                    url,
                    headers=headers,
                    params=params,
                    json=body,
                )
        except httpx.TimeoutException as e:
            raise TransportError(url, f"request timed out after {self.timeout:g}s") from e
        except httpx.TransportError as e:
            raise TransportError(url, str(e) or e.__class__.__name__) from e

        logger.debug(
            "%s %s -> %d",
            method,
            url,
            resp.status_code,
            extra={"request_id": resp.headers.get("x-request-id", "")},
        )
        return resp

    @staticmethod
    def _outcome(resp: httpx.Response, data: dict[str, Any] | None = None, text: str = "") -> RequestOutcome:
        headers = {key.lower(): value for key, value in resp.headers.items()}
        return RequestOutcome(
            status=resp.status_code,
            data=data or {},
            headers=headers,
            request_id=extract_request_id(headers),
            text=text,
        )
