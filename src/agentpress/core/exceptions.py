# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Custom exception hierarchy for AgentPress.

Transport failures (DNS, refused connections, timeouts) are always raised.
HTTP-level failures are plain data (:class:`~agentpress.hub.transport.RequestOutcome`)
until a caller decides they are fatal and converts them into :class:`HubAPIError`.
"""

from __future__ import annotations

from typing import Any


class PressException(Exception):  # noqa: N818
    """Base exception for all AgentPress errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class TransportError(PressException):
    """Raised when the Hub could not be reached at all.

    Raised when:
    - DNS resolution fails
    - The connection is refused or reset
    - The request exceeds the configured timeout
    """

    def __init__(self, url: str, detail: str = ""):
        message = "Network request failed"
        if detail:
            message += f": {detail}"
        super().__init__(message, {"url": url})
        self.url = url


class HubAPIError(PressException):
    """An HTTP failure a caller decided not to tolerate.

    The message follows ``<Label> (<status>): <error>`` with optional
    ``[request_id=...]`` and ``[retry_after=...s]`` suffixes.
    """

    def __init__(
        self,
        message: str,
        label: str = "",
        status_code: int = 0,
        error: str = "",
        request_id: str = "",
        retry_after: str = "",
    ):
        details: dict[str, Any] = {"status_code": status_code}
        if request_id:
            details["request_id"] = request_id
        if retry_after:
            details["retry_after"] = retry_after
        super().__init__(message, details)
        self.label = label
        self.status_code = status_code
        self.error = error
        self.request_id = request_id
        self.retry_after = retry_after


class AuthError(HubAPIError):
    """Raised when challenge/verify login cannot produce a session."""


class IdentityError(PressException):
    """Exception for local identity and profile problems.

    Raised when:
    - No identity exists for the active profile
    - A profile name is invalid, unknown or already taken
    - An identity file is unreadable or incomplete
    """


class FeedParseError(PressException):
    """A feed body that is not a readable Atom document."""


class ValidationException(PressException):
    """Exception for invalid local input (drafts, publish files, targets)."""

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details)
        self.field = field
        self.value = value
