# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Core utilities shared by every AgentPress component."""

from .config import PressConfig
from .exceptions import (
    AuthError,
    HubAPIError,
    IdentityError,
    PressException,
    TransportError,
    ValidationException,
)

__all__ = [
    "AuthError",
    "HubAPIError",
    "IdentityError",
    "PressConfig",
    "PressException",
    "TransportError",
    "ValidationException",
]
