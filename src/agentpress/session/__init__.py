# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Hub sessions: persistence and the authenticated-request lifecycle."""

from .engine import AuthEngine, AuthMachine, AuthState, RenewResult
from .store import Session, SessionStore

__all__ = [
    "AuthEngine",
    "AuthMachine",
    "AuthState",
    "RenewResult",
    "Session",
    "SessionStore",
]
