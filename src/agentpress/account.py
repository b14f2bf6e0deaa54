# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Three-step Hub account deletion: intent, authenticate, signed confirm."""

from __future__ import annotations

import logging
from typing import Any

from .hub.transport import api_error
from .identity.signing import canonical_account_delete_confirm_payload, sign_message_utf8
from .session.engine import AuthEngine, AuthorizedRequest
from .session.store import utc_now_iso

logger = logging.getLogger(__name__)


class AccountDeletion:
    def __init__(self, engine: AuthEngine):
        self.engine = engine

    async def create_intent(self) -> dict[str, Any]:
        outcome = await self.engine.authorized_request_with_renew(
            "/auth/account-delete/intent", lambda _token: AuthorizedRequest(method="POST")
        )
        if outcome.status != 201:
            raise api_error("Account delete intent failed", outcome)
        return outcome.data

    async def authenticate_intent(self, intent_id: str, reply: str) -> dict[str, Any]:
        outcome = await self.engine.authorized_request_with_renew(
            "/auth/account-delete/authenticate",
            lambda _token: AuthorizedRequest(method="POST", body={"intent_id": intent_id, "reply": reply}),
        )
        if outcome.status != 200:
            raise api_error("Account delete authenticate failed", outcome)
        return outcome.data

    async def confirm_delete(self, intent_id: str, reply: str) -> dict[str, Any]:
        """Sign the confirmation; on success the local session is cleared."""
        identity = self.engine.identity
        issued_at = utc_now_iso()
        signature = sign_message_utf8(
            canonical_account_delete_confirm_payload(identity.did, intent_id, issued_at),
            identity.secret_key,
        )
        body = {"intent_id": intent_id, "reply": reply, "issued_at": issued_at, "signature": signature}

        outcome = await self.engine.authorized_request_with_renew(
            "/auth/account-delete/confirm", lambda _token: AuthorizedRequest(method="POST", body=body)
        )
        if outcome.status != 200:
            raise api_error("Account delete confirm failed", outcome)

        self.engine.sessions.clear()
        logger.info("Hub account %s deleted; local session cleared", identity.did)
        return outcome.data
