# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Hub authentication and the authorized-request renew cycle.

The renew cycle is driven by :class:`AuthMachine`, an explicit state machine::

    no_session ──login──> pending_challenge ──verify──> verified
                                   │                       │ 401
                                   └──> failed             v
                 needs_relogin <── refresh failed ── needs_refresh
                       │                                   │ refreshed
                       └──login──> pending_challenge       └──> verified

A logical call makes at most three HTTP attempts: the first, one after a
refresh and one after a re-login. The last attempt's outcome is returned
whatever its status.
"""

from __future__ import annotations

import logging
import webbrowser
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import quote

from ..core.config import PressConfig
from ..core.exceptions import AuthError, HubAPIError, PressException
from ..hub.models import ChallengeGrant, HubFailure, MagicGrant, TokenGrant, validate_outcome
from ..hub.transport import HubTransport, RequestOutcome, api_error
from ..identity.signing import canonical_magic_create_payload, canonical_profile_payload, sign_message_utf8
from ..identity.store import Identity, IdentityStore
from .store import Session, SessionStore, utc_now_iso

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3


class AuthState(str, Enum):
    """States of one authorized call."""

    NO_SESSION = "no_session"
    PENDING_CHALLENGE = "pending_challenge"
    VERIFIED = "verified"
    NEEDS_REFRESH = "needs_refresh"
    NEEDS_RELOGIN = "needs_relogin"
    FAILED = "failed"


_TRANSITIONS: dict[AuthState, frozenset[AuthState]] = {
    AuthState.NO_SESSION: frozenset({AuthState.PENDING_CHALLENGE, AuthState.FAILED}),
    AuthState.PENDING_CHALLENGE: frozenset({AuthState.VERIFIED, AuthState.FAILED}),
    AuthState.VERIFIED: frozenset({AuthState.NEEDS_REFRESH, AuthState.NEEDS_RELOGIN}),
    AuthState.NEEDS_REFRESH: frozenset({AuthState.VERIFIED, AuthState.NEEDS_RELOGIN}),
    AuthState.NEEDS_RELOGIN: frozenset({AuthState.PENDING_CHALLENGE, AuthState.FAILED}),
    AuthState.FAILED: frozenset(),
}


class AuthMachine:
    """Tracks the state of one authorized call and rejects illegal moves."""

    def __init__(self, initial: AuthState = AuthState.NO_SESSION):
        self.state = initial
        self.history: list[AuthState] = [initial]
        self.refreshes = 0
        self.relogins = 0

    def advance(self, target: AuthState) -> AuthState:
        if target not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal auth transition {self.state.value} -> {target.value}")
        if target is AuthState.NEEDS_REFRESH:
            if self.refreshes:
                raise RuntimeError("Session refresh already attempted for this call")
            self.refreshes += 1
        if target is AuthState.PENDING_CHALLENGE and self.state is AuthState.NEEDS_RELOGIN:
            if self.relogins:
                raise RuntimeError("Re-login already attempted for this call")
            self.relogins += 1
        self.state = target
        self.history.append(target)
        return target


@dataclass
class AuthorizedRequest:
    """What to send on one attempt; rebuilt for every attempt."""

    method: str = "GET"
    body: dict[str, Any] | None = None
    params: dict[str, Any] | None = None


RequestBuilder = Callable[[str], AuthorizedRequest]


@dataclass
class RenewResult:
    """Outcome of :meth:`AuthEngine.run_authorized` plus how it got there."""

    outcome: RequestOutcome
    attempts: int
    refreshed: bool = False
    relogged_in: bool = False
    states: list[AuthState] = field(default_factory=list)

    @property
    def repair_attempted(self) -> bool:
        return self.refreshed or self.relogged_in

    @property
    def repair(self) -> str:
        """``recovered``, ``failed`` or ``not_attempted``."""
        if not self.repair_attempted:
            return "not_attempted"
        return "recovered" if self.outcome.ok else "failed"


class AuthEngine:
    """Login, refresh, logout and authorized requests for one identity context.

    Args:
        config: Invocation configuration.
        transport: Hub HTTP transport.
        identities: Store used to resolve the active identity and session file.
        identity: Use this identity instead of the active one.
        sessions: Use this session store instead of the active context's.
    """

    def __init__(
        self,
        config: PressConfig,
        transport: HubTransport,
        identities: IdentityStore,
        identity: Identity | None = None,
        sessions: SessionStore | None = None,
    ):
        self.config = config
        self.transport = transport
        self.identities = identities
        self._identity = identity
        self._sessions = sessions

    @property
    def identity(self) -> Identity:
        if self._identity is None:
            self._identity = self.identities.load_identity()
        return self._identity

    @property
    def sessions(self) -> SessionStore:
        if self._sessions is None:
            self._sessions = SessionStore(self.identities.resolve_paths().session_path)
        return self._sessions

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    async def ensure_registered(self) -> dict[str, Any]:
        """Register the identity's public key and signed profile (idempotent)."""
        identity = self.identity
        body: dict[str, Any] = {
            "public_key": identity.public_key,
            "profile": identity.profile,
            "signature": sign_message_utf8(canonical_profile_payload(identity.profile), identity.secret_key),
        }
        if self.config.invite_code:
            body["invite_code"] = self.config.invite_code

        outcome = await self.transport.request_json("/auth/register", method="POST", body=body)
        if outcome.status not in (200, 201):
            raise api_error("Register failed", outcome)
        return outcome.data

    async def login(self, machine: AuthMachine | None = None) -> Session:
        """Register, answer a challenge and store the resulting session."""
        machine = machine or AuthMachine()
        machine.advance(AuthState.PENDING_CHALLENGE)
        identity = self.identity
        try:
            await self.ensure_registered()

            challenge = validate_outcome(
                await self.transport.request_json("/auth/challenge", method="POST", body={"did": identity.did}),
                ChallengeGrant,
                "Challenge failed",
            )
            if isinstance(challenge, HubFailure):
                raise _auth_error(challenge)

            nonce = challenge.value.nonce
            verify = validate_outcome(
                await self.transport.request_json(
                    "/auth/verify",
                    method="POST",
                    body={
                        "did": identity.did,
                        "nonce": nonce,
                        "signature": sign_message_utf8(nonce, identity.secret_key),
                    },
                ),
                TokenGrant,
                "Verify failed",
            )
            if isinstance(verify, HubFailure):
                raise _auth_error(verify)
        except HubAPIError:
            machine.advance(AuthState.FAILED)
            raise

        grant = verify.value
        session = Session(
            did=identity.did,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            token_type=grant.token_type,
            expires_in=grant.expires_in,
            created_at=utc_now_iso(),
        )
        self.sessions.save(session)
        machine.advance(AuthState.VERIFIED)
        logger.info("Logged in as %s", identity.did)
        return session

    async def get_valid_session(self, machine: AuthMachine | None = None) -> Session:
        """Cached session when usable for this identity, else a fresh login.

        Expiry is not checked locally; the Hub decides.
        """
        return self._cached_session() or await self.login(machine)

    def _cached_session(self) -> Session | None:
        """The stored session if it has a token for this identity; a foreign one is dropped."""
        session = self.sessions.load()
        if session is None or not session.has_access_token:
            return None
        if not session.matches(self.identity.did):
            logger.warning("Session belongs to %s, not %s; logging in again", session.did, self.identity.did)
            self.sessions.clear()
            return None
        return session

    async def refresh_session(self, refresh_token: str, current: Session | None = None) -> Session | None:
        """Exchange a refresh token and store the renewed session.

        The grant is merged over ``current`` (or an empty session), keeping
        the old refresh token when the Hub does not rotate it.

        Returns:
            The saved session, or ``None`` on any non-200 or missing token.
        """
        result = validate_outcome(
            await self.transport.request_json(
                "/auth/refresh", method="POST", body={"refresh_token": refresh_token}
            ),
            TokenGrant,
            "Refresh failed",
        )
        if isinstance(result, HubFailure):
            logger.info("Session refresh rejected: %s", result.message())
            return None
        grant = result.value
        session = (current or Session()).merged(
            access_token=grant.access_token,
            refresh_token=grant.refresh_token or refresh_token,
            token_type=grant.token_type,
            expires_in=grant.expires_in,
            created_at=utc_now_iso(),
            did=self.identity.did,
        )
        self.sessions.save(session)
        return session

    # ------------------------------------------------------------------
    # Authorized requests
    # ------------------------------------------------------------------

    async def run_authorized(self, route: str, build: RequestBuilder) -> RenewResult:
        """Send an authorized request, repairing the session at most once each way."""
        cached = self._cached_session()
        machine = AuthMachine(AuthState.VERIFIED if cached else AuthState.NO_SESSION)
        session = cached or await self.login(machine)
        attempts = 0
        refreshed = False
        relogged_in = False

        async def attempt(token: str) -> RequestOutcome:
            nonlocal attempts
            if attempts >= MAX_ATTEMPTS:
                raise RuntimeError(f"Authorized request to {route} exceeded {MAX_ATTEMPTS} attempts")
            attempts += 1
            planned = build(token)
            return await self.transport.request_json(
                route, method=planned.method, body=planned.body, params=planned.params, token=token
            )

        def result(outcome: RequestOutcome) -> RenewResult:
            return RenewResult(
                outcome=outcome,
                attempts=attempts,
                refreshed=refreshed,
                relogged_in=relogged_in,
                states=list(machine.history),
            )

        outcome = await attempt(session.access_token)
        if outcome.status != 401:
            return result(outcome)

        if session.refresh_token:
            machine.advance(AuthState.NEEDS_REFRESH)
            renewed = await self.refresh_session(session.refresh_token, session)
            if renewed is not None:
                session = renewed
                refreshed = True
                machine.advance(AuthState.VERIFIED)
                outcome = await attempt(session.access_token)
                if outcome.status != 401:
                    return result(outcome)
        machine.advance(AuthState.NEEDS_RELOGIN)

        relogged_in = True
        session = await self.login(machine)
        return result(await attempt(session.access_token))

    async def authorized_request_with_renew(self, route: str, build: RequestBuilder) -> RequestOutcome:
        return (await self.run_authorized(route, build)).outcome

    # ------------------------------------------------------------------
    # Logout, magic links
    # ------------------------------------------------------------------

    async def logout(self) -> dict[str, bool]:
        """Revoke the refresh token if there is one, then always drop the local session."""
        session = self.sessions.load_lenient()
        if session is None or not session.refresh_token:
            self.sessions.clear()
            return {"cleared_local_session": True, "revoked_remote_session": False}

        revoked = False
        try:
            outcome = await self.transport.request_json(
                "/auth/logout", method="POST", body={"refresh_token": session.refresh_token}
            )
            revoked = outcome.ok
            if not outcome.ok:
                logger.warning("Remote logout returned %d; local session cleared anyway", outcome.status)
        except PressException as e:
            logger.warning("Remote logout failed: %s", e.message)
        finally:
            self.sessions.clear()
        return {"cleared_local_session": True, "revoked_remote_session": revoked}

    async def create_magic_token(self) -> str:
        identity = self.identity

        def build(_token: str) -> AuthorizedRequest:
            issued_at = utc_now_iso()
            payload = canonical_magic_create_payload(identity.did, issued_at)
            return AuthorizedRequest(
                method="POST",
                body={
                    "did": identity.did,
                    "issued_at": issued_at,
                    "signature": sign_message_utf8(payload, identity.secret_key),
                },
            )

        outcome = await self.authorized_request_with_renew("/auth/magic/create", build)
        result = validate_outcome(outcome, MagicGrant, "Magic create failed", expect=(201,))
        if isinstance(result, HubFailure):
            raise api_error("Magic create failed", outcome)
        return result.value.magic_token

    async def open_agent_space(
        self,
        private: bool = False,
        opener: Callable[[str], bool] | None = None,
    ) -> dict[str, Any]:
        """Build the web link to this agent's space and try to open it."""
        url = f"{self.config.web_url.rstrip('/')}/agent/{quote(self.identity.did, safe='')}"
        if private:
            url += f"#magic={quote(await self.create_magic_token(), safe='')}"

        open_url = opener or webbrowser.open
        try:
            opened = bool(open_url(url))
        except webbrowser.Error as e:
            logger.info("Browser auto-open unavailable: %s", e)
            opened = False
        return {"url": url, "is_private": private, "opened": opened}


def _auth_error(failure: HubFailure) -> AuthError:
    outcome = failure.outcome
    return AuthError(
        failure.message(),
        label=failure.label,
        status_code=outcome.status,
        error=outcome.error_text or failure.reason or "unknown error",
        request_id=outcome.request_id,
        retry_after=outcome.retry_after,
    )

