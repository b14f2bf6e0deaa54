"""Tests for login, refresh, logout and the authorized-request renew cycle."""

from __future__ import annotations

from urllib.parse import quote

import httpx
import pytest

from agentpress.core.exceptions import AuthError, HubAPIError
from agentpress.identity.signing import canonical_profile_payload, verify_message_utf8
from agentpress.session.engine import (
    MAX_ATTEMPTS,
    AuthEngine,
    AuthMachine,
    AuthorizedRequest,
    AuthState,
)
from agentpress.session.store import Session


@pytest.fixture
def engine(config, transport, identities, identity) -> AuthEngine:
    return AuthEngine(config, transport, identities)


def _list(_token: str) -> AuthorizedRequest:
    return AuthorizedRequest(params={"author_did": "did:press:x"})


class TestAuthMachine:
    def test_happy_path(self):
        machine = AuthMachine()
        machine.advance(AuthState.PENDING_CHALLENGE)
        machine.advance(AuthState.VERIFIED)
        assert machine.history == [AuthState.NO_SESSION, AuthState.PENDING_CHALLENGE, AuthState.VERIFIED]

    def test_illegal_transition(self):
        with pytest.raises(RuntimeError, match="Illegal auth transition"):
            AuthMachine().advance(AuthState.VERIFIED)

    def test_failed_is_terminal(self):
        machine = AuthMachine()
        machine.advance(AuthState.FAILED)
        with pytest.raises(RuntimeError):
            machine.advance(AuthState.PENDING_CHALLENGE)

    def test_refresh_only_once(self):
        machine = AuthMachine(AuthState.VERIFIED)
        machine.advance(AuthState.NEEDS_REFRESH)
        machine.advance(AuthState.VERIFIED)
        with pytest.raises(RuntimeError, match="refresh already attempted"):
            machine.advance(AuthState.NEEDS_REFRESH)

    def test_relogin_only_once(self):
        machine = AuthMachine(AuthState.VERIFIED)
        machine.advance(AuthState.NEEDS_RELOGIN)
        machine.advance(AuthState.PENDING_CHALLENGE)
        machine.advance(AuthState.VERIFIED)
        machine.state = AuthState.NEEDS_RELOGIN
        with pytest.raises(RuntimeError, match="Re-login already attempted"):
            machine.advance(AuthState.PENDING_CHALLENGE)


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_saves_session(self, engine, fake_hub, identity):
        fake_hub.allow_login(access_token="at-1", refresh_token="rt-1")

        session = await engine.login()

        assert session.access_token == "at-1"
        assert session.did == identity.did
        assert engine.sessions.load() == session

    @pytest.mark.asyncio
    async def test_login_signs_nonce_and_profile(self, engine, fake_hub, identity):
        fake_hub.allow_login()
        await engine.login()

        register = fake_hub.body(fake_hub.calls_to("POST", "/auth/register")[0])
        assert register["public_key"] == identity.public_key
        assert verify_message_utf8(
            canonical_profile_payload(register["profile"]), register["signature"], identity.public_key
        )
        verify = fake_hub.body(fake_hub.calls_to("POST", "/auth/verify")[0])
        assert verify["nonce"] == "nonce-123"
        assert verify_message_utf8("nonce-123", verify["signature"], identity.public_key)

    @pytest.mark.asyncio
    async def test_invite_code_sent(self, engine, fake_hub):
        engine.config.invite_code = "invite-42"
        fake_hub.allow_login()
        await engine.login()
        assert fake_hub.body(fake_hub.calls_to("POST", "/auth/register")[0])["invite_code"] == "invite-42"

    @pytest.mark.asyncio
    async def test_register_failure(self, engine, fake_hub):
        fake_hub.add("POST", "/auth/register", 403, {"error": "invite required"}, headers={"x-request-id": "req-7"})
        machine = AuthMachine()

        with pytest.raises(HubAPIError) as exc_info:
            await engine.login(machine)

        assert exc_info.value.message == "Register failed (403): invite required [request_id=req-7]"
        assert machine.state is AuthState.FAILED
        assert engine.sessions.load() is None

    @pytest.mark.asyncio
    async def test_challenge_failure(self, engine, fake_hub):
        fake_hub.add("POST", "/auth/register", 200, {})
        fake_hub.add("POST", "/auth/challenge", 429, {"error": "slow down"}, headers={"retry-after": "30"})

        with pytest.raises(AuthError) as exc_info:
            await engine.login()

        assert exc_info.value.status_code == 429
        assert exc_info.value.message == "Challenge failed (429): slow down [retry_after=30s]"

    @pytest.mark.asyncio
    async def test_verify_without_token_is_failure(self, engine, fake_hub):
        fake_hub.add("POST", "/auth/register", 200, {})
        fake_hub.add("POST", "/auth/challenge", 200, {"nonce": "n"})
        fake_hub.add("POST", "/auth/verify", 200, {"token_type": "Bearer"})

        with pytest.raises(AuthError, match="Verify failed"):
            await engine.login()


class TestGetValidSession:
    @pytest.mark.asyncio
    async def test_cached_session_used(self, engine, fake_hub, identity):
        engine.sessions.save(Session(access_token="cached", did=identity.did))
        session = await engine.get_valid_session()
        assert session.access_token == "cached"
        assert fake_hub.calls == []

    @pytest.mark.asyncio
    async def test_foreign_session_replaced(self, engine, fake_hub, identity):
        engine.sessions.save(Session(access_token="foreign", did="did:press:someone-else"))
        fake_hub.allow_login(access_token="mine")

        session = await engine.get_valid_session()

        assert session.access_token == "mine"
        assert session.did == identity.did
        assert len(fake_hub.calls_to("POST", "/auth/verify")) == 1


class TestRefreshSession:
    @pytest.mark.asyncio
    async def test_returns_saved_session(self, engine, fake_hub, identity):
        current = Session(access_token="stale", refresh_token="rt-0", did=identity.did, token_type="Bearer")
        fake_hub.add("POST", "/auth/refresh", 200, {"access_token": "renewed", "refresh_token": "rt-1", "expires_in": 60})

        session = await engine.refresh_session("rt-0", current)

        assert isinstance(session, Session)
        assert session.access_token == "renewed"
        assert session.refresh_token == "rt-1"
        assert session.expires_in == 60
        assert session.did == identity.did
        assert session.created_at
        assert engine.sessions.load() == session

    @pytest.mark.asyncio
    async def test_keeps_refresh_token_when_not_rotated(self, engine, fake_hub, identity):
        fake_hub.add("POST", "/auth/refresh", 200, {"access_token": "renewed"})

        session = await engine.refresh_session("rt-0")

        assert session.refresh_token == "rt-0"
        assert session.did == identity.did

    @pytest.mark.asyncio
    async def test_rejected_refresh_returns_none(self, engine, fake_hub):
        fake_hub.add("POST", "/auth/refresh", 401, {"error": "revoked"})

        assert await engine.refresh_session("rt-0") is None
        assert engine.sessions.load() is None


class TestRunAuthorized:
    @pytest.mark.asyncio
    async def test_success_first_try(self, engine, fake_hub, identity):
        engine.sessions.save(Session(access_token="at-0", refresh_token="rt-0", did=identity.did))
        fake_hub.add("GET", "/api/post", 200, {"posts": []})

        result = await engine.run_authorized("/api/post", _list)

        assert result.outcome.status == 200
        assert result.attempts == 1
        assert result.repair == "not_attempted"
        assert fake_hub.bearer(fake_hub.calls[0]) == "at-0"
        assert fake_hub.calls[0].url.params["author_did"] == "did:press:x"

    @pytest.mark.asyncio
    async def test_logs_in_when_no_session(self, engine, fake_hub):
        fake_hub.allow_login(access_token="fresh")
        fake_hub.add("GET", "/api/post", 200, {"posts": []})

        result = await engine.run_authorized("/api/post", _list)

        assert result.attempts == 1
        assert result.states[:3] == [AuthState.NO_SESSION, AuthState.PENDING_CHALLENGE, AuthState.VERIFIED]
        assert fake_hub.bearer(fake_hub.calls_to("GET", "/api/post")[0]) == "fresh"

    @pytest.mark.asyncio
    async def test_refresh_recovers(self, engine, fake_hub, identity):
        engine.sessions.save(Session(access_token="stale", refresh_token="rt-0", did=identity.did))
        fake_hub.add("GET", "/api/post", 401, {"error": "expired"})
        fake_hub.add("GET", "/api/post", 200, {"posts": []})
        fake_hub.add("POST", "/auth/refresh", 200, {"access_token": "renewed", "refresh_token": None})

        result = await engine.run_authorized("/api/post", _list)

        assert result.outcome.status == 200
        assert result.attempts == 2
        assert result.refreshed and not result.relogged_in
        assert result.repair == "recovered"
        assert fake_hub.body(fake_hub.calls_to("POST", "/auth/refresh")[0]) == {"refresh_token": "rt-0"}
        saved = engine.sessions.load()
        assert saved.access_token == "renewed"
        assert saved.refresh_token == "rt-0"
        assert saved.did == identity.did

    @pytest.mark.asyncio
    async def test_relogin_after_failed_refresh(self, engine, fake_hub, identity):
        engine.sessions.save(Session(access_token="stale", refresh_token="rt-0", did=identity.did))
        fake_hub.add("GET", "/api/post", 401, {"error": "expired"})
        fake_hub.add("GET", "/api/post", 200, {"posts": []})
        fake_hub.add("POST", "/auth/refresh", 401, {"error": "revoked"})
        fake_hub.allow_login(access_token="relogged")

        result = await engine.run_authorized("/api/post", _list)

        assert result.outcome.status == 200
        assert result.attempts == 2
        assert result.relogged_in and not result.refreshed
        assert result.repair == "recovered"
        assert fake_hub.bearer(fake_hub.calls_to("GET", "/api/post")[-1]) == "relogged"

    @pytest.mark.asyncio
    async def test_relogin_without_refresh_token(self, engine, fake_hub, identity):
        engine.sessions.save(Session(access_token="stale", did=identity.did))
        fake_hub.add("GET", "/api/post", 401, {})
        fake_hub.add("GET", "/api/post", 200, {"posts": []})
        fake_hub.allow_login(access_token="relogged")

        result = await engine.run_authorized("/api/post", _list)

        assert result.relogged_in
        assert fake_hub.calls_to("POST", "/auth/refresh") == []

    @pytest.mark.asyncio
    async def test_at_most_three_attempts(self, engine, fake_hub, identity):
        engine.sessions.save(Session(access_token="stale", refresh_token="rt-0", did=identity.did))
        fake_hub.add("GET", "/api/post", 401, {"error": "nope"})
        fake_hub.add("POST", "/auth/refresh", 200, {"access_token": "renewed", "refresh_token": "rt-1"})
        fake_hub.allow_login(access_token="relogged")

        result = await engine.run_authorized("/api/post", _list)

        assert result.outcome.status == 401
        assert result.attempts == MAX_ATTEMPTS
        assert len(fake_hub.calls_to("GET", "/api/post")) == 3
        assert len(fake_hub.calls_to("POST", "/auth/refresh")) == 1
        assert len(fake_hub.calls_to("POST", "/auth/verify")) == 1
        assert result.repair == "failed"

    @pytest.mark.asyncio
    async def test_non_401_failure_not_repaired(self, engine, fake_hub, identity):
        engine.sessions.save(Session(access_token="at", refresh_token="rt", did=identity.did))
        fake_hub.add("GET", "/api/post", 500, {"error": "boom"})

        outcome = await engine.authorized_request_with_renew("/api/post", _list)

        assert outcome.status == 500
        assert fake_hub.calls_to("POST", "/auth/refresh") == []

    @pytest.mark.asyncio
    async def test_builder_called_per_attempt(self, engine, fake_hub, identity):
        engine.sessions.save(Session(access_token="stale", did=identity.did))
        fake_hub.add("POST", "/content", 401, {})
        fake_hub.add("POST", "/content", 201, {"id": "p1"})
        fake_hub.allow_login(access_token="fresh")
        tokens: list[str] = []

        def build(token: str) -> AuthorizedRequest:
            tokens.append(token)
            return AuthorizedRequest(method="POST", body={"n": len(tokens)})

        outcome = await engine.authorized_request_with_renew("/content", build)

        assert outcome.status == 201
        assert tokens == ["stale", "fresh"]
        assert fake_hub.body(fake_hub.calls_to("POST", "/content")[-1]) == {"n": 2}


class TestLogout:
    @pytest.mark.asyncio
    async def test_revokes_and_clears(self, engine, fake_hub, identity):
        engine.sessions.save(Session(access_token="at", refresh_token="rt", did=identity.did))
        fake_hub.add("POST", "/auth/logout", 200, {"ok": True})

        result = await engine.logout()

        assert result == {"cleared_local_session": True, "revoked_remote_session": True}
        assert fake_hub.body(fake_hub.calls[0]) == {"refresh_token": "rt"}
        assert not engine.sessions.path.exists()

    @pytest.mark.asyncio
    async def test_remote_failure_still_clears(self, engine, fake_hub, identity):
        engine.sessions.save(Session(access_token="at", refresh_token="rt", did=identity.did))
        fake_hub.add("POST", "/auth/logout", 500, {"error": "down"})

        result = await engine.logout()

        assert result["revoked_remote_session"] is False
        assert not engine.sessions.path.exists()

    @pytest.mark.asyncio
    async def test_network_failure_still_clears(self, engine, fake_hub, identity):
        engine.sessions.save(Session(access_token="at", refresh_token="rt", did=identity.did))

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        fake_hub.add_handler("POST", "/auth/logout", refuse)

        result = await engine.logout()

        assert result == {"cleared_local_session": True, "revoked_remote_session": False}
        assert not engine.sessions.path.exists()

    @pytest.mark.asyncio
    async def test_without_refresh_token_skips_remote(self, engine, fake_hub, identity):
        engine.sessions.save(Session(access_token="at", did=identity.did))
        result = await engine.logout()
        assert result["revoked_remote_session"] is False
        assert fake_hub.calls == []
        assert not engine.sessions.path.exists()


class TestAgentSpace:
    @pytest.mark.asyncio
    async def test_public_link(self, engine, identity):
        opened: list[str] = []
        result = await engine.open_agent_space(opener=lambda url: opened.append(url) or True)

        assert result["url"] == f"http://web.test/agent/{quote(identity.did, safe='')}"
        assert result["opened"] is True
        assert result["is_private"] is False
        assert opened == [result["url"]]

    @pytest.mark.asyncio
    async def test_private_link_carries_magic_token(self, engine, fake_hub, identity):
        engine.sessions.save(Session(access_token="at", did=identity.did))
        fake_hub.add("POST", "/auth/magic/create", 201, {"magic_token": "m t"})

        result = await engine.open_agent_space(private=True, opener=lambda url: False)

        assert result["url"].endswith("#magic=m%20t")
        assert result["opened"] is False
        body = fake_hub.body(fake_hub.calls[0])
        assert body["did"] == identity.did
        assert set(body) == {"did", "issued_at", "signature"}

    @pytest.mark.asyncio
    async def test_magic_failure_raises(self, engine, fake_hub, identity):
        engine.sessions.save(Session(access_token="at", did=identity.did))
        fake_hub.add("POST", "/auth/magic/create", 500, {"error": "boom"})

        with pytest.raises(HubAPIError, match=r"Magic create failed \(500\): boom"):
            await engine.create_magic_token()
