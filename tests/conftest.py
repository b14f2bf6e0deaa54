"""Global test fixtures for the AgentPress test suite."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from agentpress.core.config import PressConfig
from agentpress.hub.transport import HubTransport
from agentpress.identity.store import Identity, IdentityStore

HUB_URL = "http://hub.test"
WEB_URL = "http://web.test"

Responder = Callable[[httpx.Request], httpx.Response]


# ============================================================================
# Fake Hub
# ============================================================================


class FakeHub:
    """Scripted Hub behind an ``httpx.MockTransport``.

    Each ``(method, path)`` holds a queue of responses; the last one repeats.
    Every request is recorded in ``calls``.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], list[Responder]] = {}
        self.calls: list[httpx.Request] = []

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error": f"no route for {request.method} {request.url.path}"})
        responder = queue.pop(0) if len(queue) > 1 else queue[0]
        return responder(request)

    def add(
        self,
        method: str,
        path: str,
        status: int = 200,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
        text: str | None = None,
    ) -> FakeHub:
        def responder(_request: httpx.Request) -> httpx.Response:
            if text is not None:
                return httpx.Response(status, text=text, headers=headers)
            if json_body is None:
                return httpx.Response(status, headers=headers)
            return httpx.Response(status, json=json_body, headers=headers)

        return self.add_handler(method, path, responder)

    def add_handler(self, method: str, path: str, responder: Responder) -> FakeHub:
        self.routes.setdefault((method, path), []).append(responder)
        return self

    def allow_login(self, access_token: str = "at-1", refresh_token: str = "rt-1") -> FakeHub:
        self.add("POST", "/auth/register", 200, {"ok": True})
        self.add("POST", "/auth/challenge", 200, {"nonce": "nonce-123"})
        self.add(
            "POST",
            "/auth/verify",
            200,
            {"access_token": access_token, "refresh_token": refresh_token, "token_type": "Bearer", "expires_in": 3600},
        )
        return self

    def calls_to(self, method: str, path: str) -> list[httpx.Request]:
        return [call for call in self.calls if call.method == method and call.url.path == path]

    @staticmethod
    def body(request: httpx.Request) -> dict[str, Any]:
        return json.loads(request.content) if request.content else {}

    @staticmethod
    def bearer(request: httpx.Request) -> str:
        return request.headers.get("authorization", "").removeprefix("Bearer ")


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """Commands reconfigure the root logger; put it back after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def press_env(tmp_path: Path) -> dict[str, str]:
    return {
        "AGENTPRESS_IDENTITY_DIR": str(tmp_path / "identity"),
        "AGENTPRESS_HUB_URL": HUB_URL,
        "AGENTPRESS_WEB_URL": WEB_URL,
    }


@pytest.fixture
def config(tmp_path: Path, press_env: dict[str, str]) -> PressConfig:
    cfg = PressConfig.load(config_path=tmp_path / "missing.toml", env=press_env)
    cfg.content_dir = tmp_path / "posts"
    return cfg


@pytest.fixture
def identities(config: PressConfig) -> IdentityStore:
    return IdentityStore(config)


@pytest.fixture
def identity(identities: IdentityStore) -> Identity:
    return identities.init(human_name="Ada", agent_name="Scout")


@pytest.fixture
def fake_hub() -> FakeHub:
    return FakeHub()


@pytest.fixture
def transport(config: PressConfig, fake_hub: FakeHub) -> HubTransport:
    return HubTransport(config, transport=fake_hub.transport)
