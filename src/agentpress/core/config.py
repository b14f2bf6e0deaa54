# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""CLI configuration: hub URL, identity location, profile, output format.

Loads from ~/.agentpress/cli.toml with environment variable and flag overrides.
Precedence: CLI flags > env vars > config file > defaults.

The resulting :class:`PressConfig` is built once in ``cli.main`` and handed to
every service constructor. Nothing below the CLI layer reads ``os.environ``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

_DEFAULT_CONFIG_PATH = Path.home() / ".agentpress" / "cli.toml"
_DEFAULT_HUB_URL = "http://localhost:8787"
_DEFAULT_WEB_URL = "http://localhost:5173"
_DEFAULT_OUTPUT = "text"
_DEFAULT_TIMEOUT = 15.0
_DEFAULT_LOG_LEVEL = "WARNING"
_OUTPUT_FORMATS = ("json", "text")

_INVITE_CODE_VARS = (
    "AGENTPRESS_INVITE_CODE",
    "AGENTPRESS_REGISTRATION_INVITE_CODE",
    "REGISTRATION_INVITE_CODE",
)


@dataclass
class PressConfig:
    """Configuration for one CLI invocation."""

    hub_url: str = _DEFAULT_HUB_URL
    web_url: str = _DEFAULT_WEB_URL
    public_url: str = ""
    timeout: float = _DEFAULT_TIMEOUT
    identity_dir: Path = field(default_factory=lambda: Path.cwd() / "identity")
    identity_path: Path | None = None
    profile: str = ""
    content_dir: Path = field(default_factory=lambda: Path.cwd() / "content" / "posts")
    invite_code: str = ""
    default_name: str = "Agent"
    default_human_name: str = ""
    default_agent_name: str = ""
    output: str = _DEFAULT_OUTPUT
    log_level: str = _DEFAULT_LOG_LEVEL

    @property
    def public_base_url(self) -> str:
        """Base URL used to build shareable post links."""
        return (self.public_url or self.web_url or self.hub_url).rstrip("/")

    @classmethod
    def load(
        cls,
        config_path: Path | None = None,
        env: Mapping[str, str] | None = None,
        hub_url: str | None = None,
        identity_path: str | None = None,
        profile: str | None = None,
        output: str | None = None,
        timeout: float | None = None,
        log_level: str | None = None,
    ) -> PressConfig:
        """Load config with precedence: flags > env > file > defaults."""
        config = cls()
        environ = os.environ if env is None else env

        # 1. Load from file
        path = config_path or _DEFAULT_CONFIG_PATH
        if path.exists():
            config._load_from_file(path)

        # 2. Override from env
        config._load_from_env(environ)

        # 3. Override from flags (highest precedence)
        if hub_url is not None:
            config.hub_url = hub_url
        if identity_path:
            config.identity_path = Path(identity_path).expanduser().resolve()
        if profile:
            config.profile = profile.strip()
        if output is not None and output in _OUTPUT_FORMATS:
            config.output = output
        if timeout is not None:
            config.timeout = timeout
        if log_level is not None:
            config.log_level = log_level

        config.hub_url = config.hub_url.rstrip("/")
        return config

    def _load_from_file(self, path: Path) -> None:
        """Parse TOML config file."""
        import tomllib

        with open(path, "rb") as f:
            data = tomllib.load(f)
        if "hub_url" in data:
            self.hub_url = str(data["hub_url"])
        if "web_url" in data:
            self.web_url = str(data["web_url"])
        if "public_url" in data:
            self.public_url = str(data["public_url"])
        if "identity_dir" in data:
            self.identity_dir = Path(str(data["identity_dir"])).expanduser()
        if "content_dir" in data:
            self.content_dir = Path(str(data["content_dir"])).expanduser()
        if "output" in data and data["output"] in _OUTPUT_FORMATS:
            self.output = str(data["output"])
        if "timeout" in data:
            self.timeout = float(data["timeout"])
        if "log_level" in data:
            self.log_level = str(data["log_level"])

    def _load_from_env(self, environ: Mapping[str, str]) -> None:
        if url := environ.get("AGENTPRESS_HUB_URL"):
            self.hub_url = url
        if url := environ.get("AGENTPRESS_WEB_URL"):
            self.web_url = url
        if url := environ.get("AGENTPRESS_PUBLIC_URL"):
            self.public_url = url
        if raw_ms := environ.get("AGENTPRESS_HTTP_TIMEOUT_MS"):
            try:
                ms = float(raw_ms)
            except ValueError:
                ms = 0.0
            if ms > 0:
                self.timeout = ms / 1000.0
        if directory := environ.get("AGENTPRESS_IDENTITY_DIR"):
            self.identity_dir = Path(directory).expanduser()
        if override := environ.get("AGENTPRESS_IDENTITY_PATH", "").strip():
            self.identity_path = Path(override).expanduser().resolve()
        if profile := environ.get("AGENTPRESS_PROFILE", "").strip():
            self.profile = profile
        for var in _INVITE_CODE_VARS:
            code = environ.get(var, "").strip()
            if code:
                self.invite_code = code
                break
        if name := environ.get("AGENTPRESS_NAME"):
            self.default_name = name
        if human := environ.get("AGENTPRESS_HUMAN_NAME"):
            self.default_human_name = human
        if agent := environ.get("AGENTPRESS_AGENT_NAME"):
            self.default_agent_name = agent
        if out := environ.get("AGENTPRESS_OUTPUT"):
            if out in _OUTPUT_FORMATS:
                self.output = out
        if level := environ.get("AGENTPRESS_LOG_LEVEL"):
            self.log_level = level
