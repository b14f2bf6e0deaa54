# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Local agent identities, one per named profile.

Layout under ``PressConfig.identity_dir``::

    current_profile              name of the active profile
    profiles/<name>/id.json      {did, public_key, secret_key, profile, created_at}
    profiles/<name>/session.json Hub session tokens
    profiles/<name>/following.json
    passport, passport.pub       compatibility copies of the active keypair

An explicit identity file (``--identity`` / ``AGENTPRESS_IDENTITY_PATH``)
bypasses profiles entirely; its session and follow files live next to it.
"""

from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..core.config import PressConfig
from ..core.exceptions import IdentityError
from ..core.files import atomic_write_json, ensure_private_dir, read_json
from .signing import generate_keypair

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "default"
OVERRIDE_PROFILE = "override"
DID_PREFIX = "did:press:"

_NOT_FOUND = 'Identity not found. Run "press init" first.'


def did_from_public_key(public_key_b64: str) -> str:
    return f"{DID_PREFIX}{public_key_b64}"


def sanitize_profile_name(name: str | None) -> str:
    """Lowercase a profile name and squash anything outside ``[a-z0-9._-]``."""
    value = str(name or "").strip().lower()
    if not value:
        return ""
    value = re.sub(r"[^a-z0-9._-]", "-", value)
    value = re.sub(r"-+", "-", value)
    return value.strip("-")


def mask_did(did: str) -> str:
    """Shorten a DID for display: first 16 and last 8 characters."""
    value = str(did or "")
    if len(value) <= 16:
        return value
    return f"{value[:16]}...{value[-8:]}"


@dataclass(frozen=True)
class ProfilePaths:
    """Files belonging to one identity context."""

    profile_name: str
    profile_dir: Path
    identity_path: Path
    session_path: Path
    following_path: Path
    source: str = "profile"


@dataclass
class Identity:
    """A loaded agent identity. ``secret_key`` never leaves the machine."""

    did: str
    public_key: str
    secret_key: str = field(repr=False)
    profile: dict[str, Any] = field(default_factory=dict)


class IdentityStore:
    """Reads and writes identities for every local profile."""

    def __init__(self, config: PressConfig):
        self.config = config
        self.root = Path(config.identity_dir)
        self.profiles_dir = self.root / "profiles"
        self.current_profile_path = self.root / "current_profile"
        self._legacy_identity_path = self.root / "id.json"
        self._legacy_session_path = self.root / "session.json"
        self._legacy_following_path = self.root / "following.json"
        self._legacy_private_key_path = self.root / "passport"
        self._legacy_public_key_path = self.root / "passport.pub"

    # ------------------------------------------------------------------
    # Paths and profile selection
    # ------------------------------------------------------------------

    def profile_paths(self, profile_name: str) -> ProfilePaths:
        safe_name = sanitize_profile_name(profile_name)
        if not safe_name:
            raise IdentityError("Invalid profile name")
        profile_dir = self.profiles_dir / safe_name
        return ProfilePaths(
            profile_name=safe_name,
            profile_dir=profile_dir,
            identity_path=profile_dir / "id.json",
            session_path=profile_dir / "session.json",
            following_path=profile_dir / "following.json",
        )

    def resolve_paths(self) -> ProfilePaths:
        """Paths for the active context (identity override first, then profile)."""
        self._migrate_legacy_if_needed()
        override = self.config.identity_path
        if override is not None:
            override = Path(override)
            return ProfilePaths(
                profile_name=OVERRIDE_PROFILE,
                profile_dir=override.parent,
                identity_path=override,
                session_path=override.parent / "session.json",
                following_path=override.parent / "following.json",
                source="override",
            )
        return self.profile_paths(self.current_profile_name())

    def current_profile_name(self) -> str:
        self._migrate_legacy_if_needed()
        from_config = sanitize_profile_name(self.config.profile)
        if from_config:
            return from_config
        if self.current_profile_path.exists():
            value = sanitize_profile_name(self.current_profile_path.read_text(encoding="utf-8"))
            if value:
                return value
        return DEFAULT_PROFILE

    def list_profiles(self) -> list[str]:
        """Sorted names of profiles that hold an identity file."""
        self._migrate_legacy_if_needed()
        if not self.profiles_dir.exists():
            return []
        return sorted(
            entry.name
            for entry in self.profiles_dir.iterdir()
            if entry.is_dir() and (entry / "id.json").exists()
        )

    def set_current_profile(self, profile_name: str) -> str:
        safe_name = sanitize_profile_name(profile_name)
        if not safe_name:
            raise IdentityError("Profile name is required")
        target = self.profile_paths(safe_name)
        if not target.identity_path.exists():
            raise IdentityError(f"Profile not found: {safe_name}")

        ensure_private_dir(self.root)
        self.current_profile_path.write_text(f"{safe_name}\n", encoding="utf-8")
        self.current_profile_path.chmod(0o600)

        identity = self._read_identity(target.identity_path)
        self._write_legacy_compatibility_files(identity.secret_key, identity.public_key)
        return safe_name

    # ------------------------------------------------------------------
    # Identity lifecycle
    # ------------------------------------------------------------------

    def default_profile(self) -> dict[str, Any]:
        return {
            "name": self.config.default_name or "Agent",
            "human_name": self.config.default_human_name,
            "agent_name": self.config.default_agent_name,
            "bio": "",
            "avatar": "",
            "vibe_config": {},
        }

    def normalize_profile(self, data: Any) -> dict[str, Any]:
        """Defaults first, then stored keys, with the three name fields coerced to str."""
        base = self.default_profile()
        source = data if isinstance(data, dict) else {}
        merged = {**base, **source}
        merged["name"] = str(source.get("name") or base["name"])
        merged["human_name"] = str(source.get("human_name") or "")
        merged["agent_name"] = str(source.get("agent_name") or "")
        return merged

    def init(self, human_name: str = "", agent_name: str = "", force: bool = False) -> Identity:
        """Create a keypair for the active context."""
        paths = self.resolve_paths()
        if paths.identity_path.exists():
            if not force:
                raise IdentityError(
                    'Identity already exists. Use another profile or run "press init --force".'
                )
            for stale in (paths.identity_path, paths.session_path, paths.following_path):
                stale.unlink(missing_ok=True)

        identity = self._create_identity_at(paths.identity_path, human_name, agent_name)
        if paths.source == "profile":
            self.set_current_profile(paths.profile_name)
        logger.info("Created identity %s at %s", identity.did, paths.identity_path)
        return identity

    def load_identity(self) -> Identity:
        paths = self.resolve_paths()
        if paths.identity_path.exists():
            return self._read_identity(paths.identity_path)

        if self._legacy_private_key_path.exists() and self._legacy_public_key_path.exists():
            secret_key = self._legacy_private_key_path.read_text(encoding="utf-8").strip()
            public_key = self._legacy_public_key_path.read_text(encoding="utf-8").strip()
            return Identity(
                did=did_from_public_key(public_key),
                public_key=public_key,
                secret_key=secret_key,
                profile=self.normalize_profile(None),
            )

        raise IdentityError(_NOT_FOUND)

    def load_identity_for_profile(self, profile_name: str) -> Identity:
        paths = self.profile_paths(profile_name)
        if not paths.identity_path.exists():
            raise IdentityError(f"Profile not found: {paths.profile_name}")
        return self._read_identity(paths.identity_path)

    def update_profile(self, updates: dict[str, Any]) -> Identity:
        """Merge ``updates`` into the stored profile of the active identity."""
        paths = self.resolve_paths()
        if not paths.identity_path.exists():
            raise IdentityError(_NOT_FOUND)

        stored = self._read_raw(paths.identity_path)
        stored["profile"] = self.normalize_profile({**(stored.get("profile") or {}), **updates})
        stored["did"] = stored.get("did") or did_from_public_key(stored["public_key"])
        self._write_identity(paths.identity_path, stored)
        return self._identity_from_raw(stored)

    def create_profile(self, profile_name: str, set_current: bool = False) -> str:
        safe_name = sanitize_profile_name(profile_name)
        if not safe_name:
            raise IdentityError("Profile name is required")
        target = self.profile_paths(safe_name)
        if target.identity_path.exists():
            raise IdentityError(f"Profile already exists: {safe_name}")

        self._create_identity_at(target.identity_path)
        if set_current:
            self.set_current_profile(safe_name)
        return safe_name

    def remove_profile(self, profile_name: str, force: bool = False) -> str:
        safe_name = sanitize_profile_name(profile_name)
        if not safe_name:
            raise IdentityError("Profile name is required")

        current = self.current_profile_name()
        if not force and safe_name == current:
            raise IdentityError("Cannot remove current profile without --force")

        target = self.profile_paths(safe_name)
        if not target.profile_dir.exists():
            raise IdentityError(f"Profile not found: {safe_name}")

        shutil.rmtree(target.profile_dir)

        remaining = self.list_profiles()
        if remaining and safe_name == current:
            self.set_current_profile(remaining[0])
        return safe_name

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _create_identity_at(self, identity_path: Path, human_name: str = "", agent_name: str = "") -> Identity:
        secret_key, public_key = generate_keypair()
        profile = self.normalize_profile(
            {
                **self.default_profile(),
                "human_name": human_name or self.config.default_human_name,
                "agent_name": agent_name or self.config.default_agent_name,
            }
        )
        raw = {
            "did": did_from_public_key(public_key),
            "public_key": public_key,
            "secret_key": secret_key,
            "profile": profile,
            "created_at": datetime.now(UTC).isoformat(),
        }
        self._write_identity(identity_path, raw)
        return self._identity_from_raw(raw)

    def _read_raw(self, path: Path) -> dict[str, Any]:
        try:
            data = read_json(path)
        except (OSError, ValueError) as e:
            raise IdentityError(f"Identity file is unreadable: {path} ({e})") from e
        if not isinstance(data, dict) or not data.get("public_key") or not data.get("secret_key"):
            raise IdentityError("Identity file is missing public_key or secret_key")
        return data

    def _read_identity(self, path: Path) -> Identity:
        return self._identity_from_raw(self._read_raw(path))

    def _identity_from_raw(self, data: dict[str, Any]) -> Identity:
        public_key = str(data["public_key"])
        return Identity(
            did=str(data.get("did") or did_from_public_key(public_key)),
            public_key=public_key,
            secret_key=str(data["secret_key"]),
            profile=self.normalize_profile(data.get("profile")),
        )

    def _write_identity(self, path: Path, data: dict[str, Any]) -> None:
        atomic_write_json(path, data)
        self._write_legacy_compatibility_files(str(data["secret_key"]), str(data["public_key"]))

    def _write_legacy_compatibility_files(self, secret_key: str, public_key: str) -> None:
        ensure_private_dir(self.root)
        self._legacy_private_key_path.write_text(secret_key, encoding="utf-8")
        self._legacy_private_key_path.chmod(0o600)
        self._legacy_public_key_path.write_text(public_key, encoding="utf-8")

    def _migrate_legacy_if_needed(self) -> None:
        """Move a pre-profile ``identity/id.json`` layout into the default profile once."""
        if self.profiles_dir.exists() and any(self.profiles_dir.iterdir()):
            return
        if not self._legacy_identity_path.exists():
            return

        target = self.profile_paths(DEFAULT_PROFILE)
        ensure_private_dir(target.profile_dir)
        for src, dest in (
            (self._legacy_identity_path, target.identity_path),
            (self._legacy_session_path, target.session_path),
            (self._legacy_following_path, target.following_path),
        ):
            if src.exists():
                shutil.copyfile(src, dest)
        self.current_profile_path.write_text(f"{target.profile_name}\n", encoding="utf-8")
        logger.info("Migrated legacy identity into profile %r", target.profile_name)
