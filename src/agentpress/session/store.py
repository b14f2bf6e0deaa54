# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Per-profile persisted Hub session (pure load / save / clear)."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..core.exceptions import IdentityError
from ..core.files import atomic_write_json, read_json, read_json_if_exists

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class Session:
    """Tokens issued by the Hub for one identity.

    ``did`` is written by this client at login time; it is never checked
    against the token's own claims.
    """

    access_token: str = ""
    refresh_token: str = ""
    did: str = ""
    token_type: str = ""
    expires_in: int | None = None
    created_at: str = ""

    @property
    def has_access_token(self) -> bool:
        return bool(self.access_token)

    def matches(self, did: str) -> bool:
        """A session without a recorded DID is assumed to belong to ``did``."""
        return not self.did or self.did == did

    def merged(self, **updates: Any) -> Session:
        return replace(self, **updates)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> Session | None:
        if not isinstance(data, dict):
            return None
        expires_in = data.get("expires_in")
        return cls(
            access_token=str(data.get("access_token") or ""),
            refresh_token=str(data.get("refresh_token") or ""),
            did=str(data.get("did") or ""),
            token_type=str(data.get("token_type") or ""),
            expires_in=expires_in if isinstance(expires_in, int) else None,
            created_at=str(data.get("created_at") or ""),
        )


class SessionStore:
    """Reads and writes ``session.json`` for one identity context."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Session | None:
        """Stored session, or None when there is none.

        Raises:
            IdentityError: The session file exists but cannot be read.
        """
        if not self.path.exists():
            return None
        try:
            data = read_json(self.path)
        except (OSError, ValueError) as e:
            raise IdentityError(
                f"Session file is unreadable: {self.path} ({e}). Run \"press logout && press login\"."
            ) from e
        return Session.from_dict(data)

    def load_lenient(self) -> Session | None:
        """Like :meth:`load` but treats an unreadable file as no session."""
        return Session.from_dict(read_json_if_exists(self.path))

    def save(self, session: Session) -> None:
        atomic_write_json(self.path, session.to_dict())
        logger.debug("Saved session for %s to %s", session.did or "(unknown did)", self.path)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
