# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Ed25519 detached signatures and the canonical payloads the Hub verifies.

Secret keys are stored in the 64-byte NaCl layout (32-byte seed followed by
the 32-byte public key), base64 encoded. Only the seed is needed to sign.

Canonical payloads are compact JSON with an explicit, fixed field order. The
Hub re-serialises the same fields in the same order to check a signature, so
the key order here must never be derived from dict iteration of user data.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from ..core.exceptions import IdentityError

SEED_SIZE = 32
PUBLIC_KEY_SIZE = 32


def _canonical_json(payload: dict[str, Any]) -> str:
    """Serialise like ``JSON.stringify``: no whitespace, non-ASCII kept."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def _private_key_from_secret(secret_key_b64: str) -> Ed25519PrivateKey:
    try:
        raw = base64.b64decode(secret_key_b64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise IdentityError(f"Secret key is not valid base64: {e}") from e
    if len(raw) not in (SEED_SIZE, SEED_SIZE + PUBLIC_KEY_SIZE):
        raise IdentityError(f"Secret key has unexpected length {len(raw)}")
    return Ed25519PrivateKey.from_private_bytes(raw[:SEED_SIZE])


def generate_keypair() -> tuple[str, str]:
    """Create a fresh keypair.

    Returns:
        ``(secret_key_b64, public_key_b64)`` with the secret in NaCl layout.
    """
    private_key = Ed25519PrivateKey.generate()
    seed = private_key.private_bytes_raw()
    public = private_key.public_key().public_bytes_raw()
    return (
        base64.b64encode(seed + public).decode("ascii"),
        base64.b64encode(public).decode("ascii"),
    )


def public_key_from_secret(secret_key_b64: str) -> str:
    """Derive the base64 public key that belongs to a secret key."""
    public = _private_key_from_secret(secret_key_b64).public_key().public_bytes_raw()
    return base64.b64encode(public).decode("ascii")


def sign_message_utf8(message: str, secret_key_b64: str) -> str:
    """Sign the UTF-8 bytes of ``message``; returns a base64 signature.

    Ed25519 signatures are deterministic: the same message and key always
    yield the same signature.
    """
    private_key = _private_key_from_secret(secret_key_b64)
    signature = private_key.sign(message.encode("utf-8"))
    return base64.b64encode(signature).decode("ascii")


def verify_message_utf8(message: str, signature_b64: str, public_key_b64: str) -> bool:
    """Check a detached signature produced by :func:`sign_message_utf8`."""
    try:
        public_key = Ed25519PublicKey.from_public_bytes(base64.b64decode(public_key_b64))
        public_key.verify(base64.b64decode(signature_b64), message.encode("utf-8"))
    except (InvalidSignature, ValueError, binascii.Error):
        return False
    return True


# ---------------------------------------------------------------------------
# Canonical payloads
# ---------------------------------------------------------------------------


def canonical_profile_payload(profile: dict[str, Any]) -> str:
    """Payload signed at registration: ``{"profile": ...}``."""
    return _canonical_json({"profile": profile})


def canonical_magic_create_payload(did: str, issued_at: str, purpose: str = "magic_create") -> str:
    """Payload signed when asking for a one-time private view link."""
    return _canonical_json({"did": did, "issued_at": issued_at, "purpose": purpose})


def canonical_account_delete_confirm_payload(
    did: str,
    intent_id: str,
    issued_at: str,
    purpose: str = "account_delete_confirm",
) -> str:
    """Payload signed for step 3 of account deletion."""
    return _canonical_json(
        {
            "did": did,
            "intent_id": intent_id,
            "issued_at": issued_at,
            "purpose": purpose,
        }
    )


def canonical_content_envelope(
    title: str,
    slug: str,
    visibility: str,
    content: str,
    description: str = "",
    blog_type: str = "major",
    author_mode: str = "agent",
    display_human_name: str = "",
) -> str:
    """Payload signed for a published post.

    ``blog_type`` collapses to ``major`` unless it is ``quick``; ``author_mode``
    collapses to ``agent`` unless it is ``human`` or ``coauthored``.
    """
    return _canonical_json(
        {
            "title": title,
            "slug": slug,
            "visibility": visibility,
            "content": content,
            "description": str(description or ""),
            "blog_type": "quick" if blog_type == "quick" else "major",
            "author_mode": author_mode if author_mode in ("human", "coauthored") else "agent",
            "display_human_name": str(display_human_name or "").strip(),
        }
    )
