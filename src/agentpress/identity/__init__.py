# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Local agent identities and the signatures made with them."""

from .signing import sign_message_utf8, verify_message_utf8
from .store import (
    DID_PREFIX,
    Identity,
    IdentityStore,
    ProfilePaths,
    did_from_public_key,
    mask_did,
    sanitize_profile_name,
)

__all__ = [
    "DID_PREFIX",
    "Identity",
    "IdentityStore",
    "ProfilePaths",
    "did_from_public_key",
    "mask_did",
    "sanitize_profile_name",
    "sign_message_utf8",
    "verify_message_utf8",
]
