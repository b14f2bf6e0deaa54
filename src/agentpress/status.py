# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Account status across local profiles.

For each identity this merges the local state (profile, session, follows)
with what the Hub reports (profile, stats, a page of posts) and judges
whether private access actually works with the stored session.

Session effectiveness, first match wins:

    ===============================================  ==============
    condition                                        classification
    ===============================================  ==============
    no local access token                            no_session
    session did differs from identity did            did_mismatch
    private fetch not attempted                      unknown
    private fetch succeeded with scope ``all``       ok
    private fetch answered 401                       expired
    private fetch answered 403                       rejected
    anything else                                    unknown
    ===============================================  ==============

The DID check runs before the ``ok`` row: a session recorded for another
identity is never reported usable, even when the Hub accepted its token.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .core.config import PressConfig
from .core.exceptions import PressException
from .hub.client import HubClient, PostsFetch, clamp_limit
from .hub.following import FollowStore
from .hub.models import HubSuccess, PostItem, RemoteProfile, RemoteStats
from .identity.store import OVERRIDE_PROFILE, Identity, IdentityStore, ProfilePaths, mask_did
from .session.engine import AuthEngine
from .session.store import Session, SessionStore

logger = logging.getLogger(__name__)

SESSION_OK = "ok"
SESSION_NONE = "no_session"
SESSION_DID_MISMATCH = "did_mismatch"
SESSION_EXPIRED = "expired"
SESSION_REJECTED = "rejected"
SESSION_UNKNOWN = "unknown"

LOGIN_HINT = "press login"
RELOGIN_HINT = "press logout && press login"


def summarize_post_items(
    items: list[PostItem],
    total_posts_exact: int | None = None,
    visibility_scope_used: str = "public",
) -> dict[str, Any]:
    """Count a page of posts by type and visibility.

    ``sampled`` is true unless the page is known to hold every post.
    """
    counts = {"major": 0, "quick": 0, "public": 0, "private": 0}
    for item in items:
        counts["quick" if item.blog_type == "quick" else "major"] += 1
        counts["private" if item.visibility == "private" else "public"] += 1

    return {
        "returned_count": len(items),
        "total_posts_exact": total_posts_exact,
        "counts_returned": counts,
        "sampled": True if total_posts_exact is None else len(items) < total_posts_exact,
        "visibility_scope_used": visibility_scope_used,
    }


def classify_remote_status(results: list[bool], warnings: list[str]) -> str:
    ok_count = sum(1 for ok in results if ok)
    if ok_count == 0:
        return "unavailable"
    if warnings or ok_count < len(results):
        return "partial"
    return "ok"


def classify_session_effective(has_session: bool, did_matches: bool, posts: PostsFetch) -> tuple[str, str]:
    """Return ``(classification, reason)`` for the stored session."""
    if not has_session:
        return SESSION_NONE, "no local access token"
    if not did_matches:
        return SESSION_DID_MISMATCH, "local session was issued for a different DID"
    if not posts.private_attempted:
        return SESSION_UNKNOWN, "private access was not attempted"
    if posts.ok and not posts.auth_fallback_to_public and posts.visibility_scope_used == "all":
        return SESSION_OK, "hub returned private posts"
    if posts.private_status == 401:
        return SESSION_EXPIRED, "hub answered 401 to the private posts request"
    if posts.private_status == 403:
        return SESSION_REJECTED, "hub answered 403 to the private posts request"
    return SESSION_UNKNOWN, "private access could not be confirmed"


def _auth_warning(effective: str, session: Session | None, posts: PostsFetch) -> str:
    if effective == SESSION_NONE:
        return f"No local session; showing public posts only. Run `{LOGIN_HINT}` to include private posts."
    if effective == SESSION_DID_MISMATCH:
        owner = mask_did(session.did) if session else "another identity"
        return (
            f"Local session belongs to {owner}, not this identity; private posts are unavailable. "
            f"Run `{RELOGIN_HINT}`."
        )
    if effective == SESSION_EXPIRED:
        return (
            "Session was not accepted by hub (401); fell back to public posts only. "
            f"Run `{LOGIN_HINT}`."
        )
    if effective == SESSION_REJECTED:
        return (
            "Session was rejected by hub (403); fell back to public posts only. "
            f"Run `{LOGIN_HINT}`."
        )
    if effective == SESSION_UNKNOWN and posts.ok:
        return "Hub did not confirm private access; showing public posts only."
    return ""


def _next_step(effective: str, repair: str) -> str | None:
    if effective == SESSION_DID_MISMATCH:
        return RELOGIN_HINT
    if effective in (SESSION_NONE, SESSION_EXPIRED, SESSION_REJECTED) or repair == "failed":
        return LOGIN_HINT
    return None


@dataclass
class RemoteAccountData:
    """Everything learned about one DID from the Hub in one pass."""

    remote_status: str
    session_effective: str
    session_effective_reason: str
    private_access_requested: bool
    visibility_scope_used: str
    post_summary: dict[str, Any]
    posts: PostsFetch
    items: list[dict[str, Any]] = field(default_factory=list)
    remote_profile: dict[str, Any] | None = None
    remote_stats: dict[str, Any] | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def private_access_available(self) -> bool:
        return self.session_effective == SESSION_OK

    @property
    def latest_post(self) -> dict[str, Any] | None:
        return self.items[0] if self.items else None


class RemoteAccountAggregator:
    """Builds status records for the active profile or every local profile."""

    def __init__(
        self,
        config: PressConfig,
        identities: IdentityStore,
        hub: HubClient,
        engine: AuthEngine | None = None,
    ):
        self.config = config
        self.identities = identities
        self.hub = hub
        self.engine = engine

    async def fetch_remote_account_data(
        self,
        did: str,
        session: Session | None,
        limit: int = 20,
        include_profile: bool = True,
        renew_auth: bool = False,
        identity_did: str | None = None,
    ) -> RemoteAccountData:
        """Query profile, stats and posts for ``did``; sub-fetch failures become warnings.

        Transport failures are not caught.
        """
        identity_did = identity_did or did
        warnings: list[str] = []
        results: list[bool] = []
        has_session = bool(session and session.has_access_token)
        did_matches = session is None or session.matches(identity_did)

        remote_profile = None
        if include_profile:
            profile = await self.hub.fetch_agent_profile(did)
            results.append(profile.ok)
            if isinstance(profile, HubSuccess):
                remote_profile = self._remote_profile(profile.value, did)
            else:
                warnings.append(profile.message("unable to fetch profile"))

        stats = await self.hub.fetch_agent_stats(did)
        results.append(stats.ok)
        remote_stats = None
        total_posts_exact = None
        if isinstance(stats, HubSuccess):
            remote_stats = self._remote_stats(stats.value, did)
            total_posts_exact = stats.value.total_posts
        else:
            warnings.append(stats.message("unable to fetch stats"))

        engine = self.engine if renew_auth and has_session and did_matches else None
        posts = await self.hub.list_posts_by_author(
            did,
            limit=limit,
            include_private=has_session,
            token=session.access_token if has_session else "",
            engine=engine,
        )
        results.append(posts.ok)
        if not posts.ok and posts.failure is not None:
            warnings.append(posts.failure.message("unable to fetch posts"))

        effective, reason = classify_session_effective(has_session, did_matches, posts)
        if auth_warning := _auth_warning(effective, session, posts):
            warnings.append(auth_warning)

        scope = posts.visibility_scope_used if posts.ok else ("all" if has_session else "public")
        items = posts.items if posts.ok else []
        logger.debug("Remote status for %s: posts=%s session=%s", did, posts.ok, effective)

        return RemoteAccountData(
            remote_status=classify_remote_status(results, warnings),
            session_effective=effective,
            session_effective_reason=reason,
            private_access_requested=has_session,
            visibility_scope_used=scope,
            post_summary=summarize_post_items(items, total_posts_exact, scope),
            posts=posts,
            items=[self.hub.post_listing(item) for item in items],
            remote_profile=remote_profile,
            remote_stats=remote_stats,
            warnings=warnings,
        )

    @staticmethod
    def _remote_profile(value: RemoteProfile, did: str) -> dict[str, Any]:
        return {"did": value.did or did, "profile": value.profile}

    @staticmethod
    def _remote_stats(value: RemoteStats, did: str) -> dict[str, Any]:
        return {
            "did": value.did or did,
            "established_at": value.established_at,
            "atom_subscribers": value.atom_subscribers,
            "total_posts_exact": value.total_posts,
        }

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    @staticmethod
    def local_session_summary(session: Session | None, did: str) -> dict[str, Any]:
        has_token = bool(session and session.has_access_token)
        matches = session.matches(did) if has_token else True
        return {
            "status": "logged_in" if has_token and matches else "logged_out",
            "did_matches_identity": matches,
            "created_at": session.created_at or None if session else None,
        }

    async def _inspect(
        self,
        profile_name: str,
        identity: Identity,
        paths: ProfilePaths,
        limit: int,
        is_active: bool,
    ) -> dict[str, Any]:
        session = SessionStore(paths.session_path).load_lenient()
        remote = await self.fetch_remote_account_data(
            identity.did, session, limit=limit, include_profile=True, identity_did=identity.did
        )
        return {
            "profile_name": profile_name,
            "is_active": is_active,
            "did": identity.did,
            "local_profile": identity.profile,
            "session": self.local_session_summary(session, identity.did),
            "following_count": FollowStore(paths.following_path).count(),
            "remote_profile": remote.remote_profile,
            "remote_stats": remote.remote_stats,
            "post_summary": remote.post_summary,
            "latest_post": remote.latest_post,
            "remote_status": remote.remote_status,
            "session_effective": remote.session_effective,
            "session_effective_reason": remote.session_effective_reason,
            "private_access_available": remote.private_access_available,
            "warnings": remote.warnings,
        }

    def _degraded_record(self, profile_name: str, is_active: bool, error: PressException) -> dict[str, Any]:
        return {
            "profile_name": profile_name,
            "is_active": is_active,
            "did": "",
            "local_profile": {},
            "session": {"status": "logged_out", "did_matches_identity": True, "created_at": None},
            "following_count": 0,
            "remote_profile": None,
            "remote_stats": None,
            "post_summary": summarize_post_items([]),
            "latest_post": None,
            "remote_status": "unavailable",
            "session_effective": SESSION_UNKNOWN,
            "session_effective_reason": "profile could not be inspected",
            "private_access_available": False,
            "warnings": [f"Local profile inspection failed: {error.message}"],
        }

    @staticmethod
    def _summary(accounts: list[dict[str, Any]]) -> dict[str, int]:
        return {
            "profiles_total": len(accounts),
            "logged_in_count": sum(1 for a in accounts if a["session"]["status"] == "logged_in"),
            "remote_ok_count": sum(1 for a in accounts if a["remote_status"] == "ok"),
            "remote_partial_count": sum(1 for a in accounts if a["remote_status"] == "partial"),
            "remote_unavailable_count": sum(1 for a in accounts if a["remote_status"] == "unavailable"),
        }

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def get_current_status(self, limit: int = 20) -> dict[str, Any]:
        paths = self.identities.resolve_paths()
        active = paths.profile_name if paths.source == "profile" else OVERRIDE_PROFILE
        identity = self.identities.load_identity()
        account = await self._inspect(active, identity, paths, limit, is_active=True)
        return {
            "mode": "single",
            "hub_url": self.config.hub_url,
            "active_profile": active,
            "profile_count_local": len(self.identities.list_profiles()),
            "account": account,
            "remote": {"status": account["remote_status"]},
            "warnings": list(account["warnings"]),
        }

    async def get_all_status(self, limit: int = 20) -> dict[str, Any]:
        """One record per local profile, in listed order; failures are degraded records."""
        paths = self.identities.resolve_paths()

        if paths.source == "override":
            single = await self.get_current_status(limit)
            accounts = [single["account"]]
            return {
                "mode": "all",
                "hub_url": self.config.hub_url,
                "active_profile": OVERRIDE_PROFILE,
                "profile_count_local": single["profile_count_local"],
                "accounts": accounts,
                "summary": self._summary(accounts),
                "warnings": [
                    *single["warnings"],
                    "Identity override is active; status --all shows only the override context.",
                ],
            }

        active = paths.profile_name
        profiles = self.identities.list_profiles()
        accounts: list[dict[str, Any]] = []
        for name in profiles:
            is_active = name == active
            try:
                identity = self.identities.load_identity_for_profile(name)
                account = await self._inspect(
                    name, identity, self.identities.profile_paths(name), limit, is_active=is_active
                )
            except PressException as e:
                logger.warning("Profile %s could not be inspected: %s", name, e.message)
                account = self._degraded_record(name, is_active, e)
            accounts.append(account)

        return {
            "mode": "all",
            "hub_url": self.config.hub_url,
            "active_profile": active,
            "profile_count_local": len(profiles),
            "accounts": accounts,
            "summary": self._summary(accounts),
            "warnings": [],
        }

    async def get_my_posts(self, limit: int = 20) -> dict[str, Any]:
        """Posts of the active identity, repairing the session when it can."""
        identity = self.identities.load_identity()
        session = SessionStore(self.identities.resolve_paths().session_path).load_lenient()
        remote = await self.fetch_remote_account_data(
            identity.did,
            session,
            limit=limit,
            include_profile=False,
            renew_auth=True,
            identity_did=identity.did,
        )
        posts = remote.posts
        return {
            "did": identity.did,
            "visibility_scope_used": remote.visibility_scope_used,
            "limit": clamp_limit(limit),
            "items": remote.items,
            "counts_returned": remote.post_summary["counts_returned"],
            "total_posts_exact": remote.remote_stats["total_posts_exact"] if remote.remote_stats else None,
            "sampled": remote.post_summary["sampled"],
            "remote_status": remote.remote_status,
            "private_access_requested": remote.private_access_requested,
            "private_access_effective": remote.private_access_available,
            "session_effective": remote.session_effective,
            "session_effective_reason": remote.session_effective_reason,
            "auth_repair_result": posts.auth_repair_result,
            "auth_diagnostics": {
                "private_attempted": posts.private_attempted,
                "private_status": posts.private_status,
                "auth_fallback_to_public": posts.auth_fallback_to_public,
                "request_id": posts.request_id,
            },
            "next_step": _next_step(remote.session_effective, posts.auth_repair_result),
            "warnings": remote.warnings,
        }
