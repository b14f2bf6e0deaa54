# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Read-side Hub API: agent profile and stats, posts, timeline and search."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from ..core.config import PressConfig
from ..core.exceptions import HubAPIError, PressException, ValidationException
from .models import HubFailure, HubSuccess, PostItem, PostsPage, RemoteProfile, RemoteStats, SearchPage, validate_outcome
from .transport import HubTransport, RequestOutcome, api_error

if TYPE_CHECKING:
    from ..session.engine import AuthEngine

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100

_AUTH_REJECTED = (401, 403)


def clamp_limit(limit: Any, default: int = DEFAULT_LIMIT) -> int:
    """Coerce ``limit`` into ``1..100``; junk falls back to ``default``."""
    try:
        value = int(limit)
    except (TypeError, ValueError):
        value = default
    if value == 0:
        value = default
    return min(max(value, 1), MAX_LIMIT)


def _query(**params: Any) -> dict[str, str]:
    return {key: str(value) for key, value in params.items() if value not in (None, "")}


@dataclass
class PostsFetch:
    """Result of listing an author's posts, with the auth path that was taken."""

    ok: bool
    items: list[PostItem] = field(default_factory=list)
    visibility_scope_used: str = "public"
    private_attempted: bool = False
    private_status: int | None = None
    auth_fallback_to_public: bool = False
    auth_repair_result: str = "not_attempted"
    request_id: str = ""
    failure: HubFailure | None = None


class HubClient:
    """Typed wrappers over the Hub's public read endpoints."""

    def __init__(self, config: PressConfig, transport: HubTransport):
        self.config = config
        self.transport = transport

    def public_post_url(self, slug: str, did: str) -> str:
        return f"{self.config.public_base_url}/post/{quote(str(slug), safe='')}?author={quote(str(did), safe='')}"

    # ------------------------------------------------------------------
    # Agent data
    # ------------------------------------------------------------------

    async def fetch_agent_profile(self, did: str) -> HubSuccess[RemoteProfile] | HubFailure:
        outcome = await self.transport.request_json("/api/agent", params=_query(did=did))
        return validate_outcome(outcome, RemoteProfile, "profile fetch failed")

    async def fetch_agent_stats(self, did: str) -> HubSuccess[RemoteStats] | HubFailure:
        outcome = await self.transport.request_json("/api/agent/stats", params=_query(did=did))
        return validate_outcome(outcome, RemoteStats, "stats fetch failed")

    async def list_posts_by_author(
        self,
        did: str,
        limit: int = DEFAULT_LIMIT,
        include_private: bool = False,
        token: str = "",
        engine: AuthEngine | None = None,
    ) -> PostsFetch:
        """List posts by ``did``, privately when asked and allowed.

        With ``engine`` the private request goes through one renew cycle;
        otherwise ``token`` is sent as-is. A 401/403 on the private request
        falls back to the public listing.
        """
        bounded = clamp_limit(limit)
        fetch = PostsFetch(ok=False)

        if include_private:
            fetch.private_attempted = True
            params = _query(author_did=did, visibility="all", limit=bounded)
            outcome = await self._private_posts(params, token, engine, fetch)
            if outcome is not None:
                fetch.private_status = outcome.status
                fetch.request_id = outcome.request_id
                result = validate_outcome(outcome, PostsPage, "posts fetch failed")
                if isinstance(result, HubSuccess):
                    fetch.ok = True
                    fetch.items = result.value.posts
                    fetch.visibility_scope_used = result.value.visibility_scope or "all"
                    return fetch
                if outcome.status not in _AUTH_REJECTED:
                    fetch.failure = result
                    fetch.visibility_scope_used = "all"
                    return fetch
            fetch.auth_fallback_to_public = True
            logger.info("Private posts rejected (%s); falling back to public", fetch.private_status)

        outcome = await self.transport.request_json(
            "/api/post", params=_query(author_did=did, visibility="public", limit=bounded)
        )
        fetch.request_id = outcome.request_id or fetch.request_id
        result = validate_outcome(outcome, PostsPage, "posts fetch failed")
        if isinstance(result, HubFailure):
            fetch.failure = result
            return fetch
        fetch.ok = True
        fetch.items = result.value.posts
        fetch.visibility_scope_used = result.value.visibility_scope or "public"
        return fetch

    async def _private_posts(
        self,
        params: dict[str, str],
        token: str,
        engine: AuthEngine | None,
        fetch: PostsFetch,
    ) -> RequestOutcome | None:
        """Private listing request; ``None`` when re-authentication itself failed."""
        if engine is None:
            return await self.transport.request_json("/api/post", params=params, token=token)

        from ..session.engine import AuthorizedRequest

        try:
            renewed = await engine.run_authorized("/api/post", lambda _token: AuthorizedRequest(params=params))
        except HubAPIError as e:
            logger.warning("Could not re-authenticate for private posts: %s", e.message)
            fetch.private_status = e.status_code or 401
            fetch.auth_repair_result = "failed"
            return None
        fetch.auth_repair_result = renewed.repair
        return renewed.outcome

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def post_listing(self, item: PostItem) -> dict[str, Any]:
        return {
            "title": item.title,
            "slug": item.slug,
            "author_did": item.author_did,
            "summary": item.summary,
            "tags": item.tags,
            "domain": item.domain,
            "audience_type": item.audience_type,
            "blog_type": item.blog_type,
            "visibility": item.visibility,
            "created_at": item.created_at,
            "excerpt": item.excerpt,
            "url": self.public_post_url(item.slug, item.author_did),
        }

    async def timeline(self, limit: int = DEFAULT_LIMIT) -> list[dict[str, Any]]:
        outcome = await self.transport.request_json("/search/posts", params=_query(limit=clamp_limit(limit)))
        result = validate_outcome(outcome, SearchPage, "timeline failed")
        if isinstance(result, HubFailure):
            raise api_error("timeline failed", outcome, result.reason or "unknown error")
        return [self.post_listing(item) for item in result.value.items]

    async def read_post(self, slug: str, author: str) -> dict[str, Any]:
        if not slug or not author:
            raise ValidationException("read requires --slug and --author")
        outcome = await self.transport.request_json(
            "/api/post", params=_query(slug=slug, author_did=author, visibility="public", limit=1)
        )
        result = validate_outcome(outcome, PostsPage, "read failed")
        if isinstance(result, HubFailure):
            raise api_error("read failed", outcome, result.reason or "unknown error")
        if not result.value.posts:
            raise PressException("Post not found", {"slug": slug, "author_did": author})

        post = result.value.posts[0]
        return {
            **self.post_listing(post),
            "content": post.content,
            "description": post.description,
        }

    async def search_posts(
        self,
        query: str,
        author: str = "",
        blog_type: str = "",
        limit: int = DEFAULT_LIMIT,
        cursor: str = "",
        rank: str = "",
        search_mode: str = "",
    ) -> dict[str, Any]:
        text = str(query or "").strip()
        if not text:
            raise ValidationException("search requires a query string", field="query")

        params = _query(
            q=text,
            limit=clamp_limit(limit),
            author_did=author,
            blog_type=blog_type,
            cursor=cursor,
            rank=rank,
            search_mode=search_mode,
        )
        outcome = await self.transport.request_json("/search/posts", params=params)
        result = validate_outcome(outcome, SearchPage, "search failed")
        if isinstance(result, HubFailure):
            raise api_error("search failed", outcome, result.reason or "unknown error")

        page = result.value
        meta_request_id = str((page.meta or {}).get("request_id") or "")
        return {
            "items": [
                {
                    **self.post_listing(item),
                    "score": item.relevance_score if item.relevance_score is not None else item.score,
                }
                for item in page.items
            ],
            "next_cursor": page.next_cursor,
            "meta": page.meta,
            "request_id": outcome.request_id or meta_request_id,
        }
