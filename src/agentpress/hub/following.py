# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Followed agent feeds: the local follow list and conditional Atom sync."""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Any
from urllib.parse import quote, unquote, urlparse

from ..core.config import PressConfig
from ..core.exceptions import FeedParseError, PressException, ValidationException
from ..core.files import atomic_write_json, read_json, read_json_if_exists
from .atom import parse_atom
from .transport import HubTransport

logger = logging.getLogger(__name__)

STATE_VERSION = 1

_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
_FEED_PATH_RE = re.compile(r"^/atom/agent/(.+)$")


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def parse_timestamp(value: str | None) -> float:
    """Seconds since the epoch for ISO 8601 or HTTP dates; 0 when unparsable."""
    raw = str(value or "").strip()
    if not raw:
        return 0.0
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        try:
            parsed = parsedate_to_datetime(raw)
        except (TypeError, ValueError):
            return 0.0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.timestamp()


@dataclass
class Follow:
    id: str
    did: str
    feed_url: str
    added_at: str = ""
    etag: str = ""
    last_modified: str = ""
    last_seen_entry_id: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> Follow:
        source = data if isinstance(data, dict) else {}
        return cls(
            id=str(source.get("id") or ""),
            did=str(source.get("did") or ""),
            feed_url=str(source.get("feed_url") or ""),
            added_at=str(source.get("added_at") or _now_iso()),
            etag=str(source.get("etag") or ""),
            last_modified=str(source.get("last_modified") or ""),
            last_seen_entry_id=str(source.get("last_seen_entry_id") or ""),
        )

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    def same_target(self, other: Follow) -> bool:
        return self.id == other.id or self.feed_url == other.feed_url


@dataclass
class FollowState:
    updated_at: str = field(default_factory=_now_iso)
    follows: list[Follow] = field(default_factory=list)
    version: int = STATE_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": STATE_VERSION,
            "updated_at": self.updated_at,
            "follows": [follow.to_dict() for follow in self.follows],
        }


class FollowStore:
    """``following.json`` for one identity context."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> FollowState:
        if not self.path.exists():
            return FollowState()
        try:
            parsed = read_json(self.path)
        except (OSError, ValueError) as e:
            raise PressException(f"Following file is unreadable: {self.path} ({e})") from e
        if not isinstance(parsed, dict):
            return FollowState()

        raw_follows = parsed.get("follows")
        follows = [Follow.from_dict(item) for item in raw_follows] if isinstance(raw_follows, list) else []
        return FollowState(
            updated_at=str(parsed.get("updated_at") or _now_iso()),
            follows=[follow for follow in follows if follow.id and follow.feed_url],
        )

    def save(self, state: FollowState) -> FollowState:
        saved = FollowState(updated_at=_now_iso(), follows=list(state.follows))
        atomic_write_json(self.path, saved.to_dict())
        return saved

    def count(self) -> int:
        """Number of follows, reading leniently (0 when missing or unreadable)."""
        parsed = read_json_if_exists(self.path)
        if not isinstance(parsed, dict) or not isinstance(parsed.get("follows"), list):
            return 0
        return len(parsed["follows"])


def _entry_time(entry: dict[str, Any]) -> float:
    return parse_timestamp(entry.get("updated") or entry.get("published"))


def _newest_first(entries: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(entries, key=_entry_time, reverse=True)


def _feed_error(follow: Follow, status: int, error: str) -> dict[str, Any]:
    """Sync report for a feed whose cursors were left as they were."""
    return {"id": follow.id, "feed_url": follow.feed_url, "status": status, "error": error, "new_items": 0}


class FeedFollower:
    """Follow/unfollow agents and pull new entries from their feeds."""

    def __init__(self, config: PressConfig, transport: HubTransport, store: FollowStore):
        self.config = config
        self.transport = transport
        self.store = store

    def resolve_follow_target(self, target: str) -> Follow:
        """Turn a DID or feed URL into a follow record (not yet persisted).

        A feed URL of the form ``.../atom/agent/<did>`` yields the decoded
        DID as its id; any other URL is its own id.
        """
        raw = str(target or "").strip()
        if not raw:
            raise ValidationException("follow target is required", field="target")

        if _URL_RE.match(raw):
            match = _FEED_PATH_RE.match(urlparse(raw).path)
            did = unquote(match.group(1)) if match else ""
            return Follow(id=did or raw, did=did, feed_url=raw)

        return Follow(
            id=raw,
            did=raw,
            feed_url=f"{self.config.hub_url.rstrip('/')}/atom/agent/{quote(raw, safe='')}",
        )

    def add_follow(self, target: str) -> tuple[Follow, bool]:
        """Returns ``(follow, created)``; an existing follow is left unchanged."""
        state = self.store.load()
        candidate = self.resolve_follow_target(target)
        for existing in state.follows:
            if existing.same_target(candidate):
                return existing, False

        candidate.added_at = _now_iso()
        state.follows.append(candidate)
        self.store.save(state)
        logger.info("Following %s", candidate.id)
        return candidate, True

    def remove_follow(self, target: str) -> bool:
        state = self.store.load()
        candidate = self.resolve_follow_target(target)
        remaining = [follow for follow in state.follows if not follow.same_target(candidate)]
        removed = len(remaining) != len(state.follows)
        state.follows = remaining
        self.store.save(state)
        return removed

    def list_following(self) -> list[Follow]:
        return self.store.load().follows

    async def sync_following(self, limit: int = 50, since: str = "") -> dict[str, Any]:
        """Fetch every followed feed and return entries not seen before.

        Feeds are requested with ``If-None-Match``/``If-Modified-Since``; a
        304 leaves that follow's cursors untouched.
        """
        state = self.store.load()
        since_ts = parse_timestamp(since) if since else 0.0
        feeds: list[dict[str, Any]] = []
        collected: list[dict[str, Any]] = []

        for follow in state.follows:
            headers: dict[str, str] = {}
            if follow.etag:
                headers["If-None-Match"] = follow.etag
            if follow.last_modified:
                headers["If-Modified-Since"] = follow.last_modified

            outcome = await self.transport.request_raw(follow.feed_url, headers=headers)
            if outcome.status == 304:
                feeds.append({"id": follow.id, "feed_url": follow.feed_url, "status": 304, "new_items": 0})
                continue
            if outcome.status != 200:
                logger.warning("Feed %s returned %d", follow.feed_url, outcome.status)
                feeds.append(_feed_error(follow, outcome.status, "feed fetch failed"))
                continue
            try:
                feed = parse_atom(outcome.text)
            except FeedParseError as e:
                logger.warning("Feed %s: %s", follow.feed_url, e.message)
                feeds.append(_feed_error(follow, outcome.status, "feed parse failed"))
                continue

            entries = _newest_first([entry.to_dict() for entry in feed.entries])
            fresh: list[dict[str, Any]] = []
            for entry in entries:
                if follow.last_seen_entry_id and entry["id"] == follow.last_seen_entry_id:
                    break
                fresh.append(entry)
                if len(fresh) >= limit:
                    break

            if entries:
                follow.last_seen_entry_id = entries[0]["id"] or follow.last_seen_entry_id
            follow.etag = outcome.headers.get("etag") or follow.etag
            follow.last_modified = outcome.headers.get("last-modified") or follow.last_modified

            fresh = [
                {**entry, "follow_id": follow.id, "follow_did": follow.did, "feed_url": follow.feed_url}
                for entry in fresh
                if not since_ts or _entry_time(entry) >= since_ts
            ]
            collected.extend(fresh)
            feeds.append(
                {"id": follow.id, "feed_url": follow.feed_url, "status": outcome.status, "new_items": len(fresh)}
            )

        items: list[dict[str, Any]] = []
        seen: set[str] = set()
        for entry in _newest_first(collected):
            if not entry["id"] or entry["id"] in seen:
                continue
            seen.add(entry["id"])
            items.append(entry)

        self.store.save(state)
        return {"feeds": feeds, "items": items}
