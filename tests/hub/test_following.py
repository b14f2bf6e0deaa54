"""Tests for the follow list and conditional feed sync."""

from __future__ import annotations

import json

import pytest

from agentpress.core.exceptions import PressException, ValidationException
from agentpress.hub.following import FeedFollower, Follow, FollowState, FollowStore, parse_timestamp


def _feed(*entries: tuple[str, str, str]) -> str:
    body = "".join(
        f"<entry><id>{entry_id}</id><title>{title}</title><updated>{updated}</updated>"
        f'<link href="http://web.test/{entry_id}"/></entry>'
        for entry_id, title, updated in entries
    )
    return f'<feed xmlns="http://www.w3.org/2005/Atom">{body}</feed>'


@pytest.fixture
def store(tmp_path) -> FollowStore:
    return FollowStore(tmp_path / "following.json")


@pytest.fixture
def follower(config, transport, store) -> FeedFollower:
    return FeedFollower(config, transport, store)


class TestParseTimestamp:
    def test_formats(self):
        assert parse_timestamp("2026-01-01T00:00:00Z") == parse_timestamp("Thu, 01 Jan 2026 00:00:00 GMT")
        assert parse_timestamp("2026-01-01T00:00:00") == parse_timestamp("2026-01-01T00:00:00+00:00")
        assert parse_timestamp("yesterday") == 0.0
        assert parse_timestamp(None) == 0.0


class TestFollowStore:
    def test_missing_file(self, store):
        state = store.load()
        assert state.follows == []
        assert store.count() == 0

    def test_save_and_load(self, store):
        store.save(FollowState(follows=[Follow(id="did:press:a", did="did:press:a", feed_url="http://f/a")]))
        raw = json.loads(store.path.read_text())
        assert raw["version"] == 1
        assert raw["follows"][0]["feed_url"] == "http://f/a"
        assert [follow.id for follow in store.load().follows] == ["did:press:a"]
        assert store.count() == 1

    def test_resave_is_idempotent(self, store):
        store.path.write_text(
            json.dumps(
                {
                    "version": 1,
                    "updated_at": "2026-01-01T00:00:00+00:00",
                    "follows": [
                        {"id": "did:press:a", "did": "did:press:a", "feed_url": "http://f/a", "etag": '"e1"'},
                        {"id": "http://f/b", "feed_url": "http://f/b", "added_at": "2026-01-02T00:00:00+00:00"},
                    ],
                }
            )
        )

        store.save(store.load())
        first = json.loads(store.path.read_text())
        store.save(store.load())
        second = json.loads(store.path.read_text())

        first.pop("updated_at")
        second.pop("updated_at")
        assert first == second
        assert first["follows"][0]["added_at"]

    def test_drops_incomplete_entries(self, store):
        store.path.write_text(json.dumps({"follows": [{"id": "x"}, {"id": "y", "feed_url": "http://f/y"}, "junk"]}))
        assert [follow.id for follow in store.load().follows] == ["y"]

    def test_unreadable_file(self, store):
        store.path.write_text("{oops")
        with pytest.raises(PressException, match="unreadable"):
            store.load()
        assert store.count() == 0


class TestResolveFollowTarget:
    def test_did(self, follower):
        follow = follower.resolve_follow_target("did:press:abc/+=")
        assert follow.id == follow.did == "did:press:abc/+="
        assert follow.feed_url == "http://hub.test/atom/agent/did%3Apress%3Aabc%2F%2B%3D"

    def test_agent_feed_url(self, follower):
        follow = follower.resolve_follow_target("https://hub.example/atom/agent/did%3Apress%3Axyz")
        assert follow.id == "did:press:xyz"
        assert follow.did == "did:press:xyz"
        assert follow.feed_url == "https://hub.example/atom/agent/did%3Apress%3Axyz"

    def test_other_url(self, follower):
        follow = follower.resolve_follow_target("https://blog.example/feed.xml")
        assert follow.id == "https://blog.example/feed.xml"
        assert follow.did == ""

    def test_empty(self, follower):
        with pytest.raises(ValidationException):
            follower.resolve_follow_target("  ")


class TestFollowUnfollow:
    def test_follow_is_idempotent(self, follower):
        first, created = follower.add_follow("did:press:a")
        again, created_again = follower.add_follow("did:press:a")
        assert created is True
        assert created_again is False
        assert again.added_at == first.added_at
        assert len(follower.list_following()) == 1

    def test_url_and_did_are_same_target(self, follower):
        follower.add_follow("did:press:a")
        _, created = follower.add_follow("http://hub.test/atom/agent/did%3Apress%3Aa")
        assert created is False

    def test_unfollow(self, follower):
        follower.add_follow("did:press:a")
        assert follower.remove_follow("did:press:a") is True
        assert follower.remove_follow("did:press:a") is False
        assert follower.list_following() == []


class TestSyncFollowing:
    FEED_PATH = "/atom/agent/did:press:a"
    FEED_URL = "http://hub.test/atom/agent/did%3Apress%3Aa"

    @pytest.mark.asyncio
    async def test_first_sync_returns_newest_first(self, follower, fake_hub):
        follower.add_follow("did:press:a")
        fake_hub.add(
            "GET",
            self.FEED_PATH,
            200,
            text=_feed(("p1", "One", "2026-01-01T00:00:00Z"), ("p2", "Two", "2026-01-02T00:00:00Z")),
            headers={"ETag": '"e1"', "Last-Modified": "Fri, 02 Jan 2026 00:00:00 GMT"},
        )

        result = await follower.sync_following()

        assert [item["id"] for item in result["items"]] == ["p2", "p1"]
        assert result["items"][0]["follow_id"] == "did:press:a"
        assert result["feeds"] == [
            {"id": "did:press:a", "feed_url": self.FEED_URL, "status": 200, "new_items": 2}
        ]
        saved = follower.list_following()[0]
        assert saved.last_seen_entry_id == "p2"
        assert saved.etag == '"e1"'
        assert saved.last_modified == "Fri, 02 Jan 2026 00:00:00 GMT"

    @pytest.mark.asyncio
    async def test_second_sync_sends_validators_and_keeps_cursor_on_304(self, follower, fake_hub):
        follower.add_follow("did:press:a")
        fake_hub.add("GET", self.FEED_PATH, 200, text=_feed(("p1", "One", "2026-01-01T00:00:00Z")), headers={"ETag": '"e1"'})
        fake_hub.add("GET", self.FEED_PATH, 304)

        await follower.sync_following()
        second = await follower.sync_following()
        third = await follower.sync_following()

        assert second["items"] == []
        assert second["feeds"][0]["status"] == 304
        assert third["feeds"][0]["status"] == 304
        assert fake_hub.calls[1].headers["if-none-match"] == '"e1"'
        saved = follower.list_following()[0]
        assert saved.last_seen_entry_id == "p1"
        assert saved.etag == '"e1"'

    @pytest.mark.asyncio
    async def test_stops_at_last_seen(self, follower, fake_hub):
        follower.add_follow("did:press:a")
        fake_hub.add("GET", self.FEED_PATH, 200, text=_feed(("p1", "One", "2026-01-01T00:00:00Z")))
        fake_hub.add(
            "GET",
            self.FEED_PATH,
            200,
            text=_feed(("p1", "One", "2026-01-01T00:00:00Z"), ("p2", "Two", "2026-01-03T00:00:00Z")),
        )

        await follower.sync_following()
        result = await follower.sync_following()

        assert [item["id"] for item in result["items"]] == ["p2"]

    @pytest.mark.asyncio
    async def test_limit_and_since(self, follower, fake_hub):
        follower.add_follow("did:press:a")
        fake_hub.add(
            "GET",
            self.FEED_PATH,
            200,
            text=_feed(
                ("p1", "One", "2026-01-01T00:00:00Z"),
                ("p2", "Two", "2026-01-02T00:00:00Z"),
                ("p3", "Three", "2026-01-03T00:00:00Z"),
            ),
        )

        result = await follower.sync_following(limit=2, since="2026-01-03T00:00:00Z")

        assert [item["id"] for item in result["items"]] == ["p3"]

    @pytest.mark.asyncio
    async def test_feed_error_recorded(self, follower, fake_hub):
        follower.add_follow("did:press:a")
        fake_hub.add("GET", self.FEED_PATH, 500, text="down")

        result = await follower.sync_following()

        assert result["items"] == []
        assert result["feeds"][0]["status"] == 500
        assert result["feeds"][0]["error"] == "feed fetch failed"
        assert follower.list_following()[0].last_seen_entry_id == ""

    @pytest.mark.asyncio
    async def test_duplicate_entries_across_feeds(self, follower, fake_hub):
        follower.add_follow("did:press:a")
        follower.add_follow("http://mirror.test/feed.xml")
        feed = _feed(("shared", "Shared", "2026-01-01T00:00:00Z"))
        fake_hub.add("GET", self.FEED_PATH, 200, text=feed)
        fake_hub.add("GET", "/feed.xml", 200, text=feed)

        result = await follower.sync_following()

        assert [item["id"] for item in result["items"]] == ["shared"]
        assert [entry["new_items"] for entry in result["feeds"]] == [1, 1]

    @pytest.mark.asyncio
    async def test_unparsable_feed_keeps_validators(self, follower, fake_hub):
        follower.add_follow("did:press:a")
        fake_hub.add("GET", self.FEED_PATH, 200, text=_feed(("p1", "One", "2026-01-01T00:00:00Z")), headers={"ETag": '"e1"'})
        fake_hub.add("GET", self.FEED_PATH, 200, text="<feed><entry>", headers={"ETag": '"e2"'})
        fake_hub.add(
            "GET",
            self.FEED_PATH,
            200,
            text=_feed(("p1", "One", "2026-01-01T00:00:00Z"), ("p2", "Two", "2026-01-02T00:00:00Z")),
            headers={"ETag": '"e2"'},
        )

        await follower.sync_following()
        broken = await follower.sync_following()

        assert broken["items"] == []
        assert broken["feeds"][0]["error"] == "feed parse failed"
        saved = follower.list_following()[0]
        assert saved.etag == '"e1"'
        assert saved.last_seen_entry_id == "p1"

        retried = await follower.sync_following()
        assert fake_hub.calls[2].headers["if-none-match"] == '"e1"'
        assert [item["id"] for item in retried["items"]] == ["p2"]

    @pytest.mark.asyncio
    async def test_undeclared_extension_prefix_entries_are_delivered(self, follower, fake_hub):
        follower.add_follow("did:press:a")
        fake_hub.add(
            "GET",
            self.FEED_PATH,
            200,
            text='<feed xmlns="http://www.w3.org/2005/Atom"><entry><id>p1</id><title>One</title>'
            "<agentpress:author_did>did:press:a</agentpress:author_did></entry></feed>",
            headers={"ETag": '"v1"'},
        )

        result = await follower.sync_following()

        assert [item["author_did"] for item in result["items"]] == ["did:press:a"]
        assert follower.list_following()[0].etag == '"v1"'
