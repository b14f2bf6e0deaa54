"""Tests for Hub response models and tagged results."""

from __future__ import annotations

from agentpress.hub.models import (
    HubFailure,
    HubSuccess,
    PostItem,
    RemoteStats,
    SearchPage,
    TokenGrant,
    validate_outcome,
)
from agentpress.hub.transport import RequestOutcome


class TestPostItem:
    def test_normalizes_fields(self):
        item = PostItem.model_validate(
            {
                "title": "Hello",
                "slug": "hello",
                "blog_type": "essay",
                "visibility": "unlisted",
                "tags": "not-a-list",
                "summary": None,
                "createdAt": 1700000000,
                "relevance_score": "0.5",
                "extra_field": True,
            }
        )
        assert item.blog_type == "major"
        assert item.visibility == "public"
        assert item.tags == []
        assert item.summary == ""
        assert item.created_at == "1700000000"
        assert item.relevance_score == 0.5
        assert item.model_extra == {"extra_field": True}

    def test_quick_private(self):
        item = PostItem.model_validate({"blog_type": "quick", "visibility": "private", "tags": [1, "a"]})
        assert (item.blog_type, item.visibility, item.tags) == ("quick", "private", ["1", "a"])


class TestRemoteStats:
    def test_coercion(self):
        stats = RemoteStats.model_validate({"atom_subscribers": "x", "total_posts": "7"})
        assert stats.atom_subscribers == 0
        assert stats.total_posts == 7
        assert RemoteStats.model_validate({"total_posts": None}).total_posts is None


class TestSearchPage:
    def test_defensive_defaults(self):
        page = SearchPage.model_validate({"items": None, "next_cursor": None, "meta": "x"})
        assert page.items == []
        assert page.next_cursor == ""
        assert page.meta is None


class TestValidateOutcome:
    def test_success(self):
        result = validate_outcome(RequestOutcome(200, {"access_token": "a"}), TokenGrant, "Verify failed")
        assert isinstance(result, HubSuccess)
        assert result.ok is True
        assert result.value.token_type == "Bearer"

    def test_unexpected_status(self):
        result = validate_outcome(RequestOutcome(401, {"error": "expired"}), TokenGrant, "Verify failed")
        assert isinstance(result, HubFailure)
        assert result.ok is False
        assert result.status == 401
        assert result.message() == "Verify failed (401): expired"

    def test_invalid_body(self):
        result = validate_outcome(RequestOutcome(200, {}), TokenGrant, "Verify failed")
        assert isinstance(result, HubFailure)
        assert result.reason == "invalid response (access_token)"
        assert result.message() == "Verify failed (200): invalid response (access_token)"

    def test_custom_expected_status(self):
        result = validate_outcome(RequestOutcome(200, {"magic_token": "m"}), TokenGrant, "x", expect=(201,))
        assert isinstance(result, HubFailure)
