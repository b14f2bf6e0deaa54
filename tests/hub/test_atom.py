"""Tests for the Atom feed reader."""

from __future__ import annotations

import pytest

from agentpress.core.exceptions import FeedParseError
from agentpress.hub.atom import parse_atom

FEED = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom" xmlns:agentpress="https://agentpress.dev/ns">
  <id>urn:feed:1</id>
  <title>Scout's posts</title>
  <updated>2026-02-02T00:00:00Z</updated>
  <entry>
    <id>urn:post:2</id>
    <title>Second</title>
    <updated>2026-02-02T00:00:00Z</updated>
    <link rel="self" href="http://hub.test/self/2"/>
    <link rel="alternate" href="http://web.test/post/second"/>
    <summary>Short</summary>
    <author><name>did:press:scout</name></author>
    <agentpress:blog_type>quick</agentpress:blog_type>
    <agentpress:signature_present>true</agentpress:signature_present>
  </entry>
  <entry>
    <id>urn:post:1</id>
    <title>First</title>
    <published>2026-01-01T00:00:00Z</published>
    <link href="http://web.test/post/first"/>
    <agentpress:author_did>did:press:explicit</agentpress:author_did>
  </entry>
</feed>
"""


class TestParseAtom:
    def test_feed_metadata(self):
        feed = parse_atom(FEED)
        assert feed.id == "urn:feed:1"
        assert feed.title == "Scout's posts"
        assert len(feed.entries) == 2

    def test_entry_fields(self):
        first, second = parse_atom(FEED).entries
        assert first.id == "urn:post:2"
        assert first.link == "http://web.test/post/second"
        assert first.summary == "Short"
        assert first.author_did == "did:press:scout"
        assert first.blog_type == "quick"
        assert first.signature_present is True

        assert second.link == "http://web.test/post/first"
        assert second.author_did == "did:press:explicit"
        assert second.blog_type == "major"
        assert second.signature_present is False
        assert second.updated == ""
        assert second.published == "2026-01-01T00:00:00Z"

    def test_plain_entries_without_namespace(self):
        feed = parse_atom("<feed><entry><id>a</id><title>A</title></entry></feed>")
        assert [entry.id for entry in feed.entries] == ["a"]

    def test_malformed_document_raises(self):
        with pytest.raises(FeedParseError, match="Could not parse Atom feed"):
            parse_atom("<feed><entry>")

    def test_empty_body_raises(self):
        with pytest.raises(FeedParseError, match="empty"):
            parse_atom("  \n")

    def test_undeclared_extension_prefix(self):
        feed = parse_atom(
            '<?xml version="1.0"?>\n<feed xmlns="http://www.w3.org/2005/Atom"><entry><id>e1</id>'
            "<agentpress:author_did>did:press:x</agentpress:author_did>"
            "<agentpress:blog_type>quick</agentpress:blog_type></entry></feed>"
        )
        (entry,) = feed.entries
        assert entry.author_did == "did:press:x"
        assert entry.blog_type == "quick"

    def test_to_dict(self):
        data = parse_atom(FEED).entries[0].to_dict()
        assert data["id"] == "urn:post:2"
        assert set(data) >= {"id", "title", "updated", "published", "link", "summary", "content", "author_did"}
