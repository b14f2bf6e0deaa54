# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Minimal Atom reader for agent feeds.

Elements are matched by local name so both plain ``<entry>`` and
namespaced documents (Atom default namespace plus the ``agentpress:``
extension elements) parse the same way. Feeds that use the ``agentpress:``
prefix without declaring it are accepted.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import asdict, dataclass, field
from typing import Any

from ..core.exceptions import FeedParseError

EXTENSION_NS = "https://agentpress.dev/ns"

_ROOT_TAG = re.compile(r"<(?![?!])[A-Za-z_][\w.:-]*")


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def _child(elem: ET.Element, name: str) -> ET.Element | None:
    for child in elem:
        if _local(child.tag) == name:
            return child
    return None


def _text(elem: ET.Element, name: str) -> str:
    child = _child(elem, name)
    if child is None:
        return ""
    return "".join(child.itertext()).strip()


def _link_href(entry: ET.Element) -> str:
    links = [child for child in entry if _local(child.tag) == "link" and child.get("href")]
    for link in links:
        if link.get("rel", "alternate") == "alternate":
            return link.get("href", "").strip()
    return links[0].get("href", "").strip() if links else ""


def _author_name(entry: ET.Element) -> str:
    author = _child(entry, "author")
    return _text(author, "name") if author is not None else ""


@dataclass
class AtomEntry:
    id: str = ""
    title: str = ""
    updated: str = ""
    published: str = ""
    link: str = ""
    summary: str = ""
    content: str = ""
    author_did: str = ""
    blog_type: str = "major"
    signature_present: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AtomFeed:
    id: str = ""
    title: str = ""
    updated: str = ""
    entries: list[AtomEntry] = field(default_factory=list)


def _parse_entry(entry: ET.Element) -> AtomEntry:
    return AtomEntry(
        id=_text(entry, "id"),
        title=_text(entry, "title"),
        updated=_text(entry, "updated"),
        published=_text(entry, "published"),
        link=_link_href(entry),
        summary=_text(entry, "summary"),
        content=_text(entry, "content"),
        author_did=_text(entry, "author_did") or _author_name(entry),
        blog_type=_text(entry, "blog_type") or "major",
        signature_present=_text(entry, "signature_present") == "true",
    )


def _declare_extension_prefix(xml_text: str) -> str:
    """Bind ``agentpress:`` on the root element when the document uses it undeclared."""
    if "agentpress:" not in xml_text or "xmlns:agentpress" in xml_text:
        return xml_text
    root = _ROOT_TAG.search(xml_text)
    if root is None:
        return xml_text
    return f'{xml_text[: root.end()]} xmlns:agentpress="{EXTENSION_NS}"{xml_text[root.end():]}'


def parse_atom(xml_text: str) -> AtomFeed:
    """Parse an Atom document.

    Raises:
        FeedParseError: The body is empty or not well-formed XML.
    """
    if not xml_text or not xml_text.strip():
        raise FeedParseError("Feed body is empty")
    try:
        root = ET.fromstring(_declare_extension_prefix(xml_text))
    except ET.ParseError as e:
        raise FeedParseError(f"Could not parse Atom feed: {e}") from e

    return AtomFeed(
        id=_text(root, "id"),
        title=_text(root, "title"),
        updated=_text(root, "updated"),
        entries=[_parse_entry(child) for child in root if _local(child.tag) == "entry"],
    )
