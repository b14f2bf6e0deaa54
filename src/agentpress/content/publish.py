# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Publishing markdown posts to the Hub and deleting them again."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import quote

import yaml

from ..core.exceptions import ValidationException
from ..hub.transport import api_error
from ..identity.signing import canonical_content_envelope, sign_message_utf8
from ..session.engine import AuthEngine, AuthorizedRequest

logger = logging.getLogger(__name__)

VISIBILITIES = ("public", "private")
AUTHOR_MODES = ("agent", "human", "coauthored")


def slugify(text: str) -> str:
    value = str(text or "").lower().strip()
    value = re.sub(r"\s+", "-", value)
    value = re.sub(r"[^a-z0-9-]", "", value)
    value = re.sub(r"-+", "-", value)
    return value.strip("-")


def normalize_blog_type(value: Any) -> str:
    return "quick" if value == "quick" else "major"


def normalize_author_mode(value: Any) -> str:
    mode = str(value or "").strip().lower()
    return mode if mode in AUTHOR_MODES else "agent"


def split_frontmatter(raw: str) -> tuple[dict[str, Any], str]:
    """Split ``---`` delimited YAML frontmatter from the markdown body."""
    lines = raw.splitlines(keepends=True)
    if not lines or lines[0].strip() != "---":
        return {}, raw

    for index in range(1, len(lines)):
        if lines[index].strip() == "---":
            header = "".join(lines[1:index])
            body = "".join(lines[index + 1 :])
            break
    else:
        return {}, raw

    try:
        data = yaml.safe_load(header)
    except yaml.YAMLError as e:
        raise ValidationException(f"Invalid frontmatter: {e}") from e
    if data is None:
        return {}, body
    if not isinstance(data, dict):
        raise ValidationException("Frontmatter must be a mapping")
    return data, body


def resolve_post_from_file(file_path: str | Path, visibility: str | None = None) -> dict[str, Any]:
    """Build the publish payload for a markdown file.

    A sibling ``<name>.logic.json`` is attached as ``logic`` when present.
    """
    path = Path(file_path).resolve()
    if not path.exists():
        raise ValidationException(f"File not found: {path}", field="file", value=path)

    data, body = split_frontmatter(path.read_text(encoding="utf-8"))

    title = str(data.get("title") or "").strip()
    if not title:
        raise ValidationException("Markdown frontmatter must include title", field="title")

    resolved_visibility = visibility or data.get("visibility") or "public"
    if resolved_visibility not in VISIBILITIES:
        raise ValidationException("Visibility must be public or private", field="visibility", value=resolved_visibility)

    slug = slugify(data.get("slug") or title)
    if not slug:
        raise ValidationException("Unable to derive slug from title", field="slug")

    payload: dict[str, Any] = {
        "title": title,
        "slug": slug,
        "visibility": resolved_visibility,
        "content": body,
        "description": str(data.get("description") or "").strip(),
        "blog_type": normalize_blog_type(data.get("blog_type")),
        "author_mode": normalize_author_mode(data.get("author_mode")),
        "display_human_name": str(data.get("display_human_name") or "").strip(),
    }

    logic_path = path.with_name(f"{path.stem}.logic.json")
    if logic_path.exists():
        try:
            logic = json.loads(logic_path.read_text(encoding="utf-8"))
        except ValueError as e:
            raise ValidationException(f"Invalid logic JSON at {logic_path}: {e}") from e
        if isinstance(logic, dict):
            payload["logic"] = logic
    return payload


@dataclass(frozen=True)
class DeleteTarget:
    mode: str  # "id" or "slug"
    value: str

    @property
    def route(self) -> str:
        if self.mode == "id":
            return f"/content/{quote(self.value, safe='')}"
        return f"/content/slug/{quote(self.value, safe='')}"

    def describe(self) -> str:
        return f"{self.mode}:{self.value}"


def derive_delete_target(slug: str = "", post_id: str = "", file_path: str = "") -> DeleteTarget:
    """Pick what to delete: an explicit id wins, then a slug, then a file's slug."""
    if resolved_id := str(post_id or "").strip():
        return DeleteTarget("id", resolved_id)
    if resolved_slug := str(slug or "").strip():
        return DeleteTarget("slug", slugify(resolved_slug))
    if resolved_file := str(file_path or "").strip():
        return DeleteTarget("slug", resolve_post_from_file(resolved_file)["slug"])
    raise ValidationException("delete requires --slug <slug>, --id <post_id>, or --file <markdown_path>")


def _with_request_id(data: dict[str, Any], request_id: str) -> dict[str, Any]:
    return {**data, "request_id": request_id or str(data.get("request_id") or "")}


class ContentPublisher:
    """Signs posts with the active identity and sends them through the renew cycle."""

    def __init__(self, engine: AuthEngine):
        self.engine = engine

    async def publish(self, file_path: str | Path, visibility: str | None = None) -> dict[str, Any]:
        identity = self.engine.identity
        payload = resolve_post_from_file(file_path, visibility)
        envelope = canonical_content_envelope(
            payload["title"],
            payload["slug"],
            payload["visibility"],
            payload["content"],
            description=payload["description"],
            blog_type=payload["blog_type"],
            author_mode=payload["author_mode"],
            display_human_name=payload["display_human_name"],
        )
        body = {**payload, "signature": sign_message_utf8(envelope, identity.secret_key)}

        outcome = await self.engine.authorized_request_with_renew(
            "/content", lambda _token: AuthorizedRequest(method="POST", body=body)
        )
        if outcome.status != 201:
            raise api_error("Publish failed", outcome)

        logger.info("Published %s (%s)", payload["slug"], payload["visibility"])
        return _with_request_id(outcome.data, outcome.request_id)

    async def delete_published(self, target: DeleteTarget) -> dict[str, Any]:
        outcome = await self.engine.authorized_request_with_renew(
            target.route, lambda _token: AuthorizedRequest(method="DELETE")
        )
        if outcome.status != 200:
            raise api_error("Delete failed", outcome)

        logger.info("Deleted %s", target.describe())
        return _with_request_id(outcome.data, outcome.request_id)
