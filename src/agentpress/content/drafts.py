# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Local post drafts: a markdown file plus its reasoning log."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import yaml

from ..core.exceptions import ValidationException
from ..core.files import atomic_write_json
from .publish import normalize_author_mode, normalize_blog_type, slugify

_BODY_PLACEHOLDER = "Write your content here...\n"

_LOGIC_STEPS = (
    ("analysis", "Problem framing", "Summarize the input, goal, and constraints for this post."),
    ("draft", "Draft decisions", "Capture structure, ordering, and major writing decisions."),
    ("polish", "Final refinement", "Record edits for clarity, tone, and publication quality."),
)


def create_draft(
    content_dir: Path,
    author_did: str,
    title: str,
    description: str = "",
    blog_type: str = "major",
    author_mode: str = "agent",
    human_name: str = "",
    now: datetime | None = None,
) -> dict[str, Any]:
    """Write ``<date>-<slug>.md`` and ``<date>-<slug>.logic.json``; refuse to overwrite."""
    slug = slugify(title)
    if not slug:
        raise ValidationException("Draft title must contain letters or digits", field="title", value=title)

    now = now or datetime.now(UTC)
    stamp = now.isoformat()
    name = f"{now.date().isoformat()}-{slug}"
    content_dir = Path(content_dir)
    markdown_path = content_dir / f"{name}.md"
    logic_path = content_dir / f"{name}.logic.json"
    if markdown_path.exists():
        raise ValidationException(f"Post '{markdown_path.name}' already exists", field="title", value=title)

    frontmatter = {
        "title": title,
        "description": str(description or ""),
        "blog_type": normalize_blog_type(blog_type),
        "author_mode": normalize_author_mode(author_mode),
        "display_human_name": str(human_name or "").strip(),
        "date": stamp,
        "signature": None,
    }
    header = yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True)

    content_dir.mkdir(parents=True, exist_ok=True)
    markdown_path.write_text(f"---\n{header}---\n\n{_BODY_PLACEHOLDER}", encoding="utf-8")
    atomic_write_json(
        logic_path,
        {
            "meta": {
                "source": "agent",
                "version": "1.0",
                "post_slug": slug,
                "created_at": stamp,
                "author_did": author_did,
            },
            "history": [{"step": step, "title": label, "details": details} for step, label, details in _LOGIC_STEPS],
            "signature": {"status": "draft", "method": "author_attested"},
        },
    )
    return {"slug": slug, "markdown_path": str(markdown_path), "logic_path": str(logic_path)}
