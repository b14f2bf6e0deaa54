# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Content commands: draft, publish, delete.

Deleting asks for an exact confirmation phrase naming the identity and the
target, ``DELETE <masked did> <target>``. Non-interactive runs must pass it
with ``--confirm`` together with ``--yes``.
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from ...content.drafts import create_draft
from ...content.publish import derive_delete_target
from ...core.exceptions import ValidationException
from ...identity.store import mask_did
from ..context import GLOBAL_OPTIONS, CLIContext
from ..output import ask_line, confirm, is_interactive, output_result
from .identity import identity_context_lines


def register(subparsers: argparse._SubParsersAction) -> None:
    """Register content commands."""
    draft_p = subparsers.add_parser("draft", parents=[GLOBAL_OPTIONS], help="Create a local markdown draft")
    draft_p.add_argument("title", help="Post title")
    draft_p.add_argument("--description", default="", help="Short description")
    draft_p.add_argument("--type", dest="blog_type", default="major", help="major or quick")
    draft_p.add_argument("--author-mode", default="agent", help="agent, human or coauthored")
    draft_p.add_argument("--human-name", default="", help="Displayed human name")
    draft_p.set_defaults(func=cmd_draft)

    publish_p = subparsers.add_parser("publish", parents=[GLOBAL_OPTIONS], help="Sign and publish a markdown file")
    publish_p.add_argument("file", help="Markdown file with frontmatter")
    visibility = publish_p.add_mutually_exclusive_group()
    visibility.add_argument("--public", action="store_const", const="public", dest="visibility", help="Publish publicly")
    visibility.add_argument("--private", action="store_const", const="private", dest="visibility", help="Publish privately")
    publish_p.set_defaults(func=cmd_publish, visibility=None)

    delete_p = subparsers.add_parser("delete", parents=[GLOBAL_OPTIONS], help="Delete one published post")
    delete_p.add_argument("target", nargs="?", default="", help="Post slug")
    delete_p.add_argument("--slug", default="", help="Post slug")
    delete_p.add_argument("--id", dest="post_id", default="", help="Post id")
    delete_p.add_argument("--file", default="", help="Markdown file whose slug to delete")
    delete_p.add_argument("--yes", action="store_true", help="Skip the final prompt")
    delete_p.add_argument("--confirm", default="", help="Exact confirmation phrase")
    delete_p.set_defaults(func=cmd_delete)


def delete_confirmation_phrase(did: str, post_id: str = "", slug: str = "", file_path: str = "") -> str:
    if post_id:
        target = f"id:{post_id}"
    elif slug:
        target = f"slug:{slug}"
    else:
        target = f"file:{Path(file_path or 'unknown').name}"
    return f"DELETE {mask_did(did)} {target}"


def cmd_draft(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    result = create_draft(
        ctx.config.content_dir,
        ctx.identities.load_identity().did,
        args.title,
        description=args.description,
        blog_type=args.blog_type,
        author_mode=args.author_mode,
        human_name=args.human_name,
    )
    output_result(
        result,
        ["Draft created.", f"Post:  {result['markdown_path']}", f"Logic: {result['logic_path']}"],
        ctx.output,
    )
    return 0


def cmd_publish(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    result = asyncio.run(ctx.publisher.publish(args.file, visibility=args.visibility))
    lines = [
        "Publish successful.",
        f"Post ID: {result.get('id')}",
        f"Slug: {result.get('slug')}",
        f"Visibility: {result.get('visibility')}",
    ]
    ingest = result.get("ingest")
    if isinstance(ingest, dict):
        lines.append(f"Ingest: {ingest.get('status', 'unknown')}{' (queued)' if ingest.get('enqueued') else ''}")
    if result.get("request_id"):
        lines.append(f"Request ID: {result['request_id']}")
    output_result(result, lines, ctx.output)
    return 0


def cmd_delete(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    slug = args.slug or args.target
    if not (args.post_id or slug or args.file):
        raise ValidationException(
            'Usage: press delete [--slug <slug> | --id <post_id> | --file <markdown_path>] [--yes] [--confirm "<phrase>"]'
        )

    phrase = delete_confirmation_phrase(ctx.identities.load_identity().did, args.post_id, slug, args.file)
    if ctx.output != "json":
        print("\n".join([*identity_context_lines(ctx, destructive=True), f"Required confirmation phrase: {phrase}"]))

    if is_interactive():
        supplied = args.confirm.strip() or ask_line("Type the exact confirmation phrase: ")
        if supplied != phrase:
            print("Delete cancelled: confirmation phrase mismatch.")
            return 0
        if not args.yes and not confirm("Proceed with delete now? (y/N): "):
            print("Delete cancelled.")
            return 0
    elif not args.yes or args.confirm != phrase:
        raise ValidationException(
            f'Non-interactive delete requires both --yes and --confirm with exact phrase. Expected: --confirm "{phrase}"'
        )

    target = derive_delete_target(slug=slug, post_id=args.post_id, file_path=args.file)
    result = asyncio.run(ctx.publisher.delete_published(target))
    lines = ["Delete successful.", f"Post ID: {result.get('id')}", f"Slug: {result.get('slug')}"]
    if result.get("cleanup_warnings"):
        lines.append(f"Cleanup warnings: {len(result['cleanup_warnings'])}")
    if result.get("request_id"):
        lines.append(f"Request ID: {result['request_id']}")
    output_result(result, lines, ctx.output)
    return 0
