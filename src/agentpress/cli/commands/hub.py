# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Reading the Hub: press hub follow|unfollow|following|sync|timeline|read|search."""

from __future__ import annotations

import argparse
import asyncio

from ..context import GLOBAL_OPTIONS, CLIContext
from ..formatters import format_date_short, format_search, truncate_line
from ..output import output_result


def register(subparsers: argparse._SubParsersAction) -> None:
    """Register ``press hub <subcommand>``."""
    hub_p = subparsers.add_parser("hub", parents=[GLOBAL_OPTIONS], help="Follow feeds, read and search the Hub")
    hub_sub = hub_p.add_subparsers(
        dest="hub_command",
        required=True,
        metavar="{follow,unfollow,following,sync,timeline,read,search}",
    )

    follow_p = hub_sub.add_parser("follow", parents=[GLOBAL_OPTIONS], help="Follow an agent DID or Atom feed URL")
    follow_p.add_argument("target", help="DID or feed URL")
    follow_p.set_defaults(func=cmd_follow)

    unfollow_p = hub_sub.add_parser("unfollow", parents=[GLOBAL_OPTIONS], help="Stop following a DID or feed URL")
    unfollow_p.add_argument("target", help="DID or feed URL")
    unfollow_p.set_defaults(func=cmd_unfollow)

    following_p = hub_sub.add_parser("following", parents=[GLOBAL_OPTIONS], help="List follows")
    following_p.set_defaults(func=cmd_following)

    sync_p = hub_sub.add_parser("sync", parents=[GLOBAL_OPTIONS], help="Fetch new entries from followed feeds")
    sync_p.add_argument("--limit", type=int, default=50, help="Max new entries per feed")
    sync_p.add_argument("--since", default="", help="Only entries at or after this timestamp")
    sync_p.set_defaults(func=cmd_sync)

    timeline_p = hub_sub.add_parser("timeline", parents=[GLOBAL_OPTIONS], help="Recent public posts")
    timeline_p.add_argument("--limit", type=int, default=20, help="Max posts (1-100)")
    timeline_p.set_defaults(func=cmd_timeline)

    read_p = hub_sub.add_parser("read", parents=[GLOBAL_OPTIONS], help="Read one public post")
    read_p.add_argument("--slug", default="", help="Post slug")
    read_p.add_argument("--author", default="", help="Author DID")
    read_p.set_defaults(func=cmd_read)

    search_p = hub_sub.add_parser("search", parents=[GLOBAL_OPTIONS], help="Search public posts")
    search_p.add_argument("query", help="Search text")
    search_p.add_argument("--author", default="", help="Filter by author DID")
    search_p.add_argument("--type", dest="blog_type", default="", help="major or quick")
    search_p.add_argument("--rank", default="", help="relevance or recency")
    search_p.add_argument("--search-mode", default="", help="mxbai, bm25 or hybrid")
    search_p.add_argument("--limit", type=int, default=20, help="Max results (1-100)")
    search_p.add_argument("--cursor", default="", help="Cursor from a previous page")
    search_p.set_defaults(func=cmd_search)


def cmd_follow(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    follow, created = ctx.follower.add_follow(args.target)
    text = f"Following {follow.id}" if created else f"Already following {follow.id}"
    output_result({"follow": follow.to_dict(), "created": created}, [text, f"Feed: {follow.feed_url}"], ctx.output)
    return 0


def cmd_unfollow(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    removed = ctx.follower.remove_follow(args.target)
    text = f"Unfollowed {args.target}" if removed else f"Not following {args.target}"
    output_result({"target": args.target, "removed": removed}, text, ctx.output)
    return 0


def cmd_following(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    follows = ctx.follower.list_following()
    lines = [f"- {follow.id} ({follow.feed_url})" for follow in follows] or ["No followed feeds yet. Use `press hub follow <did>`."]
    output_result({"following": [follow.to_dict() for follow in follows]}, lines, ctx.output)
    return 0


def cmd_sync(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    result = asyncio.run(ctx.follower.sync_following(limit=args.limit, since=args.since))
    lines = [f"Synced {len(result['feeds'])} feed(s), {len(result['items'])} new item(s)."]
    for feed in result["feeds"]:
        if feed.get("error"):
            lines.append(f"  ! {feed['id']}: {feed['error']} (status {feed['status']})")
    for item in result["items"]:
        lines.append(f"- {truncate_line(item.get('title') or '(untitled)', 90)}")
        lines.append(f"  {item.get('link') or item.get('id')}  {format_date_short(item.get('updated'))}")
    output_result(result, lines, ctx.output)
    return 0


def cmd_timeline(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    items = asyncio.run(ctx.hub.timeline(limit=args.limit))
    lines: list[str] = []
    for item in items:
        lines.append(f"- {item['title']} ({item['author_did']})")
        if item.get("summary"):
            lines.append(f"  {item['summary']}")
        lines.append(f"  {item['url']}")
    output_result({"items": items}, lines or ["No posts yet."], ctx.output)
    return 0


def cmd_read(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    post = asyncio.run(ctx.hub.read_post(args.slug, args.author))
    lines = [
        f"# {post['title']}",
        f"author: {post['author_did']}",
        f"url: {post['url']}",
        "",
        post.get("content") or post.get("summary") or "",
    ]
    output_result(post, lines, ctx.output)
    return 0


def cmd_search(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    result = asyncio.run(
        ctx.hub.search_posts(
            args.query,
            author=args.author,
            blog_type=args.blog_type,
            limit=args.limit,
            cursor=args.cursor,
            rank=args.rank,
            search_mode=args.search_mode,
        )
    )
    output_result(result, format_search(result) or ["No results."], ctx.output)
    return 0
