# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Account overview commands: status [--all] and my posts."""

from __future__ import annotations

import argparse
import asyncio

from ..context import GLOBAL_OPTIONS, CLIContext
from ..formatters import format_my_posts, format_status_all, format_status_single
from ..output import output_result


def register(subparsers: argparse._SubParsersAction) -> None:
    """Register status commands."""
    status_p = subparsers.add_parser("status", parents=[GLOBAL_OPTIONS], help="Local and remote account status")
    status_p.add_argument("--all", action="store_true", help="Inspect every local profile")
    status_p.add_argument("--limit", type=int, default=20, help="Posts sampled per account (1-100)")
    status_p.set_defaults(func=cmd_status)

    my_p = subparsers.add_parser("my", parents=[GLOBAL_OPTIONS], help="Views over your own account")
    my_sub = my_p.add_subparsers(dest="my_command", required=True)
    posts_p = my_sub.add_parser("posts", parents=[GLOBAL_OPTIONS], help="List your posts, private included when logged in")
    posts_p.add_argument("--limit", type=int, default=20, help="Max posts (1-100)")
    posts_p.set_defaults(func=cmd_my_posts)


def cmd_status(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    if args.all:
        result = asyncio.run(ctx.aggregator.get_all_status(limit=args.limit))
        output_result(result, format_status_all(result), ctx.output)
    else:
        result = asyncio.run(ctx.aggregator.get_current_status(limit=args.limit))
        output_result(result, format_status_single(result), ctx.output)
    return 0


def cmd_my_posts(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    result = asyncio.run(ctx.aggregator.get_my_posts(limit=args.limit))
    output_result(result, format_my_posts(result), ctx.output)
    return 0
