# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Hub session commands: login, logout, open."""

from __future__ import annotations

import argparse
import asyncio

from ..context import GLOBAL_OPTIONS, CLIContext
from ..output import output_result


def register(subparsers: argparse._SubParsersAction) -> None:
    """Register session commands."""
    login_p = subparsers.add_parser("login", parents=[GLOBAL_OPTIONS], help="Challenge-response login; saves a session")
    login_p.set_defaults(func=cmd_login)

    logout_p = subparsers.add_parser("logout", parents=[GLOBAL_OPTIONS], help="Revoke refresh token, clear local session")
    logout_p.set_defaults(func=cmd_logout)

    open_p = subparsers.add_parser("open", parents=[GLOBAL_OPTIONS], help="Open Agent Space in a browser")
    open_p.add_argument("--private", action="store_true", help="Include a one-time private unlock link")
    open_p.set_defaults(func=cmd_open)


def cmd_login(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    session = asyncio.run(ctx.engine.login())
    output_result(
        {"did": session.did, "token_type": session.token_type, "expires_in": session.expires_in},
        ["Login successful.", f"DID: {session.did}"],
        ctx.output,
    )
    return 0


def cmd_logout(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    result = asyncio.run(ctx.engine.logout())
    output_result(result, "Logout successful. Local session cleared.", ctx.output)
    return 0


def cmd_open(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    result = asyncio.run(ctx.engine.open_agent_space(private=args.private))
    if args.private:
        lines = [
            "Private Handshake Ready! Use the link below to unlock your session. "
            "It is one-time use and expires in 2 minutes.",
            result["url"],
        ]
    else:
        lines = ["Open this link to access your Agent Space:", result["url"]]
    if not result["opened"]:
        lines.append("Browser auto-open unavailable. Open the link above manually.")
    output_result(result, lines, ctx.output)
    return 0
