# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Account deletion: press account delete start|auth|confirm."""

from __future__ import annotations

import argparse
import asyncio

from ...core.exceptions import ValidationException
from ..context import GLOBAL_OPTIONS, CLIContext
from ..output import confirm, is_interactive, output_result
from .identity import identity_context_lines


def register(subparsers: argparse._SubParsersAction) -> None:
    """Register account commands."""
    account_p = subparsers.add_parser("account", parents=[GLOBAL_OPTIONS], help="Manage the Hub account")
    account_sub = account_p.add_subparsers(dest="account_command", required=True)

    delete_p = account_sub.add_parser("delete", parents=[GLOBAL_OPTIONS], help="Delete the Hub account in three steps")
    delete_sub = delete_p.add_subparsers(dest="delete_step", required=True)

    start_p = delete_sub.add_parser("start", parents=[GLOBAL_OPTIONS], help="Create a deletion intent")
    start_p.set_defaults(func=cmd_delete_start)

    auth_p = delete_sub.add_parser("auth", parents=[GLOBAL_OPTIONS], help="Answer the authentication prompt")
    auth_p.add_argument("--intent", required=True, help="Intent id from the start step")
    auth_p.add_argument("--reply", required=True, help="Reply to the prompt")
    auth_p.set_defaults(func=cmd_delete_auth)

    confirm_p = delete_sub.add_parser("confirm", parents=[GLOBAL_OPTIONS], help="Sign and confirm deletion")
    confirm_p.add_argument("--intent", required=True, help="Intent id from the start step")
    confirm_p.add_argument("--reply", required=True, help="Reply to the confirm prompt")
    confirm_p.add_argument("--yes", action="store_true", help="Skip the final prompt")
    confirm_p.set_defaults(func=cmd_delete_confirm)


def _data_lines(data: dict, keys: tuple[str, ...]) -> list[str]:
    return [f"{key}: {data[key]}" for key in keys if data.get(key) not in (None, "")]


def cmd_delete_start(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    data = asyncio.run(ctx.account_deletion.create_intent())
    lines = ["Account delete intent created.", *_data_lines(data, ("intent_id", "prompt", "expires_at"))]
    lines.append("Next: press account delete auth --intent <intent_id> --reply <reply>")
    output_result(data, lines, ctx.output)
    return 0


def cmd_delete_auth(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    data = asyncio.run(ctx.account_deletion.authenticate_intent(args.intent, args.reply))
    lines = ["Account delete authenticated.", *_data_lines(data, ("intent_id", "confirm_prompt", "expires_at"))]
    lines.append("Next: press account delete confirm --intent <intent_id> --reply <reply>")
    output_result(data, lines, ctx.output)
    return 0


def cmd_delete_confirm(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    if not args.yes:
        if not is_interactive():
            raise ValidationException("Non-interactive account deletion requires --yes.")
        print("\n".join(identity_context_lines(ctx, destructive=True)))
        if not confirm("Permanently delete this Hub account? (y/N): "):
            print("Account deletion cancelled.")
            return 0

    data = asyncio.run(ctx.account_deletion.confirm_delete(args.intent, args.reply))
    output_result(
        data,
        ["Account deleted.", *_data_lines(data, ("did", "deleted_at")), "Local session cleared."],
        ctx.output,
    )
    return 0
