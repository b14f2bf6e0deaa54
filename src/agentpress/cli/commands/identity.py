# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Identity and profile commands.

Commands:
    press init [--human NAME] [--agent NAME] [--force]   Create the identity for the active context
    press whoami                                         Show the active identity context
    press profile list|create|use|current|remove|setup   Manage named profiles
    press profile [--human ..] [--agent ..] [--intro ..] Update author names and intro
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from ...core.exceptions import PressException, ValidationException
from ...session.store import SessionStore
from ..context import GLOBAL_OPTIONS, CLIContext
from ..formatters import format_identity_context
from ..output import ask_line, confirm, is_interactive, output_result


def register(subparsers: argparse._SubParsersAction) -> None:
    """Register identity and profile commands."""
    init_p = subparsers.add_parser("init", parents=[GLOBAL_OPTIONS], help="Initialize identity for the active profile")
    init_p.add_argument("--human", default="", help="Human author name")
    init_p.add_argument("--agent", default="", help="AI agent author name")
    init_p.add_argument("--force", action="store_true", help="Replace an existing identity")
    init_p.set_defaults(func=cmd_init)

    whoami_p = subparsers.add_parser("whoami", parents=[GLOBAL_OPTIONS], help="Show active identity, profile and session")
    whoami_p.set_defaults(func=cmd_whoami)

    profile_p = subparsers.add_parser("profile", parents=[GLOBAL_OPTIONS], help="Manage profiles and author names")
    profile_p.add_argument("--human", default="", help="New human author name")
    profile_p.add_argument("--agent", default="", help="New AI agent author name")
    profile_p.add_argument("--intro", default="", help="New intro line")
    profile_p.set_defaults(func=cmd_profile_update)
    profile_sub = profile_p.add_subparsers(dest="profile_command")

    list_p = profile_sub.add_parser("list", parents=[GLOBAL_OPTIONS], help="List named profiles")
    list_p.set_defaults(func=cmd_profile_list)

    create_p = profile_sub.add_parser("create", parents=[GLOBAL_OPTIONS], help="Create a profile with a new keypair")
    create_p.add_argument("name", help="Profile name")
    create_p.add_argument("--use", action="store_true", help="Switch to the new profile")
    create_p.set_defaults(func=cmd_profile_create)

    use_p = profile_sub.add_parser("use", aliases=["switch"], parents=[GLOBAL_OPTIONS], help="Switch active profile")
    use_p.add_argument("name", help="Profile name")
    use_p.set_defaults(func=cmd_profile_use)

    current_p = profile_sub.add_parser("current", parents=[GLOBAL_OPTIONS], help="Show active profile")
    current_p.set_defaults(func=cmd_profile_current)

    remove_p = profile_sub.add_parser("remove", parents=[GLOBAL_OPTIONS], help="Remove a profile")
    remove_p.add_argument("name", help="Profile name")
    remove_p.add_argument("--force", action="store_true", help="Allow removing the active profile, skip prompt")
    remove_p.set_defaults(func=cmd_profile_remove)

    setup_p = profile_sub.add_parser("setup", parents=[GLOBAL_OPTIONS], help="Interactive profile wizard")
    setup_p.set_defaults(func=cmd_profile_setup)


def identity_context_lines(ctx: CLIContext, destructive: bool = False) -> list[str]:
    paths = ctx.identities.resolve_paths()
    identity = ctx.identities.load_identity()
    session = SessionStore(paths.session_path).load_lenient()
    return format_identity_context(
        profile_label=paths.profile_name if paths.source == "profile" else "(override)",
        source="--identity" if paths.source == "override" else "profile",
        did=identity.did,
        identity_path=str(paths.identity_path),
        logged_in=bool(session and session.has_access_token),
        destructive=destructive,
    )


def _profile_lines(did: str, profile: dict) -> list[str]:
    return [
        f"DID: {did}",
        f"Human: {profile.get('human_name') or '(unset)'}",
        f"Agent: {profile.get('agent_name') or '(unset)'}",
        f"Intro: {profile.get('bio') or '(unset)'}",
    ]


def _sync_profile_remote(ctx: CLIContext) -> str:
    """Push the profile to the Hub; returns a warning instead of failing."""
    try:
        asyncio.run(ctx.engine.ensure_registered())
    except PressException as e:
        return f"Profile saved locally; remote sync skipped: {e.message}"
    return ""


def cmd_init(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    identity = ctx.identities.init(human_name=args.human, agent_name=args.agent, force=args.force)
    paths = ctx.identities.resolve_paths()
    output_result(
        {"did": identity.did, "profile": paths.profile_name, "identity_path": str(paths.identity_path)},
        [
            "Identity created.",
            f"Profile: {paths.profile_name}",
            f"DID: {identity.did}",
            f"Identity Path: {paths.identity_path}",
        ],
        ctx.output,
    )
    return 0


def cmd_whoami(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    paths = ctx.identities.resolve_paths()
    identity = ctx.identities.load_identity()
    session = SessionStore(paths.session_path).load_lenient()
    output_result(
        {
            "profile": paths.profile_name,
            "source": paths.source,
            "did": identity.did,
            "identity_path": str(paths.identity_path),
            "session": "logged_in" if session and session.has_access_token else "logged_out",
            "local_profile": identity.profile,
        },
        identity_context_lines(ctx),
        ctx.output,
    )
    return 0


def cmd_profile_list(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    profiles = ctx.identities.list_profiles()
    current = ctx.identities.current_profile_name()
    lines = [f"{'*' if name == current else ' '} {name}" for name in profiles] or ["No profiles found yet."]
    output_result({"profiles": profiles, "current": current}, lines, ctx.output)
    return 0


def cmd_profile_create(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    created = ctx.identities.create_profile(args.name, set_current=args.use)
    lines = [f"Profile created: {created}"]
    if args.use:
        lines.append(f"Active profile: {created}")
    output_result({"profile": created, "active": args.use}, lines, ctx.output)
    return 0


def cmd_profile_use(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    current = ctx.identities.set_current_profile(args.name)
    output_result({"active_profile": current}, f"Active profile: {current}", ctx.output)
    return 0


def cmd_profile_current(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    current = ctx.identities.current_profile_name()
    output_result({"active_profile": current}, f"Active profile: {current}", ctx.output)
    return 0


def cmd_profile_remove(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    if not args.force and is_interactive():
        print("\n".join(identity_context_lines(ctx, destructive=True)))
        if not confirm(f"Remove profile '{args.name}'? This cannot be undone. (y/N): "):
            print("Profile removal cancelled.")
            return 0
    removed = ctx.identities.remove_profile(args.name, force=args.force)
    output_result({"removed": removed}, f"Profile removed: {removed}", ctx.output)
    return 0


def _choose(answer: str, current: str) -> str:
    if not answer:
        return current
    return "" if answer == "-" else answer


def cmd_profile_setup(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    if not is_interactive():
        raise ValidationException("profile setup requires an interactive terminal (TTY).")

    profile = ctx.identities.load_identity().profile
    print("Profile Setup Wizard")
    print("--------------------")
    print("Press Enter to keep current value. Type - to clear a field.")
    updates = {
        "human_name": _choose(
            ask_line(f"1) Human author name [{profile.get('human_name') or 'unset'}]: "),
            profile.get("human_name", ""),
        ),
        "agent_name": _choose(
            ask_line(f"2) AI agent author name [{profile.get('agent_name') or 'unset'}]: "),
            profile.get("agent_name", ""),
        ),
        "bio": _choose(ask_line(f"3) Intro line [{profile.get('bio') or 'unset'}]: "), profile.get("bio", "")),
    }
    updated = ctx.identities.update_profile(updates)

    answer = ask_line("4) Sync profile to Hub now? (Y/n): ")
    if not answer or answer.lower() in ("y", "yes"):
        warning = _sync_profile_remote(ctx)
        print(warning or "Remote profile sync complete.", file=sys.stderr if warning else sys.stdout)

    print("\n".join(["Profile setup complete.", *_profile_lines(updated.did, updated.profile)]))
    return 0


def cmd_profile_update(args: argparse.Namespace) -> int:
    ctx: CLIContext = args.ctx
    human, agent, intro = args.human, args.agent, args.intro
    if not (human or agent or intro) and is_interactive():
        human = ask_line("New human author name (leave blank to keep): ")
        agent = ask_line("New AI agent author name (leave blank to keep): ")
        intro = ask_line("New intro line (leave blank to keep): ")

    updates = {key: value for key, value in (("human_name", human), ("agent_name", agent), ("bio", intro)) if value}
    if not updates:
        raise ValidationException(
            'Usage: press profile setup | press profile [--human "..."] [--agent "..."] [--intro "..."] '
            "| press profile list/create/use/current/remove"
        )

    updated = ctx.identities.update_profile(updates)
    warning = _sync_profile_remote(ctx)
    output_result(
        {"did": updated.did, "profile": updated.profile, "warnings": [warning] if warning else []},
        ["Profile updated.", *_profile_lines(updated.did, updated.profile), *([f"Warning: {warning}"] if warning else [])],
        ctx.output,
    )
    return 0
