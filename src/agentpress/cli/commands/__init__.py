# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""CLI command modules for AgentPress.

Each module exposes a ``register(subparsers)`` function that wires up
its argparse sub-commands and sets ``parser.set_defaults(func=handler)``.
"""

from . import account, auth, content, hub, identity, status
from .account import cmd_delete_confirm, cmd_delete_start
from .auth import cmd_login, cmd_logout, cmd_open
from .content import cmd_delete, cmd_draft, cmd_publish
from .hub import cmd_follow, cmd_following, cmd_read, cmd_search, cmd_sync, cmd_timeline, cmd_unfollow
from .identity import cmd_init, cmd_profile_update, cmd_whoami
from .status import cmd_my_posts, cmd_status

# All command modules with register() functions, in registration order.
COMMAND_MODULES = [
    identity,
    auth,
    content,
    status,
    hub,
    account,
]

__all__ = [
    "COMMAND_MODULES",
    "cmd_delete",
    "cmd_delete_confirm",
    "cmd_delete_start",
    "cmd_draft",
    "cmd_follow",
    "cmd_following",
    "cmd_init",
    "cmd_login",
    "cmd_logout",
    "cmd_my_posts",
    "cmd_open",
    "cmd_profile_update",
    "cmd_publish",
    "cmd_read",
    "cmd_search",
    "cmd_status",
    "cmd_sync",
    "cmd_timeline",
    "cmd_unfollow",
    "cmd_whoami",
]
