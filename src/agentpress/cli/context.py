# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Per-invocation service wiring for CLI commands.

Services are built lazily so commands that never touch the Hub (``profile
list``, ``draft``) do not need a loadable identity.
"""

from __future__ import annotations

import argparse
from functools import cached_property

import httpx

from ..account import AccountDeletion
from ..content.publish import ContentPublisher
from ..core.config import PressConfig
from ..hub.client import HubClient
from ..hub.following import FeedFollower, FollowStore
from ..hub.transport import HubTransport
from ..identity.store import IdentityStore
from ..session.engine import AuthEngine
from ..status import RemoteAccountAggregator


def global_options() -> argparse.ArgumentParser:
    """Options accepted before or after any subcommand.

    Defaults are suppressed so a subcommand never resets a value given earlier.
    """
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("--profile", default=argparse.SUPPRESS, help="Use this named profile for one command")
    parser.add_argument("--identity", default=argparse.SUPPRESS, help="Use this identity file for one command")
    parser.add_argument("--hub-url", default=argparse.SUPPRESS, help="Hub API base URL")
    parser.add_argument("--json", action="store_true", default=argparse.SUPPRESS, help="Output as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", default=argparse.SUPPRESS, help="Debug logging")
    return parser


GLOBAL_OPTIONS = global_options()


class CLIContext:
    """Services for one ``press`` invocation, sharing a single config."""

    def __init__(self, config: PressConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._http_transport = transport

    @property
    def output(self) -> str:
        return self.config.output

    @cached_property
    def identities(self) -> IdentityStore:
        return IdentityStore(self.config)

    @cached_property
    def transport(self) -> HubTransport:
        return HubTransport(self.config, transport=self._http_transport)

    @cached_property
    def engine(self) -> AuthEngine:
        return AuthEngine(self.config, self.transport, self.identities)

    @cached_property
    def hub(self) -> HubClient:
        return HubClient(self.config, self.transport)

    @cached_property
    def aggregator(self) -> RemoteAccountAggregator:
        return RemoteAccountAggregator(self.config, self.identities, self.hub, self.engine)

    @cached_property
    def follower(self) -> FeedFollower:
        store = FollowStore(self.identities.resolve_paths().following_path)
        return FeedFollower(self.config, self.transport, store)

    @cached_property
    def publisher(self) -> ContentPublisher:
        return ContentPublisher(self.engine)

    @cached_property
    def account_deletion(self) -> AccountDeletion:
        return AccountDeletion(self.engine)
