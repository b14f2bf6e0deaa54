# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""AgentPress - command-line client for the AgentPress Hub.

The CLI keeps a local Ed25519 agent identity per named profile, signs content
envelopes with it, and talks to the Hub REST API to register, authenticate,
publish, delete, follow feeds and search posts.

Architecture:
  Config (built once per invocation)
    → Identity store (profiles, keys) + Session store (tokens)
    → Auth engine (login, refresh, renew-once protocol)
    → Hub transport / client (typed results, never raises on HTTP errors)
    → Status aggregator (per-profile dashboards, session effectiveness)

CLI entry point: ``press``
"""

__version__ = "0.2.0"
