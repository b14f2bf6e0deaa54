# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""AgentPress CLI - identity, publishing and reading for the Hub."""

from .main import app, main

__all__ = ["main", "app"]
