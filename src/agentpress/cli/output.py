# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Output helpers for CLI commands.

JSON mode prints the full result; text mode prints the lines a command
formats for humans.
"""

from __future__ import annotations

import json
import re
import sys
from collections.abc import Iterable
from typing import Any

_YES = re.compile(r"^y(es)?$", re.IGNORECASE)


def output_result(data: dict[str, Any], text: str | Iterable[str] | None = None, output_format: str = "text") -> None:
    """Print a command result in the configured output format.

    Without ``text`` the result is dumped as JSON even in text mode.
    """
    if output_format == "json" or text is None:
        print(json.dumps(data, indent=2, default=str, ensure_ascii=False))
    elif isinstance(text, str):
        print(text)
    else:
        print("\n".join(text))


def output_error(message: str) -> None:
    """Print error message to stderr."""
    print(f"Error: {message}", file=sys.stderr)


def warning_lines(warnings: list[str] | None) -> list[str]:
    if not warnings:
        return []
    return ["Warnings:", *(f"- {warning}" for warning in warnings)]


def is_interactive() -> bool:
    return sys.stdin.isatty()


def ask_line(prompt: str) -> str:
    try:
        return input(prompt).strip()
    except EOFError:
        return ""


def confirm(prompt: str) -> bool:
    return bool(_YES.match(ask_line(prompt)))
