# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Small helpers for the JSON state files kept under the identity directory."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any


def ensure_private_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True, mode=0o700)


def atomic_write_json(path: Path, payload: Any) -> None:
    """Write JSON to a temp file next to ``path`` and rename it into place.

    An interrupted write leaves either the old file or the new one, never a
    truncated mix. Files are created with mode 0600.
    """
    ensure_private_dir(path.parent)
    tmp_path = path.with_name(path.name + ".tmp")
    data = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"

    fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(data)
        handle.flush()
        os.fsync(handle.fileno())
    os.replace(tmp_path, path)


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def read_json_if_exists(path: Path | None) -> Any:
    """Return parsed JSON, or None when the file is missing or unreadable."""
    if path is None or not path.exists():
        return None
    try:
        return read_json(path)
    except (OSError, ValueError):
        return None
