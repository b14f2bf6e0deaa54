# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Drafting, publishing and deleting posts."""

from .drafts import create_draft
from .publish import ContentPublisher, DeleteTarget, derive_delete_target, resolve_post_from_file, slugify

__all__ = [
    "ContentPublisher",
    "DeleteTarget",
    "create_draft",
    "derive_delete_target",
    "resolve_post_from_file",
    "slugify",
]
