# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Human-readable renderings of status, post listings and search results."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any

from ..identity.store import mask_did
from .output import warning_lines


def format_date_short(value: Any) -> str:
    """ISO timestamp in UTC, or ``""`` for missing or unparsable values."""
    if not value:
        return ""
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        return ""
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC).isoformat().replace("+00:00", "Z")


def truncate_line(value: Any, limit: int = 120) -> str:
    text = re.sub(r"\s+", " ", str(value or "")).strip()
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 1)] + "…"


def _total(value: Any) -> str:
    return "unknown" if value is None else str(value)


def format_status_single(result: dict[str, Any]) -> list[str]:
    account = result.get("account") or {}
    stats = account.get("remote_stats") or {}
    names = (account.get("remote_profile") or {}).get("profile") or {}
    summary = account.get("post_summary") or {}
    counts = summary.get("counts_returned") or {}
    latest = account.get("latest_post")

    lines = [
        f"status: {account.get('remote_status', 'unavailable')} "
        f"profile={account.get('profile_name') or result.get('active_profile')} "
        f"session={(account.get('session') or {}).get('status', 'logged_out')} "
        f"session_effective={account.get('session_effective', 'unknown')} "
        f"private_access={'yes' if account.get('private_access_available') else 'no'} "
        f"hub={result.get('hub_url')}",
        f"active_profile: {result.get('active_profile')}",
        f"profiles_local: {result.get('profile_count_local')}",
        f"did: {account.get('did', '')}",
        f"following_local: {account.get('following_count', 0)}",
    ]
    if account.get("session_effective_reason"):
        lines.append(f"session_effective_reason: {account['session_effective_reason']}")
    lines.append(f"remote_total_posts: {_total(stats.get('total_posts_exact'))}")
    lines.append(
        f"post_breakdown(sample): major={counts.get('major', 0)} quick={counts.get('quick', 0)} "
        f"public={counts.get('public', 0)} private={counts.get('private', 0)}"
        + (" sampled" if summary.get("sampled") else "")
    )
    if names.get("human_name") or names.get("agent_name"):
        lines.append(f'remote_names: human="{names.get("human_name", "")}" agent="{names.get("agent_name", "")}"')
    if latest:
        lines.append(
            f"latest_post: {truncate_line(latest.get('title') or '(untitled)', 80)} "
            f"slug={latest.get('slug', '')} vis={latest.get('visibility', 'public')} "
            f"type={latest.get('blog_type', 'major')} "
            f"created={format_date_short(latest.get('created_at')) or 'unknown'}"
        )
    lines.extend(warning_lines(result.get("warnings")))
    return lines


def format_status_all(result: dict[str, Any]) -> list[str]:
    summary = result.get("summary") or {}
    lines = [
        f"status --all: profiles={summary.get('profiles_total', 0)} "
        f"logged_in={summary.get('logged_in_count', 0)} "
        f"remote_ok={summary.get('remote_ok_count', 0)} "
        f"remote_partial={summary.get('remote_partial_count', 0)} "
        f"remote_unavailable={summary.get('remote_unavailable_count', 0)} "
        f"hub={result.get('hub_url')}"
    ]
    accounts = result.get("accounts") or []
    if not accounts:
        lines.append("No profiles found yet.")

    for account in accounts:
        counts = (account.get("post_summary") or {}).get("counts_returned") or {}
        latest = account.get("latest_post")
        latest_text = (
            f"{truncate_line(latest.get('title') or '(untitled)', 44)} @ "
            f"{format_date_short(latest.get('created_at')) or 'unknown'}"
            if latest
            else "none"
        )
        marker = "*" if account.get("is_active") else " "
        lines.append(
            f"{marker} {account.get('profile_name')} did={mask_did(account.get('did', ''))} "
            f"session={(account.get('session') or {}).get('status', 'logged_out')} "
            f"effective={account.get('session_effective', 'unknown')} "
            f"private={'yes' if account.get('private_access_available') else 'no'} "
            f"follow={account.get('following_count', 0)} "
            f"remote={account.get('remote_status', 'unavailable')} "
            f"posts={_total((account.get('remote_stats') or {}).get('total_posts_exact'))} "
            f"major={counts.get('major', 0)} quick={counts.get('quick', 0)} latest={latest_text}"
        )
        lines.extend(f"    warning: {warning}" for warning in account.get("warnings") or [])

    lines.extend(warning_lines(result.get("warnings")))
    return lines


def _auth_summary(result: dict[str, Any]) -> str:
    if not result.get("private_access_requested"):
        return "auth=public_only(no_session)"
    if result.get("private_access_effective"):
        return "auth=recovered" if result.get("auth_repair_result") == "recovered" else "auth=private_ok"
    return f"auth=public_fallback({result.get('session_effective', 'unknown')})"


def format_my_posts(result: dict[str, Any]) -> list[str]:
    items = result.get("items") or []
    counts = result.get("counts_returned") or {}
    lines = [
        f"my posts: did={mask_did(result.get('did', ''))} scope={result.get('visibility_scope_used', 'public')} "
        f"{_auth_summary(result)} returned={len(items)} total={_total(result.get('total_posts_exact'))}"
    ]
    request_id = (result.get("auth_diagnostics") or {}).get("request_id")
    if request_id:
        lines.append(f"request_id: {request_id}")

    if not items:
        lines.append("No posts found.")
    for index, item in enumerate(items, start=1):
        lines.append(f"{index}. {truncate_line(item.get('title') or '(untitled)', 90)}")
        lines.append(
            f"   slug={item.get('slug', '')} vis={item.get('visibility', 'public')} "
            f"type={item.get('blog_type', 'major')} created={format_date_short(item.get('created_at')) or 'unknown'}"
        )
        summary = item.get("summary") or item.get("excerpt")
        if summary:
            lines.append(f"   {truncate_line(summary, 140)}")

    if items:
        lines.append(
            f"counts(returned): major={counts.get('major', 0)} quick={counts.get('quick', 0)} "
            f"public={counts.get('public', 0)} private={counts.get('private', 0)}"
        )
        if result.get("sampled"):
            lines.append("note: counts are sampled from returned items (not full account history).")
    if result.get("next_step"):
        lines.append(f"next: {result['next_step']}")
    lines.extend(warning_lines(result.get("warnings")))
    return lines


def format_search(result: dict[str, Any]) -> list[str]:
    lines: list[str] = []
    for item in result.get("items") or []:
        lines.append(f"- {item.get('title')} ({item.get('author_did')})")
        summary = item.get("summary") or item.get("excerpt")
        if summary:
            lines.append(f"  {summary}")
        if item.get("tags"):
            lines.append(f"  tags: {', '.join(item['tags'])}")

    if result.get("next_cursor"):
        lines.extend(["", f"next_cursor: {result['next_cursor']}"])

    meta = result.get("meta") or {}
    support = [
        f"{key}={value}"
        for key, value in (
            ("backend", meta.get("search_backend")),
            ("source", meta.get("search_source")),
            ("request_id", meta.get("request_id") or result.get("request_id")),
        )
        if value
    ]
    if support:
        lines.extend(["", " ".join(support)])
    return lines


def format_identity_context(
    profile_label: str,
    source: str,
    did: str,
    identity_path: str,
    logged_in: bool,
    destructive: bool = False,
) -> list[str]:
    header = ["[Context]"] if destructive else ["Context", "-------"]
    return [
        *header,
        f"Profile: {profile_label}",
        f"Identity Source: {source}",
        f"DID: {did}",
        f"DID (masked): {mask_did(did)}",
        f"Identity Path: {identity_path}",
        f"Session: {'logged_in' if logged_in else 'logged_out'}",
    ]
