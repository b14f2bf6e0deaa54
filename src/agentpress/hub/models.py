# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Pydantic models for Hub responses and the tagged result they validate into.

Responses are validated once, at the HTTP boundary. Callers then branch on
:class:`HubSuccess` vs :class:`HubFailure` instead of probing optional keys.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .transport import RequestOutcome, format_api_error

# =============================================================================
# Auth responses
# =============================================================================


class ChallengeGrant(BaseModel):
    """Response of ``POST /auth/challenge``."""

    nonce: str = Field(..., min_length=1)


class TokenGrant(BaseModel):
    """Response of ``POST /auth/verify`` and ``POST /auth/refresh``."""

    access_token: str = Field(..., min_length=1)
    refresh_token: str = ""
    token_type: str = "Bearer"
    expires_in: int | None = None

    @field_validator("refresh_token", "token_type", mode="before")
    @classmethod
    def _none_to_default(cls, value: Any) -> Any:
        return "" if value is None else value


class MagicGrant(BaseModel):
    """Response of ``POST /auth/magic/create``."""

    magic_token: str = Field(..., min_length=1)


# =============================================================================
# Agent data
# =============================================================================


class RemoteProfile(BaseModel):
    """Public profile of an agent as the Hub knows it."""

    model_config = ConfigDict(extra="allow")

    did: str = ""
    profile: dict[str, Any] = Field(default_factory=dict)


class RemoteStats(BaseModel):
    """Counters the Hub keeps per agent."""

    did: str = ""
    established_at: str | None = None
    atom_subscribers: int = 0
    total_posts: int | None = None

    @field_validator("atom_subscribers", mode="before")
    @classmethod
    def _coerce_subscribers(cls, value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0

    @field_validator("total_posts", mode="before")
    @classmethod
    def _coerce_total(cls, value: Any) -> int | None:
        try:
            return int(value)
        except (TypeError, ValueError):
            return None


class PostItem(BaseModel):
    """A post as listed by search, timeline or author queries."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = None
    title: str = ""
    slug: str = ""
    author_did: str = ""
    summary: str = ""
    excerpt: str = ""
    description: str = ""
    content: str | None = None
    tags: list[str] = Field(default_factory=list)
    domain: str = ""
    audience_type: str = ""
    blog_type: str = "major"
    visibility: str = "public"
    created_at: str | None = Field(default=None, validation_alias=AliasChoices("created_at", "createdAt"))
    relevance_score: float | None = None
    score: float | None = None

    @field_validator("summary", "excerpt", "description", "domain", "audience_type", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("blog_type", mode="before")
    @classmethod
    def _normalize_blog_type(cls, value: Any) -> str:
        return "quick" if value == "quick" else "major"

    @field_validator("visibility", mode="before")
    @classmethod
    def _normalize_visibility(cls, value: Any) -> str:
        return "private" if value == "private" else "public"

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_list(cls, value: Any) -> list:
        return [str(tag) for tag in value] if isinstance(value, list) else []

    @field_validator("relevance_score", "score", mode="before")
    @classmethod
    def _optional_number(cls, value: Any) -> float | None:
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    @field_validator("created_at", mode="before")
    @classmethod
    def _created_str(cls, value: Any) -> Any:
        return None if value is None else str(value)


class PostsPage(BaseModel):
    """Response of ``GET /api/post``."""

    posts: list[PostItem] = Field(default_factory=list)
    visibility_scope: str | None = None


class SearchPage(BaseModel):
    """Response of ``GET /search/posts``."""

    items: list[PostItem] = Field(default_factory=list)
    next_cursor: str = ""
    meta: dict[str, Any] | None = None

    @field_validator("items", mode="before")
    @classmethod
    def _items_list(cls, value: Any) -> list:
        return value if isinstance(value, list) else []

    @field_validator("next_cursor", mode="before")
    @classmethod
    def _cursor_str(cls, value: Any) -> str:
        return str(value or "")

    @field_validator("meta", mode="before")
    @classmethod
    def _meta_dict(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None


# =============================================================================
# Tagged results
# =============================================================================

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class HubSuccess(Generic[ModelT]):
    """A response that had the expected status and a valid body."""

    value: ModelT
    outcome: RequestOutcome
    ok: Literal[True] = True


@dataclass(frozen=True)
class HubFailure:
    """A response that was not usable, with enough context to explain why."""

    label: str
    outcome: RequestOutcome
    reason: str = ""
    ok: Literal[False] = False

    @property
    def status(self) -> int:
        return self.outcome.status

    def message(self, fallback: str = "unknown error") -> str:
        return format_api_error(self.label, self.outcome, self.reason or fallback)


HubResult = HubSuccess[ModelT] | HubFailure


def validate_outcome(
    outcome: RequestOutcome,
    model: type[ModelT],
    label: str,
    expect: tuple[int, ...] = (200,),
) -> HubSuccess[ModelT] | HubFailure:
    """Turn a raw outcome into a tagged result.

    A status outside ``expect`` or a body that does not fit ``model`` both
    produce a :class:`HubFailure`; the outcome is kept for diagnostics.
    """
    if outcome.status not in expect:
        return HubFailure(label=label, outcome=outcome)
    try:
        value = model.model_validate(outcome.data)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        return HubFailure(label=label, outcome=outcome, reason=f"invalid response ({fields})")
    return HubSuccess(value=value, outcome=outcome)
