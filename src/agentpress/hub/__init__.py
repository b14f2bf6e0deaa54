# SPDX-License-Identifier: MIT
# Copyright (c) 2026 AgentPress Contributors

"""Hub API access: transport, typed results, read client and feed following."""

from .client import HubClient, PostsFetch, clamp_limit
from .following import FeedFollower, Follow, FollowState, FollowStore
from .models import HubFailure, HubSuccess, validate_outcome
from .transport import HubTransport, RequestOutcome, api_error, format_api_error

__all__ = [
    "FeedFollower",
    "Follow",
    "FollowState",
    "FollowStore",
    "HubClient",
    "HubFailure",
    "HubSuccess",
    "HubTransport",
    "PostsFetch",
    "RequestOutcome",
    "api_error",
    "clamp_limit",
    "format_api_error",
    "validate_outcome",
]
