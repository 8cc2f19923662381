"""
Domain models package.
"""

from .models import (
    AIProvider,
    PRContext,
    PullRequest,
    Repo,
    RepoResult,
    Ticket,
    TimeWindow,
    TimeWindowKind,
)

__all__ = [
    "AIProvider",
    "PRContext",
    "PullRequest",
    "Repo",
    "RepoResult",
    "Ticket",
    "TimeWindow",
    "TimeWindowKind",
]
