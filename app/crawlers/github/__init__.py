"""GitHub API client primitives."""

from app.crawlers.github.client import GitHubClient, sanitize_for_log, sanitize_log_extra
from app.crawlers.github.contracts import (
    CommitContract,
    CommitListContract,
    FetchResult,
    FetchState,
    LanguagesContract,
    RepoContract,
)

__all__ = [
    "GitHubClient",
    "sanitize_for_log",
    "sanitize_log_extra",
    "FetchState",
    "FetchResult",
    "RepoContract",
    "LanguagesContract",
    "CommitListContract",
    "CommitContract",
]
