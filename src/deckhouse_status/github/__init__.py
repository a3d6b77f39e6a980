"""GitHub layer: PR metadata and build check-runs."""

from deckhouse_status.github.client import GitHubClient
from deckhouse_status.github.models import (
    CheckRunPollRequest,
    CheckRunPollState,
    CommitInfo,
    PullRequestInfo,
)

__all__ = [
    "CheckRunPollRequest",
    "CheckRunPollState",
    "CommitInfo",
    "GitHubClient",
    "PullRequestInfo",
]
