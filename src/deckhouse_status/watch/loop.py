"""watch-build: poll the PR's build check-run until it finishes.

Exit codes: 0 build succeeded, 1 build failed, was cancelled, timed out in
CI or ended with an unknown conclusion, 2 local error, local timeout or
interrupt.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from deckhouse_status.config import Settings
from deckhouse_status.deadline import Deadline
from deckhouse_status.errors import DeckhouseStatusError, InputError, OperationCancelled
from deckhouse_status.github import CheckRunPollRequest, CheckRunPollState, GitHubClient
from deckhouse_status.observation import ClusterCollector
from deckhouse_status.tags import check_name, parse_pr_tag
from deckhouse_status.watch.spinner import Spinner

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_BUILD_FAILED = 1
EXIT_ERROR = 2

DEFAULT_POLL_INTERVAL = 10.0

FAILED_CONCLUSIONS = {
    "failure": "failed",
    "cancelled": "was cancelled",
    "timed_out": "timed out",
}


@dataclass(frozen=True)
class WatchTarget:
    """The check-run to watch: PR head commit and edition build."""

    pr_number: int
    edition: str
    sha: str
    check_name: str


def resolve_watch_target(
    collector: ClusterCollector,
    github: GitHubClient,
    settings: Settings,
    deadline: Deadline,
) -> WatchTarget:
    """Cluster snapshot -> PR number and edition -> head SHA. Any failure is fatal."""
    cluster_deadline = deadline.request_timeout(settings.cluster_timeout)
    snapshot = collector.collect(timeout=cluster_deadline)
    pr_number, edition = parse_pr_tag(snapshot.tag)
    if pr_number == 0:
        raise InputError.not_a_pr_tag(snapshot.tag)
    sha = github.fetch_head_sha(settings.github_owner, settings.github_repo, pr_number, deadline)
    return WatchTarget(pr_number=pr_number, edition=edition, sha=sha, check_name=check_name(edition))


class BuildWatcher:
    """Polls one check-run on a fixed interval until it completes.

    Each poll sends the previous ETag; a 304 keeps the last known state. A
    failed poll is reported on the spinner and retried at the next tick.
    The deadline scope doubles as the interrupt: cancelling it (SIGINT)
    wakes the wait immediately and abandons a poll still in flight.
    """

    def __init__(
        self,
        github: GitHubClient,
        request: CheckRunPollRequest,
        spinner: Spinner,
        deadline: Deadline,
        interval: float = DEFAULT_POLL_INTERVAL,
        restart: Callable[[], tuple[bool, str]] | None = None,
    ) -> None:
        self.github = github
        self.request = request
        self.spinner = spinner
        self.deadline = deadline
        self.interval = interval
        self.restart = restart
        self.polls = 0

    def run(self) -> int:
        state: CheckRunPollState | None = None
        while True:
            state = self._poll(state)
            if state is not None and state.completed:
                code = self._finish(state)
                if code == EXIT_SUCCESS and self.restart is not None:
                    self._restart()
                return code

            if self.deadline.wait(self.interval):
                self.spinner.failure("Interrupted")
                return EXIT_ERROR
            if self.deadline.expired:
                self.spinner.failure("Timeout waiting for build to complete")
                return EXIT_ERROR

    def _poll_in_background(self, previous: CheckRunPollState | None) -> CheckRunPollState:
        """Run one poll on a daemon thread and wait for it or for cancellation.

        A blocked socket read cannot be interrupted, so on cancel the request
        is left to finish on its own and its result is dropped.
        """
        outcome: dict[str, Any] = {}
        finished = threading.Event()

        def poll() -> None:
            try:
                outcome["state"] = self.github.poll_check_run(self.request, previous, self.deadline)
            except Exception as e:
                outcome["error"] = e
            finally:
                finished.set()

        unregister = self.deadline.on_cancel(finished.set)
        try:
            threading.Thread(target=poll, name="check-run-poll", daemon=True).start()
            finished.wait()
        finally:
            unregister()
        if "state" in outcome:
            return outcome["state"]
        if "error" in outcome:
            raise outcome["error"]
        raise OperationCancelled("operation cancelled")

    def _poll(self, previous: CheckRunPollState | None) -> CheckRunPollState | None:
        name = self.request.check_name
        self.polls += 1
        try:
            state = self._poll_in_background(previous)
        except OperationCancelled:
            return previous
        except DeckhouseStatusError as e:
            logger.warning("Poll of %s failed: %s", name, e)
            self.spinner.tick(f"{name}: error ({e}), retrying...")
            return previous

        self.request = self.request.model_copy(update={"etag": state.etag})
        if state.not_modified:
            self.spinner.tick(f"{name}: no change")
        elif state.status == "queued":
            self.spinner.tick(f"{name}: queued")
        elif state.status == "in_progress":
            self.spinner.tick(f"{name}: in progress")
        elif not state.status:
            self.spinner.tick(f"{name}: waiting for check to appear...")
        elif not state.completed:
            self.spinner.tick(f"{name}: {state.status}")
        return state

    def _finish(self, state: CheckRunPollState) -> int:
        name = self.request.check_name
        if state.conclusion == "success":
            self.spinner.success(f"{name} completed successfully")
            return EXIT_SUCCESS
        if state.conclusion in FAILED_CONCLUSIONS:
            self.spinner.failure(f"{name} {FAILED_CONCLUSIONS[state.conclusion]}")
        else:
            self.spinner.failure(f"{name} completed with: {state.conclusion}")
        return EXIT_BUILD_FAILED

    def _restart(self) -> None:
        self.spinner.console.print("Restarting deckhouse deployment...", highlight=False)
        ok, message = self.restart()
        if ok:
            self.spinner.success("Deployment restarted")
        else:
            self.spinner.failure(f"Restart failed: {message}")
