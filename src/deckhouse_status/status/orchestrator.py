"""Status: read the cluster once, then ask GitHub and the registry in parallel."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass

from deckhouse_status.config import Settings, get_settings
from deckhouse_status.deadline import Deadline
from deckhouse_status.errors import DeadlineExceeded, DeckhouseStatusError
from deckhouse_status.freshness import Freshness, evaluate
from deckhouse_status.github import GitHubClient, PullRequestInfo
from deckhouse_status.observation import ClusterCollector, ClusterSnapshot
from deckhouse_status.registry import RegistryClient, RegistryVerdict
from deckhouse_status.tags import check_name, parse_pr_tag

logger = logging.getLogger(__name__)


@dataclass
class StatusResult:
    """Everything the report needs; sections that failed carry their error."""

    snapshot: ClusterSnapshot
    pr_number: int = 0
    edition: str = ""
    pr: PullRequestInfo | None = None
    pr_error: Exception | None = None
    registry: RegistryVerdict | None = None

    @property
    def freshness(self) -> Freshness:
        return evaluate(self.snapshot, self.pr, self.registry)


def _pr_outcome(future: Future | None) -> tuple[PullRequestInfo | None, Exception | None]:
    if future is None:
        return None, None
    try:
        return future.result(), None
    except DeckhouseStatusError as e:
        logger.warning("GitHub lookup failed: %s", e)
        return None, e


def collect_status(
    collector: ClusterCollector,
    github: GitHubClient | None,
    registry: RegistryClient | None,
    settings: Settings | None = None,
    short: bool = False,
    deadline: Deadline | None = None,
) -> StatusResult:
    """
    Build a StatusResult. Pass ``github=None`` / ``registry=None`` to skip a
    source. Only a cluster failure raises; GitHub and registry failures are
    reported inside the result.
    """
    opts = settings or get_settings()
    scope = deadline or Deadline(opts.timeout)

    snapshot = collector.collect(timeout=scope.request_timeout(opts.timeout))
    pr_number, edition = parse_pr_tag(snapshot.tag)
    result = StatusResult(snapshot=snapshot, pr_number=pr_number, edition=edition)

    pr_future: Future | None = None
    registry_future: Future | None = None
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="status") as pool:
        if github is not None and pr_number > 0:
            pr_future = pool.submit(
                github.fetch_pr_info,
                opts.github_owner,
                opts.github_repo,
                pr_number,
                check_name(edition),
                short,
                scope,
            )
        if registry is not None:
            ref = snapshot.reference
            registry_future = pool.submit(
                registry.check,
                ref.host,
                ref.repository,
                ref.tag,
                snapshot.running_digest,
                snapshot.registry_creds,
                scope,
            )

        pending = [f for f in (pr_future, registry_future) if f is not None]
        _, late = wait(pending, timeout=scope.remaining())
        if late:
            logger.warning("Deadline reached with %d fetch(es) still running", len(late))
            scope.cancel()

    if pr_future is not None and pr_future in late:
        result.pr_error = DeadlineExceeded("GitHub: deadline exceeded")
    else:
        result.pr, result.pr_error = _pr_outcome(pr_future)

    if registry_future is not None:
        if registry_future in late:
            result.registry = RegistryVerdict(error=DeadlineExceeded("deadline exceeded"))
        else:
            result.registry = registry_future.result()

    return result
