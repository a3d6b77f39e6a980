"""GitHub REST client for PR metadata and build check-runs.

Check-run polling uses conditional requests: the ETag of one response is
sent back as ``If-None-Match`` and a 304 answer does not count against the
API rate limit.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import requests
from pydantic import ValidationError

from deckhouse_status.deadline import Deadline
from deckhouse_status.errors import (
    DecodeError,
    DeckhouseStatusError,
    ProtocolError,
    RateLimitError,
    TransportError,
)
from deckhouse_status.github.models import (
    CheckRunPollRequest,
    CheckRunPollState,
    CommitInfo,
    PullRequestInfo,
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_REQUEST_TIMEOUT = 15.0
API_VERSION = "2022-11-28"


@dataclass(frozen=True)
class ConditionalResult:
    """Caching metadata of one GET."""

    etag: str = ""
    not_modified: bool = False


def _parse_time(value: Any) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def first_line(text: str) -> str:
    return (text or "").split("\n", 1)[0]


def _object(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _head_sha(pr: dict[str, Any], number: int) -> str:
    sha = _object(pr.get("head")).get("sha")
    if not sha or not isinstance(sha, str):
        raise DecodeError(f"fetch PR #{number}: no head SHA in response")
    return sha


def _latest_check_run(body: Any) -> dict[str, Any]:
    if not isinstance(body, dict):
        raise DecodeError("check-runs response is not an object")
    runs = body.get("check_runs")
    if not isinstance(runs, list):
        return {}
    return _object(runs[0]) if runs else {}


class GitHubClient:
    """Minimal GitHub REST client; the token is optional for public repos."""

    def __init__(
        self,
        token: str | None = None,
        api_url: str = DEFAULT_API_URL,
        session: requests.Session | None = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        now_fn: Callable[[], float] = time.time,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.request_timeout = request_timeout
        self._session = session or requests.Session()
        self._now = now_fn
        self._headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    def _get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        etag: str = "",
        deadline: Deadline | None = None,
    ) -> tuple[Any, ConditionalResult]:
        """GET ``path``; on 304 the body is None and ``not_modified`` is set."""
        url = f"{self.api_url}{path}"
        headers = dict(self._headers)
        if etag:
            headers["If-None-Match"] = etag
        timeout = deadline.request_timeout(self.request_timeout) if deadline else self.request_timeout

        logger.debug("GitHub GET %s params=%s etag=%s", url, params, bool(etag))
        try:
            resp = self._session.get(url, headers=headers, params=params, timeout=timeout)
        except requests.RequestException as e:
            raise TransportError.wrap(f"GET {url}", e) from e

        cond = ConditionalResult(etag=resp.headers.get("ETag", ""))
        if resp.status_code == 304:
            return None, ConditionalResult(etag=cond.etag, not_modified=True)
        if resp.status_code == 403:
            raise RateLimitError.with_reset(self._reset_in(resp))
        if resp.status_code != 200:
            raise ProtocolError.http_status(resp.status_code)
        try:
            return resp.json(), cond
        except ValueError as e:
            raise DecodeError(f"cannot decode {url}: {e}") from e

    def _reset_in(self, resp: requests.Response) -> timedelta | None:
        raw = resp.headers.get("X-RateLimit-Reset", "")
        try:
            reset_at = int(raw)
        except ValueError:
            return None
        wait_seconds = int(reset_at - self._now())
        return timedelta(seconds=wait_seconds) if wait_seconds > 0 else None

    def _pull_request(self, owner: str, repo: str, number: int, deadline: Deadline | None) -> dict[str, Any]:
        try:
            body, _ = self._get_json(f"/repos/{owner}/{repo}/pulls/{number}", deadline=deadline)
        except DeckhouseStatusError as e:
            e.prefixed(f"fetch PR #{number}")
            raise
        if not isinstance(body, dict):
            raise DecodeError(f"fetch PR #{number}: response is not an object")
        return body

    def fetch_head_sha(self, owner: str, repo: str, number: int, deadline: Deadline | None = None) -> str:
        """Head commit SHA of a PR (one API call)."""
        return _head_sha(self._pull_request(owner, repo, number, deadline), number)

    def fetch_commit(self, owner: str, repo: str, sha: str, deadline: Deadline | None = None) -> CommitInfo:
        try:
            body, _ = self._get_json(f"/repos/{owner}/{repo}/commits/{sha}", deadline=deadline)
        except DeckhouseStatusError as e:
            e.prefixed(f"fetch commit {sha}")
            raise
        if not isinstance(body, dict):
            raise DecodeError(f"fetch commit {sha}: response is not an object")
        commit = _object(body.get("commit"))
        author = _object(commit.get("author"))
        message = commit.get("message") or ""
        try:
            return CommitInfo(
                author=author.get("name") or "",
                date=_parse_time(author.get("date")),
                message=first_line(message) if isinstance(message, str) else message,
            )
        except ValidationError as e:
            raise DecodeError(f"fetch commit {sha}: unexpected response: {e}") from e

    def poll_check_run(
        self,
        request: CheckRunPollRequest,
        previous: CheckRunPollState | None = None,
        deadline: Deadline | None = None,
    ) -> CheckRunPollState:
        """Fetch the most recent check-run named ``request.check_name``.

        An empty listing means the check has not been created yet and comes
        back as an empty status. On 304 the previous state is carried over.
        """
        body, cond = self._get_json(
            f"/repos/{request.owner}/{request.repo}/commits/{request.sha}/check-runs",
            params={"check_name": request.check_name, "per_page": 1},
            etag=request.etag,
            deadline=deadline,
        )
        etag = cond.etag or request.etag
        if cond.not_modified:
            base = previous or CheckRunPollState()
            return base.model_copy(update={"etag": etag, "not_modified": True})

        run = _latest_check_run(body)
        try:
            return CheckRunPollState(
                status=run.get("status") or "",
                conclusion=run.get("conclusion") or "",
                completed_at=_parse_time(run.get("completed_at")),
                etag=etag,
            )
        except ValidationError as e:
            raise DecodeError(f"unexpected check-run: {e}") from e

    def fetch_check_run(
        self, owner: str, repo: str, sha: str, check_name: str, deadline: Deadline | None = None
    ) -> CheckRunPollState:
        request = CheckRunPollRequest(owner=owner, repo=repo, sha=sha, check_name=check_name)
        try:
            return self.poll_check_run(request, deadline=deadline)
        except DeckhouseStatusError as e:
            e.prefixed(f"fetch check-run {check_name!r} for {sha}")
            raise

    def fetch_pr_info(
        self,
        owner: str,
        repo: str,
        number: int,
        check_name: str,
        skip_commit_details: bool = False,
        deadline: Deadline | None = None,
    ) -> PullRequestInfo:
        """PR metadata, then commit details and check-run side by side.

        Uses two or three API calls. A failure of either concurrent fetch
        cancels the other and fails the whole call.
        """
        pr = self._pull_request(owner, repo, number, deadline)
        head_sha = _head_sha(pr, number)

        scope = deadline.child() if deadline else Deadline(None)
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="pr-info") as pool:
            check_future = pool.submit(self.fetch_check_run, owner, repo, head_sha, check_name, scope)
            futures = [check_future]
            commit_future = None
            if not skip_commit_details:
                commit_future = pool.submit(self.fetch_commit, owner, repo, head_sha, scope)
                futures.append(commit_future)

            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            for future in done:
                error = future.exception()
                if error is not None:
                    scope.cancel()
                    raise error

        check = check_future.result()
        commit = commit_future.result() if commit_future is not None else CommitInfo()
        try:
            return PullRequestInfo(
                number=number,
                title=pr.get("title") or "",
                url=pr.get("html_url") or "",
                head_sha=head_sha,
                updated_at=_parse_time(pr.get("updated_at")),
                commit_author=commit.author,
                commit_date=commit.date,
                commit_message=commit.message,
                build_check_name=check_name,
                build_status=check.status,
                build_conclusion=check.conclusion,
                build_completed_at=check.completed_at,
            )
        except ValidationError as e:
            raise DecodeError(f"fetch PR #{number}: unexpected response: {e}") from e
