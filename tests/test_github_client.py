from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import requests

from conftest import FakeResponse
from deckhouse_status.errors import DecodeError, ProtocolError, RateLimitError, TransportError
from deckhouse_status.github import CheckRunPollRequest, CheckRunPollState, GitHubClient

SHA = "0123456789abcdef0123456789abcdef01234567"
API = "https://api.github.com"

PR_BODY = {
    "title": "Fix module hooks",
    "html_url": "https://github.com/deckhouse/deckhouse/pull/15160",
    "updated_at": "2026-01-15T10:00:00Z",
    "head": {"sha": SHA},
}
COMMIT_BODY = {
    "commit": {
        "author": {"name": "Jane Doe", "date": "2026-01-15T09:30:00Z"},
        "message": "Fix module hooks\n\nLonger description.",
    }
}


def check_runs(status: str = "completed", conclusion: str = "success", completed_at: str | None = None) -> dict:
    return {
        "total_count": 1,
        "check_runs": [
            {
                "name": "Build FE",
                "status": status,
                "conclusion": conclusion,
                "completed_at": completed_at,
            }
        ],
    }


def route(responses: dict[str, FakeResponse]):
    """Dispatch fake GETs on the URL suffix; the PR fetch fans out to threads."""

    def get(url: str, **kwargs) -> FakeResponse:
        for suffix, response in responses.items():
            if url.endswith(suffix):
                return response
        raise AssertionError(f"unexpected GET {url}")

    return get


def poll_request(etag: str = "") -> CheckRunPollRequest:
    return CheckRunPollRequest(owner="deckhouse", repo="deckhouse", sha=SHA, check_name="Build FE", etag=etag)


def test_sends_api_headers_and_token(session: MagicMock) -> None:
    session.get.return_value = FakeResponse(200, PR_BODY)

    GitHubClient(token="ghp_x", session=session).fetch_head_sha("deckhouse", "deckhouse", 15160)

    args, kwargs = session.get.call_args
    assert args == (f"{API}/repos/deckhouse/deckhouse/pulls/15160",)
    assert kwargs["headers"]["Authorization"] == "Bearer ghp_x"
    assert kwargs["headers"]["Accept"] == "application/vnd.github+json"
    assert kwargs["headers"]["X-GitHub-Api-Version"] == "2022-11-28"
    assert "If-None-Match" not in kwargs["headers"]


def test_anonymous_client_sends_no_authorization(session: MagicMock) -> None:
    session.get.return_value = FakeResponse(200, PR_BODY)

    GitHubClient(session=session).fetch_head_sha("deckhouse", "deckhouse", 15160)

    assert "Authorization" not in session.get.call_args.kwargs["headers"]


def test_head_sha_missing_is_decode_error(session: MagicMock) -> None:
    session.get.return_value = FakeResponse(200, {"title": "x", "head": {}})

    with pytest.raises(DecodeError, match="fetch PR #7: no head SHA"):
        GitHubClient(session=session).fetch_head_sha("deckhouse", "deckhouse", 7)


def test_http_error_is_prefixed_with_pr(session: MagicMock) -> None:
    session.get.return_value = FakeResponse(404)

    with pytest.raises(ProtocolError, match=r"^fetch PR #7: HTTP 404$") as excinfo:
        GitHubClient(session=session).fetch_head_sha("deckhouse", "deckhouse", 7)
    assert excinfo.value.status_code == 404


def test_transport_failure(session: MagicMock) -> None:
    session.get.side_effect = requests.ConnectionError("connection refused")

    with pytest.raises(TransportError, match="connection refused"):
        GitHubClient(session=session).fetch_head_sha("deckhouse", "deckhouse", 7)


def test_undecodable_body(session: MagicMock) -> None:
    session.get.return_value = FakeResponse(200, "{not json")

    with pytest.raises(DecodeError):
        GitHubClient(session=session).fetch_head_sha("deckhouse", "deckhouse", 7)


class TestRateLimit:
    def test_reports_time_until_reset(self, session: MagicMock) -> None:
        session.get.return_value = FakeResponse(403, headers={"X-RateLimit-Reset": "1125"})
        client = GitHubClient(session=session, now_fn=lambda: 1000.0)

        with pytest.raises(RateLimitError) as excinfo:
            client.fetch_head_sha("deckhouse", "deckhouse", 7)

        assert str(excinfo.value) == "fetch PR #7: rate limited (resets in 2m5s)"
        assert excinfo.value.reset_in == timedelta(seconds=125)

    def test_without_reset_header(self, session: MagicMock) -> None:
        session.get.return_value = FakeResponse(403)

        with pytest.raises(RateLimitError, match=r"rate limited \(HTTP 403\)"):
            GitHubClient(session=session).fetch_head_sha("deckhouse", "deckhouse", 7)

    def test_reset_in_the_past(self, session: MagicMock) -> None:
        session.get.return_value = FakeResponse(403, headers={"X-RateLimit-Reset": "900"})
        client = GitHubClient(session=session, now_fn=lambda: 1000.0)

        with pytest.raises(RateLimitError, match=r"rate limited \(HTTP 403\)"):
            client.fetch_head_sha("deckhouse", "deckhouse", 7)


class TestPollCheckRun:
    def test_reads_latest_run_and_etag(self, session: MagicMock) -> None:
        session.get.return_value = FakeResponse(
            200, check_runs("in_progress", ""), headers={"ETag": 'W/"abc"'}
        )

        state = GitHubClient(session=session).poll_check_run(poll_request())

        assert state.status == "in_progress"
        assert state.conclusion == ""
        assert state.etag == 'W/"abc"'
        assert not state.not_modified
        assert not state.completed
        kwargs = session.get.call_args.kwargs
        assert kwargs["params"] == {"check_name": "Build FE", "per_page": 1}
        assert session.get.call_args.args[0].endswith(f"/commits/{SHA}/check-runs")

    def test_sends_previous_etag(self, session: MagicMock) -> None:
        session.get.return_value = FakeResponse(200, check_runs(), headers={"ETag": '"new"'})

        GitHubClient(session=session).poll_check_run(poll_request(etag='W/"old"'))

        assert session.get.call_args.kwargs["headers"]["If-None-Match"] == 'W/"old"'

    def test_not_modified_keeps_previous_state(self, session: MagicMock) -> None:
        session.get.return_value = FakeResponse(304)
        previous = CheckRunPollState(status="queued", etag='W/"abc"')

        state = GitHubClient(session=session).poll_check_run(poll_request(etag='W/"abc"'), previous)

        assert state.not_modified
        assert state.status == "queued"
        assert state.etag == 'W/"abc"'

    def test_not_modified_takes_fresh_etag(self, session: MagicMock) -> None:
        session.get.return_value = FakeResponse(304, headers={"ETag": 'W/"def"'})
        previous = CheckRunPollState(status="queued", etag='W/"abc"')

        state = GitHubClient(session=session).poll_check_run(poll_request(etag='W/"abc"'), previous)

        assert state.etag == 'W/"def"'

    def test_no_runs_yet(self, session: MagicMock) -> None:
        session.get.return_value = FakeResponse(200, {"total_count": 0, "check_runs": []})

        state = GitHubClient(session=session).poll_check_run(poll_request())

        assert state.status == ""
        assert state.completed_at is None

    def test_completed_run(self, session: MagicMock) -> None:
        session.get.return_value = FakeResponse(
            200, check_runs("completed", "failure", "2026-01-15T11:00:00Z")
        )

        state = GitHubClient(session=session).poll_check_run(poll_request())

        assert state.completed
        assert state.conclusion == "failure"
        assert state.completed_at == datetime(2026, 1, 15, 11, 0, tzinfo=timezone.utc)


class TestFetchPrInfo:
    def test_combines_pr_commit_and_check_run(self, session: MagicMock) -> None:
        session.get.side_effect = route(
            {
                "/pulls/15160": FakeResponse(200, PR_BODY),
                f"/commits/{SHA}/check-runs": FakeResponse(
                    200, check_runs("completed", "success", "2026-01-15T11:00:00Z")
                ),
                f"/commits/{SHA}": FakeResponse(200, COMMIT_BODY),
            }
        )

        info = GitHubClient(session=session).fetch_pr_info("deckhouse", "deckhouse", 15160, "Build FE")

        assert info.number == 15160
        assert info.title == "Fix module hooks"
        assert info.url == PR_BODY["html_url"]
        assert info.head_sha == SHA
        assert info.commit_author == "Jane Doe"
        assert info.commit_message == "Fix module hooks"
        assert info.build_check_name == "Build FE"
        assert info.build_status == "completed"
        assert info.build_conclusion == "success"
        assert info.build_completed_at == datetime(2026, 1, 15, 11, 0, tzinfo=timezone.utc)
        assert session.get.call_count == 3

    def test_skip_commit_details(self, session: MagicMock) -> None:
        session.get.side_effect = route(
            {
                "/pulls/15160": FakeResponse(200, PR_BODY),
                f"/commits/{SHA}/check-runs": FakeResponse(200, check_runs("queued", "")),
            }
        )

        info = GitHubClient(session=session).fetch_pr_info(
            "deckhouse", "deckhouse", 15160, "Build FE", skip_commit_details=True
        )

        assert info.build_status == "queued"
        assert info.commit_author == ""
        assert session.get.call_count == 2

    def test_concurrent_failure_fails_the_call(self, session: MagicMock) -> None:
        session.get.side_effect = route(
            {
                "/pulls/15160": FakeResponse(200, PR_BODY),
                f"/commits/{SHA}/check-runs": FakeResponse(200, check_runs()),
                f"/commits/{SHA}": FakeResponse(500),
            }
        )

        with pytest.raises(ProtocolError, match=f"fetch commit {SHA}: HTTP 500"):
            GitHubClient(session=session).fetch_pr_info("deckhouse", "deckhouse", 15160, "Build FE")

    def test_pr_failure_stops_before_fan_out(self, session: MagicMock) -> None:
        session.get.return_value = FakeResponse(404)

        with pytest.raises(ProtocolError, match="fetch PR #15160"):
            GitHubClient(session=session).fetch_pr_info("deckhouse", "deckhouse", 15160, "Build FE")
        assert session.get.call_count == 1


class TestUnexpectedShapes:
    def test_head_not_an_object(self, session: MagicMock) -> None:
        session.get.return_value = FakeResponse(200, {"title": "x", "head": "main"})

        with pytest.raises(DecodeError, match="fetch PR #7: no head SHA"):
            GitHubClient(session=session).fetch_head_sha("deckhouse", "deckhouse", 7)

    def test_non_string_title(self, session: MagicMock) -> None:
        session.get.side_effect = route(
            {
                "/pulls/15160": FakeResponse(200, {**PR_BODY, "title": 42}),
                f"/commits/{SHA}/check-runs": FakeResponse(200, check_runs()),
            }
        )

        with pytest.raises(DecodeError, match="fetch PR #15160: unexpected response"):
            GitHubClient(session=session).fetch_pr_info(
                "deckhouse", "deckhouse", 15160, "Build FE", skip_commit_details=True
            )

    def test_odd_commit_body(self, session: MagicMock) -> None:
        session.get.return_value = FakeResponse(200, {"commit": {"author": "Jane", "message": 7}})

        with pytest.raises(DecodeError, match=f"fetch commit {SHA}"):
            GitHubClient(session=session).fetch_commit("deckhouse", "deckhouse", SHA)

    def test_check_runs_not_a_list(self, session: MagicMock) -> None:
        session.get.return_value = FakeResponse(200, {"check_runs": {"name": "Build FE"}})

        state = GitHubClient(session=session).poll_check_run(poll_request())

        assert state.status == ""

    def test_non_string_status(self, session: MagicMock) -> None:
        session.get.return_value = FakeResponse(200, {"check_runs": [{"status": ["queued"]}]})

        with pytest.raises(DecodeError, match="unexpected check-run"):
            GitHubClient(session=session).poll_check_run(poll_request())
