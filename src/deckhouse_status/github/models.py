"""Pull request and check-run models returned by the GitHub client."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CommitInfo(BaseModel):
    """Author and first message line of a commit."""

    author: str = ""
    date: datetime | None = None
    message: str = Field(default="", description="first line only")


class PullRequestInfo(BaseModel):
    """PR metadata, last commit details and the build check-run of its head."""

    number: int
    title: str = ""
    url: str = ""
    head_sha: str = ""
    updated_at: datetime | None = None

    commit_author: str = ""
    commit_date: datetime | None = None
    commit_message: str = ""

    build_check_name: str = Field(default="", description='e.g. "Build FE"')
    build_status: str = Field(default="", description="queued | in_progress | completed | empty")
    build_conclusion: str = Field(default="", description="success | failure | cancelled | timed_out | empty")
    build_completed_at: datetime | None = None


class CheckRunPollRequest(BaseModel):
    """Parameters of one check-run poll; ``etag`` comes from the previous poll."""

    owner: str
    repo: str
    sha: str
    check_name: str
    etag: str = ""


class CheckRunPollState(BaseModel):
    """Result of one check-run poll.

    With ``not_modified`` set, every other field is the previous poll's value.
    """

    status: str = ""
    conclusion: str = ""
    completed_at: datetime | None = None
    etag: str = ""
    not_modified: bool = False

    @property
    def completed(self) -> bool:
        return self.status == "completed"
