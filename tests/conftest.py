from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any
from unittest.mock import MagicMock

import pytest
from requests.structures import CaseInsensitiveDict

from deckhouse_status.observation.models import ClusterSnapshot, ImageReference

IMAGE = "dev-registry.deckhouse.io/sys/deckhouse-oss:pr15160"
RUNNING_DIGEST = "sha256:3778e43a"
POD_CREATED = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class FakeResponse:
    """Just enough of requests.Response for the clients."""

    def __init__(self, status_code: int = 200, body: Any = None, headers: dict[str, str] | None = None) -> None:
        self.status_code = status_code
        self.headers = CaseInsensitiveDict(headers or {})
        self._body = body

    def json(self) -> Any:
        if isinstance(self._body, str):
            return json.loads(self._body)
        if self._body is None:
            raise ValueError("no body")
        return self._body


def make_snapshot(
    image: str = IMAGE,
    running_digest: str = RUNNING_DIGEST,
    pod_created: datetime = POD_CREATED,
    **overrides: Any,
) -> ClusterSnapshot:
    return ClusterSnapshot(
        image=image,
        reference=ImageReference.parse(image),
        pod_name="deckhouse-6d4f7c9b8-abcde",
        pod_created=pod_created,
        pod_phase="Running",
        running_digest=running_digest,
        **overrides,
    )


@pytest.fixture
def snapshot() -> ClusterSnapshot:
    return make_snapshot()


@pytest.fixture
def session() -> MagicMock:
    return MagicMock()
