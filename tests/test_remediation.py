from __future__ import annotations

from unittest.mock import MagicMock

from kubernetes.client.rest import ApiException
from urllib3.exceptions import MaxRetryError

from deckhouse_status.remediation import restart_deployment
from deckhouse_status.remediation.actions import RESTARTED_AT_ANNOTATION, utc_now_rfc3339


def test_patches_restarted_at_annotation() -> None:
    apps = MagicMock()

    ok, message = restart_deployment(apps, "d8-system", "deckhouse", timeout=15, now_fn=lambda: "2026-01-15T12:00:00Z")

    assert ok
    assert message == "Restarted deployment deckhouse"
    apps.patch_namespaced_deployment.assert_called_once_with(
        name="deckhouse",
        namespace="d8-system",
        body={"spec": {"template": {"metadata": {"annotations": {RESTARTED_AT_ANNOTATION: "2026-01-15T12:00:00Z"}}}}},
        _request_timeout=15,
    )


def test_api_error_is_reported() -> None:
    apps = MagicMock()
    apps.patch_namespaced_deployment.side_effect = ApiException(status=403, reason="Forbidden")

    ok, message = restart_deployment(apps, "d8-system", "deckhouse")

    assert not ok
    assert message == "API error: Forbidden"


def test_connection_error_is_reported() -> None:
    apps = MagicMock()
    apps.patch_namespaced_deployment.side_effect = MaxRetryError(None, "/apis/apps/v1", "connection refused")

    ok, message = restart_deployment(apps, "d8-system", "deckhouse")

    assert not ok
    assert "connection refused" in message


def test_timestamp_format() -> None:
    stamp = utc_now_rfc3339()

    assert stamp.endswith("Z")
    assert len(stamp) == len("2026-01-15T12:00:00Z")
