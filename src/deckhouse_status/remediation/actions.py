"""Restart the Deckhouse deployment the way ``kubectl rollout restart`` does."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from kubernetes import client
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

logger = logging.getLogger(__name__)

RESTARTED_AT_ANNOTATION = "kubectl.kubernetes.io/restartedAt"


def utc_now_rfc3339() -> str:
    """Current UTC time as ``2024-01-15T08:30:00Z``."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def restart_deployment(
    apps: client.AppsV1Api,
    namespace: str,
    name: str,
    timeout: float | None = None,
    now_fn: Callable[[], str] = utc_now_rfc3339,
) -> tuple[bool, str]:
    """
    Patch the pod template's restartedAt annotation so the deployment rolls
    new pods. Returns (success, message).
    """
    body = {
        "spec": {
            "template": {
                "metadata": {
                    "annotations": {RESTARTED_AT_ANNOTATION: now_fn()},
                }
            }
        }
    }
    try:
        apps.patch_namespaced_deployment(
            name=name,
            namespace=namespace,
            body=body,
            _request_timeout=timeout,
        )
    except ApiException as e:
        logger.warning("Restart of deployment %s/%s failed: %s", namespace, name, e.reason)
        return False, f"API error: {e.reason}"
    except HTTPError as e:
        logger.warning("Restart of deployment %s/%s failed: %s", namespace, name, e)
        return False, str(e)
    return True, f"Restarted deployment {name}"
