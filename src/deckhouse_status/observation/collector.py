"""Collect the Deckhouse pod state and registry credentials from Kubernetes."""

from __future__ import annotations

import base64
import json
import logging
from datetime import datetime, timezone
from typing import Any

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from deckhouse_status.errors import ClusterError
from deckhouse_status.observation.models import ClusterSnapshot, ImageReference, RegistryCreds

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "d8-system"
DEFAULT_POD_SELECTOR = "app=deckhouse"
DEFAULT_REGISTRY_SECRET = "deckhouse-registry"


def _load_kube_config(kubeconfig_path: str | None, context: str | None) -> client.Configuration:
    """Load in-cluster or kubeconfig-based configuration."""
    try:
        config.load_incluster_config()
        return client.Configuration.get_default_copy()
    except config.ConfigException:
        pass
    kwargs: dict[str, Any] = {}
    if kubeconfig_path:
        kwargs["config_file"] = str(kubeconfig_path)
    if context:
        kwargs["context"] = context
    try:
        config.load_kube_config(**kwargs)
    except (config.ConfigException, OSError) as e:
        raise ClusterError(f"cannot create k8s config: {e}") from e
    return client.Configuration.get_default_copy()


def build_api_clients(
    kubeconfig: str | None = None, context: str | None = None
) -> tuple[client.CoreV1Api, client.AppsV1Api]:
    """Return Core and Apps API clients sharing one configuration."""
    api_client = client.ApiClient(_load_kube_config(kubeconfig, context))
    return client.CoreV1Api(api_client), client.AppsV1Api(api_client)


def _pick_pod(pods: list[Any]) -> Any:
    """Prefer the first Running pod, else the first one listed."""
    for pod in pods:
        if getattr(pod.status, "phase", None) == "Running":
            return pod
    return pods[0]


def _running_digest(pod: Any) -> str:
    """Digest part of the first container's imageID (``...@sha256:...``)."""
    statuses = getattr(pod.status, "container_statuses", None) or []
    if not statuses:
        return ""
    image_id = statuses[0].image_id or ""
    _, sep, digest = image_id.partition("@")
    return digest if sep else ""


def parse_docker_config(raw: bytes) -> RegistryCreds:
    """Pick the first non-empty ``auths.*.auth`` entry of a docker config."""
    try:
        cfg = json.loads(raw)
    except ValueError as e:
        raise ClusterError(f"cannot parse docker config: {e}") from e
    if not isinstance(cfg, dict):
        raise ClusterError("cannot parse docker config: not an object")
    for entry in (cfg.get("auths") or {}).values():
        if isinstance(entry, dict) and entry.get("auth"):
            return RegistryCreds(auth=entry["auth"])
    raise ClusterError("no auth entries in docker config")


class ClusterCollector:
    """Reads the Deckhouse pod and its registry pull secret."""

    def __init__(
        self,
        core_api: client.CoreV1Api,
        namespace: str = DEFAULT_NAMESPACE,
        pod_selector: str = DEFAULT_POD_SELECTOR,
        registry_secret: str = DEFAULT_REGISTRY_SECRET,
    ) -> None:
        self.namespace = namespace
        self.pod_selector = pod_selector
        self.registry_secret = registry_secret
        self._core = core_api

    def collect(self, timeout: float | None = None) -> ClusterSnapshot:
        """Fetch the snapshot once; registry credentials are best-effort."""
        try:
            pod_list = self._core.list_namespaced_pod(
                namespace=self.namespace,
                label_selector=self.pod_selector,
                _request_timeout=timeout,
            )
        except ApiException as e:
            raise ClusterError(f"cannot list pods: {e.reason}") from e
        except HTTPError as e:
            raise ClusterError(f"cannot reach Kubernetes API: {e}") from e
        if not pod_list.items:
            raise ClusterError(f"no deckhouse pods found in {self.namespace}")

        pod = _pick_pod(pod_list.items)
        containers = getattr(pod.spec, "containers", None) or []
        image = (containers[0].image or "") if containers else ""
        created = pod.metadata.creation_timestamp
        if created is None:
            created = datetime.now(timezone.utc)
        elif created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)

        return ClusterSnapshot(
            image=image,
            reference=ImageReference.parse(image),
            pod_name=pod.metadata.name,
            pod_created=created,
            pod_phase=getattr(pod.status, "phase", None) or "Unknown",
            running_digest=_running_digest(pod),
            registry_creds=self._registry_creds(timeout),
        )

    def _registry_creds(self, timeout: float | None) -> RegistryCreds | None:
        try:
            secret = self._core.read_namespaced_secret(
                name=self.registry_secret,
                namespace=self.namespace,
                _request_timeout=timeout,
            )
        except ApiException as e:
            logger.warning("Failed to read secret %s: %s", self.registry_secret, e.reason)
            return None
        except HTTPError as e:
            logger.warning("Failed to read secret %s: %s", self.registry_secret, e)
            return None
        raw = (secret.data or {}).get(".dockerconfigjson")
        if not raw:
            logger.warning("Empty .dockerconfigjson in secret %s", self.registry_secret)
            return None
        try:
            return parse_docker_config(base64.b64decode(raw))
        except (ClusterError, ValueError) as e:
            logger.warning("Ignoring registry credentials: %s", e)
            return None
