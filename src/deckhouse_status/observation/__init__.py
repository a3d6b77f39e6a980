"""Observation layer: read the Deckhouse pod state from Kubernetes."""

from deckhouse_status.observation.collector import ClusterCollector, build_api_clients
from deckhouse_status.observation.models import ClusterSnapshot, ImageReference, RegistryCreds

__all__ = [
    "ClusterCollector",
    "ClusterSnapshot",
    "ImageReference",
    "RegistryCreds",
    "build_api_clients",
]
