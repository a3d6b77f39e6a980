"""Registry layer: compare the deployed tag with the registry."""

from deckhouse_status.registry.client import RegistryClient, parse_challenge
from deckhouse_status.registry.models import RegistryVerdict

__all__ = [
    "RegistryClient",
    "RegistryVerdict",
    "parse_challenge",
]
