"""Remediation layer: roll the Deckhouse deployment after a good build."""

from deckhouse_status.remediation.actions import restart_deployment

__all__ = [
    "restart_deployment",
]
