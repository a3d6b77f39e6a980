"""Status: one-shot freshness report for the deployed preview build."""

from deckhouse_status.status.display import StatusPrinter
from deckhouse_status.status.orchestrator import StatusResult, collect_status

__all__ = [
    "StatusPrinter",
    "StatusResult",
    "collect_status",
]
