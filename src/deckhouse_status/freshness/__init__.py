"""Freshness layer: decide whether the running build is current."""

from deckhouse_status.freshness.evaluator import evaluate
from deckhouse_status.freshness.models import RESTART_POD, Basis, Freshness, Verdict

__all__ = [
    "Basis",
    "Freshness",
    "RESTART_POD",
    "Verdict",
    "evaluate",
]
