"""Freshness verdicts for the deployed preview build."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Verdict(str, Enum):
    """Is the running pod the latest build of its PR?"""

    UP_TO_DATE = "up_to_date"
    OUTDATED = "outdated"
    BUILD_FAILED = "build_failed"
    WAITING_FOR_CI = "waiting_for_ci"
    BUILDING = "building"
    UNKNOWN = "unknown"


class Basis(str, Enum):
    """Which signal the verdict was derived from."""

    REGISTRY = "registry"
    CI = "ci"
    NONE = "none"


RESTART_POD = "restart pod to update"


@dataclass(frozen=True)
class Freshness:
    """A verdict with the facts behind it."""

    verdict: Verdict
    reason: str
    basis: Basis = Basis.NONE
    action: str | None = None
    check_name: str = ""
    pod_created: datetime | None = None
    build_completed: datetime | None = None
    raw_status: str = ""
