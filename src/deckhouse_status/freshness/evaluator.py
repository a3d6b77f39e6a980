"""Correlate registry, CI and pod state into one freshness verdict.

The registry digest is ground truth when it is available: it describes the
artifact that actually runs. CI status is a weaker, predictive signal used
only when the registry cannot answer.
"""

from __future__ import annotations

from deckhouse_status.freshness.models import RESTART_POD, Basis, Freshness, Verdict
from deckhouse_status.github.models import PullRequestInfo
from deckhouse_status.observation.models import ClusterSnapshot
from deckhouse_status.registry.models import RegistryVerdict

IN_FLIGHT_STATUSES = frozenset({"queued", "in_progress"})


def evaluate(
    snapshot: ClusterSnapshot,
    build: PullRequestInfo | None,
    registry: RegistryVerdict | None,
) -> Freshness:
    """Return exactly one verdict for any combination of inputs."""
    if registry is not None and registry.tag_exists and registry.digest:
        if registry.digest_match:
            return Freshness(Verdict.UP_TO_DATE, "digest matches registry", basis=Basis.REGISTRY)
        return Freshness(
            Verdict.OUTDATED,
            "registry has newer image for tag",
            basis=Basis.REGISTRY,
            action=RESTART_POD,
        )

    if build is not None and build.build_status:
        return _evaluate_build(snapshot, build)

    if build is not None:
        return Freshness(
            Verdict.WAITING_FOR_CI,
            f"{build.build_check_name} not started yet",
            basis=Basis.CI,
            check_name=build.build_check_name,
        )

    if registry is not None and registry.error is not None:
        return Freshness(Verdict.UNKNOWN, f"registry: {registry.error}", basis=Basis.REGISTRY)

    return Freshness(Verdict.UNKNOWN, "no registry tag, no build info")


def _evaluate_build(snapshot: ClusterSnapshot, build: PullRequestInfo) -> Freshness:
    name = build.build_check_name
    if build.build_status in IN_FLIGHT_STATUSES:
        return Freshness(Verdict.BUILDING, f"{name} is running...", basis=Basis.CI, check_name=name)

    if build.build_conclusion == "success" and build.build_completed_at is not None:
        pod_created = snapshot.pod_created
        completed = build.build_completed_at
        if pod_created > completed:
            return Freshness(
                Verdict.UP_TO_DATE,
                f"pod created after {name}",
                basis=Basis.CI,
                check_name=name,
                pod_created=pod_created,
                build_completed=completed,
            )
        return Freshness(
            Verdict.OUTDATED,
            f"{name} completed after pod",
            basis=Basis.CI,
            action=RESTART_POD,
            check_name=name,
            pod_created=pod_created,
            build_completed=completed,
        )

    if build.build_conclusion == "failure":
        return Freshness(Verdict.BUILD_FAILED, f"{name} failed on last commit", basis=Basis.CI, check_name=name)

    return Freshness(
        Verdict.UNKNOWN,
        f"{name} status: {build.build_status}",
        basis=Basis.CI,
        check_name=name,
        raw_status=build.build_status,
    )
