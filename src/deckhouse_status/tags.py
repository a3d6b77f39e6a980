"""Decide from an image tag whether a deployment is a PR preview build.

``pr15160`` is PR 15160 built as the default FE edition, ``pr15160-ce`` the
same PR built as CE. Anything else is not a preview deployment and gets the
``(0, "")`` sentinel.
"""

from __future__ import annotations

import re

DEFAULT_EDITION = "FE"

_PR_TAG_RE = re.compile(r"pr(\d+)(?:-(.+))?")


def parse_pr_tag(tag: str) -> tuple[int, str]:
    """Return ``(pr_number, edition)`` for a PR tag, ``(0, "")`` otherwise."""
    match = _PR_TAG_RE.fullmatch(tag or "")
    if not match:
        return 0, ""
    edition = match.group(2).upper() if match.group(2) else DEFAULT_EDITION
    return int(match.group(1)), edition


def check_name(edition: str) -> str:
    """Name of the CI check-run that builds ``edition``."""
    return f"Build {edition}"
