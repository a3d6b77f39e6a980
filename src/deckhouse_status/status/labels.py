"""Titles, icons and styles used in the status report."""

from __future__ import annotations

from deckhouse_status.freshness.models import Verdict

REPORT_TITLE = "Deckhouse Status"

# (emoji, ascii fallback)
ICON_TITLE = ("🔍", ">>")
ICON_SHORT = ("🔍", "*")
SECTION_CLUSTER = ("☸️ ", "[K8S]")
SECTION_GITHUB = ("🐙", "[GH]")
SECTION_STATUS = ("📊", "[ST]")

ICON_IMAGE = ("🏷️", "*")
ICON_UPDATED = ("🔄", ">")
ICON_AGE = ("⏱️", "T")
ICON_POD = ("📦", "P")
ICON_ERROR = ("⚠️", "!")
ICON_PR = ("📝", "#")
ICON_PR_SHORT = ("📝", "PR")
ICON_URL = ("🔗", "~")
ICON_AUTHOR = ("👤", "@")
ICON_MESSAGE = ("💬", ">")
ICON_ACTION = ("🔄", "->")
ICON_REGISTRY = ("ℹ️", "i")

# verdict -> (icon, style, title, short title)
VERDICT_LABELS: dict[Verdict, tuple[tuple[str, str], str, str, str]] = {
    Verdict.UP_TO_DATE: (("✅", "[OK]"), "green", "Up to date", "Up to date"),
    Verdict.OUTDATED: (("⚠️", "[!]"), "yellow", "Outdated", "Outdated"),
    Verdict.BUILD_FAILED: (("❌", "[X]"), "red", "Build failed", "Build failed"),
    Verdict.WAITING_FOR_CI: (("⏳", "[..]"), "cyan", "Waiting for CI", "Waiting for CI..."),
    Verdict.BUILDING: (("🔄", "[~]"), "cyan", "Building", "Building..."),
    Verdict.UNKNOWN: (("❓", "[?]"), "", "Cannot determine", "Unknown"),
}

LABEL_WIDTH = 19
