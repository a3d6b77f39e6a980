"""Render a StatusResult with Rich."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone, tzinfo

from rich.console import Console
from rich.markup import escape

from deckhouse_status.freshness import Basis, Freshness, Verdict
from deckhouse_status.status import labels
from deckhouse_status.status.formatting import human_duration, truncate, utc_offset_label
from deckhouse_status.status.orchestrator import StatusResult


def _now() -> datetime:
    return datetime.now(timezone.utc)


class StatusPrinter:
    """Full (sectioned) or short (two-line) status report."""

    def __init__(
        self,
        console: Console,
        tz: tzinfo,
        no_emoji: bool = False,
        show_github: bool = True,
        show_registry: bool = True,
        now_fn: Callable[[], datetime] = _now,
    ) -> None:
        self.console = console
        self.tz = tz
        self.no_emoji = no_emoji
        self.show_github = show_github
        self.show_registry = show_registry
        self._now = now_fn

    def render(self, result: StatusResult, short: bool = False) -> None:
        if short:
            self._render_short(result)
        else:
            self._render_full(result)

    def _icon(self, pair: tuple[str, str]) -> str:
        return pair[1] if self.no_emoji else pair[0]

    def _print(self, text: str = "") -> None:
        self.console.print(text, highlight=False)

    def _section(self, icon: tuple[str, str], title: str) -> None:
        self._print(f"[cyan]━━━ {escape(self._icon(icon))} {title} ━━━[/cyan]")

    def _row(self, icon: tuple[str, str], label: str, value: str) -> None:
        padding = max(1, labels.LABEL_WIDTH - len(label) - 1)
        self._print(f"{escape(self._icon(icon))} {label}:{' ' * padding} {value}")

    def _fmt(self, moment: datetime, pattern: str) -> str:
        return moment.astimezone(self.tz).strftime(pattern)

    def _render_full(self, result: StatusResult) -> None:
        self._header()
        self._cluster(result)
        if result.pr_number > 0 and self.show_github:
            self._github(result)
        self._status(result)

    def _header(self) -> None:
        now = self._now().astimezone(self.tz)
        self._print()
        self._print(f"[bold white]{escape(self._icon(labels.ICON_TITLE))} {labels.REPORT_TITLE}[/bold white]")
        self._print(f"   [dim]{now.strftime('%a, %d %b %Y %H:%M:%S')}[/dim] ({utc_offset_label(now)})")
        self._print()

    def _cluster(self, result: StatusResult) -> None:
        snap = result.snapshot
        age = human_duration(self._now() - snap.pod_created)
        self._section(labels.SECTION_CLUSTER, "CLUSTER")
        self._row(labels.ICON_IMAGE, "Image", f"[bold]{escape(snap.tag)}[/bold]")
        self._row(labels.ICON_UPDATED, "Updated", self._fmt(snap.pod_created, "%Y-%m-%d %H:%M"))
        self._row(labels.ICON_AGE, "Pod age", f"{age} [dim]({escape(snap.pod_phase)})[/dim]")
        self._row(labels.ICON_POD, "Pod", f"[dim]{escape(snap.pod_name)}[/dim]")
        self._print()

    def _github(self, result: StatusResult) -> None:
        self._section(labels.SECTION_GITHUB, "GITHUB")
        pr = result.pr
        if result.pr_error is not None or pr is None:
            message = str(result.pr_error) if result.pr_error is not None else "no data"
            self._row(labels.ICON_ERROR, "Error", f"[red]{escape(message)}[/red]")
            self._print()
            return

        self._row(labels.ICON_PR, "PR", f"[bold]#{pr.number}[/bold] — {escape(pr.title)}")
        self._row(labels.ICON_URL, "URL", f"[dim]{escape(pr.url)}[/dim]")
        if pr.commit_author:
            date = ""
            if pr.commit_date is not None:
                date = f" [dim]({self._fmt(pr.commit_date, '%Y-%m-%d')})[/dim]"
            self._row(labels.ICON_AUTHOR, "Last commit", escape(pr.commit_author) + date)
        if pr.commit_message:
            self._row(labels.ICON_MESSAGE, "Message", f"[dim]{escape(truncate(pr.commit_message))}[/dim]")
        self._print()

    def _reason(self, freshness: Freshness) -> str:
        if freshness.basis is Basis.CI and freshness.pod_created and freshness.build_completed:
            pod = self._fmt(freshness.pod_created, "%H:%M")
            build = self._fmt(freshness.build_completed, "%H:%M")
            if freshness.verdict is Verdict.UP_TO_DATE:
                return f"{freshness.reason}: {pod} > {build}"
            return f"{freshness.reason}: {build} > {pod}"
        return freshness.reason

    def _status(self, result: StatusResult) -> None:
        freshness = result.freshness
        icon, style, title, _ = labels.VERDICT_LABELS[freshness.verdict]
        styled = f"[{style}]{title}[/{style}]" if style else title
        self._section(labels.SECTION_STATUS, "STATUS")
        self._row(icon, "Status", f"{styled}  [dim]({escape(self._reason(freshness))})[/dim]")
        if freshness.action:
            self._row(labels.ICON_ACTION, "Action", f"[yellow]{freshness.action}[/yellow]")
        if result.registry is not None and self.show_registry:
            self._row(labels.ICON_REGISTRY, "Registry", f"[dim]{escape(result.registry.summary)}[/dim]")
        self._print()

    def _render_short(self, result: StatusResult) -> None:
        snap = result.snapshot
        freshness = result.freshness
        icon, style, _, short_title = labels.VERDICT_LABELS[freshness.verdict]
        status = f"{escape(self._icon(icon))} {short_title}"
        if style:
            status = f"[{style}]{status}[/{style}]"
        if freshness.verdict is Verdict.OUTDATED and freshness.basis is Basis.CI:
            status += f" [dim](new {escape(freshness.check_name)})[/dim]"

        age = human_duration(self._now() - snap.pod_created)
        self._print(
            f"{escape(self._icon(labels.ICON_SHORT))} [bold]{escape(snap.tag)}[/bold]"
            f" [dim]·[/dim] {age} [dim]·[/dim] {status}"
        )
        if result.pr is not None:
            self._print(f"   {escape(self._icon(labels.ICON_PR_SHORT))} #{result.pr.number} — {escape(result.pr.title)}")
