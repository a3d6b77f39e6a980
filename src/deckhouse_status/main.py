"""CLI entrypoint for deckhouse-status."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from functools import partial
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from deckhouse_status import __version__
from deckhouse_status.config import Settings, get_settings
from deckhouse_status.deadline import Deadline
from deckhouse_status.errors import DeckhouseStatusError
from deckhouse_status.github import CheckRunPollRequest, GitHubClient
from deckhouse_status.observation import ClusterCollector, build_api_clients
from deckhouse_status.registry import RegistryClient
from deckhouse_status.remediation import restart_deployment
from deckhouse_status.status import StatusPrinter, collect_status
from deckhouse_status.status.formatting import parse_tz
from deckhouse_status.watch import EXIT_ERROR, BuildWatcher, Spinner, resolve_watch_target

logger = logging.getLogger("deckhouse_status")

# Command flags exist on the root parser and on a subparser. They default to
# SUPPRESS everywhere so a subparser never overwrites a value given before the
# command name; the real defaults are filled in after parsing.
COMMAND_DEFAULTS = {
    "short": False,
    "no_github": False,
    "no_registry": False,
    "timeout": None,
    "interval": None,
    "restart": False,
}


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="deckhouse-status",
        description=(
            "Show whether the Deckhouse PR build running on this dev cluster is up to date. "
            "Data sources: Kubernetes API, GitHub API, Docker Registry v2."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--tz", default=None, help="Timezone: IANA name or numeric offset (+3, -5)")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--no-emoji", action="store_true", help="Disable emojis")
    parser.add_argument(
        "--kubeconfig",
        type=Path,
        default=None,
        help="Path to kubeconfig (default: KUBECONFIG env or ~/.kube/config)",
    )
    parser.add_argument("--context", default=None, help="Kubernetes context to use")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command")

    status = sub.add_parser("status", help="Show deployment status (default)")
    _add_status_args(status)
    # Bare `deckhouse-status --short` works too.
    _add_status_args(parser)

    watch = sub.add_parser(
        "watch-build",
        help="Watch the CI build until completion; exit 0 on success, 1 on failure, 2 on error/timeout",
    )
    watch.add_argument(
        "--timeout", type=float, default=argparse.SUPPRESS, help="Timeout in seconds (default 3600)"
    )
    watch.add_argument(
        "--interval", type=float, default=argparse.SUPPRESS, help="Poll interval in seconds (default 10)"
    )
    watch.add_argument(
        "--restart",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Restart the deckhouse deployment on success",
    )

    args = parser.parse_args(argv)
    if args.command is None:
        args.command = "status"
    for key, value in COMMAND_DEFAULTS.items():
        vars(args).setdefault(key, value)
    return args


def _add_status_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--short", "-s", action="store_true", default=argparse.SUPPRESS, help="Compact output (2 lines)"
    )
    parser.add_argument("--no-github", action="store_true", default=argparse.SUPPRESS, help="Skip GitHub API calls")
    parser.add_argument(
        "--no-registry", action="store_true", default=argparse.SUPPRESS, help="Skip registry checks"
    )
    parser.add_argument(
        "--timeout", type=float, default=argparse.SUPPRESS, help="Timeout in seconds (default 15)"
    )


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    updates = {}
    if args.kubeconfig:
        updates["kubeconfig"] = args.kubeconfig
    if args.context:
        updates["context"] = args.context
    if args.tz:
        updates["tz"] = args.tz
    if args.no_color:
        updates["no_color"] = True
    if args.no_emoji:
        updates["no_emoji"] = True
    if args.timeout is not None:
        updates["watch_timeout" if args.command == "watch-build" else "timeout"] = args.timeout
    if getattr(args, "interval", None) is not None:
        updates["poll_interval"] = args.interval
    return settings.model_copy(update=updates)


def _github_client(settings: Settings) -> GitHubClient:
    return GitHubClient(token=settings.github_token, api_url=settings.github_api_url)


def run_status(args: argparse.Namespace, settings: Settings) -> int:
    core, _ = build_api_clients(
        str(settings.kubeconfig) if settings.kubeconfig else None, settings.context
    )
    collector = ClusterCollector(
        core,
        namespace=settings.namespace,
        pod_selector=settings.pod_selector,
        registry_secret=settings.registry_secret,
    )
    result = collect_status(
        collector,
        github=None if args.no_github else _github_client(settings),
        registry=None if args.no_registry else RegistryClient(),
        settings=settings,
        short=args.short,
    )
    printer = StatusPrinter(
        Console(no_color=settings.no_color, highlight=False),
        tz=parse_tz(settings.tz),
        no_emoji=settings.no_emoji,
        show_github=not args.no_github,
        show_registry=not args.no_registry,
    )
    printer.render(result, short=args.short)
    return 0


def install_signal_handlers(deadline: Deadline) -> None:
    """Make SIGINT and SIGTERM cancel ``deadline``."""

    def _handle_signal(signum: int, frame: object) -> None:
        logger.info("Received signal %d, stopping", signum)
        deadline.cancel()

    signal.signal(signal.SIGTERM, _handle_signal)
    signal.signal(signal.SIGINT, _handle_signal)


def run_watch(args: argparse.Namespace, settings: Settings) -> int:
    deadline = Deadline(settings.watch_timeout)
    install_signal_handlers(deadline)

    stderr = Console(stderr=True, no_color=settings.no_color, highlight=False)
    core, apps = build_api_clients(
        str(settings.kubeconfig) if settings.kubeconfig else None, settings.context
    )
    collector = ClusterCollector(
        core,
        namespace=settings.namespace,
        pod_selector=settings.pod_selector,
        registry_secret=settings.registry_secret,
    )
    github = _github_client(settings)
    target = resolve_watch_target(collector, github, settings, deadline)

    stderr.print(f"[bold cyan]Watching {target.check_name} for PR #{target.pr_number}[/bold cyan]")
    stderr.print(f"[dim]Commit: {target.sha[:12]}[/dim]\n")

    restart = None
    if args.restart:
        restart = partial(
            restart_deployment, apps, settings.namespace, settings.deployment, timeout=settings.restart_timeout
        )

    watcher = BuildWatcher(
        github,
        CheckRunPollRequest(
            owner=settings.github_owner,
            repo=settings.github_repo,
            sha=target.sha,
            check_name=target.check_name,
        ),
        Spinner(stderr, no_emoji=settings.no_emoji),
        deadline,
        interval=settings.poll_interval,
        restart=restart,
    )
    return watcher.run()


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for deckhouse-status CLI."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
    if not args.verbose:
        logger.setLevel(logging.WARNING)

    # Status failures that happen before anything is rendered exit 1,
    # watch-build failures exit 2.
    failure_code = EXIT_ERROR if args.command == "watch-build" else 1
    try:
        settings = _apply_overrides(get_settings(), args)
        if args.command == "watch-build":
            return run_watch(args, settings)
        return run_status(args, settings)
    except DeckhouseStatusError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return failure_code
    except Exception as e:
        logging.exception("deckhouse-status failed")
        print(f"Error: {e}", file=sys.stderr)
        return failure_code


if __name__ == "__main__":
    sys.exit(main())
