"""Watch layer: follow a CI build to completion."""

from deckhouse_status.watch.loop import (
    EXIT_BUILD_FAILED,
    EXIT_ERROR,
    EXIT_SUCCESS,
    BuildWatcher,
    WatchTarget,
    resolve_watch_target,
)
from deckhouse_status.watch.spinner import Spinner

__all__ = [
    "EXIT_BUILD_FAILED",
    "EXIT_ERROR",
    "EXIT_SUCCESS",
    "BuildWatcher",
    "Spinner",
    "WatchTarget",
    "resolve_watch_target",
]
