"""Live progress line for watch-build, written to stderr.

Rich's Live refresh thread animates the line while the main thread polls;
the message it shows is the only state both threads touch.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from datetime import timedelta

from rich.console import Console, RenderableType
from rich.live import Live
from rich.spinner import Spinner as RichSpinner
from rich.text import Text

from deckhouse_status.errors import format_wait


class Spinner:
    """Animated status line with elapsed time and final success/failure lines."""

    def __init__(
        self,
        console: Console,
        no_emoji: bool = False,
        clock: Callable[[], float] = time.monotonic,
        refresh_per_second: float = 10,
    ) -> None:
        self.console = console
        self.no_emoji = no_emoji
        self._clock = clock
        self._started = clock()
        self._frames = RichSpinner("line" if no_emoji else "dots", style="cyan")
        self._lock = threading.Lock()
        self._message = ""
        self._done = False
        self._live: Live | None = None
        self._refresh_per_second = refresh_per_second

    def _elapsed(self) -> str:
        return format_wait(timedelta(seconds=self._clock() - self._started))

    def __rich__(self) -> RenderableType:
        with self._lock:
            if self._done or not self._message:
                return Text("")
            message = self._message
        line = Text()
        line.append_text(self._frames.render(self._clock()))
        line.append(f" {message} ")
        line.append(f"[{self._elapsed()}]", style="dim")
        return line

    def tick(self, message: str) -> None:
        """Replace the message; the animation keeps running on its own."""
        with self._lock:
            if self._done:
                return
            self._message = message
            if self._live is None:
                self._live = Live(
                    self,
                    console=self.console,
                    refresh_per_second=self._refresh_per_second,
                    transient=True,
                    redirect_stdout=False,
                    redirect_stderr=False,
                )
                self._live.start()

    @property
    def message(self) -> str:
        with self._lock:
            return self._message

    def clear_line(self) -> None:
        """Stop the animation for good and erase the line."""
        with self._lock:
            self._done = True
            live, self._live = self._live, None
        if live is not None:
            live.stop()

    def success(self, message: str) -> None:
        self._finish(("✅", "[OK]"), "green", message)

    def failure(self, message: str) -> None:
        self._finish(("❌", "[X]"), "red", message)

    def _finish(self, icon: tuple[str, str], style: str, message: str) -> None:
        self.clear_line()
        line = Text(f"{icon[1] if self.no_emoji else icon[0]} {message}", style=style)
        line.append(f" [{self._elapsed()}]", style="dim")
        self.console.print(line, highlight=False)
        self.console.bell()
