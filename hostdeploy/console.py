"""
Timestamped operator output: ``[STEP]``, ``[INFO]``, ``[WARN]``, ``[ERROR]``.
"""

from datetime import datetime
from typing import Iterable

import click

_LEVEL_COLORS = {
    "step": "cyan",
    "info": "green",
    "warn": "yellow",
    "error": "red",
}


class Console:
    """Writes markers to the terminal; silent when ``quiet`` (e.g. --json)."""

    def __init__(self, quiet: bool = False):
        self.quiet = quiet

    def _emit(self, level: str, message: str) -> None:
        if self.quiet:
            return
        tag = click.style(f"[{level.upper()}]", fg=_LEVEL_COLORS[level])
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        click.echo(f"{tag} {timestamp} - {message}", err=(level == "error"))

    def step(self, message: str) -> None:
        self._emit("step", message)

    def info(self, message: str) -> None:
        self._emit("info", message)

    def warn(self, message: str) -> None:
        self._emit("warn", message)

    def error(self, message: str) -> None:
        self._emit("error", message)

    def marker(self, kind: str, message: str) -> None:
        """Callback form used by the pipeline stages (``kind`` is a level name)."""
        self._emit(kind if kind in _LEVEL_COLORS else "info", message)

    def line(self, text: str = "") -> None:
        if not self.quiet:
            click.echo(text)

    def block(self, lines: Iterable[str]) -> None:
        for text in lines:
            self.line(text)
