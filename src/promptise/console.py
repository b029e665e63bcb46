"""Styled CLI output built on ``typer.echo``."""

from __future__ import annotations

import typer

SEPARATOR = "═" * 51

BANNER = f"""
{SEPARATOR}

  promptise · preview builder
"""


class Console:
    """Line-oriented progress output.

    A disabled console swallows everything, which keeps library callers and
    tests quiet without branching at every call site.
    """

    def __init__(self, enabled: bool = True, color: bool | None = None):
        self.enabled = enabled
        self.color = color

    def _out(self, message: str, fg: str | None = None, bold: bool = False, err: bool = False) -> None:
        if not self.enabled:
            return
        typer.secho(message, fg=fg, bold=bold, err=err, color=self.color)

    def banner(self) -> None:
        self._out(BANNER, fg=typer.colors.CYAN, bold=True)

    def title(self, message: str) -> None:
        self._out(message, fg=typer.colors.CYAN, bold=True)

    def separator(self) -> None:
        self._out(SEPARATOR, fg=typer.colors.CYAN, bold=True)

    def step(self, message: str) -> None:
        self._out(f"→ {message}", fg=typer.colors.CYAN, bold=True)

    def detail(self, message: str) -> None:
        self._out(f"  {message}", fg=typer.colors.BRIGHT_BLACK)

    def blank(self) -> None:
        self._out("")

    def info(self, message: str) -> None:
        self._out(message)

    def success(self, message: str) -> None:
        self._out(f"✓ {message}", fg=typer.colors.GREEN)

    def warn(self, message: str) -> None:
        self._out(f"⚠ {message}", fg=typer.colors.YELLOW)

    def warn_detail(self, message: str) -> None:
        self._out(f"     ⚠ {message}", fg=typer.colors.YELLOW)

    def error(self, message: str) -> None:
        self._out(f"✖ {message}", fg=typer.colors.RED, err=True)


def plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"
