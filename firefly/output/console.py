"""Console output abstraction.

The orchestrator, tasks and CLI write human-readable lines through
:class:`ConsoleProtocol`; each line carries a :class:`Style` that doubles as
its severity. Production uses :class:`RichConsole`; tests use
:class:`MockConsole` and assert on the captured records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "OutputRecord",
]


class Style(Enum):
    """Line styles, ordered roughly by severity."""

    DEFAULT = auto()
    DEBUG = auto()  # only shown in verbose mode
    DIM = auto()
    INFO = auto()
    SUCCESS = auto()
    WARNING = auto()
    ERROR = auto()
    BOLD = auto()
    HEADER = auto()

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Sink for one styled line at a time."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        """Print a message with optional styling."""
        ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def debug(self, message: str) -> None:
        """Print a diagnostic line; dropped unless the console is verbose."""
        ...

    def header(self, message: str) -> None: ...

    def newline(self) -> None: ...


class RichConsole:
    """Console backed by Rich."""

    def __init__(self, *, verbose: bool = False, stderr: bool = False) -> None:
        from rich.console import Console

        self.verbose = verbose
        self._console = Console(stderr=stderr, highlight=False)
        self._style_map = {
            Style.DEFAULT: "",
            Style.DEBUG: "dim",
            Style.DIM: "dim",
            Style.INFO: "cyan",
            Style.SUCCESS: "green",
            Style.WARNING: "yellow",
            Style.ERROR: "red bold",
            Style.BOLD: "bold",
            Style.HEADER: "blue bold",
        }

    @property
    def rich(self):  # noqa: ANN201 - rich.console.Console, imported lazily
        """Underlying Rich console, for tables and rules."""
        return self._console

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        if style is Style.DEBUG and not self.verbose:
            return
        rich_style = self._style_map.get(style, "")
        if rich_style:
            self._console.print(message, style=rich_style, markup=False)
        else:
            self._console.print(message, markup=False)

    def _labelled(self, label: str, style: Style, message: str) -> None:
        markup = self._style_map[style]
        self._console.print(f"[{markup}]{label}[/{markup}] {_escape(message)}")

    def success(self, message: str) -> None:
        self._labelled("OK", Style.SUCCESS, message)

    def error(self, message: str) -> None:
        self._labelled("error:", Style.ERROR, message)

    def warning(self, message: str) -> None:
        self._labelled("warning:", Style.WARNING, message)

    def info(self, message: str) -> None:
        self._labelled("info:", Style.INFO, message)

    def debug(self, message: str) -> None:
        self.print(message, Style.DEBUG)

    def header(self, message: str) -> None:
        self._console.print(f"\n[blue bold]{_escape(message)}[/blue bold]")

    def newline(self) -> None:
        self._console.print()


def _escape(message: str) -> str:
    from rich.markup import escape

    return escape(message)


@dataclass
class OutputRecord:
    """A single captured line."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console that records output instead of printing it.

    Debug lines are always recorded so tests can assert on them.
    """

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self.print(f"OK {message}", Style.SUCCESS)

    def error(self, message: str) -> None:
        self.print(f"error: {message}", Style.ERROR)

    def warning(self, message: str) -> None:
        self.print(f"warning: {message}", Style.WARNING)

    def info(self, message: str) -> None:
        self.print(f"info: {message}", Style.INFO)

    def debug(self, message: str) -> None:
        self.print(message, Style.DEBUG)

    def header(self, message: str) -> None:
        self.print(message, Style.HEADER)

    def newline(self) -> None:
        self.print("")

    # Test helpers

    def clear(self) -> None:
        self.outputs.clear()

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return self.count(Style.ERROR) > 0

    def has_warning(self) -> bool:
        return self.count(Style.WARNING) > 0

    def find(self, substring: str) -> list[OutputRecord]:
        """All records whose message contains ``substring``."""
        return [o for o in self.outputs if substring in o.message]

    def count(self, style: Style) -> int:
        return sum(1 for o in self.outputs if o.style is style)
