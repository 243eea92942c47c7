"""CLI output with strict stdout/stderr discipline.

* **stdout** carries records only (leads, campaigns, cache stats) so the
  CLI can be piped into ``jq`` or a spreadsheet.
* **stderr** carries diagnostics: status lines, warnings, errors, hints.
* ``AUTO`` format renders with Rich on an interactive terminal and falls
  back to plain text when piped. ``NO_COLOR`` and ``TERM=dumb`` disable
  colour.

Library code never prints; it logs through :mod:`logging`. The CLI installs
one :class:`OutputManager` in :func:`~vopex.app.main_callback` and the
module-level helpers (:func:`info`, :func:`error`, ...) delegate to it.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Iterable, Optional

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text


class OutputFormat(str, Enum):
    """Supported output formats. ``AUTO`` resolves to ``RICH`` or ``PLAIN``."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Routes data to stdout and diagnostics to stderr in the active format.

    Args:
        format: Desired output format. ``AUTO`` resolves on TTY detection.
        no_color: Disable colour on both streams.
        quiet: Suppress info, success and hint lines. Warnings and errors
            are always shown.
        verbose: Show debug lines.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            rich_ok = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # ------------------------------------------------------------------ #
    # Data (stdout)
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Render one API response body.

        JSON mode prints it verbatim. Plain mode prints ``key<TAB>value``
        lines for a dict and one line per item for a list. Rich mode
        highlights JSON.
        """
        if self._format == OutputFormat.JSON:
            self._write(_dump(data))
        elif self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self._write(line)
        elif isinstance(data, (dict, list)):
            self._stdout.print(Syntax(_dump(data), "json", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(Text(str(data)))

    def print_records(
        self,
        records: Iterable[dict[str, Any]],
        columns: list[str],
        title: Optional[str] = None,
    ) -> None:
        """Render CRM records as a table restricted to *columns*.

        JSON mode keeps the original value types; the other modes render
        each cell through :func:`_cell`.
        """
        rows = [{column: record.get(column) for column in columns} for record in records]
        if self._format == OutputFormat.JSON:
            self._write(_dump(rows))
            return
        if self._format == OutputFormat.PLAIN:
            self._write("\t".join(columns))
            for row in rows:
                self._write("\t".join(_cell(row[c]) for c in columns))
            return

        table = Table(title=title, header_style="bold cyan")
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*(_cell(row[c]) for c in columns))
        self._stdout.print(table)

    def _write(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        if not self._quiet:
            self._emit(message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._emit(message, style="green")

    def suggest(self, message: str) -> None:
        if not self._quiet:
            self._emit(f"→ {message}", style="dim")

    def warning(self, message: str) -> None:
        self._emit(message, label="Warning", style="yellow")

    def error(self, message: str) -> None:
        self._emit(message, label="Error", style="bold red")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._emit(message, label="debug", style="dim")

    def _emit(self, message: str, label: Optional[str] = None, style: str = "") -> None:
        if self._no_color:
            text = f"{label}: {message}" if label else message
            print(text, file=sys.stderr, flush=True)
            return
        # Text, not markup: API messages may contain square brackets.
        line = Text()
        if label:
            line.append(f"{label}: ", style=style)
            line.append(message)
        else:
            line.append(message, style=style)
        self._stderr.print(line)


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)
    return str(value)


def _plain_lines(data: Any) -> list[str]:
    if isinstance(data, dict):
        return [f"{key}\t{_cell(value)}" for key, value in data.items()]
    if isinstance(data, list):
        return [
            "\t".join(_cell(v) for v in item.values()) if isinstance(item, dict) else _cell(item)
            for item in data
        ]
    return [_cell(data)]


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global output instance (set during CLI startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the global manager; used by tests between CliRunner invocations."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_records(
    records: Iterable[dict[str, Any]], columns: list[str], title: Optional[str] = None
) -> None:
    get_output().print_records(records, columns, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
