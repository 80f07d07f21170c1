"""Console output for apigen, split between data and diagnostics.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- the rendered model and inspection tables, nothing else, so
  ``apigen generate api/ > api.yaml`` always yields a clean file.
* **stderr** -- progress, warnings, and errors from the generator stages.
* **TTY detection** -- Rich formatting when stdout is an interactive
  terminal, plain text when piped.
* **Colour control** -- ``NO_COLOR``, ``TERM=dumb``, and ``--no-color``.

:class:`OutputManager` is created once in :func:`~apigen.app.main_callback`
and installed with :func:`set_output`.  The generator stages report through
the module-level :func:`debug`, :func:`warning`, and :func:`progress`, which
write through the installed manager.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How data is written to stdout.

    ``AUTO`` becomes ``RICH`` on an interactive terminal with colour, and
    ``PLAIN`` otherwise.  ``JSON`` only changes tables; the model itself is
    always YAML.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Routes model dumps and tables to stdout, diagnostics to stderr.

    Args:
        format: Desired output format. ``AUTO`` resolves based on TTY
            detection.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress info, success, and progress messages.
        verbose: Show debug messages (per-version counts, registry reuse).
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
            format = OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_yaml(self, text: str) -> None:
        """Print a rendered model, highlighted in Rich mode.

        Args:
            text: YAML text from :func:`~apigen.render.dump_model`.
        """
        if self._format == OutputFormat.RICH:
            self._stdout.print(Syntax(text, "yaml", theme="monokai", word_wrap=True))
        else:
            self.print_data(text.rstrip("\n"))

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print an inspection table.

        Rich mode draws a :class:`~rich.table.Table`, JSON mode prints an
        array of objects keyed by header, and plain mode prints
        tab-separated lines so the output can be fed to ``cut`` or ``awk``.

        Args:
            headers: Column headers, e.g. ``["Method", "Path", "Kind", "Target"]``.
            rows: One list of cell strings per row.
            title: Table title, shown in Rich mode only.
        """
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))
            return

        if self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
            return

        table = Table(title=title, show_header=True, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, style="green")

    def warning(self, message: str) -> None:
        """Never suppressed; used for document parts the generator skips."""
        self._diagnostic(message, label="Warning:", style="yellow")

    def error(self, message: str) -> None:
        self._diagnostic(message, label="Error:", style="bold red")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._diagnostic(message, label="[debug]", style="dim")

    def progress(self, message: str) -> None:
        """Shown only when stdout is a terminal, so piped runs stay silent."""
        if not self._quiet and _is_tty():
            self._diagnostic(message, style="dim")

    def _diagnostic(self, message: str, label: str = "", style: str = "") -> None:
        if self._no_color:
            text = f"{label} {message}" if label else message
            print(text, file=sys.stderr, flush=True)
            return
        text = f"{escape(label)} {escape(message)}" if label else escape(message)
        self._stderr.print(f"[{style}]{text}[/{style}]" if style else text)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (to anything) or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """The installed :class:`OutputManager`, created with defaults on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager (used between tests)."""
    global _output
    _output = None


def info(message: str) -> None:
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def debug(message: str) -> None:
    get_output().debug(message)


def progress(message: str) -> None:
    get_output().progress(message)
