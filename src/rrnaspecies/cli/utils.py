"""
Shared CLI utilities for rrnaspecies.

Standard output carries only report lines, so everything meant for a
human (logging, status messages, spinners) goes to stderr.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from rich.console import Console
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """Configure the root logger to write to stderr.

    DEBUG with --verbose, WARNING otherwise.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
    logging.getLogger("rrnaspecies").setLevel(
        logging.DEBUG if verbose else logging.WARNING
    )


@contextmanager
def spinner_progress(
    description: str,
    console: Console | None = None,
    quiet: bool = False,
) -> Generator[Progress, None, None]:
    """Spinner shown on the given console while a blocking step runs.

    Example:
        >>> with spinner_progress("Checking dependencies...", err_console, quiet):
        ...     pipeline.check_environment()
    """
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        disable=quiet,
        transient=True,
        # report lines written to stdout must not be captured by the live display
        redirect_stdout=False,
    ) as progress:
        progress.add_task(description=description, total=None)
        yield progress


class QuietConsole:
    """Status printer for stderr that goes silent unless --verbose is set.

    Anything other than print() is forwarded to the wrapped Console.
    """

    def __init__(self, console: Console, quiet: bool = False):
        self._console = console
        self._quiet = quiet

    @property
    def quiet(self) -> bool:
        return self._quiet

    def print(self, *args: Any, **kwargs: Any) -> None:
        if self._quiet:
            return
        self._console.print(*args, **kwargs)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._console, name)
