"""
Common machinery for the command-line collaborators (barrnap, samtools, BLAST+).

Each collaborator is an ExternalTool subclass that names its executable and
knows how to build its argument list. The base class finds the executable,
runs it to completion (optionally feeding text on stdin) and converts the
ways a subprocess can fail into RrnaSpeciesError subclasses.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

from rrnaspecies.core.exceptions import RrnaSpeciesError

logger = logging.getLogger(__name__)

Resolver = Callable[[str], "str | None"]

_MAX_COMMAND_CHARS = 200
_MAX_STDERR_CHARS = 500


def _shorten(text: str, limit: int, marker: str = "...") -> str:
    return text if len(text) <= limit else text[:limit] + marker


class ToolNotFoundError(RrnaSpeciesError):
    """A collaborator executable could not be located."""

    def __init__(self, tool_name: str, install_hint: str = ""):
        suggestion = f"Put {tool_name} on PATH before running rrnaspecies."
        if install_hint:
            suggestion = f"{suggestion} For example:\n  {install_hint}"
        super().__init__(
            message=f"'{tool_name}' is not installed or not on PATH",
            suggestion=suggestion,
        )
        self.tool_name = tool_name


class MissingDependenciesError(RrnaSpeciesError):
    """Several collaborators are missing; all of them are named at once."""

    def __init__(self, missing: Sequence[ToolNotFoundError]):
        names = [err.tool_name for err in missing]
        hints = sorted({err.suggestion or "" for err in missing} - {""})
        super().__init__(
            message=f"Missing required tool(s): {', '.join(names)}",
            suggestion="\n\n".join(hints) if hints else None,
        )
        self.tool_names = names


class ToolExecutionError(RrnaSpeciesError):
    """A collaborator exited with a non-zero status."""

    def __init__(
        self,
        tool_name: str,
        command: list[str],
        return_code: int,
        stderr: str,
    ):
        shown_stderr = _shorten(stderr.strip(), _MAX_STDERR_CHARS, "\n...[truncated]")
        super().__init__(
            message=(
                f"{tool_name} failed with exit code {return_code}\n\n"
                f"Command: {_shorten(' '.join(command), _MAX_COMMAND_CHARS)}\n\n"
                f"{tool_name} reported:\n{shown_stderr or '(nothing on stderr)'}"
            ),
            suggestion=(
                "Check that the input contigs and the reference database are "
                "intact, then rerun with --verbose to see every tool command."
            ),
        )
        self.tool_name = tool_name
        self.command = command
        self.return_code = return_code
        self.stderr = stderr


class ToolTimeoutError(RrnaSpeciesError):
    """A collaborator ran longer than the configured tool_timeout."""

    def __init__(self, tool_name: str, timeout_seconds: float, command: list[str]):
        super().__init__(
            message=(
                f"{tool_name} timed out after {timeout_seconds:.0f} seconds\n\n"
                f"Command: {_shorten(' '.join(command), _MAX_COMMAND_CHARS)}"
            ),
            suggestion="Raise tool_timeout in the YAML config, or remove it to wait indefinitely.",
        )
        self.tool_name = tool_name
        self.timeout_seconds = timeout_seconds
        self.command = command


@dataclass(frozen=True)
class ToolResult:
    """Captured outcome of one collaborator invocation."""

    command: tuple[str, ...]
    return_code: int
    stdout: str
    stderr: str
    elapsed_seconds: float

    @property
    def success(self) -> bool:
        return self.return_code == 0

    @property
    def command_string(self) -> str:
        return " ".join(self.command)


class ExternalTool(ABC):
    """
    One command-line collaborator.

    Subclasses set TOOL_NAME (and optionally TOOL_ALIASES, INSTALL_HINT) and
    implement build_command(), which must return the full argument list with
    the executable first.

    Executable lookup goes through a resolver shared by every subclass
    (shutil.which by default). Results are cached per tool name; tests swap
    the resolver with set_executable_resolver().
    """

    TOOL_NAME: ClassVar[str]
    TOOL_ALIASES: ClassVar[tuple[str, ...]] = ()
    INSTALL_HINT: ClassVar[str] = ""

    _executable_cache: ClassVar[dict[str, Path | None]] = {}
    _executable_resolver: ClassVar[Resolver] = staticmethod(shutil.which)

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout

    @classmethod
    def _lookup(cls) -> Path | None:
        for candidate in (cls.TOOL_NAME, *cls.TOOL_ALIASES):
            found = ExternalTool._executable_resolver(candidate)
            if found:
                return Path(found)
        return None

    @classmethod
    def get_executable(cls) -> Path:
        """
        Path of the executable, found under TOOL_NAME or one of TOOL_ALIASES.

        Raises:
            ToolNotFoundError: If no candidate name resolves.
        """
        cache = ExternalTool._executable_cache
        if cls.TOOL_NAME not in cache:
            cache[cls.TOOL_NAME] = cls._lookup()
            logger.debug("Resolved %s -> %s", cls.TOOL_NAME, cache[cls.TOOL_NAME])

        executable = cache[cls.TOOL_NAME]
        if executable is None:
            raise ToolNotFoundError(cls.TOOL_NAME, cls.INSTALL_HINT)
        return executable

    @classmethod
    def check_available(cls) -> bool:
        try:
            cls.get_executable()
        except ToolNotFoundError:
            return False
        return True

    @classmethod
    def clear_cache(cls) -> None:
        ExternalTool._executable_cache.clear()

    @classmethod
    def set_executable_resolver(cls, resolver: Resolver) -> None:
        """Replace executable lookup for every tool and forget cached paths."""
        ExternalTool._executable_resolver = staticmethod(resolver)
        cls.clear_cache()

    @classmethod
    def reset_executable_resolver(cls) -> None:
        """Go back to shutil.which."""
        cls.set_executable_resolver(shutil.which)

    @abstractmethod
    def build_command(self, **kwargs: object) -> list[str]:
        ...

    def run(self, *, input_text: str | None = None, **kwargs: object) -> ToolResult:
        """
        Run the tool to completion and capture its output.

        Args:
            input_text: Written to the tool's stdin when given.
            **kwargs: Forwarded to build_command().

        A non-zero exit status is returned, not raised; see run_or_raise().

        Raises:
            ToolNotFoundError: If the executable is missing.
            ToolTimeoutError: If the run exceeds self.timeout.
        """
        command = self.build_command(**kwargs)

        started = time.perf_counter()
        try:
            completed = subprocess.run(
                command,
                input=input_text,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ToolTimeoutError(self.TOOL_NAME, self.timeout or 0, command) from e
        except FileNotFoundError as e:
            raise ToolNotFoundError(self.TOOL_NAME, self.INSTALL_HINT) from e

        result = ToolResult(
            command=tuple(command),
            return_code=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
            elapsed_seconds=time.perf_counter() - started,
        )
        logger.debug(
            "$ %s (exit %d, %.2fs)",
            result.command_string,
            result.return_code,
            result.elapsed_seconds,
        )
        return result

    def run_or_raise(self, *, input_text: str | None = None, **kwargs: object) -> ToolResult:
        """Like run(), but a non-zero exit status raises ToolExecutionError."""
        result = self.run(input_text=input_text, **kwargs)
        if not result.success:
            raise ToolExecutionError(
                self.TOOL_NAME,
                list(result.command),
                result.return_code,
                result.stderr,
            )
        return result
