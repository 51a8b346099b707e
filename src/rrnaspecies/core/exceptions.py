"""
Custom exceptions with actionable guidance.

Provides specific error types for the failure scenarios of a species
identification run, each with a suggestion for resolution.
"""

from __future__ import annotations

from pathlib import Path


class RrnaSpeciesError(Exception):
    """Base exception for rrnaspecies errors."""

    def __init__(self, message: str, suggestion: str | None = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.full_message)

    @property
    def full_message(self) -> str:
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class ConfigurationError(RrnaSpeciesError):
    """Raised when configuration is invalid."""


class InvalidThresholdError(ConfigurationError):
    """Raised when a threshold parameter is out of valid range."""

    def __init__(
        self,
        param_name: str,
        value: object,
        min_val: float,
        max_val: float | None = None,
    ):
        if max_val is None:
            message = f"{param_name} = {value} must be at least {min_val}"
            suggestion = f"Set {param_name} to a value of {min_val} or more."
        else:
            message = f"{param_name} = {value} is out of valid range [{min_val}, {max_val}]"
            suggestion = f"Set {param_name} to a value between {min_val} and {max_val}."
        super().__init__(message=message, suggestion=suggestion)
        self.param_name = param_name
        self.value = value


class ConflictingOptionsError(ConfigurationError):
    """Raised when mutually exclusive options are combined."""

    def __init__(self, option: str, conflicts: list[str]):
        super().__init__(
            message=f"{option} cannot be combined with {', '.join(conflicts)}",
            suggestion=(
                f"{option} only extracts the predicted gene sequences and never "
                "searches the reference database. Drop the other options or "
                f"run without {option}."
            ),
        )
        self.option = option
        self.conflicts = conflicts


class InputFileError(RrnaSpeciesError):
    """Raised when the input contig file cannot be read."""

    def __init__(self, path: Path | str, reason: str):
        super().__init__(
            message=f"Cannot read input file '{path}': {reason}",
            suggestion="Check that the file exists and is readable.",
        )
        self.path = path


class NotFastaError(RrnaSpeciesError):
    """Raised when the input does not look like FASTA."""

    def __init__(self, path: Path | str):
        super().__init__(
            message=f"Input '{path}' is not in FASTA format",
            suggestion=(
                "Provide assembled contigs in FASTA format (plain or gzipped). "
                "The first non-blank line must be a header starting with '>'."
            ),
        )
        self.path = path


class DatabaseNotFoundError(RrnaSpeciesError):
    """Raised when the reference BLAST database cannot be opened."""

    def __init__(self, database: str, detail: str = ""):
        message = f"Reference database '{database}' is not available"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(
            message=message,
            suggestion=(
                "Download it with 'update_blastdb.pl --decompress "
                f"{database} taxdb' and set BLASTDB to its directory, "
                "or pass --database with the path to an existing database."
            ),
        )
        self.database = database


class MalformedToolOutputError(RrnaSpeciesError):
    """Raised when a collaborator's output does not match the expected record shape."""

    def __init__(self, tool_name: str, line_num: int, line: str, reason: str):
        shown = line.rstrip("\n")
        if len(shown) > 200:
            shown = shown[:200] + "..."
        super().__init__(
            message=(
                f"Malformed {tool_name} output at line {line_num}: {reason}\n"
                f"  {shown}"
            ),
            suggestion=(
                f"Check the installed {tool_name} version. Partial results are "
                "not reported because skipped records could hide a better match."
            ),
        )
        self.tool_name = tool_name
        self.line_num = line_num
        self.line = line
