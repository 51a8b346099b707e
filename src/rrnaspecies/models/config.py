"""
Pydantic configuration model for rrnaspecies.

PipelineConfig holds the match-quality thresholds, report options and the
settings passed to the external collaborators (barrnap, blastn).
Configuration can be loaded from a YAML file and overridden by CLI arguments.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from rrnaspecies.core.exceptions import (
    ConfigurationError,
    ConflictingOptionsError,
    InvalidThresholdError,
)

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "16S_ribosomal_RNA"

# (min, max) for numeric fields; max None means unbounded
_NUMERIC_BOUNDS: dict[str, tuple[float, float | None]] = {
    "min_coverage": (0, 100),
    "min_identity": (0.0, 100.0),
    "max_matches": (1, None),
    "threads": (1, None),
    "max_target_seqs": (1, None),
    "evalue": (0.0, None),
    "tool_timeout": (0.0, None),
}


class PipelineConfig(BaseModel):
    """
    Configuration for one species identification run.

    Match thresholds:
        - min_coverage: integer percentage of the reference sequence that an
          alignment must span (subject coverage, floored)
        - min_identity: percent identity cutoff handed to blastn and
          re-checked when ranking
        - max_matches: number of ranked matches kept per gene

    Output options mirror the CLI flags. genes_only bypasses matching
    entirely, so it cannot be combined with deduplicate or long_output.
    """

    min_coverage: int = Field(
        default=60,
        ge=0,
        le=100,
        description="Minimum subject coverage (% of reference length)",
    )
    min_identity: float = Field(
        default=98.0,
        ge=0.0,
        le=100.0,
        description="Minimum percent identity",
    )
    max_matches: int = Field(
        default=1,
        ge=1,
        description="Maximum ranked matches kept per gene",
    )

    deduplicate: bool = Field(
        default=False,
        description="Keep only the best match per species across all genes",
    )
    long_output: bool = Field(
        default=False,
        description="Emit the eight-column table instead of species names",
    )
    no_headers: bool = Field(default=False, description="Suppress comment lines")
    genes_only: bool = Field(
        default=False,
        description="Only extract predicted 16S sequences as FASTA",
    )
    verbose: bool = Field(default=False, description="Log progress to stderr")

    # Collaborator settings
    database: str = Field(
        default=DEFAULT_DATABASE,
        min_length=1,
        description="BLAST database name or path",
    )
    threads: int = Field(default=1, ge=1, description="blastn threads")
    max_target_seqs: int = Field(
        default=50,
        ge=1,
        description="Candidates requested from blastn per gene",
    )
    evalue: float = Field(default=1e-10, gt=0, description="blastn E-value cutoff")
    kingdom: Literal["bac", "arc", "euk", "mito"] = Field(
        default="bac",
        description="barrnap kingdom model",
    )
    tool_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Per-invocation timeout for external tools (seconds)",
    )

    model_config = {"frozen": True}

    @classmethod
    def validated(cls, **kwargs: Any) -> PipelineConfig:
        """
        Build a config and translate validation failures into ConfigurationError.

        Raises:
            InvalidThresholdError: If a numeric option is out of range.
            ConflictingOptionsError: If genes_only is combined with matching options.
            ConfigurationError: For any other invalid value.
        """
        try:
            config = cls(**kwargs)
        except ValidationError as e:
            raise _to_configuration_error(e) from None

        config.check_conflicts()
        return config

    def check_conflicts(self) -> None:
        """Reject option combinations that cannot both take effect."""
        if not self.genes_only:
            return
        conflicts = [
            flag
            for flag, enabled in (
                ("--deduplicate", self.deduplicate),
                ("--long-output", self.long_output),
            )
            if enabled
        ]
        if conflicts:
            raise ConflictingOptionsError("--genes-only", conflicts)

    @property
    def needs_matcher(self) -> bool:
        """True when blastn and the reference database are required."""
        return not self.genes_only

    def merged(self, **overrides: Any) -> PipelineConfig:
        """Return a copy with non-None overrides applied, re-validated."""
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return type(self).validated(**values)

    @classmethod
    def from_yaml(cls, path: Path) -> PipelineConfig:
        """
        Load configuration from a YAML file.

        The YAML file uses a nested structure (thresholds, output, blast,
        barrnap) that is flattened to model fields. Unknown keys are ignored.

        Raises:
            ConfigurationError: If the file is unreadable, not a mapping,
                or contains invalid values.
        """
        import yaml

        try:
            raw = yaml.safe_load(path.read_text())
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                message=f"Cannot load config file {path}: {e}",
                suggestion="Check that the file exists and is valid YAML.",
            ) from None

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigurationError(
                message=f"YAML config must be a mapping, got {type(raw).__name__}",
                suggestion="See 'rrnaspecies --help' for the config layout.",
            )

        flat = _flatten_yaml_config(raw)
        logger.debug("Loaded config from %s: %s", path, flat)
        return cls.validated(**flat)

    def to_yaml_str(self) -> str:
        """Serialize configuration to a YAML string with nested structure."""
        import yaml

        return yaml.dump(_build_yaml_structure(self), default_flow_style=False, sort_keys=False)


def _to_configuration_error(error: ValidationError) -> ConfigurationError:
    """Map the first pydantic error onto the matching ConfigurationError."""
    first = error.errors()[0]
    field = str(first["loc"][0]) if first["loc"] else ""
    value = first.get("input")

    if field in _NUMERIC_BOUNDS and first["type"] in (
        "greater_than",
        "greater_than_equal",
        "less_than",
        "less_than_equal",
    ):
        min_val, max_val = _NUMERIC_BOUNDS[field]
        return InvalidThresholdError(field, value, min_val, max_val)

    return ConfigurationError(
        message=f"Invalid value for {field or 'config'}: {first['msg']}",
        suggestion="Check the option value and try again.",
    )


def _flatten_yaml_config(raw: dict[str, Any]) -> dict[str, Any]:
    """
    Flatten the nested YAML structure into PipelineConfig keyword arguments.

        thresholds.min_coverage -> min_coverage
        output.long_output -> long_output
        blast.database -> database
        barrnap.kingdom -> kingdom
    """
    flat: dict[str, Any] = {}

    thresholds = raw.get("thresholds") or {}
    for key in ("min_coverage", "min_identity", "max_matches"):
        _map_if_present(thresholds, key, flat, key)

    output = raw.get("output") or {}
    for key in ("deduplicate", "long_output", "no_headers", "genes_only", "verbose"):
        _map_if_present(output, key, flat, key)

    blast = raw.get("blast") or {}
    for key in ("database", "threads", "max_target_seqs", "evalue"):
        _map_if_present(blast, key, flat, key)

    barrnap = raw.get("barrnap") or {}
    _map_if_present(barrnap, "kingdom", flat, "kingdom")

    _map_if_present(raw, "tool_timeout", flat, "tool_timeout")

    return flat


def _map_if_present(
    source: dict[str, Any],
    source_key: str,
    target: dict[str, Any],
    target_key: str,
) -> None:
    """Copy value from source dict to target dict if key exists."""
    if source_key in source and source[source_key] is not None:
        target[target_key] = source[source_key]


def _build_yaml_structure(config: PipelineConfig) -> dict[str, Any]:
    """Build nested YAML dict from a PipelineConfig instance."""
    return {
        "thresholds": {
            "min_coverage": config.min_coverage,
            "min_identity": config.min_identity,
            "max_matches": config.max_matches,
        },
        "output": {
            "deduplicate": config.deduplicate,
            "long_output": config.long_output,
            "no_headers": config.no_headers,
            "genes_only": config.genes_only,
            "verbose": config.verbose,
        },
        "blast": {
            "database": config.database,
            "threads": config.threads,
            "max_target_seqs": config.max_target_seqs,
            "evalue": config.evalue,
        },
        "barrnap": {
            "kingdom": config.kingdom,
        },
        "tool_timeout": config.tool_timeout,
    }
