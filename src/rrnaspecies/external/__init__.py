"""
Wrappers for the external bioinformatics tools.

Provides Python interfaces to barrnap (gene locator), samtools faidx
(sequence extractor) and BLAST+ (reference matcher).
"""

from rrnaspecies.external.barrnap import Barrnap
from rrnaspecies.external.base import (
    ExternalTool,
    MissingDependenciesError,
    ToolExecutionError,
    ToolNotFoundError,
    ToolResult,
    ToolTimeoutError,
)
from rrnaspecies.external.blast import BlastDbCmd, BlastN
from rrnaspecies.external.samtools import Samtools

__all__ = [
    "Barrnap",
    "BlastDbCmd",
    "BlastN",
    "ExternalTool",
    "MissingDependenciesError",
    "Samtools",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolResult",
    "ToolTimeoutError",
]
