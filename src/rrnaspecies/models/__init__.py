"""
Pydantic data models for rrnaspecies.

Provides type-safe models for gene regions, reference matches
and run configuration.
"""

from rrnaspecies.models.config import PipelineConfig
from rrnaspecies.models.genes import GeneRegion, GeneSequence
from rrnaspecies.models.matches import Candidate, GeneResult, RankedMatch

__all__ = [
    "Candidate",
    "GeneRegion",
    "GeneResult",
    "GeneSequence",
    "PipelineConfig",
    "RankedMatch",
]
