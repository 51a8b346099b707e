"""
rrnaspecies: bacterial species identification from 16S rRNA genes.

Locates 16S rRNA genes in assembled contigs, matches each against a
reference 16S database and reports the best-supported species, ranked by
identical bases, alignment length and reference coverage.
"""

__version__ = "0.1.0"
__author__ = "rrnaspecies Team"

from rrnaspecies.core.pipeline import IdentificationPipeline
from rrnaspecies.models.config import PipelineConfig
from rrnaspecies.models.matches import Candidate, GeneResult, RankedMatch

__all__ = [
    "Candidate",
    "GeneResult",
    "IdentificationPipeline",
    "PipelineConfig",
    "RankedMatch",
    "__version__",
]
