"""
Core match-ranking logic and pipeline orchestration.

Contains the per-gene filter and ranker, the cross-gene deduplicator,
the report formatter and the parsers for collaborator output.
"""

from rrnaspecies.core.deduplication import deduplicate_by_species
from rrnaspecies.core.ranking import filter_and_rank, sort_by_rank

__all__ = [
    "deduplicate_by_species",
    "filter_and_rank",
    "sort_by_rank",
]
