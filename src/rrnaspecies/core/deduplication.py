"""
Cross-gene deduplication of ranked matches.

Bacterial genomes often carry several 16S copies, and keeping more than one
match per gene repeats species further. Deduplication re-ranks the matches
of all genes together and keeps the best record per species name.

This global sort is separate from the per-gene sort in ranking.py. Matches
truncated away at the per-gene stage are not reconsidered here, so a
species' best alignment can be lost if another match of the same gene
ranked above it locally.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from rrnaspecies.core.ranking import sort_by_rank
from rrnaspecies.models.matches import GeneResult, RankedMatch

logger = logging.getLogger(__name__)


def collect_matches(results: Iterable[GeneResult]) -> list[RankedMatch]:
    """Concatenate per-gene matches in gene discovery order."""
    return [match for result in results for match in result.matches]


def deduplicate_by_species(matches: Iterable[RankedMatch]) -> list[RankedMatch]:
    """
    Keep the globally best-ranked match for each species name.

    Species identity is the exact species name string; accession and
    taxonomy id are not considered.

    Returns:
        Matches ordered by descending rank, each species at most once.
    """
    seen: set[str] = set()
    unique: list[RankedMatch] = []
    ranked = sort_by_rank(matches)

    for match in ranked:
        if match.species_name in seen:
            continue
        seen.add(match.species_name)
        unique.append(match)

    logger.debug(
        "Deduplicated %d matches to %d species", len(ranked), len(unique)
    )
    return unique
