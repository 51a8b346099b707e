"""
Per-gene match filtering and ranking.

Candidates for one gene are filtered on subject coverage, sorted by
(identical bases, alignment length, subject coverage) descending and
truncated to the configured number of matches.

Identical-base count leads the sort because it reflects coverage and
identity together: a short fragment at 100% identity must not outrank a
full-length alignment at slightly lower identity.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TypeVar

from rrnaspecies.models.matches import Candidate, RankedMatch

logger = logging.getLogger(__name__)

_Ranked = TypeVar("_Ranked", Candidate, RankedMatch)


def sort_by_rank(items: Iterable[_Ranked]) -> list[_Ranked]:
    """
    Stable descending sort on the ranking key.

    Ties keep their incoming order, which for blastn output is its own
    score order.
    """
    return sorted(items, key=lambda item: item.ranking_key, reverse=True)


def passes_thresholds(
    candidate: Candidate,
    min_coverage: int,
    min_identity: float | None = None,
) -> bool:
    """
    Return True if the candidate meets the coverage (and optional identity) cutoff.

    A zero-length reference never passes, whatever the coverage cutoff.
    """
    if candidate.ref_length <= 0 or candidate.subject_coverage < min_coverage:
        return False
    return min_identity is None or candidate.percent_identity >= min_identity


def filter_and_rank(
    candidates: Iterable[Candidate],
    gene_label: str,
    *,
    min_coverage: int,
    max_matches: int,
    min_identity: float | None = None,
) -> tuple[RankedMatch, ...]:
    """
    Select the best matches for one gene.

    Args:
        candidates: Raw blastn candidates for the gene, in blastn order.
        gene_label: Synthetic label of the gene, attached to each match.
        min_coverage: Minimum subject coverage percentage.
        max_matches: Maximum number of matches to keep (>= 1).
        min_identity: Optional percent identity re-check; None disables it.

    Returns:
        Up to max_matches RankedMatch values, best first. Empty when no
        candidate qualifies.

    Raises:
        ValueError: If max_matches < 1 or min_coverage < 0.
    """
    if max_matches < 1:
        msg = f"max_matches must be >= 1, got {max_matches}"
        raise ValueError(msg)
    if min_coverage < 0:
        msg = f"min_coverage must be >= 0, got {min_coverage}"
        raise ValueError(msg)

    candidates = list(candidates)
    survivors = [
        c for c in candidates if passes_thresholds(c, min_coverage, min_identity)
    ]
    logger.debug(
        "%s: %d/%d candidates pass coverage >= %d%%",
        gene_label,
        len(survivors),
        len(candidates),
        min_coverage,
    )

    ranked = sort_by_rank(survivors)[:max_matches]
    return tuple(RankedMatch(candidate=c, gene_label=gene_label) for c in ranked)
