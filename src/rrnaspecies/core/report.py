"""
Report rendering.

Turns ranked matches into text lines: one species name per line, or the
eight-column tab-separated table in long mode. Comment lines start with '#'.
The formatter never reorders rows; ordering comes from ranking.py and
deduplication.py.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from rrnaspecies.core.deduplication import collect_matches, deduplicate_by_species
from rrnaspecies.models.genes import GeneSequence
from rrnaspecies.models.matches import GeneResult, RankedMatch

LONG_COLUMNS: tuple[str, ...] = (
    "Species",
    "TaxIDs",
    "Accession",
    "QueryLen/RefLen",
    "AlignLen",
    "Identical",
    "Coverage",
    "Identity",
)

COLUMN_HEADER = "#" + "\t".join(LONG_COLUMNS)


def format_gene_header(label: str) -> str:
    return f"# {label}"


def format_row(match: RankedMatch, *, long_output: bool) -> str:
    """Render one match as a bare species name or a tab-separated row."""
    if long_output:
        return "\t".join(match.to_row())
    return match.species_name


def iter_report_lines(
    results: Iterable[GeneResult],
    *,
    deduplicate: bool = False,
    long_output: bool = False,
    no_headers: bool = False,
) -> Iterator[str]:
    """
    Yield report lines for the per-gene results.

    Without deduplication, lines are yielded gene by gene as results arrive,
    each gene block preceded by a '# <gene label>' line when headers are
    enabled. Genes without matches produce no block. With deduplication, all
    results are consumed first and the species-unique list is yielded in
    rank order.

    In long mode with headers, a single column header precedes the first
    data row. An empty report has no header lines at all.
    """
    column_header_pending = long_output and not no_headers

    if deduplicate:
        for match in deduplicate_by_species(collect_matches(results)):
            if column_header_pending:
                yield COLUMN_HEADER
                column_header_pending = False
            yield format_row(match, long_output=long_output)
        return

    for result in results:
        if not result.matches:
            continue
        if column_header_pending:
            yield COLUMN_HEADER
            column_header_pending = False
        if not no_headers:
            yield format_gene_header(result.label)
        for match in result.matches:
            yield format_row(match, long_output=long_output)


def iter_fasta_lines(sequences: Iterable[GeneSequence]) -> Iterator[str]:
    """Yield FASTA lines for extracted gene sequences, labelled by gene."""
    for gene in sequences:
        yield from gene.to_fasta().split("\n")
