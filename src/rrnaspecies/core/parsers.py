"""
Strict parsers for the text output of the external collaborators.

- barrnap GFF3 -> GeneRegion
- samtools faidx FASTA -> sequence lines
- blastn tabular (-outfmt 6 with custom columns) -> Candidate

Every parser fails fast with MalformedToolOutputError on a record that does
not have the expected shape; nothing is skipped silently.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from pydantic import ValidationError

from rrnaspecies.core.exceptions import MalformedToolOutputError
from rrnaspecies.models.genes import GENE_LABEL_PREFIX
from rrnaspecies.models.matches import Candidate

logger = logging.getLogger(__name__)

GFF_COLUMN_COUNT = 9


@dataclass(frozen=True)
class GffFeature:
    """One feature line of a GFF3 file, reduced to the fields used here."""

    seqid: str
    feature_type: str
    start: int
    end: int
    attributes: dict[str, str]

    @property
    def name(self) -> str:
        return self.attributes.get("Name", "")


def _parse_gff_attributes(column: str) -> dict[str, str]:
    attrs: dict[str, str] = {}
    for field in column.strip().split(";"):
        if not field:
            continue
        if "=" in field:
            key, val = field.split("=", 1)
            attrs[key] = val
    return attrs


def iter_gff_features(lines: Iterable[str], tool_name: str = "barrnap") -> Iterator[GffFeature]:
    """
    Parse GFF3 feature lines.

    Comment and blank lines are skipped. Coordinates must be integers
    forming a 1-based closed interval (1 <= start <= end).

    Raises:
        MalformedToolOutputError: On a feature line with the wrong column
            count, non-numeric coordinates or an invalid interval.
    """
    for line_num, line in enumerate(lines, start=1):
        if not line.strip() or line.startswith("#"):
            continue

        parts = line.rstrip("\n").split("\t")
        if len(parts) != GFF_COLUMN_COUNT:
            raise MalformedToolOutputError(
                tool_name,
                line_num,
                line,
                f"expected {GFF_COLUMN_COUNT} tab-separated columns, got {len(parts)}",
            )

        seqid, _source, feature_type, start, end, *_rest, attributes = parts
        try:
            start_pos = int(start)
            end_pos = int(end)
        except ValueError:
            raise MalformedToolOutputError(
                tool_name, line_num, line, "start/end are not integers"
            ) from None
        if start_pos < 1 or end_pos < start_pos:
            raise MalformedToolOutputError(
                tool_name,
                line_num,
                line,
                f"invalid 1-based interval {start_pos}-{end_pos}",
            )

        yield GffFeature(
            seqid=seqid,
            feature_type=feature_type,
            start=start_pos,
            end=end_pos,
            attributes=_parse_gff_attributes(attributes),
        )


def iter_16s_features(lines: Iterable[str], tool_name: str = "barrnap") -> Iterator[GffFeature]:
    """Yield only features whose Name attribute is 16S_rRNA, in file order."""
    for feature in iter_gff_features(lines, tool_name):
        if feature.name == GENE_LABEL_PREFIX:
            yield feature
        else:
            logger.debug(
                "Skipping %s feature on %s:%d-%d",
                feature.name or feature.feature_type,
                feature.seqid,
                feature.start,
                feature.end,
            )


def parse_fasta_record(text: str, tool_name: str = "samtools") -> tuple[str, tuple[str, ...]]:
    """
    Parse a single FASTA record as written by samtools faidx.

    Returns:
        Tuple of (header without '>', sequence lines).

    Raises:
        MalformedToolOutputError: If there is no header, more than one
            record, or no sequence.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines or not lines[0].startswith(">"):
        raise MalformedToolOutputError(
            tool_name, 1, lines[0] if lines else "", "expected a FASTA header"
        )

    header = lines[0][1:].strip()
    sequence_lines = tuple(line.strip() for line in lines[1:])

    for offset, line in enumerate(sequence_lines, start=2):
        if line.startswith(">"):
            raise MalformedToolOutputError(
                tool_name, offset, line, "expected a single FASTA record"
            )
    if not sequence_lines:
        raise MalformedToolOutputError(tool_name, 1, lines[0], "record has no sequence")

    return header, sequence_lines


def iter_blast_candidates(lines: Iterable[str], tool_name: str = "blastn") -> Iterator[Candidate]:
    """
    Parse blastn tabular lines into Candidates, preserving blastn's order.

    Expected columns: sscinames staxids saccver qlen slen length nident pident

    Raises:
        MalformedToolOutputError: On a line with the wrong field count or a
            non-numeric length/count/identity field.
    """
    for line_num, line in enumerate(lines, start=1):
        if not line.strip() or line.startswith("#"):
            continue

        fields = line.rstrip("\n").split("\t")
        try:
            yield Candidate.from_blast_fields(fields)
        except ValidationError as e:
            reason = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise MalformedToolOutputError(tool_name, line_num, line, reason) from None
        except ValueError as e:
            raise MalformedToolOutputError(tool_name, line_num, line, str(e)) from None


def parse_blast_candidates(text: str, tool_name: str = "blastn") -> list[Candidate]:
    """Parse complete blastn output text into a list of Candidates."""
    return list(iter_blast_candidates(text.splitlines(), tool_name))
