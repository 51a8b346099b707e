"""
Pydantic models for reference matches of a 16S rRNA gene.

These models represent blastn tabular output produced with
-outfmt "6 sscinames staxids saccver qlen slen length nident pident"
and the matches that survive coverage filtering.
"""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, Field

from rrnaspecies.models.genes import GeneRegion

RankingKey = tuple[int, int, int]


class Candidate(BaseModel):
    """
    Single blastn alignment of a gene sequence against a reference 16S.

    Attributes:
        species_name: Scientific name of the reference (sscinames)
        tax_ids: Taxonomy id(s) of the reference, ';'-separated (staxids)
        accession: Versioned reference accession (saccver)
        query_length: Length of the extracted gene sequence (qlen)
        ref_length: Length of the reference sequence (slen)
        align_length: Alignment length (length)
        identical_count: Number of identical positions (nident)
        percent_identity: Percent identity over the alignment (pident)
    """

    species_name: str = Field(min_length=1, description="Reference scientific name")
    tax_ids: str = Field(description="Reference taxonomy id(s)")
    accession: str = Field(min_length=1, description="Reference accession")
    query_length: int = Field(ge=0, description="Query sequence length")
    ref_length: int = Field(ge=0, description="Reference sequence length")
    align_length: int = Field(ge=0, description="Alignment length")
    identical_count: int = Field(ge=0, description="Identical positions")
    percent_identity: float = Field(ge=0, le=100, description="Percent identity")

    OUTFMT_FIELDS: ClassVar[tuple[str, ...]] = (
        "sscinames",
        "staxids",
        "saccver",
        "qlen",
        "slen",
        "length",
        "nident",
        "pident",
    )

    model_config = {"frozen": True}

    @property
    def subject_coverage(self) -> int:
        """
        Integer percentage of the reference spanned by the alignment.

        Computed against the reference length, never the query length, and
        floored. A zero-length reference has no coverage.
        """
        if self.ref_length <= 0:
            return 0
        return (100 * self.align_length) // self.ref_length

    @property
    def ranking_key(self) -> RankingKey:
        """Sort key: identical bases first, then alignment length, then coverage."""
        return (self.identical_count, self.align_length, self.subject_coverage)

    @classmethod
    def from_blast_fields(cls, fields: list[str]) -> Candidate:
        """
        Build a Candidate from the eight columns of one blastn output line.

        Raises:
            ValueError: If the field count is wrong or a numeric field does
                not parse. pydantic's ValidationError is a ValueError too.
        """
        if len(fields) != len(cls.OUTFMT_FIELDS):
            msg = f"expected {len(cls.OUTFMT_FIELDS)} fields, got {len(fields)}"
            raise ValueError(msg)

        return cls(
            species_name=fields[0],
            tax_ids=fields[1],
            accession=fields[2],
            query_length=int(fields[3]),
            ref_length=int(fields[4]),
            align_length=int(fields[5]),
            identical_count=int(fields[6]),
            percent_identity=float(fields[7]),
        )


class RankedMatch(BaseModel):
    """A Candidate that passed filtering, tagged with the gene it came from."""

    candidate: Candidate
    gene_label: str = Field(description="Synthetic label of the originating gene")

    model_config = {"frozen": True}

    @property
    def species_name(self) -> str:
        return self.candidate.species_name

    @property
    def ranking_key(self) -> RankingKey:
        return self.candidate.ranking_key

    def to_row(self) -> tuple[str, ...]:
        """Eight report columns for the extended table."""
        c = self.candidate
        return (
            c.species_name,
            c.tax_ids,
            c.accession,
            f"{c.query_length}/{c.ref_length}",
            str(c.align_length),
            str(c.identical_count),
            str(c.subject_coverage),
            f"{c.percent_identity:.3f}",
        )


class GeneResult(BaseModel):
    """Ranked matches kept for one gene region, best first."""

    region: GeneRegion
    matches: tuple[RankedMatch, ...] = Field(default_factory=tuple)

    model_config = {"frozen": True}

    @property
    def label(self) -> str:
        return self.region.label

    @property
    def best_match(self) -> RankedMatch | None:
        return self.matches[0] if self.matches else None
