"""
Pydantic models for predicted 16S rRNA gene regions.

A GeneRegion is one barrnap prediction; a GeneSequence is the nucleotide
subsequence extracted for it by samtools.
"""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, Field, model_validator

GENE_LABEL_PREFIX = "16S_rRNA"


class GeneRegion(BaseModel):
    """
    Region of a contig predicted to contain a 16S rRNA gene.

    Coordinates are 1-based and inclusive, as reported in GFF3. The ordinal
    counts regions across the whole run in discovery order, starting at 1.

    Attributes:
        contig_id: Identifier of the contig carrying the gene
        start: First base of the gene (1-based)
        end: Last base of the gene (inclusive)
        ordinal: Position of this region among all regions found in the run
    """

    contig_id: str = Field(min_length=1, description="Contig identifier")
    start: int = Field(ge=1, description="Start position (1-based)")
    end: int = Field(ge=1, description="End position (inclusive)")
    ordinal: int = Field(ge=1, description="1-based discovery counter")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_positions(self) -> Self:
        """Ensure end >= start."""
        if self.end < self.start:
            msg = f"end ({self.end}) must be >= start ({self.start})"
            raise ValueError(msg)
        return self

    @property
    def label(self) -> str:
        """Synthetic identifier used in reports, e.g. 16S_rRNA_2_Origin_contig_7."""
        return f"{GENE_LABEL_PREFIX}_{self.ordinal}_Origin_{self.contig_id}"

    @property
    def region_string(self) -> str:
        """samtools region string, e.g. contig_7:1001-2540."""
        return f"{self.contig_id}:{self.start}-{self.end}"

    @property
    def length(self) -> int:
        return self.end - self.start + 1


class GeneSequence(BaseModel):
    """Nucleotide sequence extracted for one GeneRegion."""

    region: GeneRegion
    sequence_lines: tuple[str, ...] = Field(
        description="Sequence lines as written by the extractor (wrapping kept)",
    )

    model_config = {"frozen": True}

    @property
    def label(self) -> str:
        return self.region.label

    @property
    def sequence(self) -> str:
        """Unwrapped nucleotide sequence."""
        return "".join(self.sequence_lines)

    def to_fasta(self) -> str:
        """Render as a FASTA record headed by the synthetic gene label."""
        return "\n".join((f">{self.label}", *self.sequence_lines))
