"""
Samtools wrapper class.

Provides the sequence extractor of the pipeline: `samtools faidx` pulls the
nucleotide subsequence of a predicted gene region out of the contig file.
"""

from __future__ import annotations

from pathlib import Path

from rrnaspecies.core.parsers import parse_fasta_record
from rrnaspecies.external.base import ExternalTool, ToolResult
from rrnaspecies.models.genes import GeneRegion, GeneSequence


class Samtools(ExternalTool):
    """Wrapper for samtools faidx.

    Indexing writes <fasta>.fai next to the FASTA file, so callers should
    pass a copy that lives in a scratch directory.

    Example:
        >>> samtools = Samtools()
        >>> samtools.index(Path("work/input.fasta"))
        >>> gene = samtools.extract(Path("work/input.fasta"), region)
        >>> gene.to_fasta().splitlines()[0]
        '>16S_rRNA_1_Origin_contig_1'
    """

    TOOL_NAME = "samtools"
    INSTALL_HINT = "conda install -c bioconda samtools"

    def build_command(
        self,
        *,
        fasta: Path,
        region: str | None = None,
        **_: object,
    ) -> list[str]:
        """Build samtools faidx command.

        Without a region the command only builds the .fai index.
        """
        cmd = [str(self.get_executable()), "faidx", str(fasta)]
        if region is not None:
            cmd.append(region)
        return cmd

    def index(self, fasta: Path) -> ToolResult:
        """Create the .fai index for a FASTA file."""
        return self.run_or_raise(fasta=fasta)

    def extract(self, fasta: Path, region: GeneRegion) -> GeneSequence:
        """Extract the exact subsequence of a region.

        Raises:
            ToolExecutionError: If samtools fails (e.g. unknown contig).
            MalformedToolOutputError: If the output is not one FASTA record.
        """
        result = self.run_or_raise(fasta=fasta, region=region.region_string)
        _header, sequence_lines = parse_fasta_record(result.stdout, self.TOOL_NAME)
        return GeneSequence(region=region, sequence_lines=sequence_lines)
