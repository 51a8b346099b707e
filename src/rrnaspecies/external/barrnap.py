"""
Barrnap rRNA gene prediction wrapper.

Barrnap (BAsic Rapid Ribosomal RNA Predictor) locates ribosomal RNA genes
in genome assemblies and reports them as GFF3. Only features named
16S_rRNA are used here.

Reference:
    Seemann T. barrnap: Bacterial ribosomal RNA predictor.
    https://github.com/tseemann/barrnap
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import ClassVar

from rrnaspecies.core.parsers import iter_16s_features
from rrnaspecies.external.base import ExternalTool
from rrnaspecies.models.genes import GeneRegion

logger = logging.getLogger(__name__)


class Barrnap(ExternalTool):
    """Wrapper for barrnap, the gene locator of the pipeline.

    Example:
        >>> barrnap = Barrnap()
        >>> regions = barrnap.locate(Path("contigs.fasta"))
        >>> regions[0].label
        '16S_rRNA_1_Origin_contig_1'
    """

    TOOL_NAME: ClassVar[str] = "barrnap"
    INSTALL_HINT: ClassVar[str] = "conda install -c bioconda barrnap"

    def __init__(
        self,
        kingdom: str = "bac",
        threads: int = 1,
        timeout: float | None = None,
    ) -> None:
        super().__init__(timeout=timeout)
        self.kingdom = kingdom
        self.threads = threads

    def build_command(self, *, fasta: Path, **_: object) -> list[str]:
        """Build barrnap command.

        Args:
            fasta: Uncompressed contig FASTA file.

        Returns:
            Command as list of strings.
        """
        return [
            str(self.get_executable()),
            "--kingdom", self.kingdom,
            "--threads", str(self.threads),
            "--quiet",
            str(fasta),
        ]

    def locate(self, fasta: Path) -> list[GeneRegion]:
        """Predict 16S rRNA regions in a contig file.

        Regions are numbered from 1 in the order barrnap reports them.

        Raises:
            ToolExecutionError: If barrnap fails.
            MalformedToolOutputError: If its GFF3 output cannot be parsed.
        """
        result = self.run_or_raise(fasta=fasta)
        features = iter_16s_features(result.stdout.splitlines(), self.TOOL_NAME)

        regions = [
            GeneRegion(
                contig_id=feature.seqid,
                start=feature.start,
                end=feature.end,
                ordinal=ordinal,
            )
            for ordinal, feature in enumerate(features, start=1)
        ]
        logger.info("barrnap predicted %d 16S rRNA region(s)", len(regions))
        return regions
