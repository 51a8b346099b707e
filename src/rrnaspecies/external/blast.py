"""
BLAST+ wrapper classes.

Provides Python interfaces for:
- BlastN: searching an extracted 16S sequence against the reference database
- BlastDbCmd: checking that the reference database can be opened
"""

from __future__ import annotations

import logging

from rrnaspecies.core.exceptions import DatabaseNotFoundError
from rrnaspecies.core.parsers import parse_blast_candidates
from rrnaspecies.external.base import ExternalTool
from rrnaspecies.models.genes import GeneSequence
from rrnaspecies.models.matches import Candidate

logger = logging.getLogger(__name__)


class BlastN(ExternalTool):
    """Wrapper for blastn, the reference matcher of the pipeline.

    The query is written to stdin; results come back on stdout in tabular
    format with the columns listed in Candidate.OUTFMT_FIELDS. blastn's
    -perc_identity applies the identity cutoff, while subject coverage is
    always computed and filtered in rrnaspecies.core.ranking.

    Example:
        >>> blastn = BlastN(database="16S_ribosomal_RNA", perc_identity=98.0)
        >>> candidates = blastn.search(gene_sequence)
    """

    TOOL_NAME = "blastn"
    INSTALL_HINT = "conda install -c bioconda blast"

    OUTFMT = "6 " + " ".join(Candidate.OUTFMT_FIELDS)

    def __init__(
        self,
        database: str,
        *,
        perc_identity: float | None = None,
        max_target_seqs: int = 50,
        evalue: float = 1e-10,
        threads: int = 1,
        timeout: float | None = None,
    ) -> None:
        super().__init__(timeout=timeout)
        self.database = database
        self.perc_identity = perc_identity
        self.max_target_seqs = max_target_seqs
        self.evalue = evalue
        self.threads = threads

    def build_command(self, **_: object) -> list[str]:
        """Build blastn command reading the query from stdin."""
        cmd = [
            str(self.get_executable()),
            "-db", self.database,
            "-query", "-",
            "-outfmt", self.OUTFMT,
            "-max_target_seqs", str(self.max_target_seqs),
            "-evalue", str(self.evalue),
            "-num_threads", str(self.threads),
        ]

        if self.perc_identity is not None:
            cmd.extend(["-perc_identity", str(self.perc_identity)])

        return cmd

    def search(self, gene: GeneSequence) -> list[Candidate]:
        """Search one gene sequence and return candidates in blastn order.

        Raises:
            ToolExecutionError: If blastn fails.
            MalformedToolOutputError: If a result line does not parse.
        """
        result = self.run_or_raise(input_text=gene.to_fasta() + "\n")
        candidates = parse_blast_candidates(result.stdout, self.TOOL_NAME)
        logger.debug("%s: blastn returned %d candidate(s)", gene.label, len(candidates))
        return candidates


class BlastDbCmd(ExternalTool):
    """Wrapper for blastdbcmd, used to probe the reference database."""

    TOOL_NAME = "blastdbcmd"
    INSTALL_HINT = "conda install -c bioconda blast"

    def build_command(self, *, database: str, **_: object) -> list[str]:
        return [str(self.get_executable()), "-db", database, "-info"]

    def check_database(self, database: str) -> None:
        """Ensure the BLAST database can be opened.

        Raises:
            DatabaseNotFoundError: If blastdbcmd cannot read the database.
        """
        result = self.run(database=database)
        if not result.success:
            detail = result.stderr.strip().splitlines()
            raise DatabaseNotFoundError(database, detail[-1] if detail else "")
        logger.debug("Reference database %s is available", database)
