"""
Species identification pipeline.

Runs the collaborators in sequence for one contig file:

    barrnap (locate) -> for each region: samtools (extract) -> blastn (match)
    -> filter_and_rank -> report (optionally deduplicated)

Genes are processed one at a time in discovery order. All intermediate
files live in a scratch directory that is removed when the run ends,
whether it succeeds, fails or is interrupted.
"""

from __future__ import annotations

import gzip
import logging
import signal
import sys
import tempfile
import threading
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from rrnaspecies.core.exceptions import InputFileError, NotFastaError
from rrnaspecies.core.ranking import filter_and_rank
from rrnaspecies.core.report import iter_fasta_lines, iter_report_lines
from rrnaspecies.external.barrnap import Barrnap
from rrnaspecies.external.base import (
    ExternalTool,
    MissingDependenciesError,
    ToolNotFoundError,
)
from rrnaspecies.external.blast import BlastDbCmd, BlastN
from rrnaspecies.external.samtools import Samtools
from rrnaspecies.models.config import PipelineConfig
from rrnaspecies.models.genes import GeneRegion, GeneSequence
from rrnaspecies.models.matches import GeneResult

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"
STDIN_NAMES = (None, "-")
STAGED_FASTA_NAME = "contigs.fasta"


@contextmanager
def scratch_workspace(prefix: str = "rrnaspecies_") -> Iterator[Path]:
    """
    Temporary directory owned by one run.

    While active, SIGTERM raises SystemExit so that the directory is removed
    on termination as well as on normal exit, errors and Ctrl-C.
    """
    previous_handler = None
    install = threading.current_thread() is threading.main_thread()

    def _terminate(signum: int, _frame: object) -> None:
        raise SystemExit(128 + signum)

    if install:
        previous_handler = signal.signal(signal.SIGTERM, _terminate)

    try:
        with tempfile.TemporaryDirectory(prefix=prefix) as tmpdir:
            logger.debug("Scratch directory: %s", tmpdir)
            yield Path(tmpdir)
    finally:
        if install and previous_handler is not None:
            signal.signal(signal.SIGTERM, previous_handler)


def _open_maybe_gzipped(path: Path) -> IO[str]:
    with path.open("rb") as fh:
        magic = fh.read(2)
    if magic == GZIP_MAGIC:
        return gzip.open(path, "rt")
    return path.open("r")


def stage_input(source: Path | str | None, workspace: Path) -> Path:
    """
    Copy the input contigs into the workspace as plain FASTA.

    Args:
        source: Input path, or None / "-" for stdin. Gzip input is detected
            from its magic bytes and decompressed.
        workspace: Scratch directory.

    Returns:
        Path of the staged FASTA file.

    Raises:
        InputFileError: If the input cannot be read.
        NotFastaError: If the first non-blank line is not a FASTA header.
    """
    if source in STDIN_NAMES:
        display_name = "<stdin>"
        raw = workspace / "stdin.raw"
        with raw.open("wb") as fout:
            fout.write(sys.stdin.buffer.read())
        source_path = raw
    else:
        source_path = Path(source)
        display_name = str(source_path)

    staged = workspace / STAGED_FASTA_NAME
    seen_header = False

    try:
        with _open_maybe_gzipped(source_path) as fin, staged.open("w") as fout:
            for line in fin:
                if not seen_header:
                    if not line.strip():
                        continue
                    if not line.startswith(">"):
                        raise NotFastaError(display_name)
                    seen_header = True
                fout.write(line)
    except (UnicodeDecodeError, gzip.BadGzipFile, EOFError):
        raise NotFastaError(display_name) from None
    except OSError as e:
        raise InputFileError(display_name, e.strerror or str(e)) from None

    if not seen_header:
        raise NotFastaError(display_name)

    logger.debug("Staged %s as %s", display_name, staged)
    return staged


@dataclass
class RunSummary:
    """Counts reported back to the CLI after a run."""

    genes_found: int = 0
    lines_written: int = 0


class IdentificationPipeline:
    """
    Orchestrates locate -> extract -> match -> rank for one input.

    Collaborators default to the barrnap, samtools and BLAST+ wrappers built
    from the config and can be replaced (e.g. by test doubles).

    Example:
        >>> pipeline = IdentificationPipeline(PipelineConfig())
        >>> pipeline.check_environment()
        >>> summary = pipeline.run(Path("contigs.fasta"), print)
    """

    def __init__(
        self,
        config: PipelineConfig,
        *,
        locator: Barrnap | None = None,
        extractor: Samtools | None = None,
        matcher: BlastN | None = None,
        database_probe: BlastDbCmd | None = None,
        on_progress: Callable[[str], None] | None = None,
    ) -> None:
        self.config = config
        self.on_progress = on_progress
        self.locator = locator or Barrnap(
            kingdom=config.kingdom,
            threads=config.threads,
            timeout=config.tool_timeout,
        )
        self.extractor = extractor or Samtools(timeout=config.tool_timeout)
        self.matcher = matcher or BlastN(
            config.database,
            perc_identity=config.min_identity,
            max_target_seqs=config.max_target_seqs,
            evalue=config.evalue,
            threads=config.threads,
            timeout=config.tool_timeout,
        )
        self.database_probe = database_probe or BlastDbCmd(timeout=config.tool_timeout)

    def _progress(self, message: str) -> None:
        logger.info(message)
        if self.on_progress is not None:
            self.on_progress(message)

    def required_tools(self) -> list[ExternalTool]:
        tools: list[ExternalTool] = [self.locator, self.extractor]
        if self.config.needs_matcher:
            tools.extend([self.matcher, self.database_probe])
        return tools

    def check_environment(self) -> None:
        """
        Verify every collaborator before any input is processed.

        Raises:
            MissingDependenciesError: Listing all tools not found in PATH.
            DatabaseNotFoundError: If the reference database cannot be opened.
        """
        missing = [
            ToolNotFoundError(tool.TOOL_NAME, tool.INSTALL_HINT)
            for tool in self.required_tools()
            if not tool.check_available()
        ]
        if missing:
            raise MissingDependenciesError(missing)

        if self.config.needs_matcher:
            self.database_probe.check_database(self.config.database)

    def locate(self, fasta: Path) -> list[GeneRegion]:
        self.extractor.index(fasta)
        return self.locator.locate(fasta)

    def extract_genes(self, fasta: Path, regions: Iterable[GeneRegion]) -> Iterator[GeneSequence]:
        for region in regions:
            gene = self.extractor.extract(fasta, region)
            self._progress(f"{gene.label}: extracted {len(gene.sequence)} bp")
            yield gene

    def process_gene(self, fasta: Path, region: GeneRegion) -> GeneResult:
        """Extract, match and rank one gene region."""
        gene = self.extractor.extract(fasta, region)
        candidates = self.matcher.search(gene)
        matches = filter_and_rank(
            candidates,
            region.label,
            min_coverage=self.config.min_coverage,
            max_matches=self.config.max_matches,
            min_identity=self.config.min_identity,
        )
        result = GeneResult(region=region, matches=matches)

        best = result.best_match
        if best is None:
            self._progress(f"{region.label} ({region.length} bp): no match passes the thresholds")
        else:
            self._progress(
                f"{region.label} ({region.length} bp): best match {best.species_name} "
                f"({best.candidate.identical_count} identical bases)"
            )
        return result

    def iter_gene_results(self, fasta: Path, regions: Iterable[GeneRegion]) -> Iterator[GeneResult]:
        """Process regions strictly in order, one gene finished before the next starts."""
        for region in regions:
            yield self.process_gene(fasta, region)

    def iter_output_lines(self, fasta: Path, regions: list[GeneRegion]) -> Iterator[str]:
        if self.config.genes_only:
            return iter_fasta_lines(self.extract_genes(fasta, regions))
        return iter_report_lines(
            self.iter_gene_results(fasta, regions),
            deduplicate=self.config.deduplicate,
            long_output=self.config.long_output,
            no_headers=self.config.no_headers,
        )

    def run(
        self,
        source: Path | str | None,
        emit: Callable[[str], None],
    ) -> RunSummary:
        """
        Run the whole pipeline on one input, emitting report lines as produced.

        Lines already emitted are not retracted if a later step fails; the
        exception propagates and the caller must treat the output as invalid.
        """
        summary = RunSummary()

        with scratch_workspace() as workspace:
            fasta = stage_input(source, workspace)
            regions = self.locate(fasta)
            summary.genes_found = len(regions)
            self._progress(f"Located {len(regions)} 16S rRNA gene(s)")

            for line in self.iter_output_lines(fasta, regions):
                emit(line)
                summary.lines_written += 1

        return summary
