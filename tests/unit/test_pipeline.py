"""
Unit tests for the identification pipeline.

The collaborators are answered by FakeToolbox through a patched
subprocess.run, so these tests exercise the real wrappers, parsers,
ranking and report code end to end without barrnap or BLAST+ installed.
"""

from __future__ import annotations

import gzip
import io
import os
import signal
import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from rrnaspecies.core.exceptions import (
    DatabaseNotFoundError,
    InputFileError,
    MalformedToolOutputError,
    NotFastaError,
)
from rrnaspecies.core.pipeline import (
    STAGED_FASTA_NAME,
    IdentificationPipeline,
    scratch_workspace,
    stage_input,
)
from rrnaspecies.core.report import COLUMN_HEADER
from rrnaspecies.external.base import ExternalTool, MissingDependenciesError
from rrnaspecies.models.config import PipelineConfig
from tests.factories import CONTIG_1, FakeToolbox, gff_line, gff_text


def _run(config: PipelineConfig, source) -> tuple[list[str], object]:
    lines: list[str] = []
    summary = IdentificationPipeline(config).run(source, lines.append)
    return lines, summary


# =============================================================================
# Input staging
# =============================================================================


class TestStageInput:
    """Tests for stage_input."""

    def test_plain_file(self, contigs_fasta: Path, temp_dir: Path):
        workspace = temp_dir / "work"
        workspace.mkdir()
        staged = stage_input(contigs_fasta, workspace)
        assert staged == workspace / STAGED_FASTA_NAME
        assert staged.read_text() == contigs_fasta.read_text()

    def test_gzipped_file(self, contigs_fasta_gz: Path, temp_dir: Path):
        workspace = temp_dir / "work"
        workspace.mkdir()
        staged = stage_input(contigs_fasta_gz, workspace)
        assert staged.read_text() == f">contig_1\n{CONTIG_1}\n"

    def test_gzip_detected_by_content_not_extension(self, temp_dir: Path):
        source = temp_dir / "contigs.fasta"
        source.write_bytes(gzip.compress(b">c1\nACGT\n"))
        workspace = temp_dir / "work"
        workspace.mkdir()
        assert stage_input(source, workspace).read_text() == ">c1\nACGT\n"

    @pytest.mark.parametrize("name", [None, "-"])
    def test_stdin(self, name, temp_dir: Path, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(b">c1\nACGT\n")))
        staged = stage_input(name, temp_dir)
        assert staged.read_text() == ">c1\nACGT\n"

    def test_gzipped_stdin(self, temp_dir: Path, monkeypatch):
        data = gzip.compress(b">c1\nACGT\n")
        monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(data)))
        assert stage_input(None, temp_dir).read_text() == ">c1\nACGT\n"

    def test_leading_blank_lines_allowed(self, temp_dir: Path):
        source = temp_dir / "in.fa"
        source.write_text("\n\n>c1\nACGT\n")
        workspace = temp_dir / "work"
        workspace.mkdir()
        assert stage_input(source, workspace).read_text() == ">c1\nACGT\n"

    def test_fastq_rejected(self, temp_dir: Path):
        source = temp_dir / "reads.fastq"
        source.write_text("@read1\nACGT\n+\nIIII\n")
        with pytest.raises(NotFastaError):
            stage_input(source, temp_dir)

    def test_empty_file_rejected(self, temp_dir: Path):
        source = temp_dir / "empty.fa"
        source.write_text("")
        with pytest.raises(NotFastaError):
            stage_input(source, temp_dir)

    def test_truncated_gzip_rejected(self, temp_dir: Path):
        source = temp_dir / "broken.fa.gz"
        source.write_bytes(gzip.compress(b">c1\n" + b"ACGT" * 1000)[:-10])
        workspace = temp_dir / "work"
        workspace.mkdir()
        with pytest.raises(NotFastaError):
            stage_input(source, workspace)

    def test_missing_file(self, temp_dir: Path):
        with pytest.raises(InputFileError, match="missing.fa"):
            stage_input(temp_dir / "missing.fa", temp_dir)


# =============================================================================
# Scratch workspace
# =============================================================================


class TestScratchWorkspace:
    def test_removed_on_exit(self):
        with scratch_workspace() as workspace:
            (workspace / "x").write_text("x")
            assert workspace.is_dir()
        assert not workspace.exists()

    def test_removed_on_error(self):
        with pytest.raises(RuntimeError):
            with scratch_workspace() as workspace:
                raise RuntimeError("boom")
        assert not workspace.exists()

    @pytest.mark.skipif(
        threading.current_thread() is not threading.main_thread(),
        reason="signal handlers can only be installed from the main thread",
    )
    def test_sigterm_exits_and_cleans_up(self):
        before = signal.getsignal(signal.SIGTERM)
        with pytest.raises(SystemExit) as exc_info:
            with scratch_workspace() as workspace:
                os.kill(os.getpid(), signal.SIGTERM)
        assert exc_info.value.code == 128 + signal.SIGTERM
        assert not workspace.exists()
        assert signal.getsignal(signal.SIGTERM) == before


# =============================================================================
# Environment pre-flight
# =============================================================================


class TestCheckEnvironment:
    """Tests for IdentificationPipeline.check_environment."""

    def test_all_present(self, fake_subprocess):
        IdentificationPipeline(PipelineConfig()).check_environment()
        assert len(fake_subprocess.tool_calls("blastdbcmd")) == 1

    def test_reports_every_missing_tool(self):
        ExternalTool.set_executable_resolver(
            lambda name: None if name.startswith("blast") else f"/usr/bin/{name}"
        )
        with pytest.raises(MissingDependenciesError) as exc_info:
            IdentificationPipeline(PipelineConfig()).check_environment()
        assert exc_info.value.tool_names == ["blastn", "blastdbcmd"]

    def test_genes_only_needs_no_blast(self):
        ExternalTool.set_executable_resolver(
            lambda name: None if name.startswith("blast") else f"/usr/bin/{name}"
        )
        toolbox = FakeToolbox()
        with patch("rrnaspecies.external.base.subprocess.run", side_effect=toolbox):
            IdentificationPipeline(PipelineConfig(genes_only=True)).check_environment()
        assert toolbox.calls == []

    def test_database_missing(self, tools_on_path):
        toolbox = FakeToolbox(database_ok=False)
        with patch("rrnaspecies.external.base.subprocess.run", side_effect=toolbox):
            with pytest.raises(DatabaseNotFoundError):
                IdentificationPipeline(PipelineConfig(database="missing_db")).check_environment()
        assert toolbox.tool_calls("blastdbcmd")[0][2] == "missing_db"


# =============================================================================
# Full runs
# =============================================================================


class TestRun:
    """Tests for IdentificationPipeline.run on the three-gene scenario."""

    def test_default_report(self, fake_subprocess, contigs_fasta):
        lines, summary = _run(PipelineConfig(), contigs_fasta)
        assert lines == [
            "# 16S_rRNA_1_Origin_contig_1",
            "Escherichia coli",
            "# 16S_rRNA_3_Origin_contig_2",
            "Escherichia coli",
        ]
        assert summary.genes_found == 3
        assert summary.lines_written == 4

    def test_deduplicated(self, fake_subprocess, contigs_fasta):
        lines, _ = _run(PipelineConfig(deduplicate=True), contigs_fasta)
        assert lines == ["Escherichia coli"]

    def test_deduplicated_long_keeps_best_gene(self, fake_subprocess, contigs_fasta):
        lines, _ = _run(PipelineConfig(deduplicate=True, long_output=True), contigs_fasta)
        assert lines[0] == COLUMN_HEADER
        row = lines[1].split("\t")
        assert row[0] == "Escherichia coli"
        assert row[5] == "1490"
        assert row[6] == "99"

    def test_max_matches_with_dedup(self, fake_subprocess, contigs_fasta):
        lines, _ = _run(PipelineConfig(deduplicate=True, max_matches=3), contigs_fasta)
        assert lines == [
            "Escherichia coli",
            "Shigella flexneri",
            "Klebsiella pneumoniae",
            "Escherichia fergusonii",
        ]

    def test_coverage_threshold_applies(self, fake_subprocess, contigs_fasta):
        """Lowering min_coverage lets the 40% Salmonella hit on gene 2 through."""
        lines, _ = _run(PipelineConfig(min_coverage=40, no_headers=True), contigs_fasta)
        assert lines == ["Escherichia coli", "Salmonella enterica", "Escherichia coli"]

    def test_genes_processed_in_order(self, fake_subprocess, contigs_fasta):
        _run(PipelineConfig(), contigs_fasta)
        queries = [text.splitlines()[0] for text in fake_subprocess.stdin if text]
        assert queries == [
            ">16S_rRNA_1_Origin_contig_1",
            ">16S_rRNA_2_Origin_contig_1",
            ">16S_rRNA_3_Origin_contig_2",
        ]

    def test_genes_only(self, fake_subprocess, contigs_fasta):
        lines, _ = _run(PipelineConfig(genes_only=True), contigs_fasta)
        headers = [line for line in lines if line.startswith(">")]
        assert headers == [
            ">16S_rRNA_1_Origin_contig_1",
            ">16S_rRNA_2_Origin_contig_1",
            ">16S_rRNA_3_Origin_contig_2",
        ]
        assert "".join(lines[1:5]) == CONTIG_1[10:200]
        assert fake_subprocess.tool_calls("blastn") == []

    def test_progress_messages(self, fake_subprocess, contigs_fasta):
        messages: list[str] = []
        pipeline = IdentificationPipeline(PipelineConfig(), on_progress=messages.append)
        pipeline.run(contigs_fasta, lambda line: None)
        assert len(messages) == 4
        assert messages[0] == "Located 3 16S rRNA gene(s)"
        assert messages[1] == (
            "16S_rRNA_1_Origin_contig_1 (190 bp): "
            "best match Escherichia coli (1490 identical bases)"
        )
        assert messages[2] == (
            "16S_rRNA_2_Origin_contig_1 (300 bp): no match passes the thresholds"
        )
        assert messages[3].startswith("16S_rRNA_3_Origin_contig_2 (350 bp): best match")

    def test_progress_messages_genes_only(self, fake_subprocess, contigs_fasta):
        messages: list[str] = []
        pipeline = IdentificationPipeline(
            PipelineConfig(genes_only=True), on_progress=messages.append
        )
        pipeline.run(contigs_fasta, lambda line: None)
        assert messages == [
            "Located 3 16S rRNA gene(s)",
            "16S_rRNA_1_Origin_contig_1: extracted 190 bp",
            "16S_rRNA_2_Origin_contig_1: extracted 300 bp",
            "16S_rRNA_3_Origin_contig_2: extracted 350 bp",
        ]

    def test_bad_barrnap_coordinates(self, fake_subprocess, contigs_fasta):
        fake_subprocess.gff = gff_text([gff_line("contig_1", 900, 601)])
        with pytest.raises(MalformedToolOutputError, match="Malformed barrnap output"):
            _run(PipelineConfig(), contigs_fasta)
        assert fake_subprocess.tool_calls("blastn") == []

    def test_no_genes_found(self, fake_subprocess, contigs_fasta):
        fake_subprocess.gff = gff_text([])
        lines, summary = _run(PipelineConfig(long_output=True), contigs_fasta)
        assert lines == []
        assert summary.genes_found == 0
        assert fake_subprocess.tool_calls("blastn") == []

    def test_works_on_staged_copy(self, fake_subprocess, contigs_fasta):
        """The .fai index is built on a scratch copy that is removed afterwards."""
        _run(PipelineConfig(), contigs_fasta)
        index_call = fake_subprocess.tool_calls("samtools")[0]
        staged = Path(index_call[2])
        assert staged.name == STAGED_FASTA_NAME
        assert staged != contigs_fasta
        assert not staged.parent.exists()
        assert not (contigs_fasta.parent / (contigs_fasta.name + ".fai")).exists()

    def test_failure_after_partial_output(self, fake_subprocess, contigs_fasta):
        """Lines already emitted stay emitted; the error still propagates."""
        fake_subprocess.blast["16S_rRNA_3_Origin_contig_2"] = ["truncated line"]
        lines: list[str] = []
        with pytest.raises(MalformedToolOutputError):
            IdentificationPipeline(PipelineConfig()).run(contigs_fasta, lines.append)
        assert lines == ["# 16S_rRNA_1_Origin_contig_1", "Escherichia coli"]

    def test_failure_with_dedup_emits_nothing(self, fake_subprocess, contigs_fasta):
        fake_subprocess.blast["16S_rRNA_3_Origin_contig_2"] = ["truncated line"]
        lines: list[str] = []
        with pytest.raises(MalformedToolOutputError):
            IdentificationPipeline(PipelineConfig(deduplicate=True)).run(
                contigs_fasta, lines.append
            )
        assert lines == []

    def test_not_fasta_stops_before_tools(self, fake_subprocess, temp_dir):
        source = temp_dir / "reads.fastq"
        source.write_text("@r1\nACGT\n+\nIIII\n")
        with pytest.raises(NotFastaError):
            _run(PipelineConfig(), source)
        assert fake_subprocess.calls == []
