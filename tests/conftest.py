"""
Shared pytest fixtures for rrnaspecies tests.

Provides contig files, fake collaborator output and an injected
executable resolver so no bioinformatics tool is needed on the host.
"""

from __future__ import annotations

import gzip
from pathlib import Path
from unittest.mock import patch

import pytest

from rrnaspecies.external.base import ExternalTool
from tests.factories import (
    CONTIG_1,
    CONTIG_2,
    FakeToolbox,
    blast_line,
    candidate_with_key,
    gff_line,
    gff_text,
)


# =============================================================================
# Tool resolution
# =============================================================================


@pytest.fixture(autouse=True)
def _clear_tool_cache():
    """Ensure the executable cache is empty before and after each test."""
    ExternalTool.clear_cache()
    yield
    ExternalTool.reset_executable_resolver()


@pytest.fixture
def tools_on_path():
    """Pretend every external tool is installed under /usr/bin."""
    ExternalTool.set_executable_resolver(lambda name: f"/usr/bin/{name}")
    yield
    ExternalTool.reset_executable_resolver()


# =============================================================================
# Input files
# =============================================================================


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def contigs_fasta(tmp_path: Path) -> Path:
    """Two-contig FASTA file."""
    path = tmp_path / "contigs.fasta"
    path.write_text(f">contig_1 len=2000\n{CONTIG_1}\n>contig_2\n{CONTIG_2}\n")
    return path


@pytest.fixture
def contigs_fasta_gz(tmp_path: Path) -> Path:
    path = tmp_path / "contigs.fasta.gz"
    with gzip.open(path, "wt") as fh:
        fh.write(f">contig_1\n{CONTIG_1}\n")
    return path


# =============================================================================
# Fake collaborator output
# =============================================================================


@pytest.fixture
def three_gene_toolbox() -> FakeToolbox:
    """
    Three 16S genes (two on contig_1, one on contig_2) plus one 23S gene.

    Gene 1 and gene 3 both hit Escherichia coli; gene 1's hit is better.
    """
    gff = gff_text(
        [
            gff_line("contig_1", 11, 200),
            gff_line("contig_1", 300, 500, name="23S_rRNA"),
            gff_line("contig_1", 601, 900),
            gff_line("contig_2", 51, 400),
        ]
    )
    sequences = {
        "contig_1:11-200": CONTIG_1[10:200],
        "contig_1:601-900": CONTIG_1[600:900],
        "contig_2:51-400": CONTIG_2[50:400],
    }
    blast = {
        "16S_rRNA_1_Origin_contig_1": [
            blast_line(candidate_with_key(1440, 1450, 95, "Shigella flexneri")),
            blast_line(candidate_with_key(1490, 1500, 99, "Escherichia coli")),
            blast_line(candidate_with_key(1290, 1300, 80, "Escherichia fergusonii")),
        ],
        "16S_rRNA_2_Origin_contig_1": [
            blast_line(candidate_with_key(1475, 1480, 40, "Salmonella enterica")),
        ],
        "16S_rRNA_3_Origin_contig_2": [
            blast_line(candidate_with_key(1390, 1400, 90, "Escherichia coli")),
            blast_line(candidate_with_key(1385, 1400, 90, "Klebsiella pneumoniae")),
        ],
    }
    return FakeToolbox(gff=gff, sequences=sequences, blast=blast)


@pytest.fixture
def fake_subprocess(three_gene_toolbox: FakeToolbox, tools_on_path):
    """Route subprocess.run in the tool wrappers to the three-gene toolbox."""
    with patch(
        "rrnaspecies.external.base.subprocess.run",
        side_effect=three_gene_toolbox,
    ):
        yield three_gene_toolbox
