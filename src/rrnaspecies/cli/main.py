"""
Main CLI entry point for rrnaspecies.

Identifies bacterial species in assembled contigs from their 16S rRNA genes:
barrnap locates the genes, samtools extracts them and blastn matches them
against a 16S reference database. The ranked species list is written to
standard output.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich import print as rprint
from rich.console import Console
from rich.markup import escape

from rrnaspecies import __version__
from rrnaspecies.cli.utils import QuietConsole, configure_logging, spinner_progress
from rrnaspecies.core.exceptions import RrnaSpeciesError
from rrnaspecies.core.pipeline import IdentificationPipeline
from rrnaspecies.models.config import PipelineConfig

app = typer.Typer(
    name="rrnaspecies",
    help="Identify bacterial species in contigs from their 16S rRNA genes",
    add_completion=False,
)

err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        rprint(f"rrnaspecies version {__version__}")
        raise typer.Exit


@app.command()
def identify(
    file: Path | None = typer.Argument(
        None,
        help="Contig FASTA file, plain or gzipped ('-' or omitted: stdin)",
        show_default=False,
    ),
    coverage: int | None = typer.Option(
        None,
        "--coverage", "-c",
        help="Minimum % of the reference covered by the alignment [default: 60]",
        min=0,
        max=100,
    ),
    identity: float | None = typer.Option(
        None,
        "--identity", "-i",
        help="Minimum percent identity [default: 98.0]",
        min=0.0,
        max=100.0,
    ),
    max_matches: int | None = typer.Option(
        None,
        "--max-matches", "-m",
        help="Maximum matches reported per gene [default: 1]",
        min=1,
    ),
    deduplicate: bool = typer.Option(
        False,
        "--deduplicate", "-d",
        help="Report each species once, with its best match across all genes",
    ),
    long_output: bool = typer.Option(
        False,
        "--long-output", "-l",
        help="Tab-separated table with accession, lengths, coverage and identity",
    ),
    no_headers: bool = typer.Option(
        False,
        "--no-headers", "-n",
        help="Suppress '#' header lines",
    ),
    genes_only: bool = typer.Option(
        False,
        "--genes-only", "-g",
        help="Only write the predicted 16S sequences as FASTA",
    ),
    database: str | None = typer.Option(
        None,
        "--database", "-D",
        help="BLAST database name or path [default: 16S_ribosomal_RNA]",
    ),
    threads: int | None = typer.Option(
        None,
        "--threads", "-t",
        help="Threads for barrnap and blastn [default: 1]",
        min=1,
    ),
    max_targets: int | None = typer.Option(
        None,
        "--max-targets",
        help="Candidates requested from blastn per gene [default: 50]",
        min=1,
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        help="YAML config file; explicit options override its values",
        exists=True,
        dir_okay=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Log progress to stderr",
    ),
    version: bool = typer.Option(
        None,
        "--version",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    Identify bacterial species from the 16S rRNA genes in FILE.

    Each predicted gene is searched against the reference database. Matches
    covering less than --coverage % of the reference are discarded, the rest
    are ranked by identical bases, alignment length and coverage, and the
    best --max-matches are reported per gene.

    Example:

        rrnaspecies contigs.fasta

        rrnaspecies --long-output --deduplicate --max-matches 3 contigs.fa.gz

        zcat contigs.fa.gz | rrnaspecies --genes-only > 16S.fasta
    """
    try:
        base = PipelineConfig.from_yaml(config_file) if config_file else PipelineConfig()
        config = base.merged(
            min_coverage=coverage,
            min_identity=identity,
            max_matches=max_matches,
            deduplicate=deduplicate or None,
            long_output=long_output or None,
            no_headers=no_headers or None,
            genes_only=genes_only or None,
            verbose=verbose or None,
            database=database,
            threads=threads,
            max_target_seqs=max_targets,
        )

        configure_logging(config.verbose)
        status = QuietConsole(err_console, quiet=not config.verbose)
        source = None if file is None or str(file) == "-" else file

        with spinner_progress("Checking dependencies...", err_console, status.quiet) as progress:
            task_id = progress.task_ids[0]

            def show_progress(message: str) -> None:
                status.print(escape(message))
                progress.update(task_id, description=escape(message))

            pipeline = IdentificationPipeline(config, on_progress=show_progress)
            pipeline.check_environment()

            status.print(f"[bold blue]rrnaspecies[/bold blue] {escape(str(source or '<stdin>'))}")
            summary = pipeline.run(source, typer.echo)

    except RrnaSpeciesError as e:
        err_console.print(f"[red]Error:[/red] {escape(e.full_message)}")
        raise typer.Exit(code=1) from None
    except KeyboardInterrupt:
        err_console.print("[yellow]Interrupted[/yellow]")
        raise typer.Exit(code=130) from None

    status.print(
        f"[green]Done:[/green] {summary.genes_found} 16S gene(s), "
        f"{summary.lines_written} line(s) written"
    )


if __name__ == "__main__":
    app()
