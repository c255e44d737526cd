"""Click CLI for commord — community diversity and ordination."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from commord import __version__

from .io import load_abundance_table

logger = logging.getLogger("commord")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool) -> None:
    """commord — Community Diversity and Ordination Tool."""
    _setup_logging(verbose)


@main.command()
@click.option("--abundance", "-a", required=True, type=click.Path(exists=True), help="Abundance table TSV")
@click.option("--metric", type=click.Choice(["bray_curtis", "jaccard", "sorensen"]), default="bray_curtis", help="Dissimilarity metric")
@click.option("--output", "-o", default="results", help="Output directory")
def matrix(abundance: str, metric: str, output: str) -> None:
    """Compute the pairwise dissimilarity matrix."""
    from .beta import build_dissimilarity_matrix
    from .report import _write_distance_matrix

    table = load_abundance_table(abundance)
    out = Path(output)
    out.mkdir(parents=True, exist_ok=True)

    result = build_dissimilarity_matrix(table, metric)
    _write_distance_matrix(result, out / f"beta_diversity_{metric}.csv")
    click.echo(f"Dissimilarity matrix written to {out}/")


@main.command()
@click.option("--abundance", "-a", required=True, type=click.Path(exists=True), help="Abundance table TSV")
@click.option("--method", type=click.Choice(["pcoa", "nmds"]), default="pcoa", help="Ordination method")
@click.option("--seed", default=42, help="Random seed for NMDS restarts.")
@click.option("--attempts", default=10, help="Number of NMDS starting configurations.")
@click.option("--max-iter", default=500, help="Maximum NMDS iterations per attempt.")
@click.option("--output", "-o", default="results", help="Output directory")
def ordination(abundance: str, method: str, seed: int, attempts: int, max_iter: int, output: str) -> None:
    """Run ordination analysis (PCoA or NMDS) on Bray-Curtis dissimilarity."""
    from .beta import bray_curtis
    from .ordination import NMDSConfig
    from .ordination import nmds as run_nmds
    from .ordination import pcoa as run_pcoa
    from .report import _write_fit_statistics, _write_ordination

    table = load_abundance_table(abundance)
    out = Path(output)
    out.mkdir(parents=True, exist_ok=True)

    bc = bray_curtis(table)
    if method == "pcoa":
        result = run_pcoa(bc)
    else:
        config = NMDSConfig(random_seed=seed, max_attempts=attempts, max_iterations=max_iter)
        result = run_nmds(bc, config)

    _write_ordination(result, out / f"ordination_{method}.csv")
    _write_fit_statistics([result], out / f"fit_statistics_{method}.txt")
    if result.degenerate:
        logger.warning("Input is degenerate; %s coordinates are a fallback layout", method)
    click.echo(f"Ordination results written to {out}/")


@main.command()
@click.option("--abundance", "-a", required=True, type=click.Path(exists=True), help="Abundance table TSV")
@click.option("--output", "-o", default="results", help="Output directory")
def diversity(abundance: str, output: str) -> None:
    """Compute alpha diversity and the gamma/beta partition."""
    from .diversity import beta_partition, compute_alpha_diversity
    from .report import _write_alpha_csv, _write_beta_partition

    table = load_abundance_table(abundance)
    out = Path(output)
    out.mkdir(parents=True, exist_ok=True)

    _write_alpha_csv(compute_alpha_diversity(table), out / "alpha_diversity.csv")
    _write_beta_partition(beta_partition(table), out / "beta_partition.txt")
    click.echo(f"Diversity results written to {out}/")


@main.command()
@click.option("--abundance", "-a", required=True, type=click.Path(exists=True), help="Abundance table TSV")
@click.option("--seed", default=42, help="Random seed for NMDS restarts.")
@click.option("--output", "-o", default="results", help="Output directory")
def report(abundance: str, seed: int, output: str) -> None:
    """Run full analysis pipeline and generate report."""
    from .ordination import NMDSConfig
    from .report import generate_report

    table = load_abundance_table(abundance)
    generate_report(table, output, NMDSConfig(random_seed=seed))
    click.echo(f"Full report written to {output}/")
