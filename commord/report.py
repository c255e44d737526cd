"""Report writers for community ordination analysis."""

from __future__ import annotations

import csv
import logging
from pathlib import Path

from . import beta as beta_mod
from . import diversity as div_mod
from . import ordination as ord_mod
from .io import AbundanceTable

logger = logging.getLogger(__name__)


def generate_report(
    abundance: AbundanceTable,
    output_dir: str | Path,
    nmds_config: ord_mod.NMDSConfig | None = None,
) -> None:
    """Run diversity and ordination analyses and write results to output directory."""
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    logger.info(
        "Analysing %d communities over %d species",
        abundance.n_communities, abundance.n_species,
    )

    # Alpha diversity
    alpha = div_mod.compute_alpha_diversity(abundance)
    _write_alpha_csv(alpha, out / "alpha_diversity.csv")

    # Beta diversity
    partition = div_mod.beta_partition(abundance)
    _write_beta_partition(partition, out / "beta_partition.txt")
    bc = beta_mod.bray_curtis(abundance)
    _write_distance_matrix(bc, out / "beta_diversity_bray_curtis.csv")

    # Ordination
    pcoa_result = ord_mod.pcoa(bc)
    _write_ordination(pcoa_result, out / "ordination_pcoa.csv")
    nmds_result = ord_mod.nmds(bc, nmds_config)
    _write_ordination(nmds_result, out / "ordination_nmds.csv")

    _write_fit_statistics([pcoa_result, nmds_result], out / "fit_statistics.txt")
    logger.info("Report written to %s", out)


def _write_alpha_csv(result: div_mod.AlphaDiversityResult, path: Path) -> None:
    with open(path, "w", newline="") as f:
        w = csv.writer(f)
        w.writerow([
            "community_id", "shannon", "simpson", "inverse_simpson", "richness",
            "evenness", "berger_parker", "margalef", "menhinick",
        ])
        for i, cid in enumerate(result.community_ids):
            w.writerow([
                cid,
                f"{result.shannon[i]:.4f}",
                f"{result.simpson[i]:.4f}",
                f"{result.inverse_simpson[i]:.4f}",
                f"{result.richness[i]:.0f}",
                f"{result.evenness[i]:.4f}",
                f"{result.berger_parker[i]:.4f}",
                f"{result.margalef[i]:.4f}",
                f"{result.menhinick[i]:.4f}",
            ])


def _write_beta_partition(result: div_mod.BetaPartition, path: Path) -> None:
    with open(path, "w") as f:
        f.write(f"Gamma richness: {result.gamma}\n")
        f.write(f"Mean alpha richness: {result.mean_alpha:.4f}\n")
        f.write(f"Whittaker beta: {result.whittaker:.4f}\n")
        f.write(f"Additive beta: {result.additive:.4f}\n")
        f.write(f"Harrison beta: {result.harrison:.4f}\n")
        f.write(f"Williams beta: {result.williams:.4f}\n")
        f.write(f"Routledge beta: {result.routledge:.4f}\n")
        f.write(f"Mean Jaccard dissimilarity: {result.mean_jaccard:.4f}\n")
        f.write(f"Mean Sorensen dissimilarity: {result.mean_sorensen:.4f}\n")


def _write_distance_matrix(result: beta_mod.DissimilarityMatrix, path: Path) -> None:
    with open(path, "w", newline="") as f:
        w = csv.writer(f)
        w.writerow([""] + list(result.community_ids))
        for i, cid in enumerate(result.community_ids):
            w.writerow([cid] + [f"{result.distance_matrix[i, j]:.6f}" for j in range(result.n)])


def _write_ordination(result: ord_mod.OrdinationResult, path: Path) -> None:
    with open(path, "w", newline="") as f:
        w = csv.writer(f)
        w.writerow(["community_id", "Axis1", "Axis2", "richness", "total_abundance"])
        for p in result.points():
            w.writerow([
                p.community_id,
                f"{p.axis1:.6f}",
                f"{p.axis2:.6f}",
                "" if p.richness is None else p.richness,
                "" if p.total_abundance is None else f"{p.total_abundance:g}",
            ])


def _write_fit_statistics(results: list[ord_mod.OrdinationResult], path: Path) -> None:
    with open(path, "w") as f:
        for result in results:
            f.write(f"Method: {result.method}\n")
            if result.explained_variance is not None:
                for k, pct in enumerate(result.explained_variance):
                    f.write(f"Axis{k+1} variance explained: {pct:.2f}%\n")
                f.write(f"Total variance explained: {result.total_explained:.2f}%\n")
            if result.stress is not None:
                f.write(f"Stress: {result.stress:.4f}\n")
                f.write(f"Iterations: {result.iterations}\n")
            f.write(f"Converged: {result.converged}\n")
            f.write(f"Degenerate: {result.degenerate}\n\n")
