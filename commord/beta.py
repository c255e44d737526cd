"""Beta diversity dissimilarity matrices between communities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

import numpy as np
from scipy.spatial.distance import pdist, squareform

from .io import AbundanceTable, Community, validate_communities


@dataclass
class DissimilarityMatrix:
    """Pairwise community dissimilarities, indexed by community position."""

    community_ids: list
    distance_matrix: np.ndarray  # shape (n_communities, n_communities)
    metric: str
    richness: np.ndarray | None = None
    total_abundance: np.ndarray | None = None

    @property
    def n(self) -> int:
        return self.distance_matrix.shape[0]

    @property
    def is_degenerate(self) -> bool:
        """Too few communities, or all communities share one composition."""
        if self.n < 3:
            return True
        return not np.any(self.distance_matrix > 0)


def _as_table(data: Sequence[Community] | AbundanceTable) -> AbundanceTable:
    if isinstance(data, AbundanceTable):
        validate_communities(data.to_communities())
        return data
    validate_communities(data)
    return AbundanceTable.from_communities(data)


def _from_condensed(table: AbundanceTable, dists: np.ndarray, metric: str) -> DissimilarityMatrix:
    n = table.n_communities
    if n == 1:
        dm = np.zeros((1, 1))
    else:
        dm = squareform(np.clip(dists, 0.0, 1.0))
    return DissimilarityMatrix(
        community_ids=list(table.community_ids),
        distance_matrix=dm,
        metric=metric,
        richness=table.richness(),
        total_abundance=table.totals(),
    )


def bray_curtis(data: Sequence[Community] | AbundanceTable) -> DissimilarityMatrix:
    """Compute Bray-Curtis dissimilarity between all community pairs.

    1 - 2 * sum(min(x_i, x_j)) / sum(x_i + x_j), which equals
    sum(|x_i - x_j|) / sum(x_i + x_j).
    """
    table = _as_table(data)
    # pdist expects rows=observations, so transpose: (n_communities, n_species)
    mat = table.abundances.T
    dists = pdist(mat, metric="braycurtis") if table.n_communities > 1 else np.empty(0)
    return _from_condensed(table, dists, "bray_curtis")


def jaccard(data: Sequence[Community] | AbundanceTable) -> DissimilarityMatrix:
    """Compute Jaccard dissimilarity on presence/absence."""
    table = _as_table(data)
    pa = (table.abundances > 0).T  # (n_communities, n_species)
    dists = pdist(pa, metric="jaccard") if table.n_communities > 1 else np.empty(0)
    return _from_condensed(table, dists, "jaccard")


def sorensen(data: Sequence[Community] | AbundanceTable) -> DissimilarityMatrix:
    """Compute Sorensen (Dice) dissimilarity on presence/absence."""
    table = _as_table(data)
    pa = (table.abundances > 0).T
    dists = pdist(pa, metric="dice") if table.n_communities > 1 else np.empty(0)
    return _from_condensed(table, dists, "sorensen")


METRICS: dict[str, Callable[[Sequence[Community] | AbundanceTable], DissimilarityMatrix]] = {
    "bray_curtis": bray_curtis,
    "jaccard": jaccard,
    "sorensen": sorensen,
}


def build_dissimilarity_matrix(
    communities: Sequence[Community] | AbundanceTable,
    metric: str = "bray_curtis",
) -> DissimilarityMatrix:
    """Build an N x N dissimilarity matrix with the named metric."""
    try:
        func = METRICS[metric]
    except KeyError:
        raise ValueError(
            f"Unknown metric {metric!r}; choose from {sorted(METRICS)}"
        ) from None
    return func(communities)
