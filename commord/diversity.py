"""Alpha, beta and gamma diversity summaries for community data."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .beta import jaccard, sorensen
from .io import AbundanceTable


@dataclass
class AlphaDiversityResult:
    """Alpha diversity metrics per community."""

    community_ids: list
    shannon: np.ndarray
    simpson: np.ndarray
    inverse_simpson: np.ndarray
    richness: np.ndarray
    evenness: np.ndarray
    berger_parker: np.ndarray
    margalef: np.ndarray
    menhinick: np.ndarray


def shannon_index(abundances: np.ndarray) -> float:
    """Shannon diversity H = -sum(pi * ln(pi)) for a single community vector."""
    total = abundances.sum()
    if total == 0:
        return 0.0
    p = abundances / total
    p = p[p > 0]
    return -float(np.sum(p * np.log(p)))


def simpson_index(abundances: np.ndarray) -> float:
    """Simpson diversity 1 - sum(pi^2) for a single community vector."""
    total = abundances.sum()
    if total == 0:
        return 0.0
    p = abundances / total
    return 1.0 - float(np.sum(p**2))


def inverse_simpson(abundances: np.ndarray) -> float:
    """Simpson's reciprocal index 1 / sum(pi^2)."""
    total = abundances.sum()
    if total == 0:
        return 0.0
    p = abundances / total
    return 1.0 / float(np.sum(p**2))


def richness(abundances: np.ndarray) -> int:
    """Number of species with abundance > 0."""
    return int(np.sum(abundances > 0))


def pielou_evenness(abundances: np.ndarray) -> float:
    """Pielou's evenness J = H / ln(S)."""
    s = richness(abundances)
    if s <= 1:
        return 0.0
    return shannon_index(abundances) / np.log(s)


def berger_parker(abundances: np.ndarray) -> float:
    """Berger-Parker dominance: proportion of the most abundant species."""
    total = abundances.sum()
    if total == 0:
        return 0.0
    return float(abundances.max() / total)


def margalef(abundances: np.ndarray) -> float:
    """Margalef's richness (S - 1) / ln(N)."""
    total = abundances.sum()
    if total <= 1:
        return 0.0
    return (richness(abundances) - 1) / float(np.log(total))


def menhinick(abundances: np.ndarray) -> float:
    """Menhinick's richness S / sqrt(N)."""
    total = abundances.sum()
    if total == 0:
        return 0.0
    return richness(abundances) / float(np.sqrt(total))


def compute_alpha_diversity(table: AbundanceTable) -> AlphaDiversityResult:
    """Compute alpha diversity for all communities in the abundance table."""
    n = table.n_communities
    metrics = {
        name: np.zeros(n)
        for name in (
            "shannon", "simpson", "inverse_simpson", "richness",
            "evenness", "berger_parker", "margalef", "menhinick",
        )
    }
    for i in range(n):
        col = table.abundances[:, i]
        metrics["shannon"][i] = shannon_index(col)
        metrics["simpson"][i] = simpson_index(col)
        metrics["inverse_simpson"][i] = inverse_simpson(col)
        metrics["richness"][i] = richness(col)
        metrics["evenness"][i] = pielou_evenness(col)
        metrics["berger_parker"][i] = berger_parker(col)
        metrics["margalef"][i] = margalef(col)
        metrics["menhinick"][i] = menhinick(col)
    return AlphaDiversityResult(community_ids=list(table.community_ids), **metrics)


@dataclass(frozen=True)
class BetaPartition:
    """Richness-based partition of gamma diversity into alpha and beta."""

    gamma: int
    mean_alpha: float
    whittaker: float
    additive: float
    harrison: float
    williams: float
    routledge: float
    mean_jaccard: float
    mean_sorensen: float


def beta_partition(table: AbundanceTable) -> BetaPartition:
    """Whittaker-family beta indices and mean pairwise presence/absence dissimilarity.

    Whittaker  beta = gamma / mean_alpha
    additive   beta = gamma - mean_alpha
    Harrison   beta = (gamma - mean_alpha) / (gamma - 1)
    Williams   beta = (gamma - mean_alpha) / gamma
    Routledge  beta = (gamma^2 - sum(alpha^2)) / (2 * mean_alpha * gamma * (n - 1))
    """
    n = table.n_communities
    alpha = table.richness().astype(float)
    gamma = int(np.sum(table.abundances.sum(axis=1) > 0))
    mean_alpha = float(alpha.mean()) if n else 0.0

    whittaker = gamma / mean_alpha if mean_alpha > 0 else 0.0
    additive = gamma - mean_alpha
    harrison = (gamma - mean_alpha) / (gamma - 1) if gamma > 1 else 0.0
    williams = (gamma - mean_alpha) / gamma if gamma > 0 else 0.0
    if n > 1 and mean_alpha > 0 and gamma > 0:
        routledge = (gamma**2 - float(np.sum(alpha**2))) / (
            2 * mean_alpha * gamma * (n - 1)
        )
    else:
        routledge = 0.0

    if n > 1:
        upper = np.triu_indices(n, k=1)
        mean_jaccard = float(jaccard(table).distance_matrix[upper].mean())
        mean_sorensen = float(sorensen(table).distance_matrix[upper].mean())
    else:
        mean_jaccard = mean_sorensen = 0.0

    return BetaPartition(
        gamma=gamma,
        mean_alpha=mean_alpha,
        whittaker=whittaker,
        additive=additive,
        harrison=harrison,
        williams=williams,
        routledge=routledge,
        mean_jaccard=mean_jaccard,
        mean_sorensen=mean_sorensen,
    )
