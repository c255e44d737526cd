"""Ordination methods (PCoA, NMDS) for community dissimilarity matrices."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Hashable

import numpy as np

from .beta import DissimilarityMatrix
from .isotonic import isotonic_regression

logger = logging.getLogger(__name__)

# Reported when the leading eigenvalues carry no usable variance
PLACEHOLDER_VARIANCE = (50.0, 30.0)


@dataclass
class EmbeddingPoint:
    """One community's position in the 2D embedding."""

    community_id: Hashable
    axis1: float
    axis2: float
    richness: int | None = None
    total_abundance: float | None = None


@dataclass
class OrdinationResult:
    """Ordination coordinates and fit diagnostics."""

    community_ids: list
    coordinates: np.ndarray  # shape (n_communities, 2)
    explained_variance: np.ndarray | None  # percent per axis (PCoA only)
    stress: float | None  # NMDS only
    method: str
    converged: bool = True
    iterations: int = 0
    degenerate: bool = False
    richness: np.ndarray | None = None
    total_abundance: np.ndarray | None = None

    @property
    def total_explained(self) -> float | None:
        if self.explained_variance is None:
            return None
        return float(self.explained_variance.sum())

    def points(self) -> list[EmbeddingPoint]:
        """Per-community coordinates with richness/abundance annotation."""
        pts: list[EmbeddingPoint] = []
        for i, cid in enumerate(self.community_ids):
            pts.append(
                EmbeddingPoint(
                    community_id=cid,
                    axis1=float(self.coordinates[i, 0]),
                    axis2=float(self.coordinates[i, 1]),
                    richness=None if self.richness is None else int(self.richness[i]),
                    total_abundance=(
                        None if self.total_abundance is None
                        else float(self.total_abundance[i])
                    ),
                )
            )
        return pts


@dataclass
class NMDSConfig:
    """Configuration for multi-start NMDS.

    Attributes:
        max_attempts: Number of independent starting configurations.
        max_iterations: Maximum gradient steps per attempt.
        tolerance: Stress change below which an iteration counts as stagnant.
        patience: Consecutive stagnant iterations that end an attempt.
        base_step: Initial step size (1.0 is a full Guttman transform).
        min_step: Floor for the decaying step size.
        step_decay: Iteration scale of the exponential step decay.
        degeneracy_threshold: Minimum coordinate range on either axis.
        warmup_iterations: Iterations before the degeneracy guard applies.
        good_enough_stress: Stop launching attempts once a valid attempt
            reaches this stress.
        converged_stress: Stress below which the fit is reported converged.
        display_bound: Largest absolute coordinate after rescaling.
        ties: "secondary" (tied dissimilarities share one fitted distance)
            or "primary" (ties may be fitted independently).
        random_seed: Seed for the per-attempt generators.
    """

    max_attempts: int = 10
    max_iterations: int = 500
    tolerance: float = 1e-7
    patience: int = 15
    base_step: float = 1.0
    min_step: float = 0.05
    step_decay: float = 100.0
    degeneracy_threshold: float = 0.05
    warmup_iterations: int = 50
    good_enough_stress: float = 0.05
    converged_stress: float = 0.2
    display_bound: float = 2.0
    ties: str = "secondary"
    random_seed: int = 42


def _as_dissimilarity(matrix: DissimilarityMatrix | np.ndarray) -> DissimilarityMatrix:
    if isinstance(matrix, DissimilarityMatrix):
        diss = matrix
    else:
        dm = np.asarray(matrix, dtype=np.float64)
        diss = DissimilarityMatrix(
            community_ids=list(range(dm.shape[0])) if dm.ndim == 2 else [],
            distance_matrix=dm,
            metric="precomputed",
        )
    dm = diss.distance_matrix
    if dm.ndim != 2 or dm.shape[0] != dm.shape[1]:
        raise ValueError(f"Dissimilarity matrix must be square, got shape {dm.shape}")
    if not np.all(np.isfinite(dm)):
        raise ValueError("Dissimilarity matrix contains non-finite values")
    if not np.allclose(dm, dm.T, atol=1e-9):
        raise ValueError("Dissimilarity matrix must be symmetric")
    if np.any(dm < 0):
        raise ValueError("Dissimilarity matrix must be non-negative")
    return diss


def fallback_layout(n: int) -> np.ndarray:
    """Points evenly spaced on the unit circle (a single point sits at the origin)."""
    if n <= 1:
        return np.zeros((n, 2))
    angles = 2 * np.pi * np.arange(n) / n
    return np.column_stack([np.cos(angles), np.sin(angles)])


def _result(diss: DissimilarityMatrix, coords: np.ndarray, method: str, **kwargs) -> OrdinationResult:
    return OrdinationResult(
        community_ids=list(diss.community_ids),
        coordinates=coords,
        method=method,
        richness=diss.richness,
        total_abundance=diss.total_abundance,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# PCoA
# ---------------------------------------------------------------------------


def _double_center(dm: np.ndarray) -> np.ndarray:
    """Gower double centering of the squared dissimilarities."""
    d2 = dm**2
    row_mean = d2.mean(axis=1, keepdims=True)
    col_mean = d2.mean(axis=0, keepdims=True)
    grand_mean = d2.mean()
    return -0.5 * (d2 - row_mean - col_mean + grand_mean)


def _orthogonalize(v: np.ndarray, basis: list[np.ndarray]) -> np.ndarray:
    for u in basis:
        v = v - (u @ v) * u
    return v


def _power_iteration(
    gram: np.ndarray,
    prior: list[np.ndarray],
    start: np.ndarray,
    max_iter: int,
    tol: float,
) -> np.ndarray | None:
    """Dominant eigenvector of *gram* orthogonal to *prior*, or None if unstable."""
    # Shift by the Gershgorin lower bound so the largest algebraic eigenvalue
    # dominates even when negative eigenvalues are larger in magnitude
    off = np.abs(gram).sum(axis=1) - np.abs(np.diag(gram))
    shift = max(0.0, float(np.max(off - np.diag(gram))))

    v = _orthogonalize(start, prior)
    norm = np.linalg.norm(v)
    if not np.isfinite(norm) or norm == 0:
        return None
    v = v / norm

    for _ in range(max_iter):
        w = gram @ v + shift * v
        w = _orthogonalize(w, prior)
        norm = np.linalg.norm(w)
        if not np.isfinite(norm):
            return None
        if norm < 1e-300:
            # v lies in the null space of the shifted matrix
            break
        w = w / norm
        delta = np.linalg.norm(w - v)
        v = w
        if delta < tol:
            break

    # Sign convention: largest-magnitude loading is positive
    if v[np.argmax(np.abs(v))] < 0:
        v = -v
    return v


def pcoa(
    matrix: DissimilarityMatrix | np.ndarray,
    max_iter: int = 200,
    tol: float = 1e-8,
    seed: int = 0,
) -> OrdinationResult:
    """Principal Coordinates Analysis via power iteration with deflation.

    Double-centers the squared dissimilarity matrix, then extracts the
    two leading eigenpairs one at a time. Each component starts from a fixed
    vector derived from ``seed + k``, so repeated calls are identical.
    Negative eigenvalues contribute zero-length axes.
    """
    diss = _as_dissimilarity(matrix)
    n = diss.n

    if diss.is_degenerate:
        logger.warning(
            "PCoA on degenerate input (%d communities, max dissimilarity %.3g); "
            "using fallback layout",
            n, float(diss.distance_matrix.max()) if n else 0.0,
        )
        return _result(
            diss,
            fallback_layout(n),
            "PCoA",
            explained_variance=np.array(PLACEHOLDER_VARIANCE),
            stress=None,
            converged=False,
            degenerate=True,
        )

    gram = _double_center(diss.distance_matrix)
    all_eigenvalues = np.linalg.eigvalsh(gram)
    total_pos = float(all_eigenvalues[all_eigenvalues > 0].sum())

    deflated = gram.copy()
    vectors: list[np.ndarray] = []
    eigenvalues = np.zeros(2)
    coords = np.zeros((n, 2))

    for k in range(2):
        start = np.random.default_rng(seed + k).standard_normal(n)
        v = _power_iteration(deflated, vectors, start, max_iter, tol)
        lam = float(v @ deflated @ v) if v is not None else math.nan
        if v is None or not math.isfinite(lam):
            logger.warning("PCoA axis %d discarded: power iteration did not yield a finite eigenpair", k + 1)
            continue
        vectors.append(v)
        eigenvalues[k] = lam
        coords[:, k] = v * math.sqrt(max(lam, 0.0))
        deflated = deflated - lam * np.outer(v, v)
        logger.debug("PCoA axis %d: eigenvalue %.6g", k + 1, lam)

    positive = eigenvalues.clip(min=0)
    if positive.sum() <= 0 or total_pos <= 0:
        logger.warning("PCoA leading eigenvalues are non-positive; using fallback layout")
        return _result(
            diss,
            fallback_layout(n),
            "PCoA",
            explained_variance=np.array(PLACEHOLDER_VARIANCE),
            stress=None,
            converged=False,
            degenerate=True,
        )

    # Rayleigh quotients can overshoot the exact spectrum by rounding error
    total_pos = max(total_pos, float(positive.sum()))
    explained = positive / total_pos * 100.0

    return _result(
        diss,
        coords,
        "PCoA",
        explained_variance=explained,
        stress=None,
    )


# ---------------------------------------------------------------------------
# NMDS
# ---------------------------------------------------------------------------


@dataclass
class _Attempt:
    index: int
    coordinates: np.ndarray
    stress: float
    iterations: int
    degenerate: bool


class _MonotoneTarget:
    """Rank structure of the dissimilarities, shared by all attempts."""

    def __init__(self, dm: np.ndarray, ties: str):
        if ties not in ("primary", "secondary"):
            raise ValueError(f"ties must be 'primary' or 'secondary', got {ties!r}")
        n = dm.shape[0]
        self.ties = ties
        self.pairs = np.triu_indices(n, k=1)
        delta = dm[self.pairs]
        # Identical communities are pulled together rather than ranked
        self.positive = delta > 0
        delta_pos = delta[self.positive]
        self.order = np.argsort(delta_pos, kind="stable")
        _, self.tie_index, self.tie_counts = np.unique(
            delta_pos, return_inverse=True, return_counts=True
        )

    def fit(self, dist: np.ndarray) -> np.ndarray:
        """Isotonic target distances for the current configuration distances."""
        target = np.zeros_like(dist)
        d = dist[self.positive]
        if d.size == 0:
            return target
        if self.ties == "primary":
            target[self.positive] = isotonic_regression(d, self.order)
        else:
            means = np.bincount(self.tie_index, weights=d) / self.tie_counts
            fitted = isotonic_regression(
                means, np.arange(means.size), weights=self.tie_counts
            )
            target[self.positive] = fitted[self.tie_index]
        return target


def _pair_distances(coords: np.ndarray, pairs: tuple[np.ndarray, np.ndarray]) -> np.ndarray:
    diff = coords[pairs[0]] - coords[pairs[1]]
    return np.sqrt((diff**2).sum(axis=1))


def kruskal_stress(dist: np.ndarray, target: np.ndarray) -> float:
    """Kruskal stress-1: sqrt(sum((d - target)^2) / sum(d^2))."""
    denominator = float((dist**2).sum())
    if denominator <= 0:
        return math.inf
    return math.sqrt(float(((dist - target) ** 2).sum()) / denominator)


def _normalize(coords: np.ndarray) -> np.ndarray:
    """Center and scale so the mean squared pairwise distance is 1."""
    coords = coords - coords.mean(axis=0)
    n = coords.shape[0]
    msd = 2.0 * float((coords**2).sum()) / (n - 1)
    if msd > 0 and math.isfinite(msd):
        coords = coords / math.sqrt(msd)
    return coords


def _is_collapsed(coords: np.ndarray, threshold: float) -> bool:
    ranges = coords.max(axis=0) - coords.min(axis=0)
    return bool(np.any(ranges < threshold))


def _initial_configuration(n: int, attempt: int, rng: np.random.Generator) -> np.ndarray:
    if attempt == 0:
        return 2.0 * fallback_layout(n)
    if attempt == 1:
        grid = math.ceil(math.sqrt(n))
        idx = np.arange(n)
        return np.column_stack([
            (idx % grid - grid / 2) * 1.5,
            (idx // grid - grid / 2) * 1.5,
        ])
    scale = (1.0, 3.0, 6.0)[attempt % 3]
    return rng.uniform(-scale / 2, scale / 2, size=(n, 2))


def _run_attempt(
    target: _MonotoneTarget,
    start: np.ndarray,
    cfg: NMDSConfig,
    attempt: int,
) -> _Attempt:
    n = start.shape[0]
    coords = _normalize(start)
    prev_stress = math.inf
    stagnant = 0
    iterations = 0

    for it in range(cfg.max_iterations):
        iterations = it + 1
        dist = _pair_distances(coords, target.pairs)
        fitted = target.fit(dist)
        stress = kruskal_stress(dist, fitted)
        if not math.isfinite(stress):
            return _Attempt(attempt, coords, math.inf, iterations, degenerate=False)

        if abs(prev_stress - stress) < cfg.tolerance:
            stagnant += 1
            if stagnant >= cfg.patience:
                break
        else:
            stagnant = 0
        prev_stress = stress

        if it >= cfg.warmup_iterations and _is_collapsed(coords, cfg.degeneracy_threshold):
            logger.debug("NMDS attempt %d collapsed onto a line at iteration %d", attempt + 1, iterations)
            return _Attempt(attempt, coords, stress, iterations, degenerate=True)

        step = max(cfg.min_step, cfg.base_step * math.exp(-it / cfg.step_decay))

        # Synchronous update: every displacement uses the same configuration
        ratio = np.zeros_like(dist)
        moving = dist > 1e-12
        ratio[moving] = (dist[moving] - fitted[moving]) / dist[moving]
        weights = np.zeros((n, n))
        weights[target.pairs] = ratio
        weights = weights + weights.T
        diff = coords[:, np.newaxis, :] - coords[np.newaxis, :, :]
        gradient = (weights[:, :, np.newaxis] * diff).sum(axis=1) / n
        coords = _normalize(coords - step * gradient)

        if not np.all(np.isfinite(coords)):
            return _Attempt(attempt, coords, math.inf, iterations, degenerate=False)

    dist = _pair_distances(coords, target.pairs)
    stress = kruskal_stress(dist, target.fit(dist))
    degenerate = _is_collapsed(coords, cfg.degeneracy_threshold)
    return _Attempt(attempt, coords, stress, iterations, degenerate)


def _rescale(coords: np.ndarray, bound: float) -> np.ndarray:
    coords = coords - coords.mean(axis=0)
    extent = float(np.abs(coords).max())
    if extent > 0:
        coords = coords * (bound / extent)
    return coords


def nmds(
    matrix: DissimilarityMatrix | np.ndarray,
    config: NMDSConfig | None = None,
    *,
    seed: int | None = None,
    max_attempts: int | None = None,
    max_iterations: int | None = None,
) -> OrdinationResult:
    """Non-metric Multidimensional Scaling by multi-start stress minimisation.

    Each attempt alternates an isotonic fit of the configuration distances
    against the dissimilarity ranks with a synchronous gradient step that
    reduces Kruskal stress-1. Attempts that collapse onto a line or produce
    non-finite stress are discarded; the lowest-stress survivor is centered
    and scaled to ``config.display_bound``.
    """
    cfg = config or NMDSConfig()
    overrides = {
        k: v for k, v in (
            ("random_seed", seed),
            ("max_attempts", max_attempts),
            ("max_iterations", max_iterations),
        ) if v is not None
    }
    if overrides:
        cfg = replace(cfg, **overrides)
    if cfg.max_attempts < 1 or cfg.max_iterations < 1:
        raise ValueError("max_attempts and max_iterations must be positive")

    diss = _as_dissimilarity(matrix)
    n = diss.n

    if diss.is_degenerate:
        logger.warning(
            "NMDS on degenerate input (%d communities); using fallback layout", n
        )
        return _result(
            diss,
            fallback_layout(n),
            "NMDS",
            explained_variance=None,
            stress=0.0,
            converged=False,
            iterations=0,
            degenerate=True,
        )

    target = _MonotoneTarget(diss.distance_matrix, cfg.ties)
    base_rng = np.random.default_rng(cfg.random_seed)
    attempt_seeds = base_rng.integers(0, 2**31, size=cfg.max_attempts)

    best: _Attempt | None = None
    for attempt in range(cfg.max_attempts):
        rng = np.random.default_rng(attempt_seeds[attempt])
        start = _initial_configuration(n, attempt, rng)
        outcome = _run_attempt(target, start, cfg, attempt)

        logger.debug(
            "NMDS attempt %d/%d: stress=%.6f, %d iterations, degenerate=%s",
            attempt + 1, cfg.max_attempts, outcome.stress,
            outcome.iterations, outcome.degenerate,
        )

        if not math.isfinite(outcome.stress) or outcome.degenerate:
            continue
        if best is None or outcome.stress < best.stress:
            best = outcome
        if best.stress < cfg.good_enough_stress:
            break

    if best is None:
        logger.warning(
            "All %d NMDS attempts were degenerate or unstable; using fallback layout",
            cfg.max_attempts,
        )
        coords = fallback_layout(n)
        dist = _pair_distances(coords, target.pairs)
        stress = kruskal_stress(dist, target.fit(dist))
        return _result(
            diss,
            coords,
            "NMDS",
            explained_variance=None,
            stress=stress,
            converged=False,
            iterations=0,
            degenerate=True,
        )

    logger.info(
        "NMDS: best attempt %d, stress=%.4f after %d iterations",
        best.index + 1, best.stress, best.iterations,
    )
    return _result(
        diss,
        _rescale(best.coordinates, cfg.display_bound),
        "NMDS",
        explained_variance=None,
        stress=float(best.stress),
        converged=bool(best.stress < cfg.converged_stress),
        iterations=best.iterations,
    )
