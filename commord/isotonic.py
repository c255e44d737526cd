"""Isotonic regression by Pool Adjacent Violators."""

from __future__ import annotations

from typing import Sequence

import numpy as np


def isotonic_regression(
    values: Sequence[float] | np.ndarray,
    rank_order: Sequence[int] | np.ndarray,
    weights: Sequence[float] | np.ndarray | None = None,
) -> np.ndarray:
    """Least-squares monotone fit of *values* under an external ordering.

    Parameters
    ----------
    values : array-like of float
        Observed values, one per element.
    rank_order : array-like of int
        Permutation of ``range(n)`` listing element indices from lowest to
        highest rank, e.g. ``np.argsort(dissimilarities)``.
    weights : array-like of float, optional
        Positive weight per element (defaults to 1).

    Returns
    -------
    np.ndarray
        Fitted values in the original element order. Read in rank order they
        are non-decreasing, and they minimise ``sum(w * (x - fit)**2)``.
    """
    x = np.asarray(values, dtype=np.float64)
    order = np.asarray(rank_order, dtype=np.intp)
    n = x.shape[0]
    if x.ndim != 1 or order.shape != (n,):
        raise ValueError(
            f"values and rank_order must be 1-D of equal length, got "
            f"{x.shape} and {order.shape}"
        )
    if n and not np.array_equal(np.sort(order), np.arange(n)):
        raise ValueError("rank_order must be a permutation of range(len(values))")
    if weights is None:
        w = np.ones(n)
    else:
        w = np.asarray(weights, dtype=np.float64)
        if w.shape != (n,):
            raise ValueError(f"weights shape {w.shape} != values shape {x.shape}")
        if np.any(~(w > 0)):
            raise ValueError("weights must be strictly positive")
    if n == 0:
        return np.empty(0)

    xs = x[order]
    ws = w[order]

    # Each pool: weighted sum, total weight, element count
    sums: list[float] = []
    totals: list[float] = []
    counts: list[int] = []
    for k in range(n):
        sums.append(xs[k] * ws[k])
        totals.append(ws[k])
        counts.append(1)
        # Merge backwards while the previous pool's mean exceeds the newest one
        while len(sums) > 1 and sums[-2] * totals[-1] > sums[-1] * totals[-2]:
            s, t, c = sums.pop(), totals.pop(), counts.pop()
            sums[-1] += s
            totals[-1] += t
            counts[-1] += c

    fitted_sorted = np.repeat([s / t for s, t in zip(sums, totals)], counts)
    fitted = np.empty(n)
    fitted[order] = fitted_sorted
    return fitted
