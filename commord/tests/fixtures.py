"""Synthetic community data for ordination tests."""

from __future__ import annotations

import numpy as np

from commord.io import AbundanceTable, Community


def generate_synthetic_abundance_table(
    n_species: int = 20,
    n_communities: int = 12,
    n_groups: int = 3,
    seed: int = 42,
) -> AbundanceTable:
    """Generate synthetic counts with planted group structure.

    Creates n_groups habitats with n_communities/n_groups communities each.
    The first two thirds of the species pool are specialists of group 0 or
    group 1; the rest are generalists.
    """
    rng = np.random.default_rng(seed)
    per_group = n_communities // n_groups
    group_names = ["meadow", "forest", "wetland"][:n_groups]

    species_ids = [f"sp_{i:03d}" for i in range(n_species)]
    community_ids = [
        f"{g}_plot{rep + 1}" for g in group_names for rep in range(per_group)
    ]

    abundances = np.zeros((n_species, len(community_ids)), dtype=np.float64)
    per_class = n_species // 3
    for i in range(n_species):
        if i < per_class:
            target_group = 0
        elif i < 2 * per_class:
            target_group = 1
        else:
            target_group = -1  # generalist

        for gi in range(n_groups):
            start = gi * per_group
            end = start + per_group
            if target_group == gi:
                abundances[i, start:end] = rng.poisson(500, per_group)
            elif target_group == -1:
                abundances[i, start:end] = rng.poisson(200, per_group)
            else:
                abundances[i, start:end] = rng.poisson(10, per_group)

    return AbundanceTable(
        species_ids=species_ids, community_ids=community_ids, abundances=abundances
    )


def generate_gradient_communities() -> list[Community]:
    """Four communities on species {1, 2}: two identical, two opposite extremes."""
    return [
        Community(1, (1, 2), (10, 10)),
        Community(2, (1, 2), (10, 10)),
        Community(3, (2,), (20,)),
        Community(4, (1,), (20,)),
    ]


def square_dissimilarities(side: float = 0.5) -> np.ndarray:
    """Dissimilarities of four points at the corners of a square."""
    corners = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]]) * side
    diff = corners[:, np.newaxis, :] - corners[np.newaxis, :, :]
    return np.sqrt((diff**2).sum(axis=2))


def generate_identical_communities(n: int = 4) -> list[Community]:
    """Communities that all share one composition."""
    return [Community(i, ("a", "b", "c"), (5, 3, 2)) for i in range(n)]
