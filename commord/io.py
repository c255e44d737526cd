"""Community data model, validation and loading for ordination analysis."""

from __future__ import annotations

import csv
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Hashable, Sequence

import numpy as np


class InvalidCommunityError(ValueError):
    """Raised when a community violates the input contract."""


def _species_sort_key(species: Hashable) -> tuple[bool, object]:
    # Integers and strings may be mixed across data sources
    return (isinstance(species, str), species)


@dataclass(frozen=True)
class Community:
    """A sampled community: species present and their counts."""

    community_id: Hashable
    species: tuple
    abundance: tuple

    def __post_init__(self) -> None:
        object.__setattr__(self, "species", tuple(self.species))
        object.__setattr__(self, "abundance", tuple(self.abundance))
        if len(self.species) != len(self.abundance):
            raise InvalidCommunityError(
                f"Community {self.community_id!r}: {len(self.species)} species "
                f"but {len(self.abundance)} abundances"
            )
        if len(set(self.species)) != len(self.species):
            raise InvalidCommunityError(
                f"Community {self.community_id!r}: duplicate species identifiers"
            )
        for sp, a in zip(self.species, self.abundance):
            try:
                valid = math.isfinite(a) and a >= 0
            except TypeError:
                valid = False
            if not valid:
                raise InvalidCommunityError(
                    f"Community {self.community_id!r}: invalid abundance {a!r} "
                    f"for species {sp!r}"
                )
        if sum(self.abundance) <= 0:
            raise InvalidCommunityError(
                f"Community {self.community_id!r}: total abundance is zero"
            )

    @property
    def richness(self) -> int:
        """Number of species with abundance > 0."""
        return sum(1 for a in self.abundance if a > 0)

    @property
    def total_abundance(self) -> float:
        return float(sum(self.abundance))


@dataclass
class AbundanceTable:
    """Species-by-community abundance matrix."""

    species_ids: list
    community_ids: list
    abundances: np.ndarray  # shape (n_species, n_communities)

    def __post_init__(self) -> None:
        self.abundances = np.asarray(self.abundances, dtype=np.float64)
        n_species, n_communities = self.abundances.shape
        if n_species != len(self.species_ids):
            raise ValueError(
                f"Row count {n_species} != len(species_ids) {len(self.species_ids)}"
            )
        if n_communities != len(self.community_ids):
            raise ValueError(
                f"Col count {n_communities} != len(community_ids) {len(self.community_ids)}"
            )
        bad = ~np.isfinite(self.abundances) | (self.abundances < 0)
        if bad.any():
            i, j = np.argwhere(bad)[0]
            raise InvalidCommunityError(
                f"Community {self.community_ids[j]!r}: invalid abundance "
                f"{self.abundances[i, j]!r} for species {self.species_ids[i]!r}"
            )

    @property
    def n_species(self) -> int:
        return len(self.species_ids)

    @property
    def n_communities(self) -> int:
        return len(self.community_ids)

    @classmethod
    def from_communities(cls, communities: Sequence[Community]) -> AbundanceTable:
        """Build the sorted species universe and a zero-filled abundance lookup."""
        universe = sorted(
            {sp for c in communities for sp in c.species}, key=_species_sort_key
        )
        row_of = {sp: i for i, sp in enumerate(universe)}
        abundances = np.zeros((len(universe), len(communities)), dtype=np.float64)
        for j, community in enumerate(communities):
            for sp, a in zip(community.species, community.abundance):
                abundances[row_of[sp], j] = a
        return cls(
            species_ids=universe,
            community_ids=[c.community_id for c in communities],
            abundances=abundances,
        )

    def to_communities(self) -> list[Community]:
        """Split the table into validated communities (absent species dropped)."""
        communities: list[Community] = []
        for j, cid in enumerate(self.community_ids):
            col = self.abundances[:, j]
            present = np.flatnonzero(col > 0)
            communities.append(
                Community(
                    community_id=cid,
                    species=tuple(self.species_ids[i] for i in present),
                    abundance=tuple(float(col[i]) for i in present),
                )
            )
        return communities

    def richness(self) -> np.ndarray:
        return (self.abundances > 0).sum(axis=0)

    def totals(self) -> np.ndarray:
        return self.abundances.sum(axis=0)


def validate_communities(communities: Sequence[Community]) -> None:
    """Check a community set before any matrix is built."""
    if len(communities) == 0:
        raise InvalidCommunityError("At least one community is required")
    seen: set = set()
    for c in communities:
        if not isinstance(c, Community):
            raise InvalidCommunityError(f"Expected Community, got {type(c).__name__}")
        if c.community_id in seen:
            raise InvalidCommunityError(
                f"Duplicate community identifier {c.community_id!r}"
            )
        seen.add(c.community_id)


def load_abundance_table(path: str | Path) -> AbundanceTable:
    """Load a tab-separated abundance table.

    First column = species ID, remaining columns = community counts.
    """
    path = Path(path)
    with open(path, newline="") as f:
        reader = csv.reader(f, delimiter="\t")
        header = next(reader)
        community_ids = header[1:]
        species_ids: list[str] = []
        rows: list[list[float]] = []
        for row in reader:
            if not row or not row[0].strip():
                continue
            if len(row) - 1 != len(community_ids):
                raise ValueError(
                    f"Species {row[0].strip()!r}: expected {len(community_ids)} "
                    f"counts, found {len(row) - 1}"
                )
            species_ids.append(row[0].strip())
            rows.append([float(x) for x in row[1:]])
    abundances = np.array(rows, dtype=np.float64).reshape(len(rows), len(community_ids))
    return AbundanceTable(
        species_ids=species_ids, community_ids=community_ids, abundances=abundances
    )


def load_communities(path: str | Path) -> list[Community]:
    """Load an abundance table TSV and validate each column as a community."""
    communities = load_abundance_table(path).to_communities()
    validate_communities(communities)
    return communities
