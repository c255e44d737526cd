"""Tests for commord.beta module."""

import numpy as np
import pytest

from commord.beta import (
    DissimilarityMatrix,
    bray_curtis,
    build_dissimilarity_matrix,
    jaccard,
    sorensen,
)
from commord.io import AbundanceTable, Community, InvalidCommunityError
from commord.tests.fixtures import (
    generate_gradient_communities,
    generate_identical_communities,
    generate_synthetic_abundance_table,
)


class TestBrayCurtis:
    def test_identical_communities(self):
        a = Community("A", (1, 2), (10, 10))
        result = bray_curtis([a, Community("A2", (1, 2), (10, 10))])
        assert result.distance_matrix[0, 1] == pytest.approx(0.0)

    def test_disjoint_communities(self):
        a = Community("A", (1, 2), (10, 10))
        b = Community("B", (3, 4), (5, 5))
        result = bray_curtis([a, b])
        assert result.distance_matrix[0, 1] == pytest.approx(1.0)
        assert result.distance_matrix[0, 0] == 0.0

    def test_known_value(self):
        communities = generate_gradient_communities()
        dm = bray_curtis(communities).distance_matrix
        # 1 - 2 * 10 / 40
        assert dm[0, 2] == pytest.approx(0.5)
        assert dm[2, 3] == pytest.approx(1.0)
        assert dm[0, 1] == pytest.approx(0.0)

    def test_symmetry(self):
        table = generate_synthetic_abundance_table()
        result = bray_curtis(table)
        np.testing.assert_array_almost_equal(
            result.distance_matrix, result.distance_matrix.T
        )

    def test_diagonal_zero(self):
        table = generate_synthetic_abundance_table()
        result = bray_curtis(table)
        np.testing.assert_array_equal(
            np.diag(result.distance_matrix), np.zeros(table.n_communities)
        )

    def test_bounds(self):
        table = generate_synthetic_abundance_table(seed=3)
        dm = bray_curtis(table).distance_matrix
        assert np.all(dm >= 0.0)
        assert np.all(dm <= 1.0)

    def test_within_community_rescaling_is_proportional(self):
        base = [
            Community("A", (1, 2, 3), (4, 8, 2)),
            Community("B", (2, 3, 4), (6, 1, 9)),
            Community("C", (1, 4), (3, 3)),
        ]
        scaled = [
            Community(c.community_id, c.species, tuple(5 * a for a in c.abundance))
            for c in base
        ]
        np.testing.assert_allclose(
            bray_curtis(base).distance_matrix, bray_curtis(scaled).distance_matrix
        )

    def test_independent_rescaling_changes_matrix(self):
        base = [Community("A", (1, 2), (4, 8)), Community("B", (1, 2), (6, 1))]
        scaled = [base[0], Community("B", (1, 2), (60, 10))]
        assert bray_curtis(base).distance_matrix[0, 1] != pytest.approx(
            bray_curtis(scaled).distance_matrix[0, 1]
        )

    def test_annotation(self):
        result = bray_curtis(generate_gradient_communities())
        assert result.community_ids == [1, 2, 3, 4]
        np.testing.assert_array_equal(result.richness, [2, 2, 1, 1])
        np.testing.assert_array_equal(result.total_abundance, [20, 20, 20, 20])

    def test_single_community(self):
        result = bray_curtis([Community("A", (1,), (3,))])
        assert result.distance_matrix.shape == (1, 1)
        assert result.is_degenerate

    def test_rejects_zero_column_table(self):
        table = AbundanceTable(
            species_ids=["a"],
            community_ids=["c1", "c2"],
            abundances=np.array([[5.0, 0.0]]),
        )
        with pytest.raises(InvalidCommunityError):
            bray_curtis(table)


class TestDegeneracy:
    def test_identical_set_is_degenerate(self):
        result = bray_curtis(generate_identical_communities())
        assert not np.any(result.distance_matrix)
        assert result.is_degenerate

    def test_two_communities_degenerate(self):
        result = bray_curtis(generate_gradient_communities()[:2])
        assert result.is_degenerate

    def test_distinct_set_not_degenerate(self):
        assert not bray_curtis(generate_gradient_communities()).is_degenerate


class TestJaccard:
    def test_identical_presence(self):
        result = jaccard([Community("A", (1, 2), (10, 20)), Community("B", (1, 2), (5, 15))])
        assert result.distance_matrix[0, 1] == pytest.approx(0.0)

    def test_no_overlap(self):
        result = jaccard([Community("A", (1,), (10,)), Community("B", (2,), (5,))])
        assert result.distance_matrix[0, 1] == pytest.approx(1.0)

    def test_partial_overlap(self):
        result = jaccard([Community("A", (1, 2), (1, 1)), Community("B", (2, 3), (1, 1))])
        assert result.distance_matrix[0, 1] == pytest.approx(2 / 3)


class TestSorensen:
    def test_partial_overlap(self):
        result = sorensen([Community("A", (1, 2), (1, 1)), Community("B", (2, 3), (1, 1))])
        assert result.distance_matrix[0, 1] == pytest.approx(0.5)


class TestBuildDissimilarityMatrix:
    def test_default_is_bray_curtis(self):
        result = build_dissimilarity_matrix(generate_gradient_communities())
        assert isinstance(result, DissimilarityMatrix)
        assert result.metric == "bray_curtis"

    def test_unknown_metric(self):
        with pytest.raises(ValueError):
            build_dissimilarity_matrix(generate_gradient_communities(), "euclid")


class TestInvalidTables:
    def test_negative_abundance_rejected(self):
        with pytest.raises(InvalidCommunityError):
            bray_curtis(
                AbundanceTable(
                    ["a", "b"],
                    ["c1", "c2", "c3"],
                    [[10, -5, 3], [5, 8, 4]],
                )
            )
