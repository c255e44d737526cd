"""Tests for commord.io module."""

import numpy as np
import pytest

from commord.io import (
    AbundanceTable,
    Community,
    InvalidCommunityError,
    load_abundance_table,
    load_communities,
    validate_communities,
)


class TestCommunity:
    def test_basic(self):
        c = Community(7, [1, 2, 3], [10, 0, 5])
        assert c.species == (1, 2, 3)
        assert c.richness == 2
        assert c.total_abundance == 15.0

    def test_length_mismatch(self):
        with pytest.raises(InvalidCommunityError):
            Community(1, (1, 2), (10,))

    def test_negative_abundance(self):
        with pytest.raises(InvalidCommunityError):
            Community(1, (1, 2), (10, -1))

    def test_zero_total(self):
        with pytest.raises(InvalidCommunityError):
            Community(1, (1, 2), (0, 0))

    def test_duplicate_species(self):
        with pytest.raises(InvalidCommunityError):
            Community(1, (1, 1), (3, 4))

    def test_error_is_value_error(self):
        with pytest.raises(ValueError):
            Community(1, (), ())


class TestValidateCommunities:
    def test_empty(self):
        with pytest.raises(InvalidCommunityError):
            validate_communities([])

    def test_duplicate_ids(self):
        with pytest.raises(InvalidCommunityError):
            validate_communities([Community(1, (1,), (1,)), Community(1, (2,), (1,))])


class TestAbundanceTable:
    def test_shape_validation(self):
        with pytest.raises(ValueError):
            AbundanceTable(
                species_ids=["a", "b"],
                community_ids=["c1"],
                abundances=np.zeros((3, 1)),
            )

    def test_from_communities(self):
        communities = [
            Community("A", (3, 1), (5, 2)),
            Community("B", (2, 1), (4, 6)),
        ]
        table = AbundanceTable.from_communities(communities)
        assert table.species_ids == [1, 2, 3]
        assert table.community_ids == ["A", "B"]
        np.testing.assert_array_equal(
            table.abundances, [[2.0, 6.0], [0.0, 4.0], [5.0, 0.0]]
        )

    def test_mixed_species_identifiers_sort(self):
        communities = [Community("A", ("x", 2), (1, 1)), Community("B", (1,), (3,))]
        table = AbundanceTable.from_communities(communities)
        assert table.species_ids == [1, 2, "x"]

    def test_round_trip_drops_absent_species(self):
        communities = [
            Community("A", (1, 2), (5, 5)),
            Community("B", (3,), (4,)),
        ]
        back = AbundanceTable.from_communities(communities).to_communities()
        assert back[1].species == (3,)
        assert back[1].abundance == (4.0,)

    def test_richness_and_totals(self):
        table = AbundanceTable(
            species_ids=["a", "b"],
            community_ids=["c1", "c2"],
            abundances=np.array([[1.0, 0.0], [3.0, 2.0]]),
        )
        np.testing.assert_array_equal(table.richness(), [2, 1])
        np.testing.assert_array_equal(table.totals(), [4.0, 2.0])


class TestLoadAbundanceTable:
    def test_load_tsv(self, tmp_path):
        p = tmp_path / "abundance.tsv"
        p.write_text("species\tplot1\tplot2\nsp1\t100\t200\nsp2\t50\t0\n")
        table = load_abundance_table(p)
        assert table.species_ids == ["sp1", "sp2"]
        assert table.community_ids == ["plot1", "plot2"]
        np.testing.assert_array_equal(table.abundances, [[100.0, 200.0], [50.0, 0.0]])

    def test_ragged_row(self, tmp_path):
        p = tmp_path / "abundance.tsv"
        p.write_text("species\tplot1\tplot2\nsp1\t100\n")
        with pytest.raises(ValueError):
            load_abundance_table(p)

    def test_load_communities(self, tmp_path):
        p = tmp_path / "abundance.tsv"
        p.write_text("species\tplot1\tplot2\nsp1\t100\t0\nsp2\t50\t7\n")
        communities = load_communities(p)
        assert [c.community_id for c in communities] == ["plot1", "plot2"]
        assert communities[1].species == ("sp2",)

    def test_load_communities_rejects_empty_column(self, tmp_path):
        p = tmp_path / "abundance.tsv"
        p.write_text("species\tplot1\tplot2\nsp1\t100\t0\n")
        with pytest.raises(InvalidCommunityError):
            load_communities(p)


class TestAbundanceTableValidation:
    def test_negative_cell(self):
        with pytest.raises(InvalidCommunityError):
            AbundanceTable(
                species_ids=["a", "b"],
                community_ids=["c1", "c2", "c3"],
                abundances=np.array([[10.0, -5.0, 3.0], [5.0, 8.0, 4.0]]),
            )

    def test_nan_cell(self):
        with pytest.raises(InvalidCommunityError):
            AbundanceTable(
                species_ids=["a"],
                community_ids=["c1", "c2"],
                abundances=np.array([[np.nan, 4.0]]),
            )

    def test_accepts_nested_lists(self):
        table = AbundanceTable(["a"], ["c1", "c2"], [[1, 2]])
        assert table.abundances.dtype == np.float64

    def test_load_tsv_with_negative_count(self, tmp_path):
        p = tmp_path / "abundance.tsv"
        p.write_text("species\tc1\tc2\nsp1\t10\t-5\nsp2\t5\t8\n")
        with pytest.raises(InvalidCommunityError):
            load_abundance_table(p)


class TestCommunityAbundanceTypes:
    def test_non_numeric_abundance(self):
        with pytest.raises(InvalidCommunityError):
            Community(1, ("a", "b"), (3, "many"))

    def test_nan_abundance(self):
        with pytest.raises(InvalidCommunityError):
            Community(1, ("a", "b"), (3, float("nan")))
