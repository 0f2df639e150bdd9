import numpy as np
import pytest

from board import Board
from coordinate import Coordinate, all_cells, neighbor_table
from distribution import Distribution, canonicalize
from errors import SingularRescaleError


@pytest.mark.unit
class TestCoordinate:
    def test_value_semantics(self):
        assert Coordinate(1, 2) == (1, 2)
        assert Coordinate(0, 5) < Coordinate(1, 0)
        assert len({Coordinate(1, 2), Coordinate(1, 2)}) == 1

    def test_all_cells_row_major(self):
        assert all_cells(2, 2) == [(0, 0), (0, 1), (1, 0), (1, 1)]

    def test_neighbor_table_pads_and_skips_rocks(self):
        board = Board(1, 3)
        board.rocks.add(Coordinate(0, 2))
        table = neighbor_table(board, 1, 3)
        assert table.shape == (3, 4)
        assert list(table[0]) == [1, -1, -1, -1]
        assert list(table[1]) == [0, -1, -1, -1]


@pytest.mark.unit
class TestDistribution:
    def test_uniform_within_area(self):
        d = Distribution.uniform(2, 2, [(0, 0), (1, 1)])
        assert d.probability((0, 0)) == pytest.approx(0.5)
        assert d.probability((1, 1)) == pytest.approx(0.5)
        assert d.probability((0, 1)) == 0.0
        assert d.total_probability() == pytest.approx(1.0)

    def test_uniform_rejects_empty_area(self):
        with pytest.raises(ValueError):
            Distribution.uniform(2, 2, [])

    def test_diffuse_from_center(self):
        d = Distribution(1, 3)
        d.concentrate_at((0, 1))
        d.diffuse(Board(1, 3))
        assert d.as_array().tolist() == [[0.25, 0.5, 0.25]]

    def test_diffuse_blocked_mass_stays(self):
        d = Distribution(1, 3)
        d.concentrate_at((0, 0))
        d.diffuse(Board(1, 3))
        assert d.as_array().tolist() == [[0.75, 0.25, 0.0]]

        walled = Board(1, 3)
        walled.rocks.add(Coordinate(0, 1))
        d.concentrate_at((0, 0))
        d.diffuse(walled)
        assert d.probability((0, 0)) == 1.0

    def test_diffuse_reads_from_snapshot(self):
        d = Distribution(1, 3, [[0.5, 0.5, 0.0]])
        d.diffuse(Board(1, 3))
        np.testing.assert_allclose(d.as_array(), [[0.5, 0.375, 0.125]])

    def test_diffuse_keeps_field_normalized(self):
        board = Board(3, 3)
        board.rocks.add(Coordinate(1, 1))
        d = Distribution.uniform(3, 3, [(0, 0), (2, 2)])
        for _ in range(6):
            d.diffuse(board)
        field = d.as_array()
        assert field.min() >= 0.0
        assert field.sum() == pytest.approx(1.0)
        assert d.probability((1, 1)) == 0.0

    def test_concentrate_at(self):
        d = Distribution.uniform(2, 2, all_cells(2, 2))
        d.concentrate_at((1, 0))
        assert d.probability((1, 0)) == 1.0
        assert d.total_probability() == 1.0

    def test_vanish_from_rescales(self):
        d = Distribution.uniform(2, 2, all_cells(2, 2))
        d.vanish_from((0, 0))
        assert d.probability((0, 0)) == 0.0
        for cell in [(0, 1), (1, 0), (1, 1)]:
            assert d.probability(cell) == pytest.approx(1 / 3)

    def test_vanish_from_certain_cell_is_fatal(self):
        d = Distribution(1, 2)
        d.concentrate_at((0, 1))
        with pytest.raises(SingularRescaleError):
            d.vanish_from((0, 1))

    def test_merge_in_is_convex_combination(self):
        a = Distribution(1, 3)
        a.concentrate_at((0, 0))
        b = Distribution(1, 3)
        b.concentrate_at((0, 1))
        a.merge_in(b, 0.25)
        np.testing.assert_allclose(a.as_array(), [[0.75, 0.25, 0.0]])

    def test_normalize_clamps_and_is_idempotent(self):
        d = Distribution(2, 2, [[2.0, -1.0], [1.0, 1.0]])
        d.normalize()
        once = d.as_array()
        assert once.tolist() == [[0.5, 0.0], [0.25, 0.25]]
        d.normalize()
        np.testing.assert_array_equal(d.as_array(), once)

    def test_normalize_without_mass_is_fatal(self):
        d = Distribution(1, 2)
        with pytest.raises(SingularRescaleError):
            d.normalize()

    def test_information_extremes(self):
        d = Distribution(2, 2)
        d.concentrate_at((0, 0))
        assert d.information() == pytest.approx(1.0)

        uniform = Distribution.uniform(2, 2, all_cells(2, 2))
        assert uniform.information() == pytest.approx(0.0, abs=1e-12)

        half = Distribution.uniform(2, 2, [(0, 0), (0, 1)])
        assert half.information() == pytest.approx(0.5)

    def test_information_cache_is_invalidated(self):
        d = Distribution.uniform(2, 2, all_cells(2, 2))
        assert d.information() == pytest.approx(0.0, abs=1e-12)
        d.concentrate_at((1, 1))
        assert d.information() == pytest.approx(1.0)

    def test_single_cell_grid_information(self):
        d = Distribution.uniform(1, 1, [(0, 0)])
        assert d.information() == 1.0

    def test_similarity(self):
        a = Distribution.uniform(1, 2, [(0, 0), (0, 1)])
        b = Distribution(1, 2)
        b.concentrate_at((0, 0))
        c = Distribution(1, 2)
        c.concentrate_at((0, 1))
        assert a.similarity(a.copy()) == pytest.approx(1.0)
        assert b.similarity(c) == 0.0
        assert a.similarity(b) == pytest.approx(np.sqrt(0.5))

    def test_canonical_key_ignores_floating_noise(self):
        a = Distribution(1, 2, [[0.3, 0.7]])
        b = Distribution(1, 2, [[0.3 + 1e-16, 0.7 - 1e-16]])
        c = Distribution(1, 2, [[0.3 + 1e-6, 0.7 - 1e-6]])
        assert a.canonical_key() == b.canonical_key()
        assert a.same_as(b)
        assert not a.same_as(c)

    def test_canonicalize_folds_negative_zero(self):
        assert canonicalize(np.array([-1e-20])).tobytes() == canonicalize(np.array([0.0])).tobytes()

    def test_copy_is_independent(self):
        a = Distribution.uniform(1, 2, [(0, 0), (0, 1)])
        b = a.copy()
        b.concentrate_at((0, 0))
        assert a.probability((0, 1)) == pytest.approx(0.5)

    def test_mass_within(self):
        d = Distribution.uniform(2, 2, all_cells(2, 2))
        assert d.mass_within([(0, 0), (1, 1)]) == pytest.approx(0.5)
