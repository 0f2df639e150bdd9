import numpy as np
import pytest

from board import Board
from constants import HISTORY_STEPS, MAX_UNIVERSES, PARTICLE, ROCK, VISIBLE
from coordinate import Coordinate
from memory import Memory
from observer import Observer


class RecordingObserver:
    """Stands in for the Observer and records the events it receives."""

    def __init__(self):
        self.events = []
        self.board = None

    def connect_board(self, board):
        self.board = board

    def new_particle_within(self, area):
        self.events.append(("new", sorted(area)))

    def deleted_particle_within(self, area):
        self.events.append(("deleted", sorted(area)))

    def observe_particles(self, cell, number):
        self.events.append(("observe", tuple(cell), number))

    def observe_time_step(self):
        self.events.append(("step",))


def connected_board(height, width, seed=0):
    board = Board(height, width, seed=seed)
    observer = Observer(height, width)
    board.connect_observer(observer)
    return board, observer


@pytest.mark.unit
class TestBoardTopology:
    def test_neighbors_skip_borders_and_rocks(self):
        board = Board(2, 3)
        board.rocks.add(Coordinate(0, 1))
        assert board.neighbors((0, 0)) == [(1, 0)]
        assert board.neighbors((1, 1)) == [(1, 2), (1, 0)]

    def test_all_cells(self):
        assert len(Board(3, 4).all_cells()) == 12


@pytest.mark.unit
class TestBoardEvents:
    def setup_method(self):
        self.board = Board(2, 2)
        self.observer = RecordingObserver()
        self.board.connect_observer(self.observer)

    def test_connect_is_mutual(self):
        assert self.observer.board is self.board

    def test_hidden_particle_reports_every_hidden_cell(self):
        self.board.visible.add(Coordinate(1, 1))
        self.board.rocks.add(Coordinate(0, 1))
        assert self.board.switch_particle((0, 0))
        assert self.observer.events == [("new", [(0, 0), (1, 0)])]
        assert self.board.switch_particle((0, 0))
        assert self.observer.events[-1] == ("deleted", [(0, 0), (1, 0)])
        assert self.board.particle_count((0, 0)) == 0

    def test_visible_particle_reports_its_cell(self):
        self.board.switch_visible((1, 1))
        self.board.switch_particle((1, 1))
        assert self.observer.events == [("observe", (1, 1), 0), ("new", [(1, 1)])]

    def test_particle_cannot_go_on_rock_or_outside(self):
        self.board.switch_rock((0, 0))
        assert not self.board.switch_particle((0, 0))
        assert not self.board.switch_particle((5, 5))
        assert self.observer.events == [("observe", (0, 0), 0)]

    def test_rock_cannot_cover_particle(self):
        self.board.switch_particle((0, 0))
        assert not self.board.switch_rock((0, 0))
        assert not self.board.is_rock((0, 0))

    def test_removing_rock_is_silent(self):
        self.board.switch_rock((1, 0))
        self.board.switch_rock((1, 0))
        assert not self.board.is_rock((1, 0))
        assert self.observer.events == [("observe", (1, 0), 0)]

    def test_visibility_toggle(self):
        self.board.switch_particle((0, 1))
        self.board.switch_visible((0, 1))
        assert self.observer.events[-1] == ("observe", (0, 1), 1)
        self.board.switch_visible((0, 1))
        assert not self.board.is_visible((0, 1))
        assert len(self.observer.events) == 2

    def test_step_in_time_reports_time_then_visible_counts(self):
        self.board.switch_visible((1, 0))
        self.board.switch_visible((0, 0))
        self.observer.events.clear()
        self.board.switch_particle((1, 1))
        self.board.step_in_time()
        assert self.observer.events[1] == ("step",)
        assert self.observer.events[2][:2] == ("observe", (0, 0))
        assert self.observer.events[3][:2] == ("observe", (1, 0))
        assert int(self.board.particles.sum()) == 1

    def test_initialize_from_codes(self):
        encoded = np.array([[PARTICLE, ROCK], [VISIBLE, 0]])
        self.board.initialize(encoded)
        assert self.board.is_particle((0, 0))
        assert self.board.is_rock((0, 1))
        assert self.board.is_visible((1, 0))

    def test_initialize_rejects_unknown_codes(self):
        with pytest.raises(ValueError):
            self.board.initialize(np.array([[7, 0], [0, 0]]))
        with pytest.raises(ValueError):
            self.board.initialize(np.zeros((3, 3), dtype=int))

    def test_copy_is_independent(self):
        self.board.switch_particle((0, 0))
        clone = self.board.copy()
        clone.particles[0, 0] = 0
        clone.rocks.add(Coordinate(1, 1))
        assert self.board.is_particle((0, 0))
        assert not self.board.is_rock((1, 1))
        assert clone.observer is None


@pytest.mark.unit
class TestBoardWithObserver:
    def test_single_particle_is_tracked(self):
        board, observer = connected_board(3, 3, seed=7)
        board.initialize(np.array([[0, 0, 0], [0, PARTICLE, 0], [VISIBLE, 0, 0]]))
        assert observer.probability((2, 0)) == 0.0
        for _ in range(10):
            board.step_in_time()
            assert len(observer) == 1
            assert observer.total_weight() == pytest.approx(1.0)
            seen = board.particle_count((2, 0))
            assert observer.probability((2, 0)) == pytest.approx(float(seen))

    def test_rock_is_known_to_be_empty(self):
        board, observer = connected_board(1, 3)
        board.switch_particle((0, 0))
        board.switch_rock((0, 2))
        assert observer.probability((0, 2)) == pytest.approx(0.0)
        assert observer.probability((0, 0)) == pytest.approx(0.5)

    def test_two_particles_stay_bounded(self):
        board, observer = connected_board(2, 3, seed=3)
        board.switch_particle((0, 0))
        board.switch_particle((1, 2))
        board.switch_visible((0, 1))
        for _ in range(3):
            board.step_in_time()
            assert 1 <= len(observer) <= MAX_UNIVERSES
            assert observer.total_weight() == pytest.approx(1.0)


@pytest.mark.unit
class TestMemory:
    def setup_method(self):
        board, observer = connected_board(1, 3, seed=1)
        board.switch_visible((0, 0))
        board.switch_particle((0, 2))
        self.memory = Memory(board, observer, steps=3)

    def test_advance_leaves_snapshots_untouched(self):
        first_observer = self.memory.observer
        self.memory.advance()
        assert self.memory.observer is not first_observer
        # The particle cannot reach the visible cell in one step.
        assert first_observer.probability((0, 1)) == pytest.approx(0.5)
        assert self.memory.observer.probability((0, 1)) == pytest.approx(3 / 7)
        assert self.memory.observer.probability((0, 0)) == 0.0
        assert len(self.memory.history) == 2

    def test_step_backward_and_forward(self):
        self.memory.advance()
        latest = self.memory.board
        assert self.memory.step_backward()
        assert not self.memory.step_backward()
        assert self.memory.step_forward()
        assert self.memory.board is latest
        assert not self.memory.step_forward()

    def test_advance_replays_remembered_future(self):
        self.memory.advance()
        latest = self.memory.observer
        self.memory.step_backward()
        self.memory.advance()
        assert self.memory.observer is latest
        assert len(self.memory.history) == 2

    def test_future_changed_drops_later_snapshots(self):
        self.memory.advance()
        self.memory.advance()
        self.memory.step_backward()
        self.memory.future_changed()
        assert len(self.memory.history) == 2
        assert self.memory.moment == 0

    def test_history_is_bounded(self):
        for _ in range(5):
            self.memory.advance()
        assert len(self.memory.history) == 3

    def test_default_depth(self):
        board, observer = connected_board(1, 2)
        assert Memory(board, observer).steps == HISTORY_STEPS
