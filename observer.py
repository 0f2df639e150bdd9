# observer.py
"""
Maintains the belief about where the particles of the board are.

The Observer guesses, for each cell, the probability that a particle sits
there. It sees how many particles occupy a visible cell but never which
ones. Every possible explanation becomes a daughter universe, so the number
of universes would explode; the Observer keeps it at MAX_UNIVERSES by
merging the least informative universes into their most similar survivors.
"""
import logging
import numpy as np
from typing import Dict, Iterable, List, Optional, Tuple

from constants import MAX_UNIVERSES
from coordinate import Coordinate, as_coordinates, neighbor_table
from errors import EmptyEnsembleError
from universe import Universe

# --- Data Contracts ---
#
# class Observer:
#   - __init__(self, height: int, width: int, universes: Optional[List[Universe]] = None):
#     - Inputs: grid dimensions and, optionally, a prepared ensemble.
#       Defaults to a single empty universe of weight 1.
#   - Invariants (after every event method returns):
#     - 1 <= len(self) <= MAX_UNIVERSES once a shrink has run.
#     - The existence weights of all universes sum to 1.
#
#   - connect_board(self, board) -> None:
#     - Inputs: any object with `neighbors(cell) -> List[Coordinate]`.
#       Required by observe_time_step().
#
#   - Event methods (called by the board, one at a time):
#     - observe_particles(cell, number), new_particle_within(area),
#       deleted_particle_within(area), observe_time_step().


class Observer:
    """
    Owns a bounded, weight-normalized ensemble of universes.
    """
    def __init__(self, height: int, width: int, universes: Optional[List[Universe]] = None):
        self.height = int(height)
        self.width = int(width)
        if universes is None:
            universes = [Universe(self.height, self.width, 1.0)]
        self._universes: List[Universe] = list(universes)
        self._board = None

    def connect_board(self, board) -> None:
        self._board = board

    def copy(self) -> "Observer":
        """A fully independent copy; only the board connection is shared."""
        clone = Observer(self.height, self.width, [u.copy() for u in self._universes])
        clone._board = self._board
        return clone

    @property
    def universes(self) -> Tuple[Universe, ...]:
        return tuple(self._universes)

    def __len__(self) -> int:
        return len(self._universes)

    def total_weight(self) -> float:
        return sum(u.prob_existence for u in self._universes)

    # --- Queries ---

    def probability(self, cell) -> float:
        """Weighted average of the universes' occupancy at `cell`."""
        return sum(u.prob_existence * u.probability(cell) for u in self._universes)

    def total_field(self) -> np.ndarray:
        field = np.zeros((self.height, self.width), dtype=np.float64)
        for universe in self._universes:
            field += universe.prob_existence * universe.combined_field()
        return np.clip(field, 0.0, 1.0)

    # --- Events ---

    def observe_particles(self, cell, number: int) -> None:
        """Observation: there are exactly `number` particles at `cell`."""
        cell = self._checked_cell(cell)
        if number < 0:
            raise ValueError(f"Particle count must be non-negative, got {number}.")
        daughters: List[Universe] = []
        for universe in self._universes:
            daughters.extend(universe.split_after_observation(cell, number))
        self._universes = daughters
        self.shrink()
        logging.debug(f"Observed {number} particle(s) at {tuple(cell)}; {len(self)} universes remain.")

    def new_particle_within(self, area: Iterable) -> None:
        """Observation: a new particle has been added within `area`."""
        area = [self._checked_cell(c) for c in as_coordinates(area)]
        for universe in self._universes:
            universe.add_distribution(area)
        logging.debug(f"New particle within an area of {len(area)} cell(s).")

    def deleted_particle_within(self, area: Iterable) -> None:
        """Observation: a particle has been deleted within `area`."""
        area = [self._checked_cell(c) for c in as_coordinates(area)]
        daughters: List[Universe] = []
        for universe in self._universes:
            daughters.extend(universe.split_after_deletion(area))
        self._universes = daughters
        self.shrink()
        logging.debug(f"Particle deleted within {len(area)} cell(s); {len(self)} universes remain.")

    def observe_time_step(self) -> None:
        """Observation: one step in time has happened."""
        if self._board is None:
            raise RuntimeError("Observer is not connected to a board; cannot simulate a time step.")
        table = neighbor_table(self._board, self.height, self.width)
        for universe in self._universes:
            universe.diffuse_along(table)

    # --- Ensemble maintenance ---

    def shrink(self) -> None:
        """
        Reduces the ensemble back to at most MAX_UNIVERSES universes.

        Raises:
            EmptyEnsembleError: If the last event left no universe at all.
        """
        if not self._universes:
            msg = "The event left no universe consistent with it."
            logging.critical(msg)
            raise EmptyEnsembleError(msg)
        before = len(self._universes)

        # Structurally equal universes collapse into their first occurrence.
        representatives: Dict[Tuple, Universe] = {}
        for universe in self._universes:
            key = universe.canonical_key()
            representative = representatives.get(key)
            if representative is None:
                representatives[key] = universe
            else:
                representative.prob_existence += universe.prob_existence

        ranked = sorted(representatives.values(), key=Universe.information, reverse=True)
        self._universes = ranked[:MAX_UNIVERSES]
        less_relevant = ranked[MAX_UNIVERSES:]

        self._dissolve(less_relevant)
        self._normalize()
        if less_relevant or before != len(self._universes):
            logging.debug(
                f"Shrink: {before} universes, {len(representatives)} distinct, "
                f"{len(less_relevant)} dissolved."
            )

    def _dissolve(self, dissolving: List[Universe]) -> None:
        # Targets are chosen before any merge so that merging does not
        # influence later choices.
        merge_into = [self._most_similar_universe(u) for u in dissolving]
        for target, universe in zip(merge_into, dissolving):
            target.merge_in(universe)

    def _most_similar_universe(self, other: Universe) -> Universe:
        most_similar = None
        highest_similarity = -1.0
        for universe in self._universes:
            similarity = universe.similarity(other)
            if similarity > highest_similarity:
                most_similar = universe
                highest_similarity = similarity
        return most_similar

    def _normalize(self) -> None:
        total = self.total_weight()
        if total <= 0.0:
            msg = "All universes have zero existence weight."
            logging.critical(msg)
            raise EmptyEnsembleError(msg)
        for universe in self._universes:
            universe.prob_existence = universe.prob_existence / total

    def _checked_cell(self, cell) -> Coordinate:
        cell = Coordinate(int(cell[0]), int(cell[1]))
        if not cell.within(self.height, self.width):
            raise ValueError(f"Cell {tuple(cell)} lies outside the {self.height}x{self.width} grid.")
        return cell

    def __repr__(self) -> str:
        return f"Observer({self.height}x{self.width}, universes={len(self._universes)})"
