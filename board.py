# board.py
"""
The reality the Observer watches.

This module defines the Board class: a grid where each cell can hold
particles or a rock, and can be visible. Particles move randomly with
every step in time. The Observer is told about every change it could know
of: particles added or removed (within the area it could have happened),
counts on visible cells, and the passing of time. It never sees the
particle positions themselves.
"""
import logging
import numpy as np
from typing import List, Optional, Set

from constants import DIRECTIONS, PARTICLE, ROCK, VISIBLE, WORLD_CODES
from coordinate import Coordinate, all_cells

# --- Data Contracts ---
#
# class Board:
#   - __init__(self, height: int, width: int, seed: Optional[int] = None):
#     - Side Effects: creates a dedicated RNG for particle movement.
#     - Invariants:
#       - self.particles is an int64 array of shape (height, width), >= 0.
#       - Rock cells never hold particles.
#
#   - neighbors(self, cell) -> List[Coordinate]:
#     - Outputs: in-bounds, rock-free cardinal neighbors in DIRECTIONS order.
#       This is the topology query the belief engine consumes.
#
#   - switch_particle / switch_rock / switch_visible(cell):
#     - Side Effects: update the board and inform the connected Observer.


class Board:
    """
    Ground truth: particle counts, rocks and visible cells.
    """
    def __init__(self, height: int, width: int, seed: Optional[int] = None):
        self.height = int(height)
        self.width = int(width)
        self.seed = seed
        self.rng = np.random.default_rng(seed)
        self.particles = np.zeros((self.height, self.width), dtype=np.int64)
        self.rocks: Set[Coordinate] = set()
        self.visible: Set[Coordinate] = set()
        self.observer = None

    def connect_observer(self, observer) -> None:
        """Connects both ways; the observer needs the board's topology."""
        self.observer = observer
        observer.connect_board(self)

    def initialize(self, encoded: np.ndarray) -> None:
        """
        Puts the board into the state described by a grid of world codes
        (0 empty, 1 particle, 2 rock, 3 visible). The observer must be
        connected first, since every change is reported to it.
        """
        encoded = np.asarray(encoded)
        if encoded.shape != (self.height, self.width):
            raise ValueError(
                f"World shape {encoded.shape} does not match the {self.height}x{self.width} board."
            )
        for cell in all_cells(self.height, self.width):
            code = int(encoded[cell.row, cell.col])
            if code not in WORLD_CODES:
                raise ValueError(f"Unknown world code {code} at {tuple(cell)}.")
            if code == PARTICLE:
                self.switch_particle(cell)
            elif code == ROCK:
                self.switch_rock(cell)
            elif code == VISIBLE:
                self.switch_visible(cell)
        logging.info(
            f"Board initialized: {int(self.particles.sum())} particle(s), "
            f"{len(self.rocks)} rock(s), {len(self.visible)} visible cell(s)."
        )

    def copy(self) -> "Board":
        """Deep copy; the clone is not connected to any observer."""
        clone = Board(self.height, self.width, self.seed)
        clone.rng = np.random.default_rng()
        clone.rng.bit_generator.state = self.rng.bit_generator.state
        clone.particles = self.particles.copy()
        clone.rocks = set(self.rocks)
        clone.visible = set(self.visible)
        return clone

    # --- Topology ---

    def within_borders(self, cell) -> bool:
        return 0 <= cell[0] < self.height and 0 <= cell[1] < self.width

    def position_possible(self, cell) -> bool:
        """Can a particle step on this cell?"""
        return self.within_borders(cell) and not self.is_rock(cell)

    def neighbors(self, cell) -> List[Coordinate]:
        steps = (Coordinate(cell[0] + dr, cell[1] + dc) for dr, dc in DIRECTIONS)
        return [step for step in steps if self.position_possible(step)]

    def all_cells(self) -> List[Coordinate]:
        return all_cells(self.height, self.width)

    # --- State queries ---

    def is_rock(self, cell) -> bool:
        return Coordinate(cell[0], cell[1]) in self.rocks

    def is_visible(self, cell) -> bool:
        return Coordinate(cell[0], cell[1]) in self.visible

    def is_particle(self, cell) -> bool:
        return self.particle_count(cell) > 0

    def particle_count(self, cell) -> int:
        return int(self.particles[cell[0], cell[1]])

    # --- Edits ---

    def switch_particle(self, cell) -> bool:
        """
        Adds a particle to an empty cell or removes one from an occupied
        cell, and informs the Observer.

        Returns:
            bool: False if no particle can be placed at `cell`.
        """
        cell = Coordinate(int(cell[0]), int(cell[1]))
        if not self.position_possible(cell):
            return False

        # The observer only knows where the change could have happened.
        if self.is_visible(cell):
            area = [cell]
        else:
            area = [
                c for c in self.all_cells()
                if not self.is_visible(c) and not self.is_rock(c)
            ]

        if self.is_particle(cell):
            self.particles[cell.row, cell.col] -= 1
            self.observer.deleted_particle_within(area)
            logging.info(f"Particle removed at {tuple(cell)}.")
        else:
            self.particles[cell.row, cell.col] = 1
            self.observer.new_particle_within(area)
            logging.info(f"Particle added at {tuple(cell)}.")
        return True

    def switch_rock(self, cell) -> bool:
        """
        Adds or removes a rock and informs the Observer.

        Returns:
            bool: False if the cell is outside the board or holds a particle.
        """
        cell = Coordinate(int(cell[0]), int(cell[1]))
        if not self.within_borders(cell) or self.is_particle(cell):
            return False
        if self.is_rock(cell):
            self.rocks.remove(cell)
            logging.info(f"Rock removed at {tuple(cell)}.")
        else:
            self.rocks.add(cell)
            # Rocks are known to the observer: nothing can be there.
            self.observer.observe_particles(cell, 0)
            logging.info(f"Rock added at {tuple(cell)}.")
        return True

    def switch_visible(self, cell) -> bool:
        """
        Makes a cell visible or invisible. A cell becoming visible reports
        its particle count to the Observer.
        """
        cell = Coordinate(int(cell[0]), int(cell[1]))
        if not self.within_borders(cell):
            return False
        if self.is_visible(cell):
            self.visible.remove(cell)
            return True
        self.visible.add(cell)
        self.observer.observe_particles(cell, self.particle_count(cell))
        return True

    # --- Dynamics ---

    def step_in_time(self) -> None:
        """
        Particles move randomly; they can stay and do not interfere.

        Each particle picks one of the four directions uniformly and stays
        put when that direction is blocked, which is exactly the move the
        Observer's diffusion assumes.
        """
        self.observer.observe_time_step()
        old_particles = self.particles.copy()
        for cell in self.all_cells():
            for _ in range(int(old_particles[cell.row, cell.col])):
                possible_steps = self.neighbors(cell)
                step = int(self.rng.integers(4))
                if step > len(possible_steps) - 1:
                    continue
                step_to = possible_steps[step]
                self.particles[cell.row, cell.col] -= 1
                self.particles[step_to.row, step_to.col] += 1

        for cell in sorted(self.visible):
            self.observer.observe_particles(cell, self.particle_count(cell))

    def __repr__(self) -> str:
        return (
            f"Board({self.height}x{self.width}, particles={int(self.particles.sum())}, "
            f"rocks={len(self.rocks)}, visible={len(self.visible)})"
        )
