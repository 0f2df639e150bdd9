# coordinate.py
"""
Grid coordinates and the dense form of the grid topology.

A Coordinate is the key type used everywhere a cell is addressed. The
neighbor table translates the topology query of the world model into an
integer array that the numba kernels can consume.
"""
import numpy as np
from typing import Iterable, List, NamedTuple

# --- Data Contracts ---
#
# class Coordinate(NamedTuple):
#   - row: int, col: int
#   - Invariants: immutable, hashable, equality and ordering by value.
#
# neighbor_table(topology, height: int, width: int) -> np.ndarray:
#   - Inputs:
#     - topology: any object with a `neighbors(cell) -> List[Coordinate]`
#       method returning the cells a particle may step into from `cell`.
#   - Outputs: int64 array of shape (height * width, 4) holding the flat
#     indices (row * width + col) of the neighbors of each cell, padded
#     with -1.


class Coordinate(NamedTuple):
    row: int
    col: int

    def flat(self, width: int) -> int:
        return self.row * width + self.col

    def within(self, height: int, width: int) -> bool:
        return 0 <= self.row < height and 0 <= self.col < width


def all_cells(height: int, width: int) -> List[Coordinate]:
    """Every cell of a height x width grid in row-major order."""
    return [Coordinate(i, j) for i in range(height) for j in range(width)]


def as_coordinates(cells: Iterable) -> List[Coordinate]:
    """Accepts Coordinates or plain (row, col) pairs."""
    return [Coordinate(int(c[0]), int(c[1])) for c in cells]


def neighbor_table(topology, height: int, width: int) -> np.ndarray:
    """
    Queries the topology once per cell and packs the answers densely.
    """
    table = np.full((height * width, 4), -1, dtype=np.int64)
    for cell in all_cells(height, width):
        steps = topology.neighbors(cell)
        if len(steps) > 4:
            raise ValueError(
                f"Topology reported {len(steps)} neighbors for {cell}; "
                "at most 4 cardinal neighbors are supported."
            )
        for k, step in enumerate(steps):
            step = Coordinate(int(step[0]), int(step[1]))
            if not step.within(height, width):
                raise ValueError(f"Topology reported {step} outside the {height}x{width} grid.")
            table[cell.flat(width), k] = step.flat(width)
    return table
