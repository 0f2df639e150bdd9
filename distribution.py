# distribution.py
"""
Spatial belief about the location of one presumed particle.

This module defines the Distribution class, a normalized probability field
over all grid cells. It diffuses like a random-walking particle, collapses
when the particle is seen, loses mass where the particle is known to be
absent, and can be blended with another field when hypotheses merge.
"""
import logging
import numpy as np
from typing import Iterable, Optional, Tuple
from numba import jit

from constants import DIFFUSION_SHARE, ENTROPY_EPSILON, EQUALITY_DECIMALS
from coordinate import as_coordinates, neighbor_table
from errors import SingularRescaleError

# --- Data Contracts ---
#
# class Distribution:
#   - __init__(self, height: int, width: int, field: Optional[np.ndarray] = None):
#     - Inputs:
#       - height, width: int, grid dimensions. Passed explicitly so that
#         fields of differently sized boards never share state.
#       - field: array of shape (height, width). Copied. Defaults to zeros,
#         which is only valid as a scratch value before concentrate_at().
#   - Invariants:
#     - self._field is a float64 array of shape (height, width).
#     - After every public mutating call, no value is negative and the
#       values sum to 1 within floating tolerance.
#     - self._information is None whenever the field changed since it was
#       last computed.
#
#   - canonical_key(self) -> Tuple[int, int, bytes]:
#     - Outputs: a hashable key; two fields have equal keys iff every cell
#       agrees after rounding to EQUALITY_DECIMALS decimal places.


@jit(nopython=True)
def _diffuse_numba(old, table, share):
    """
    Numba-jitted random-walk step on a flattened field.

    `old` is only read, so mass that arrives in a cell during this pass is
    never moved a second time.
    """
    new = old.copy()
    for src in range(old.shape[0]):
        mass = old[src]
        if mass == 0.0:
            continue
        moving = share * mass
        for k in range(table.shape[1]):
            dst = table[src, k]
            if dst < 0:
                continue
            new[src] -= moving
            new[dst] += moving
    return new


def canonicalize(field: np.ndarray) -> np.ndarray:
    """
    Rounds a field to EQUALITY_DECIMALS places and folds -0.0 into 0.0.
    """
    return np.round(field, EQUALITY_DECIMALS) + 0.0


class Distribution:
    """
    A probability field for a single particle.
    """
    def __init__(self, height: int, width: int, field: Optional[np.ndarray] = None):
        self.height = int(height)
        self.width = int(width)
        if field is None:
            self._field = np.zeros((self.height, self.width), dtype=np.float64)
        else:
            self._field = np.array(field, dtype=np.float64)
            if self._field.shape != (self.height, self.width):
                raise ValueError(
                    f"Field shape {self._field.shape} does not match the "
                    f"{self.height}x{self.width} grid."
                )
        self._information: Optional[float] = None

    @classmethod
    def uniform(cls, height: int, width: int, area: Iterable) -> "Distribution":
        """
        Creates a field that is uniform within `area` and zero elsewhere.

        Args:
            height (int): Grid height.
            width (int): Grid width.
            area (Iterable): Cells where the particle may be.
        """
        cells = set(as_coordinates(area))
        if not cells:
            raise ValueError("A distribution needs a non-empty area.")
        field = np.zeros((height, width), dtype=np.float64)
        average = 1.0 / len(cells)
        for cell in cells:
            if not cell.within(height, width):
                raise ValueError(f"Cell {cell} lies outside the {height}x{width} grid.")
            field[cell.row, cell.col] = average
        return cls(height, width, field)

    def copy(self) -> "Distribution":
        clone = Distribution(self.height, self.width, self._field)
        clone._information = self._information
        return clone

    def probability(self, cell) -> float:
        return float(self._field[cell[0], cell[1]])

    def as_array(self) -> np.ndarray:
        """A copy of the field; the distribution itself stays untouched."""
        return self._field.copy()

    def total_probability(self) -> float:
        return float(self._field.sum())

    def mass_within(self, area: Iterable) -> float:
        return float(sum(self._field[c.row, c.col] for c in set(as_coordinates(area))))

    def canonical_key(self) -> Tuple[int, int, bytes]:
        return (self.height, self.width, canonicalize(self._field).tobytes())

    def same_as(self, other: "Distribution") -> bool:
        return self.canonical_key() == other.canonical_key()

    def similarity(self, other: "Distribution") -> float:
        """
        Bhattacharyya coefficient of the two fields.

        1 for identical fields, 0 for fields with disjoint support.
        """
        return float(np.sum(np.sqrt(self._field * other._field)))

    def diffuse(self, topology) -> None:
        """
        One random-walk step. Each cell hands DIFFUSION_SHARE of its mass to
        every neighbor the topology reports; the rest stays put.
        """
        self.diffuse_along(neighbor_table(topology, self.height, self.width))

    def diffuse_along(self, table: np.ndarray) -> None:
        """Same as diffuse() with a neighbor table built beforehand."""
        flat = _diffuse_numba(self._field.ravel(), table, DIFFUSION_SHARE)
        self._field = flat.reshape(self.height, self.width)
        self._information = None

    def concentrate_at(self, cell) -> None:
        self._field = np.zeros((self.height, self.width), dtype=np.float64)
        self._field[cell[0], cell[1]] = 1.0
        self._information = None

    def vanish_from(self, cell) -> None:
        """
        Removes all mass from `cell` and rescales the rest back to 1.

        Raises:
            SingularRescaleError: If `cell` holds all of the mass.
        """
        mass = self._field[cell[0], cell[1]]
        if mass >= 1.0:
            msg = f"Cannot remove the entire probability mass of a field at {tuple(cell)}."
            logging.critical(msg)
            raise SingularRescaleError(msg)
        self._field *= 1.0 / (1.0 - mass)
        self._field[cell[0], cell[1]] = 0.0
        self._information = None

    def merge_in(self, other: "Distribution", proportion: float) -> None:
        """
        Blends `other` into this field: (1 - proportion) * self + proportion * other.
        """
        if other._field.shape != self._field.shape:
            raise ValueError(
                f"Cannot merge a {other._field.shape} field into a {self._field.shape} field."
            )
        self._field = (1.0 - proportion) * self._field + proportion * other._field
        self.normalize()

    def normalize(self) -> None:
        """
        Clamps negative values to 0 and rescales the field to sum to 1.

        Both conditions hold mathematically; repeated floating-point
        arithmetic lets them drift slightly.
        """
        np.maximum(self._field, 0.0, out=self._field)
        total = self._field.sum()
        if total <= 0.0:
            msg = "Field has no probability mass left to normalize."
            logging.critical(msg)
            raise SingularRescaleError(msg)
        self._field /= total
        self._information = None

    def information(self) -> float:
        """
        Information content as 1 - normalized entropy.

        A field concentrated on one cell has information 1, a field uniform
        over the whole grid has information 0.
        """
        if self._information is None:
            events = self.height * self.width
            if events == 1:
                self._information = 1.0
            else:
                p = self._field
                entropy = float(-np.sum(p * np.log(p + ENTROPY_EPSILON)) / np.log(events))
                self._information = 1.0 - entropy
        return self._information

    def __repr__(self) -> str:
        return (
            f"Distribution({self.height}x{self.width}, "
            f"information={self.information():.4f})"
        )
