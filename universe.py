# universe.py
"""
One weighted hypothesis about which particles exist and where they are.

A Universe is derived from a chain of decisions such as "the particle seen
at (2, 3) was the one described by field 1". Its existence weight is the
probability that these decisions match reality, relative to the other
universes of the ensemble. It holds one Distribution per particle it
believes exists. When an event admits several explanations the universe
splits into daughters, one per explanation.
"""
import logging
import numpy as np
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from coordinate import neighbor_table
from distribution import Distribution
from errors import InfeasibleObservationError

# --- Data Contracts ---
#
# class Universe:
#   - __init__(self, height: int, width: int, prob_existence: float = 1.0):
#     - Outputs: an empty universe (no distributions).
#     - Invariants:
#       - len(self) equals the number of particles this universe believes in.
#       - Distributions are owned exclusively; copy() never shares them.
#       - Cached combined field and information are dropped on every change
#         of a distribution, of the distribution list, or of the weight.
#
#   - split_after_observation(self, cell, number: int) -> List[Universe]:
#     - Inputs: `number` particles have been counted at `cell`.
#     - Outputs: daughters with summed weight self.prob_existence times the
#       likelihood of the count. Daughters never have zero weight.
#     - Side Effects: normalizes the own distributions.
#
#   - split_after_deletion(self, area) -> List[Universe]:
#     - Inputs: one particle vanished somewhere within `area`.
#     - Outputs: one daughter per distribution with mass in `area`, weights
#       summing to self.prob_existence; empty if no distribution has mass there.


def _most_similar(candidates: Sequence[Distribution], distribution: Distribution) -> Distribution:
    """The candidate most similar to `distribution`; ties go to the first found."""
    highest_similarity = -1.0
    most_similar = None
    for other in candidates:
        similarity = distribution.similarity(other)
        if similarity > highest_similarity:
            highest_similarity = similarity
            most_similar = other
    return most_similar


class Universe:
    """
    A weighted bundle of distributions, one per believed particle.
    """
    def __init__(self, height: int, width: int, prob_existence: float = 1.0):
        self.height = int(height)
        self.width = int(width)
        self._prob_existence = float(prob_existence)
        self._distributions: List[Distribution] = []
        self._combined: Optional[np.ndarray] = None
        self._information: Optional[float] = None

    @property
    def prob_existence(self) -> float:
        return self._prob_existence

    @prob_existence.setter
    def prob_existence(self, value: float) -> None:
        self._prob_existence = float(value)
        self._information = None

    @property
    def distributions(self) -> Tuple[Distribution, ...]:
        return tuple(self._distributions)

    def __len__(self) -> int:
        return len(self._distributions)

    def copy(self) -> "Universe":
        clone = Universe(self.height, self.width, self._prob_existence)
        clone._distributions = [d.copy() for d in self._distributions]
        clone._combined = None if self._combined is None else self._combined.copy()
        clone._information = self._information
        return clone

    def _changed(self) -> None:
        self._combined = None
        self._information = None

    # --- Queries ---

    def _combined_field(self) -> np.ndarray:
        # Noisy-OR over the distributions, folded left from 0.
        if self._combined is None:
            combined = np.zeros((self.height, self.width), dtype=np.float64)
            for distribution in self._distributions:
                combined = combined + (1.0 - combined) * distribution.as_array()
            self._combined = combined
        return self._combined

    def combined_field(self) -> np.ndarray:
        """Probability that at least one particle occupies each cell."""
        return self._combined_field().copy()

    def probability(self, cell) -> float:
        return float(self._combined_field()[cell[0], cell[1]])

    def information(self) -> float:
        """Existence weight times the summed information of the distributions."""
        if self._information is None:
            total = sum(d.information() for d in self._distributions)
            self._information = self._prob_existence * total
        return self._information

    def canonical_key(self) -> Tuple:
        """Order-insensitive structural key of the distribution set."""
        return tuple(sorted(d.canonical_key() for d in self._distributions))

    def similarity(self, other: "Universe") -> float:
        """
        Mean Bhattacharyya coefficient over greedily paired distributions.

        Unpaired distributions count as zero similarity.
        """
        if not self._distributions and not other._distributions:
            return 1.0
        if not self._distributions or not other._distributions:
            return 0.0
        pairs = self._pair_up(other)
        total = sum(mine.similarity(theirs) for mine, theirs in pairs)
        return total / max(len(self), len(other))

    def _pair_up(self, other: "Universe") -> List[Tuple[Distribution, Distribution]]:
        partners_left = list(self._distributions)
        pairs = []
        for theirs in other._distributions:
            if not partners_left:
                break
            mine = _most_similar(partners_left, theirs)
            partners_left.remove(mine)
            pairs.append((mine, theirs))
        return pairs

    # --- Certain changes ---

    def add_distribution(self, area: Iterable) -> None:
        """Adds a particle that is equally likely anywhere within `area`."""
        self._distributions.append(Distribution.uniform(self.height, self.width, area))
        self._changed()

    def observe_distribution(self, cell, index: int) -> None:
        """The particle of distribution `index` is certainly at `cell`."""
        self._distributions[index].concentrate_at(cell)
        self._changed()

    def observe_absence(self, cell, except_indices: Iterable[int] = ()) -> None:
        """
        No particle other than those in `except_indices` is at `cell`.

        Raises:
            InfeasibleObservationError: If one of the others is certainly there.
        """
        excepted = set(except_indices)
        for index, distribution in enumerate(self._distributions):
            if index in excepted:
                continue
            distribution.normalize()
            if distribution.probability(cell) >= 1.0:
                msg = (
                    f"Distribution {index} is certain to be at {tuple(cell)} "
                    f"but was excluded from the observed set {sorted(excepted)}."
                )
                logging.critical(msg)
                raise InfeasibleObservationError(msg)
            distribution.vanish_from(cell)
        self._changed()

    def delete_distribution(self, index: int) -> None:
        del self._distributions[index]
        self._changed()

    def simulate_time_step(self, topology) -> None:
        """Diffuses all distributions by one random-walk step."""
        self.diffuse_along(neighbor_table(topology, self.height, self.width))

    def diffuse_along(self, table: np.ndarray) -> None:
        for distribution in self._distributions:
            distribution.diffuse_along(table)
        self._changed()

    # --- Splitting ---

    def split_after_deletion(self, area: Iterable) -> List["Universe"]:
        """
        Which particle has been deleted? One daughter for each possibility.
        """
        area = list(area)
        masses = [d.mass_within(area) for d in self._distributions]
        summed = sum(masses)
        if summed <= 0.0:
            logging.debug("No distribution has mass in the deletion area; universe dropped.")
            return []

        daughters = []
        for index, mass in enumerate(masses):
            birth_probability = mass / summed
            if birth_probability == 0.0:
                continue
            daughter = self.copy()
            daughter.prob_existence *= birth_probability
            daughter.delete_distribution(index)
            daughters.append(daughter)
        return daughters

    def split_after_observation(self, cell, number: int) -> List["Universe"]:
        """
        Which particles have been observed? One daughter for each possibility.

        Combinations that select equal distributions lead to equal daughters,
        so those are recognized up front and summarized into one daughter.
        """
        for distribution in self._distributions:
            distribution.normalize()
        self._changed()

        keys = [d.canonical_key() for d in self._distributions]
        daughters: Dict[Tuple, Universe] = {}
        for combination in self.splitting_sets(cell, number):
            birth_probability = self.birth_probability(cell, combination)
            if birth_probability == 0.0:
                continue
            selection = tuple(sorted(keys[i] for i in combination))
            daughter = daughters.get(selection)
            if daughter is None:
                daughter = self._daughter(cell, combination)
                daughters[selection] = daughter
            daughter.prob_existence += self._prob_existence * birth_probability
        return list(daughters.values())

    def splitting_sets(self, cell, number: int) -> Iterator[Tuple[int, ...]]:
        """
        Yields every index combination of size `number` that contains all
        distributions certain to be at `cell` and only distributions with
        positive probability there.

        Built by backtracking; branches that cannot reach `number` selections
        or that would drop a certain distribution are cut early.
        """
        if number < 0:
            raise ValueError(f"Particle count must be non-negative, got {number}.")
        probabilities = [d.probability(cell) for d in self._distributions]
        count = len(probabilities)
        positive = [p > 0.0 for p in probabilities]
        certain = [p >= 1.0 for p in probabilities]

        # Suffix counts: how many positive / certain distributions lie at index i or later.
        positives_left = [0] * (count + 1)
        certains_left = [0] * (count + 1)
        for i in range(count - 1, -1, -1):
            positives_left[i] = positives_left[i + 1] + positive[i]
            certains_left[i] = certains_left[i + 1] + certain[i]

        chosen: List[int] = []

        def extend(i: int) -> Iterator[Tuple[int, ...]]:
            needed = number - len(chosen)
            if needed < certains_left[i] or needed > positives_left[i]:
                return
            if i == count:
                yield tuple(chosen)
                return
            if positive[i]:
                chosen.append(i)
                yield from extend(i + 1)
                chosen.pop()
            if not certain[i]:
                yield from extend(i + 1)

        yield from extend(0)

    def birth_probability(self, cell, combination: Iterable[int]) -> float:
        """Probability that exactly the distributions in `combination` are at `cell`."""
        selected = set(combination)
        birth_probability = 1.0
        for index, distribution in enumerate(self._distributions):
            p = distribution.probability(cell)
            birth_probability *= p if index in selected else (1.0 - p)
            if birth_probability == 0.0:
                return 0.0
        return birth_probability

    def _daughter(self, cell, combination: Tuple[int, ...]) -> "Universe":
        # Starts with weight 0; the caller adds the birth probabilities.
        daughter = self.copy()
        daughter.prob_existence = 0.0
        for index in combination:
            daughter.observe_distribution(cell, index)
        daughter.observe_absence(cell, combination)
        return daughter

    # --- Merging ---

    def merge_in(self, other: "Universe") -> None:
        """
        Absorbs `other` by blending each of its distributions into the most
        similar distribution of this universe not yet used.
        """
        if len(other) > len(self):
            raise ValueError(
                f"Cannot merge a universe with {len(other)} distributions "
                f"into one with {len(self)}."
            )
        proportion = other.prob_existence / self._prob_existence
        for mine, theirs in self._pair_up(other):
            mine.merge_in(theirs, proportion)
        self.prob_existence = self._prob_existence + other.prob_existence
        self._changed()

    def __repr__(self) -> str:
        return (
            f"Universe(prob_existence={self._prob_existence:.4f}, "
            f"distributions={len(self._distributions)})"
        )
