"""Probability based selectors.

Each selector computes one selection probability per individual, the
probabilities are accumulated into a cumulative table and `count` uniform
draws are mapped back to individuals by binary search.
"""

from __future__ import annotations

from abc import abstractmethod
import math

from loguru import logger
import numpy as np

from evokit.exceptions import ConfigurationError
from evokit.evolution.selection.base import Selector, check_count, check_evaluated
from evokit.genetics.optimize import Optimize
from evokit.genetics.phenotype import Population
from evokit.utils.random_source import RandomSource

SUM_TOLERANCE = 1e-9


class ProbabilitySelector(Selector):
    """Base class for selectors driven by a probability vector.

    Subclasses with `sorted_population = True` receive the population sorted
    best first and return probabilities in that order; the others receive it
    in population order and return probabilities assuming maximization (the
    base class reverts them for minimization).
    """

    sorted_population: bool = False

    def select(
        self, population: Population, count: int, optimize: Optimize
    ) -> Population:
        check_count(count)
        if count == 0 or not population:
            return ()
        check_evaluated(population)

        pop = self._prepare(population, optimize)
        prob = self.probabilities(pop, count, optimize)
        cumulative = incremental(prob)

        rng = self.rng
        draws = np.fromiter((rng.random() for _ in range(count)), float, count)
        return tuple(pop[i] for i in index_of(cumulative, draws))

    def _prepare(self, population: Population, optimize: Optimize) -> Population:
        if self.sorted_population:
            return tuple(optimize.sorted_best_first(population, key=_fitness))
        return tuple(population)

    def probabilities(
        self, population: Population, count: int, optimize: Optimize
    ) -> np.ndarray:
        """Selection probabilities for `population`, summing to one."""
        prob = np.asarray(self._probabilities(population, count), dtype=float)
        if len(prob) != len(population):
            raise ConfigurationError(
                f"{type(self).__name__} returned {len(prob)} probabilities "
                f"for {len(population)} individuals"
            )
        if optimize is Optimize.MINIMUM and not self.sorted_population:
            prob = sort_and_revert(prob)

        prob = check_and_correct(prob)
        assert sum_to_one(prob), "Probabilities doesn't sum to one."
        return prob

    @abstractmethod
    def _probabilities(self, population: Population, count: int) -> np.ndarray: ...


class RouletteWheelSelector(ProbabilitySelector):
    """Fitness proportional selection.

    Negative fitness values are shifted into positive space; a population
    without any fitness mass is sampled uniformly.
    """

    def _probabilities(self, population: Population, count: int) -> np.ndarray:
        fitness = fitness_array(population)
        low = fitness.min()
        if low < 0:
            fitness = fitness - low

        total = fitness.sum()
        if total <= 0 or not math.isfinite(total):
            return uniform(len(fitness))
        return fitness / total


class StochasticUniversalSelector(RouletteWheelSelector):
    """Roulette probabilities sampled with `count` equally spaced pointers.

    One random offset in [0, 1/count) positions all pointers, so the number
    of copies of each individual stays within one of its expected value.
    """

    def select(
        self, population: Population, count: int, optimize: Optimize
    ) -> Population:
        check_count(count)
        if count == 0 or not population:
            return ()
        check_evaluated(population)

        pop = self._prepare(population, optimize)
        cumulative = incremental(self.probabilities(pop, count, optimize))

        delta = 1.0 / count
        offset = self.rng.random() * delta
        pointers = offset + delta * np.arange(count)
        return tuple(pop[i] for i in index_of(cumulative, pointers))


class BoltzmannSelector(ProbabilitySelector):
    """Selection probability proportional to exp(b * normalized fitness).

    The fitness is normalized to [0, 1] first; a population with no fitness
    spread (e.g. all zero) is sampled uniformly.
    """

    def __init__(self, b: float = 4.0, rng: RandomSource | None = None):
        super().__init__(rng)
        if not math.isfinite(b):
            raise ConfigurationError(f"Boltzmann parameter must be finite, got {b}")
        self.b = b

    def _probabilities(self, population: Population, count: int) -> np.ndarray:
        fitness = fitness_array(population)
        low, high = fitness.min(), fitness.max()
        spread = high - low
        if spread == 0 or not math.isfinite(spread):
            return uniform(len(fitness))

        weights = np.exp(self.b * ((fitness - low) / spread))
        return weights / weights.sum()

    def __repr__(self) -> str:
        return f"BoltzmannSelector(b={self.b})"


class LinearRankSelector(ProbabilitySelector):
    """Rank based selection with linearly spaced probabilities.

    The worst individual gets `nminus / N`, the best `nplus / N` with
    `nplus = 2 - nminus`. Equal fitness values keep their population order.
    """

    sorted_population = True

    def __init__(self, nminus: float = 0.5, rng: RandomSource | None = None):
        super().__init__(rng)
        if not 0.0 <= nminus <= 1.0:
            raise ConfigurationError(f"nminus must be in [0, 1], got {nminus}")
        self.nminus = nminus
        self.nplus = 2.0 - nminus

    def _probabilities(self, population: Population, count: int) -> np.ndarray:
        n = len(population)
        if n == 1:
            return np.ones(1)
        ranks = np.arange(n, dtype=float)
        return (self.nplus - (self.nplus - self.nminus) * ranks / (n - 1)) / n

    def __repr__(self) -> str:
        return f"LinearRankSelector(nminus={self.nminus})"


class ExponentialRankSelector(ProbabilitySelector):
    """Rank based selection with geometrically decaying probabilities.

    The i-th best individual is selected with probability
    (c - 1) * c^i / (c^N - 1).
    """

    sorted_population = True

    def __init__(self, c: float = 0.975, rng: RandomSource | None = None):
        super().__init__(rng)
        if not 0.0 <= c < 1.0:
            raise ConfigurationError(f"c must be in [0, 1), got {c}")
        self.c = c

    def _probabilities(self, population: Population, count: int) -> np.ndarray:
        n = len(population)
        powers = np.power(self.c, np.arange(n, dtype=float))
        return powers * (self.c - 1.0) / (self.c**n - 1.0)

    def __repr__(self) -> str:
        return f"ExponentialRankSelector(c={self.c})"


# -------------------------- helpers --------------------------


def _fitness(pt):
    return pt.fitness


def fitness_array(population: Population) -> np.ndarray:
    return np.fromiter((float(pt.fitness) for pt in population), float, len(population))


def uniform(n: int) -> np.ndarray:
    return np.full(n, 1.0 / n)


def sort_and_revert(prob: np.ndarray) -> np.ndarray:
    """Swap the probability mass of the i-th smallest and i-th largest entries."""
    indexes = np.argsort(prob, kind="stable")
    result = np.empty_like(prob)
    result[indexes[::-1]] = prob[indexes]
    return result


def check_and_correct(prob: np.ndarray) -> np.ndarray:
    """Replace a vector with non-finite or negative entries by the uniform one."""
    if len(prob) == 0:
        return prob
    if not np.all(np.isfinite(prob)) or np.any(prob < 0):
        logger.debug("[ProbabilitySelector] corrected invalid probabilities to uniform")
        return uniform(len(prob))
    total = prob.sum()
    if total <= 0:
        return uniform(len(prob))
    return prob / total


def sum_to_one(prob: np.ndarray, tolerance: float = SUM_TOLERANCE) -> bool:
    return len(prob) == 0 or abs(math.fsum(prob) - 1.0) <= tolerance


def incremental(prob: np.ndarray) -> np.ndarray:
    """Cumulative probability table; the last entry is pinned to one."""
    cumulative = np.cumsum(prob)
    cumulative[-1] = 1.0
    return cumulative


def index_of(cumulative: np.ndarray, values: np.ndarray) -> np.ndarray:
    """Index of the first table entry strictly greater than each value."""
    indexes = np.searchsorted(cumulative, values, side="right")
    return np.minimum(indexes, len(cumulative) - 1)
