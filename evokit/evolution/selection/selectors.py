from __future__ import annotations

import sys

from loguru import logger

from evokit.exceptions import ConfigurationError
from evokit.evolution.selection.base import Selector, check_count, check_evaluated
from evokit.genetics.optimize import Optimize
from evokit.genetics.phenotype import Population
from evokit.utils.random_source import RandomSource


class TournamentSelector(Selector):
    """Repeated tournaments between `sample_size` distinct random individuals.

    The winner of a tournament is its best participant; on equal fitness the
    participant drawn first wins.
    """

    def __init__(self, sample_size: int = 2, rng: RandomSource | None = None):
        super().__init__(rng)
        if sample_size < 2:
            raise ConfigurationError(
                f"Tournament sample size must be at least 2, got {sample_size}"
            )
        self.sample_size = sample_size

    def select(
        self, population: Population, count: int, optimize: Optimize
    ) -> Population:
        check_count(count)
        if count == 0 or not population:
            return ()
        check_evaluated(population)

        rng = self.rng
        size = min(self.sample_size, len(population))
        indices = range(len(population))
        selected = []
        for _ in range(count):
            winner = None
            for index in rng.sample(indices, size):
                candidate = population[index]
                if winner is None or optimize.is_better(candidate.fitness, winner.fitness):
                    winner = candidate
            selected.append(winner)
        return tuple(selected)

    def __repr__(self) -> str:
        return f"TournamentSelector(sample_size={self.sample_size})"


class TruncationSelector(Selector):
    """Deterministic selection of the `n` best individuals.

    When more than `n` (or more than the population size) individuals are
    requested, the best ones are repeated in order.
    """

    def __init__(self, n: int = sys.maxsize):
        super().__init__()
        if n < 1:
            raise ConfigurationError(f"Truncation size must be positive, got {n}")
        self.n = n

    def select(
        self, population: Population, count: int, optimize: Optimize
    ) -> Population:
        check_count(count)
        if count == 0 or not population:
            return ()
        check_evaluated(population)

        ranked = optimize.sorted_best_first(population, key=lambda pt: pt.fitness)
        limit = min(self.n, len(ranked))
        return tuple(ranked[i % limit] for i in range(count))

    def __repr__(self) -> str:
        return f"TruncationSelector(n={self.n})"


class MonteCarloSelector(Selector):
    """Uniform random selection, ignoring fitness; the reference baseline."""

    def select(
        self, population: Population, count: int, optimize: Optimize
    ) -> Population:
        check_count(count)
        if count == 0 or not population:
            return ()

        rng = self.rng
        n = len(population)
        return tuple(population[rng.randrange(n)] for _ in range(count))


class EliteSelector(Selector):
    """Keeps the `elite_count` best individuals, fills the rest with another selector."""

    def __init__(
        self,
        elite_count: int = 1,
        non_elite_selector: Selector | None = None,
    ):
        super().__init__()
        if elite_count < 1:
            raise ConfigurationError(
                f"Elite count must be positive, got {elite_count}"
            )
        self.elite_count = elite_count
        self.non_elite_selector = non_elite_selector or TournamentSelector(3)

    def select(
        self, population: Population, count: int, optimize: Optimize
    ) -> Population:
        check_count(count)
        if count == 0 or not population:
            return ()
        check_evaluated(population)

        elites = TruncationSelector(self.elite_count).select(
            population, min(self.elite_count, len(population), count), optimize
        )
        rest = self.non_elite_selector.select(
            population, count - len(elites), optimize
        )
        logger.debug(
            "[EliteSelector] kept {} elites, {} from {}",
            len(elites),
            len(rest),
            self.non_elite_selector,
        )
        return elites + rest

    def __repr__(self) -> str:
        return (
            f"EliteSelector(elite_count={self.elite_count}, "
            f"non_elite_selector={self.non_elite_selector!r})"
        )
