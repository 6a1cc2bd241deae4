"""Pairwise recombination operators.

A crossover walks the population; every individual is, with the alterer's
probability, paired with a random mate. Both parents exchange genetic
material on one randomly chosen chromosome and are replaced by their
children.
"""

from __future__ import annotations

from abc import abstractmethod

from evokit.exceptions import ConfigurationError
from evokit.evolution.alteration.base import (
    AbstractAlterer,
    AltererResult,
    check_probability,
    count_changes,
)
from evokit.genetics.gene import Gene
from evokit.genetics.phenotype import Phenotype, Population
from evokit.utils.random_source import RandomSource


class Crossover(AbstractAlterer):
    """Base class for crossovers producing two children from two parents."""

    def alter(self, population: Population, generation: int) -> AltererResult:
        pop = list(population)
        n = len(pop)
        if n < 2 or self.probability == 0.0:
            return AltererResult(tuple(pop), 0)

        rng = self.rng
        for i in range(n):
            if rng.random() < self.probability:
                j = rng.randrange(n - 1)
                if j >= i:
                    j += 1
                self._recombine(pop, i, j, generation)

        return AltererResult(tuple(pop), count_changes(population, pop))

    def _recombine(self, pop: list[Phenotype], i: int, j: int, generation: int) -> None:
        gt1, gt2 = pop[i].genotype, pop[j].genotype
        index = self.rng.randrange(min(len(gt1), len(gt2)))
        ch1, ch2 = gt1[index], gt2[index]

        genes1, genes2 = list(ch1.genes), list(ch2.genes)
        self.crossover(genes1, genes2)

        if genes1 != list(ch1.genes):
            pop[i] = Phenotype(gt1.with_chromosome(index, ch1.with_genes(genes1)), generation)
        if genes2 != list(ch2.genes):
            pop[j] = Phenotype(gt2.with_chromosome(index, ch2.with_genes(genes2)), generation)

    @abstractmethod
    def crossover(self, that: list[Gene], other: list[Gene]) -> None:
        """Recombine the two gene lists in place."""


class MultiPointCrossover(Crossover):
    """Swaps the gene segments between `n` random cut points.

    The number of cut points is capped by the chromosome length minus one.
    """

    def __init__(
        self, probability: float = 0.05, n: int = 2, rng: RandomSource | None = None
    ):
        super().__init__(probability, rng)
        if n < 1:
            raise ConfigurationError(f"Number of crossover points must be positive, got {n}")
        self.n = n

    def crossover(self, that: list[Gene], other: list[Gene]) -> None:
        length = min(len(that), len(other))
        if length < 2:
            return
        points = sorted(self.rng.sample(range(1, length), min(self.n, length - 1)))
        if len(points) % 2:
            points.append(length)
        for start, stop in zip(points[::2], points[1::2]):
            that[start:stop], other[start:stop] = other[start:stop], that[start:stop]

    def __repr__(self) -> str:
        return f"MultiPointCrossover(p={self.probability}, n={self.n})"


class SinglePointCrossover(MultiPointCrossover):
    """Swaps the gene tails behind one random cut point."""

    def __init__(self, probability: float = 0.05, rng: RandomSource | None = None):
        super().__init__(probability, 1, rng)

    def __repr__(self) -> str:
        return f"SinglePointCrossover(p={self.probability})"


class UniformCrossover(Crossover):
    """Swaps every gene position independently with probability `swap_probability`."""

    def __init__(
        self,
        probability: float = 0.05,
        swap_probability: float = 0.5,
        rng: RandomSource | None = None,
    ):
        super().__init__(probability, rng)
        self.swap_probability = check_probability(swap_probability)

    def crossover(self, that: list[Gene], other: list[Gene]) -> None:
        rng = self.rng
        for i in range(min(len(that), len(other))):
            if rng.random() < self.swap_probability:
                that[i], other[i] = other[i], that[i]

    def __repr__(self) -> str:
        return (
            f"UniformCrossover(p={self.probability}, "
            f"swap_probability={self.swap_probability})"
        )
