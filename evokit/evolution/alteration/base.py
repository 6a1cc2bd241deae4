from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, NamedTuple, Sequence

from loguru import logger

from evokit.exceptions import ChromosomeIndexError, ConfigurationError
from evokit.genetics.genotype import Genotype
from evokit.genetics.phenotype import Phenotype, Population
from evokit.utils.random_source import RandomSource, random_source


class AltererResult(NamedTuple):
    """Altered population plus the number of gene positions that changed."""

    population: Population
    alterations: int


class Alterer(ABC):
    """Base class for crossover and mutation operators.

    Alterers keep the population size and order: slot `i` of the result is
    the (possibly) altered version of slot `i` of the input. Untouched
    individuals are passed through as is, so they keep their fitness.
    """

    @abstractmethod
    def alter(self, population: Population, generation: int) -> AltererResult:
        """Alter `population` in the context of `generation`."""

    def __call__(self, population: Population, generation: int) -> AltererResult:
        return self.alter(population, generation)

    def compose(self, before: "Alterer") -> "CompositeAlterer":
        """Alterer applying `before` first, then this one."""
        return CompositeAlterer.of(before, self)

    def and_then(self, after: "Alterer") -> "CompositeAlterer":
        """Alterer applying this one first, then `after`."""
        return CompositeAlterer.of(self, after)


class AbstractAlterer(Alterer):
    """Alterer with an alteration probability and a random source."""

    DEFAULT_ALTER_PROBABILITY = 0.2

    def __init__(
        self,
        probability: float = DEFAULT_ALTER_PROBABILITY,
        rng: RandomSource | None = None,
    ):
        self.probability = check_probability(probability)
        self._rng = rng

    @property
    def rng(self) -> RandomSource:
        return random_source(self._rng)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(p={self.probability})"


class CompositeAlterer(Alterer):
    """Applies a chain of alterers left to right.

    The reported alteration count is the number of gene positions that
    differ between the input and the final output, so a gene touched by
    several operators is counted once.
    """

    def __init__(self, alterers: Iterable[Alterer]):
        self.alterers: tuple[Alterer, ...] = tuple(_flatten(alterers))

    @classmethod
    def of(cls, *alterers: Alterer) -> "CompositeAlterer":
        return cls(alterers)

    def alter(self, population: Population, generation: int) -> AltererResult:
        result = tuple(population)
        for alterer in self.alterers:
            result = alterer.alter(result, generation).population

        alterations = count_changes(population, result)
        logger.debug(
            "[CompositeAlterer] {} operators changed {} genes",
            len(self.alterers),
            alterations,
        )
        return AltererResult(result, alterations)

    def __repr__(self) -> str:
        return f"CompositeAlterer({', '.join(repr(a) for a in self.alterers)})"


class PartialAlterer(Alterer):
    """Applies an alterer to a subset of the chromosomes only.

    The selected chromosomes are projected into a smaller genotype, altered
    and merged back; the other chromosomes are left untouched.
    """

    def __init__(self, alterer: Alterer, indices: Sequence[int]):
        indices = tuple(indices)
        if not indices:
            raise ConfigurationError("Chromosome indices must not be empty.")
        for index in indices:
            if index < 0:
                raise ChromosomeIndexError(
                    f"Chromosome index must be non-negative, got {index}"
                )
        self.alterer = alterer
        self.indices = indices

    @classmethod
    def of(cls, alterer: Alterer, *indices: int) -> "PartialAlterer":
        return cls(alterer, indices)

    @classmethod
    def of_range(cls, alterer: Alterer, start: int, stop: int) -> "PartialAlterer":
        return cls(alterer, range(start, stop))

    def check_indices(self, length: int) -> None:
        for index in self.indices:
            if index >= length:
                raise ChromosomeIndexError(
                    f"Genotype contains {length} Chromosome, but found "
                    f"PartialAlterer for Chromosome index {index}."
                )

    def alter(self, population: Population, generation: int) -> AltererResult:
        if not population:
            return AltererResult((), 0)

        self.check_indices(len(population[0].genotype))
        projected = tuple(self._project(pt) for pt in population)
        result = self.alterer.alter(projected, generation)
        merged = tuple(
            self._merge(projection, pt, generation)
            for projection, pt in zip(result.population, population)
        )
        return AltererResult(merged, result.alterations)

    def _project(self, pt: Phenotype) -> Phenotype:
        gt = Genotype(tuple(pt.genotype[i] for i in self.indices))
        return Phenotype(gt, pt.generation, pt.fitness)

    def _merge(self, projection: Phenotype, pt: Phenotype, generation: int) -> Phenotype:
        chromosomes = list(pt.genotype.chromosomes)
        for i, index in enumerate(self.indices):
            chromosomes[index] = projection.genotype[i]
        gt = Genotype(tuple(chromosomes))
        return pt if gt == pt.genotype else Phenotype(gt, projection.generation)

    def __repr__(self) -> str:
        return f"PartialAlterer({self.alterer!r}, indices={list(self.indices)})"


# -------------------------- helpers --------------------------


def check_probability(p: float) -> float:
    if not 0.0 <= p <= 1.0:
        raise ConfigurationError(f"Probability must be in [0, 1], got {p}")
    return float(p)


def changed_genes(before: Genotype, after: Genotype) -> int:
    """Number of gene positions whose allele differs between two genotypes."""
    if before is after:
        return 0
    count = 0
    for c1, c2 in zip(before.chromosomes, after.chromosomes):
        if c1 is c2:
            continue
        count += sum(1 for g1, g2 in zip(c1.genes, c2.genes) if g1.allele != g2.allele)
        count += abs(len(c1) - len(c2))
    return count


def count_changes(before: Sequence[Phenotype], after: Sequence[Phenotype]) -> int:
    return sum(
        changed_genes(b.genotype, a.genotype)
        for b, a in zip(before, after)
        if b is not a
    )


def _flatten(alterers: Iterable[Alterer]) -> Iterable[Alterer]:
    for alterer in alterers:
        if isinstance(alterer, CompositeAlterer):
            yield from alterer.alterers
        else:
            yield alterer
