"""Evolution start/result snapshots and the collectors reducing result streams."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from functools import cached_property, reduce
from typing import Any, Callable, Iterable, Optional

from evokit.evolution.timing import ZERO_DURATIONS, EvolutionDurations
from evokit.genetics.genotype import Genotype
from evokit.genetics.optimize import Optimize
from evokit.genetics.phenotype import Phenotype, Population


@dataclass(frozen=True)
class EvolutionStart:
    """Input of one evolution step.

    An empty population tells the engine to seed a fresh one. With `dirty`
    set the population is (re-)evaluated before selection.
    """

    population: Population = ()
    generation: int = 1
    dirty: bool = True

    @classmethod
    def of(cls, population: Iterable[Phenotype], generation: int) -> "EvolutionStart":
        return cls(tuple(population), generation, True)

    @classmethod
    def empty(cls) -> "EvolutionStart":
        return cls((), 1, True)


@dataclass(frozen=True)
class EvolutionResult:
    """Outcome of one evolution step."""

    optimize: Optimize
    population: Population
    generation: int
    total_generations: int = 1
    durations: EvolutionDurations = field(default=ZERO_DURATIONS)
    kill_count: int = 0
    invalid_count: int = 0
    alter_count: int = 0
    dirty: bool = False

    @cached_property
    def best_phenotype(self) -> Optional[Phenotype]:
        evaluated = [pt for pt in self.population if pt.is_evaluated]
        if not evaluated:
            return None
        return reduce(lambda a, b: self.optimize.best(a, b, _fitness), evaluated)

    @cached_property
    def worst_phenotype(self) -> Optional[Phenotype]:
        evaluated = [pt for pt in self.population if pt.is_evaluated]
        if not evaluated:
            return None
        return reduce(lambda a, b: self.optimize.worst(a, b, _fitness), evaluated)

    @property
    def best_fitness(self) -> Any:
        best = self.best_phenotype
        return best.fitness if best is not None else None

    @property
    def worst_fitness(self) -> Any:
        worst = self.worst_phenotype
        return worst.fitness if worst is not None else None

    @property
    def genotypes(self) -> tuple[Genotype, ...]:
        return tuple(pt.genotype for pt in self.population)

    def next(self) -> EvolutionStart:
        """Start of the following generation."""
        return EvolutionStart(self.population, self.generation + 1, self.dirty)

    def to_evolution_start(self) -> EvolutionStart:
        return self.next()

    def with_population(self, population: Iterable[Phenotype]) -> "EvolutionResult":
        return replace(self, population=tuple(population))

    def with_durations(self, durations: EvolutionDurations) -> "EvolutionResult":
        return replace(self, durations=durations)

    def with_total_generations(self, total: int) -> "EvolutionResult":
        return replace(self, total_generations=total)

    def compare(self, other: "EvolutionResult") -> int:
        """Positive when this result's best fitness is better than `other`'s."""
        return self.optimize.compare(self.best_fitness, other.best_fitness)

    def __lt__(self, other: "EvolutionResult") -> bool:
        if not isinstance(other, EvolutionResult):
            return NotImplemented
        return self.compare(other) < 0

    def __gt__(self, other: "EvolutionResult") -> bool:
        if not isinstance(other, EvolutionResult):
            return NotImplemented
        return self.compare(other) > 0


def _fitness(pt: Phenotype) -> Any:
    return pt.fitness


# -------------------------- collectors --------------------------


def to_best_evolution_result(
    results: Iterable[EvolutionResult],
) -> Optional[EvolutionResult]:
    """Best result of the stream, or None when it is empty.

    The returned result's `total_generations` is the number of consumed
    results; the earliest of equally good results wins.
    """
    best: Optional[EvolutionResult] = None
    count = 0
    for result in results:
        count += 1
        if best is None or result.compare(best) > 0:
            best = result
    return best.with_total_generations(count) if best is not None else None


def to_best_phenotype(results: Iterable[EvolutionResult]) -> Optional[Phenotype]:
    best = to_best_evolution_result(results)
    return best.best_phenotype if best is not None else None


def to_best_genotype(results: Iterable[EvolutionResult]) -> Optional[Genotype]:
    best = to_best_phenotype(results)
    return best.genotype if best is not None else None


def to_best_result(
    decoder: Any,
) -> Callable[[Iterable[EvolutionResult]], Any]:
    """Collector decoding the best genotype with a codec or decoder function."""
    decode = decoder.decode if hasattr(decoder, "decode") else decoder

    def collect(results: Iterable[EvolutionResult]) -> Any:
        genotype = to_best_genotype(results)
        return decode(genotype) if genotype is not None else None

    return collect
