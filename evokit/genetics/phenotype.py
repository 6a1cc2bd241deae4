from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Tuple

from evokit.exceptions import ConfigurationError
from evokit.genetics.genotype import Genotype


@dataclass(frozen=True, eq=False)
class Phenotype:
    """A genotype together with its birth generation and (optional) fitness.

    Phenotypes are never mutated; assigning a fitness value or moving the
    birth generation produces a new instance. Equality is by value
    (genotype, generation, fitness), identity is never shared between two
    slots of a population built by the engine.
    """

    genotype: Genotype
    generation: int
    fitness: Any = None

    def __post_init__(self) -> None:
        if self.generation < 0:
            raise ConfigurationError(
                f"Generation must be non-negative, got {self.generation}"
            )

    @classmethod
    def of(cls, genotype: Genotype, generation: int, fitness: Any = None) -> "Phenotype":
        return cls(genotype, generation, fitness)

    @property
    def is_evaluated(self) -> bool:
        return self.fitness is not None

    @property
    def is_valid(self) -> bool:
        return self.genotype.is_valid

    def age(self, current_generation: int) -> int:
        return current_generation - self.generation

    def with_fitness(self, fitness: Any) -> "Phenotype":
        return replace(self, fitness=fitness)

    def with_generation(self, generation: int) -> "Phenotype":
        return replace(self, generation=generation)

    def non_evaluated(self) -> "Phenotype":
        return replace(self, fitness=None) if self.is_evaluated else self

    def copy(self) -> "Phenotype":
        """Value-equal phenotype with its own identity."""
        return replace(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Phenotype):
            return NotImplemented
        return (
            self.generation == other.generation
            and self.fitness == other.fitness
            and self.genotype == other.genotype
        )

    def __hash__(self) -> int:
        return hash((self.genotype, self.generation))


Population = Tuple[Phenotype, ...]
