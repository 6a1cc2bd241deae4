from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from evokit.evolution.engine.codec import Codec
from evokit.evolution.engine.constraints import Constraint
from evokit.genetics.genotype import Factory, Genotype

T = TypeVar("T")


@dataclass(frozen=True)
class Problem(Generic[T]):
    """Fitness function, codec and optional constraint bundled together.

    Only consumed when an engine is built; the engine never keeps a
    reference to the problem itself.
    """

    fitness: Callable[[T], Any]
    codec: Codec[T]
    constraint: Optional[Constraint] = None

    @classmethod
    def of(
        cls,
        fitness: Callable[[T], Any],
        codec: Codec[T],
        constraint: Optional[Constraint] = None,
    ) -> "Problem[T]":
        return cls(fitness, codec, constraint)

    def encoding(self) -> Factory[Genotype]:
        return self.codec.encoding

    def decode(self, genotype: Genotype) -> T:
        return self.codec.decode(genotype)

    def eval(self, value: T) -> Any:
        return self.fitness(value)

    def genotype_fitness(self) -> Callable[[Genotype], Any]:
        """The fitness function composed with the codec's decoder."""
        fitness, decoder = self.fitness, self.codec.decoder
        return lambda gt: fitness(decoder(gt))
