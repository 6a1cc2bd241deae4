from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Protocol, Sequence, TypeVar, runtime_checkable

from evokit.exceptions import InvalidGeneError
from evokit.genetics.chromosome import Chromosome
from evokit.genetics.gene import Gene
from evokit.utils.random_source import RandomSource

T_co = TypeVar("T_co", covariant=True)


@runtime_checkable
class Factory(Protocol[T_co]):
    """Anything that can create new random instances of `T`."""

    def new_instance(self) -> T_co: ...


@dataclass(frozen=True)
class Genotype:
    """Ordered sequence of chromosomes; one candidate solution in encoded form.

    A genotype doubles as the factory for new random genotypes of the same
    shape, which is how the engine seeds and replaces individuals.
    """

    chromosomes: tuple[Chromosome, ...]

    def __post_init__(self) -> None:
        if not self.chromosomes:
            raise InvalidGeneError("Genotype must contain at least one chromosome")
        object.__setattr__(self, "chromosomes", tuple(self.chromosomes))

    @classmethod
    def of(cls, *chromosomes: Chromosome) -> "Genotype":
        return cls(tuple(chromosomes))

    @classmethod
    def from_sequence(cls, chromosomes: Sequence[Chromosome]) -> "Genotype":
        return cls(tuple(chromosomes))

    def __len__(self) -> int:
        return len(self.chromosomes)

    def __iter__(self) -> Iterator[Chromosome]:
        return iter(self.chromosomes)

    def __getitem__(self, index: int) -> Chromosome:
        return self.chromosomes[index]

    @property
    def chromosome(self) -> Chromosome:
        return self.chromosomes[0]

    @property
    def gene(self) -> Gene:
        return self.chromosomes[0].genes[0]

    @property
    def gene_count(self) -> int:
        return sum(len(c) for c in self.chromosomes)

    @property
    def alleles(self) -> tuple[tuple[Any, ...], ...]:
        return tuple(c.alleles for c in self.chromosomes)

    @property
    def is_valid(self) -> bool:
        return all(c.is_valid for c in self.chromosomes)

    def new_instance(self, rng: RandomSource | None = None) -> "Genotype":
        return Genotype(tuple(c.new_instance(rng) for c in self.chromosomes))

    def with_chromosome(self, index: int, chromosome: Chromosome) -> "Genotype":
        chromosomes = list(self.chromosomes)
        chromosomes[index] = chromosome
        return Genotype(tuple(chromosomes))
