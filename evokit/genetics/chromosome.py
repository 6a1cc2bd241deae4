from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Iterator, Sequence, TypeVar, overload

from evokit.exceptions import InvalidGeneError
from evokit.genetics.gene import BitGene, DoubleGene, EnumGene, Gene, IntegerGene
from evokit.utils.random_source import RandomSource, random_source

G = TypeVar("G", bound=Gene)


@dataclass(frozen=True)
class Chromosome(Generic[G]):
    """Ordered, fixed-length, non-empty sequence of genes of one kind."""

    genes: tuple[G, ...]

    def __post_init__(self) -> None:
        if not self.genes:
            raise InvalidGeneError(f"{type(self).__name__} must not be empty")
        object.__setattr__(self, "genes", tuple(self.genes))

    # -------------------------- Sequence API --------------------------

    def __len__(self) -> int:
        return len(self.genes)

    def __iter__(self) -> Iterator[G]:
        return iter(self.genes)

    @overload
    def __getitem__(self, index: int) -> G: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[G, ...]: ...

    def __getitem__(self, index):
        return self.genes[index]

    @property
    def gene(self) -> G:
        return self.genes[0]

    @property
    def alleles(self) -> tuple[Any, ...]:
        return tuple(g.allele for g in self.genes)

    # -------------------------- Validity & factories --------------------------

    @property
    def is_valid(self) -> bool:
        return all(g.is_valid for g in self.genes)

    def new_instance(self, rng: RandomSource | None = None) -> "Chromosome[G]":
        """Create a random chromosome of the same kind, length and domain."""
        return self.with_genes([g.new_instance(rng) for g in self.genes])  # type: ignore[misc]

    def with_genes(self, genes: Sequence[G]) -> "Chromosome[G]":
        """Rebuild a chromosome of the same kind from `genes`."""
        return type(self)(tuple(genes))


@dataclass(frozen=True)
class BitChromosome(Chromosome[BitGene]):
    @property
    def bit_count(self) -> int:
        return sum(1 for g in self.genes if g.allele)

    def to_int(self) -> int:
        # gene 0 is the least significant bit
        return sum(1 << i for i, g in enumerate(self.genes) if g.allele)

    @classmethod
    def of(
        cls, length: int, p: float = 0.5, rng: RandomSource | None = None
    ) -> "BitChromosome":
        if length < 1:
            raise InvalidGeneError(f"Chromosome length must be positive, got {length}")
        if not 0.0 <= p <= 1.0:
            raise InvalidGeneError(f"Bit probability must be in [0, 1], got {p}")
        r = random_source(rng)
        return cls(tuple(BitGene(r.random() < p) for _ in range(length)))

    @classmethod
    def of_bits(cls, bits: str) -> "BitChromosome":
        """Build from a string like "0110"; the first character is gene 0."""
        return cls(tuple(BitGene(ch == "1") for ch in bits))


@dataclass(frozen=True)
class IntegerChromosome(Chromosome[IntegerGene]):
    @property
    def min(self) -> int:
        return self.genes[0].min

    @property
    def max(self) -> int:
        return self.genes[0].max

    @classmethod
    def of(
        cls, min: int, max: int, length: int = 1, rng: RandomSource | None = None
    ) -> "IntegerChromosome":
        if length < 1:
            raise InvalidGeneError(f"Chromosome length must be positive, got {length}")
        return cls(tuple(IntegerGene.of(min, max, rng) for _ in range(length)))


@dataclass(frozen=True)
class DoubleChromosome(Chromosome[DoubleGene]):
    @property
    def min(self) -> float:
        return self.genes[0].min

    @property
    def max(self) -> float:
        return self.genes[0].max

    @classmethod
    def of(
        cls, min: float, max: float, length: int = 1, rng: RandomSource | None = None
    ) -> "DoubleChromosome":
        if length < 1:
            raise InvalidGeneError(f"Chromosome length must be positive, got {length}")
        return cls(tuple(DoubleGene.of(min, max, rng) for _ in range(length)))


@dataclass(frozen=True)
class PermutationChromosome(Chromosome[EnumGene]):
    """Chromosome holding a permutation of (a subset of) its valid alleles.

    Every allele index may occur at most once; a full-length permutation uses
    each valid allele exactly once.
    """

    def __post_init__(self) -> None:
        super().__post_init__()
        alleles = self.genes[0].valid_alleles
        if any(g.valid_alleles is not alleles and g.valid_alleles != alleles for g in self.genes):
            raise InvalidGeneError("Permutation genes must share one allele tuple")
        if len(self.genes) > len(alleles):
            raise InvalidGeneError(
                f"Permutation length {len(self.genes)} exceeds allele count {len(alleles)}"
            )

    @property
    def valid_alleles(self) -> tuple[Any, ...]:
        return self.genes[0].valid_alleles

    @property
    def indices(self) -> tuple[int, ...]:
        return tuple(g.allele_index for g in self.genes)

    @property
    def is_valid(self) -> bool:
        indices = self.indices
        return all(g.is_valid for g in self.genes) and len(set(indices)) == len(indices)

    def new_instance(self, rng: RandomSource | None = None) -> "PermutationChromosome":
        return self.of(self.valid_alleles, len(self.genes), rng)

    def with_indices(self, indices: Sequence[int]) -> "PermutationChromosome":
        alleles = self.valid_alleles
        return type(self)(tuple(EnumGene(i, alleles) for i in indices))

    @classmethod
    def of(
        cls,
        alleles: Sequence[Any],
        length: int | None = None,
        rng: RandomSource | None = None,
    ) -> "PermutationChromosome":
        valid = tuple(alleles)
        if not valid:
            raise InvalidGeneError("Permutation requires at least one allele")
        length = len(valid) if length is None else length
        if not 1 <= length <= len(valid):
            raise InvalidGeneError(
                f"Permutation length must be in [1, {len(valid)}], got {length}"
            )
        indices = random_source(rng).sample(range(len(valid)), length)
        return cls(tuple(EnumGene(i, valid) for i in indices))

    @classmethod
    def of_integer(
        cls, n: int, length: int | None = None, rng: RandomSource | None = None
    ) -> "PermutationChromosome":
        if n < 1:
            raise InvalidGeneError(f"Permutation size must be positive, got {n}")
        return cls.of(range(n), length, rng)
