"""Mapping between problem domain values and genotypes.

The engine only uses a codec's `encoding` (the genotype factory) and composes
its `decoder` with the fitness function; everything else here is a thin
convenience layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Sequence, TypeVar

from evokit.exceptions import ConfigurationError
from evokit.genetics.chromosome import (
    BitChromosome,
    DoubleChromosome,
    IntegerChromosome,
    PermutationChromosome,
)
from evokit.genetics.genotype import Factory, Genotype

T = TypeVar("T")


@dataclass(frozen=True)
class Codec(Generic[T]):
    encoding: Factory[Genotype]
    decoder: Callable[[Genotype], T]

    @classmethod
    def of(cls, encoding: Factory[Genotype], decoder: Callable[[Genotype], T]) -> "Codec[T]":
        return cls(encoding, decoder)

    def decode(self, genotype: Genotype) -> T:
        return self.decoder(genotype)

    def map(self, mapper: Callable[[T], Any]) -> "Codec[Any]":
        decoder = self.decoder
        return Codec(self.encoding, lambda gt: mapper(decoder(gt)))


@dataclass(frozen=True)
class InvertibleCodec(Codec[T]):
    """Codec that can also encode domain values back into genotypes."""

    encoder: Callable[[T], Genotype] = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.encoder is None:
            raise ConfigurationError("InvertibleCodec requires an encoder")

    def encode(self, value: T) -> Genotype:
        return self.encoder(value)


# -------------------------- factories --------------------------


def of_integer_scalar(min: int, max: int) -> InvertibleCodec[int]:
    """Single integer from [min, max)."""
    template = Genotype.of(IntegerChromosome.of(min, max))
    return InvertibleCodec(
        template,
        lambda gt: gt.gene.allele,
        lambda value: Genotype.of(
            template.chromosome.with_genes([template.gene.with_allele(int(value))])
        ),
    )


def of_double_scalar(min: float, max: float) -> InvertibleCodec[float]:
    """Single float from [min, max)."""
    template = Genotype.of(DoubleChromosome.of(min, max))
    return InvertibleCodec(
        template,
        lambda gt: gt.gene.allele,
        lambda value: Genotype.of(
            template.chromosome.with_genes([template.gene.with_allele(float(value))])
        ),
    )


def of_double_vector(min: float, max: float, length: int) -> InvertibleCodec[tuple[float, ...]]:
    """Tuple of `length` floats, each from [min, max)."""
    template = Genotype.of(DoubleChromosome.of(min, max, length))

    def encode(values: Sequence[float]) -> Genotype:
        genes = template.chromosome.genes
        if len(values) != len(genes):
            raise ConfigurationError(f"Expected {len(genes)} values, got {len(values)}")
        return Genotype.of(
            template.chromosome.with_genes(
                [g.with_allele(float(v)) for g, v in zip(genes, values)]
            )
        )

    return InvertibleCodec(template, lambda gt: gt.chromosome.alleles, encode)


def of_bits(length: int) -> Codec[tuple[bool, ...]]:
    return Codec(Genotype.of(BitChromosome.of(length)), lambda gt: gt.chromosome.alleles)


def of_permutation(alleles: Sequence[Any]) -> InvertibleCodec[tuple[Any, ...]]:
    """Permutation of the given alleles."""
    template = Genotype.of(PermutationChromosome.of(alleles))
    chromosome: PermutationChromosome = template.chromosome  # type: ignore[assignment]

    def encode(values: Sequence[Any]) -> Genotype:
        return Genotype.of(
            chromosome.with_indices([chromosome.valid_alleles.index(v) for v in values])
        )

    return InvertibleCodec(template, lambda gt: gt.chromosome.alleles, encode)
