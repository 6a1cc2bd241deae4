import random

import pytest

from evokit.genetics import (
    BitChromosome,
    DoubleChromosome,
    Genotype,
    PermutationChromosome,
    Phenotype,
)


@pytest.fixture
def rng():
    """Seeded random source for deterministic operators."""
    return random.Random(0xDEADBEEF)


@pytest.fixture
def bit_factory():
    """Genotype factory of one 10-bit chromosome."""
    return Genotype.of(BitChromosome.of(10))


@pytest.fixture
def double_factory():
    return Genotype.of(DoubleChromosome.of(0.0, 10.0, 5))


@pytest.fixture
def permutation_factory():
    return Genotype.of(PermutationChromosome.of_integer(12))


@pytest.fixture
def evaluated_population(rng):
    """Build evaluated populations whose fitness is the given sequence of values."""

    def build(fitness_values, generation=1):
        return tuple(
            Phenotype(Genotype.of(BitChromosome.of(8, rng=rng)), generation, value)
            for value in fitness_values
        )

    return build


@pytest.fixture
def bit_population(rng):
    """Build unevaluated populations of `size` individuals with `length` bits."""

    def build(size, length=10, generation=1, chromosomes=1):
        return tuple(
            Phenotype(
                Genotype.of(
                    *(BitChromosome.of(length, rng=rng) for _ in range(chromosomes))
                ),
                generation,
            )
            for _ in range(size)
        )

    return build
