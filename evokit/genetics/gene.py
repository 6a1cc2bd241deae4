"""Gene value types.

Genes are immutable (allele, validity) pairs. Every gene kind knows how to
create a random sibling (`new_instance`) and a sibling carrying a given allele
(`with_allele`), which is all the alterers need.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
import math
from typing import Any, Sequence

from evokit.exceptions import InvalidGeneError
from evokit.utils.random_source import RandomSource, random_source


class Gene(ABC):
    """Smallest encoded unit of a candidate solution."""

    allele: Any

    @property
    @abstractmethod
    def is_valid(self) -> bool: ...

    @abstractmethod
    def new_instance(self, rng: RandomSource | None = None) -> "Gene":
        """Create a random gene of the same kind and domain."""

    def with_allele(self, allele: Any) -> "Gene":
        """Create a gene of the same kind and domain carrying `allele`."""
        return replace(self, allele=allele)  # type: ignore[type-var]


@dataclass(frozen=True, slots=True)
class BitGene(Gene):
    allele: bool

    @property
    def is_valid(self) -> bool:
        return True

    def new_instance(self, rng: RandomSource | None = None) -> "BitGene":
        return BitGene(random_source(rng).random() < 0.5)

    def flip(self) -> "BitGene":
        return BitGene(not self.allele)

    def __bool__(self) -> bool:
        return self.allele

    @classmethod
    def of(cls, value: bool | None = None, rng: RandomSource | None = None) -> "BitGene":
        if value is None:
            return cls(random_source(rng).random() < 0.5)
        return cls(bool(value))


class NumericGene(Gene):
    """Gene with an allele from the half-open domain [min, max)."""

    allele: Any
    min: Any
    max: Any

    @property
    def is_valid(self) -> bool:
        return self.min <= self.allele < self.max

    @abstractmethod
    def mean(self, other: "NumericGene") -> "NumericGene": ...

    @abstractmethod
    def clamp(self, value: Any) -> Any:
        """Clamp `value` into the gene's domain."""


@dataclass(frozen=True, slots=True)
class IntegerGene(NumericGene):
    allele: int
    min: int
    max: int

    def __post_init__(self) -> None:
        if self.min >= self.max:
            raise InvalidGeneError(
                f"IntegerGene requires min < max, got [{self.min}, {self.max})"
            )

    def new_instance(self, rng: RandomSource | None = None) -> "IntegerGene":
        return IntegerGene(random_source(rng).randrange(self.min, self.max), self.min, self.max)

    def mean(self, other: "NumericGene") -> "IntegerGene":
        return self.with_allele((self.allele + int(other.allele)) // 2)  # type: ignore[return-value]

    def clamp(self, value: Any) -> int:
        return max(self.min, min(int(round(value)), self.max - 1))

    @classmethod
    def of(cls, min: int, max: int, rng: RandomSource | None = None) -> "IntegerGene":
        if min >= max:
            raise InvalidGeneError(f"IntegerGene requires min < max, got [{min}, {max})")
        return cls(random_source(rng).randrange(min, max), min, max)


@dataclass(frozen=True, slots=True)
class DoubleGene(NumericGene):
    allele: float
    min: float
    max: float

    def __post_init__(self) -> None:
        if not self.min < self.max:
            raise InvalidGeneError(
                f"DoubleGene requires min < max, got [{self.min}, {self.max})"
            )

    @property
    def is_valid(self) -> bool:
        return math.isfinite(self.allele) and self.min <= self.allele < self.max

    def new_instance(self, rng: RandomSource | None = None) -> "DoubleGene":
        return DoubleGene(_next_double(self.min, self.max, rng), self.min, self.max)

    def mean(self, other: "NumericGene") -> "DoubleGene":
        return self.with_allele(self.allele + (float(other.allele) - self.allele) / 2.0)  # type: ignore[return-value]

    def clamp(self, value: Any) -> float:
        if value < self.min:
            return self.min
        if value >= self.max:
            return math.nextafter(self.max, self.min)
        return float(value)

    @classmethod
    def of(cls, min: float, max: float, rng: RandomSource | None = None) -> "DoubleGene":
        if not min < max:
            raise InvalidGeneError(f"DoubleGene requires min < max, got [{min}, {max})")
        return cls(_next_double(min, max, rng), float(min), float(max))


@dataclass(frozen=True, slots=True)
class EnumGene(Gene):
    """Gene whose allele is picked from a shared, ordered tuple of valid alleles.

    The gene stores the allele index; `allele` resolves it. Permutation
    chromosomes are built from enum genes sharing one allele tuple.
    """

    allele_index: int
    valid_alleles: tuple[Any, ...] = field(repr=False)

    def __post_init__(self) -> None:
        if not self.valid_alleles:
            raise InvalidGeneError("EnumGene requires at least one valid allele")

    @property
    def allele(self) -> Any:  # type: ignore[override]
        return self.valid_alleles[self.allele_index]

    @property
    def is_valid(self) -> bool:
        return 0 <= self.allele_index < len(self.valid_alleles)

    def new_instance(self, rng: RandomSource | None = None) -> "EnumGene":
        return EnumGene(
            random_source(rng).randrange(len(self.valid_alleles)), self.valid_alleles
        )

    def with_allele(self, allele: Any) -> "EnumGene":
        try:
            index = self.valid_alleles.index(allele)
        except ValueError as exc:
            raise InvalidGeneError(f"Allele {allele!r} is not a valid allele") from exc
        return EnumGene(index, self.valid_alleles)

    def with_index(self, index: int) -> "EnumGene":
        return EnumGene(index, self.valid_alleles)

    @classmethod
    def of(
        cls,
        valid_alleles: Sequence[Any],
        index: int | None = None,
        rng: RandomSource | None = None,
    ) -> "EnumGene":
        alleles = tuple(valid_alleles)
        if not alleles:
            raise InvalidGeneError("EnumGene requires at least one valid allele")
        if index is None:
            index = random_source(rng).randrange(len(alleles))
        return cls(index, alleles)


def _next_double(low: float, high: float, rng: RandomSource | None) -> float:
    value = random_source(rng).uniform(low, high)
    # uniform() may round up to `high`, the domain is half-open
    return value if value < high else math.nextafter(high, low)
