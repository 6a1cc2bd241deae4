"""Crossovers for chromosomes of numeric (integer/double) genes."""

from __future__ import annotations

import math

from evokit.exceptions import ConfigurationError
from evokit.evolution.alteration.crossovers import Crossover
from evokit.genetics.gene import Gene, NumericGene
from evokit.utils.random_source import RandomSource


def _check_numeric(genes: list[Gene]) -> None:
    if genes and not isinstance(genes[0], NumericGene):
        raise ConfigurationError(
            f"Numeric crossover requires numeric genes, got {type(genes[0]).__name__}"
        )


def _check_spread(spread: float) -> float:
    if spread < 0 or not math.isfinite(spread):
        raise ConfigurationError(f"Spread must be a finite, non-negative value, got {spread}")
    return float(spread)


class MeanAlterer(Crossover):
    """Replaces the first parent's genes by the mean of both parents' genes."""

    def crossover(self, that: list[Gene], other: list[Gene]) -> None:
        _check_numeric(that)
        for i in range(min(len(that), len(other))):
            that[i] = that[i].mean(other[i])  # type: ignore[attr-defined]


class IntermediateCrossover(Crossover):
    """Children lie on per-gene random points of the (extended) parent segment.

    For every gene two factors a, b are drawn from [-spread, 1 + spread];
    the children are v1 + a*(v2 - v1) and v2 + b*(v1 - v2). With a spread of
    zero the children stay between their parents; values leaving the gene
    domain are redrawn a bounded number of times and finally clamped.
    """

    MAX_REDRAWS = 32

    def __init__(
        self,
        probability: float = 0.05,
        spread: float = 0.0,
        rng: RandomSource | None = None,
    ):
        super().__init__(probability, rng)
        self.spread = _check_spread(spread)

    def crossover(self, that: list[Gene], other: list[Gene]) -> None:
        _check_numeric(that)
        rng = self.rng
        low, high = -self.spread, 1.0 + self.spread
        for i in range(min(len(that), len(other))):
            g1, g2 = that[i], other[i]
            v1, v2 = float(g1.allele), float(g2.allele)
            for _ in range(self.MAX_REDRAWS):
                a, b = rng.uniform(low, high), rng.uniform(low, high)
                t, s = v1 + a * (v2 - v1), v2 + b * (v1 - v2)
                if g1.min <= t < g1.max and g2.min <= s < g2.max:  # type: ignore[attr-defined]
                    break
            that[i] = g1.with_allele(g1.clamp(t))  # type: ignore[attr-defined]
            other[i] = g2.with_allele(g2.clamp(s))  # type: ignore[attr-defined]

    def __repr__(self) -> str:
        return f"IntermediateCrossover(p={self.probability}, spread={self.spread})"


class LineCrossover(Crossover):
    """Like the intermediate crossover, but with one (a, b) pair per chromosome.

    All children therefore lie on the line through both parents. Genes whose
    child value leaves the gene domain are left unchanged.
    """

    def __init__(
        self,
        probability: float = 0.05,
        spread: float = 0.0,
        rng: RandomSource | None = None,
    ):
        super().__init__(probability, rng)
        self.spread = _check_spread(spread)

    def crossover(self, that: list[Gene], other: list[Gene]) -> None:
        _check_numeric(that)
        rng = self.rng
        low, high = -self.spread, 1.0 + self.spread
        a, b = rng.uniform(low, high), rng.uniform(low, high)
        for i in range(min(len(that), len(other))):
            g1, g2 = that[i], other[i]
            v1, v2 = float(g1.allele), float(g2.allele)
            t, s = v1 + a * (v2 - v1), v2 + b * (v1 - v2)
            if g1.min <= t < g1.max:  # type: ignore[attr-defined]
                that[i] = g1.with_allele(g1.clamp(t))  # type: ignore[attr-defined]
            if g2.min <= s < g2.max:  # type: ignore[attr-defined]
                other[i] = g2.with_allele(g2.clamp(s))  # type: ignore[attr-defined]

    def __repr__(self) -> str:
        return f"LineCrossover(p={self.probability}, spread={self.spread})"
