"""Order preserving crossovers for permutation chromosomes.

Both operators work on the allele indices of `EnumGene`s and guarantee that
the children are again permutations: no allele is duplicated or lost.
"""

from __future__ import annotations

from evokit.exceptions import ConfigurationError
from evokit.evolution.alteration.crossovers import Crossover
from evokit.genetics.gene import EnumGene, Gene


def _indices(genes: list[Gene]) -> list[int]:
    if genes and not isinstance(genes[0], EnumGene):
        raise ConfigurationError(
            f"Permutation crossover requires enum genes, got {type(genes[0]).__name__}"
        )
    return [g.allele_index for g in genes]  # type: ignore[attr-defined]


def _check_lengths(that: list[Gene], other: list[Gene]) -> None:
    if len(that) != len(other):
        raise ConfigurationError(
            f"Permutation crossover requires equal lengths, got {len(that)} and {len(other)}"
        )


def _write(genes: list[Gene], indices: list[int]) -> None:
    for i, index in enumerate(indices):
        if genes[i].allele_index != index:  # type: ignore[attr-defined]
            genes[i] = genes[i].with_index(index)  # type: ignore[attr-defined]


class PartiallyMatchedCrossover(Crossover):
    """PMX: swap a random segment and repair the rest via the segment mapping.

    Outside the segment every value that now collides with a swapped-in
    value is replaced by following the mapping between both segments until
    a free value is reached.
    """

    def crossover(self, that: list[Gene], other: list[Gene]) -> None:
        _check_lengths(that, other)
        n = len(that)
        if n < 2:
            return
        p1, p2 = _indices(that), _indices(other)
        start, stop = sorted(self.rng.sample(range(n + 1), 2))

        _write(that, pmx_child(p1, p2, start, stop))
        _write(other, pmx_child(p2, p1, start, stop))


def pmx_child(base: list[int], donor: list[int], start: int, stop: int) -> list[int]:
    """Child of `base` carrying `donor`'s segment [start, stop)."""
    child = list(base)
    child[start:stop] = donor[start:stop]
    mapping = {donor[k]: base[k] for k in range(start, stop)}
    for k in list(range(0, start)) + list(range(stop, len(base))):
        value = base[k]
        while value in mapping:
            value = mapping[value]
        child[k] = value
    return child


class OrderCrossover(Crossover):
    """OX: keep a random segment of one parent, fill the rest in the mate's order.

    The free positions are filled starting behind the segment (wrapping
    around) with the mate's values, in the mate's order starting behind the
    segment, skipping values already present.
    """

    def crossover(self, that: list[Gene], other: list[Gene]) -> None:
        _check_lengths(that, other)
        n = len(that)
        if n < 2:
            return
        p1, p2 = _indices(that), _indices(other)
        start, stop = sorted(self.rng.sample(range(n + 1), 2))

        _write(that, ox_child(p1, p2, start, stop))
        _write(other, ox_child(p2, p1, start, stop))


def ox_child(keep: list[int], fill: list[int], start: int, stop: int) -> list[int]:
    """Child keeping `keep[start:stop]`, other positions in `fill`'s order."""
    n = len(keep)
    segment = set(keep[start:stop])
    order = [fill[(stop + k) % n] for k in range(n)]
    remaining = iter(v for v in order if v not in segment)

    child = list(keep)
    for k in range(n - (stop - start)):
        child[(stop + k) % n] = next(remaining)
    return child
