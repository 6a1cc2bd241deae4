from __future__ import annotations

import random
from typing import Protocol, Sequence, TypeVar, runtime_checkable

T = TypeVar("T")


@runtime_checkable
class RandomSource(Protocol):
    """The subset of `random.Random` the genetic operators draw from.

    Both a `random.Random` instance and the `random` module itself satisfy it,
    so operators default to the module-level generator and tests pass a seeded
    instance.
    """

    def random(self) -> float: ...

    def randrange(self, start: int, stop: int | None = ..., step: int = ...) -> int: ...

    def uniform(self, a: float, b: float) -> float: ...

    def gauss(self, mu: float = ..., sigma: float = ...) -> float: ...

    def sample(self, population: Sequence[T], k: int) -> list[T]: ...


def random_source(rng: RandomSource | None = None) -> RandomSource:
    """Return `rng`, or the module-level generator when `rng` is None."""
    return rng if rng is not None else random  # type: ignore[return-value]
