"""Lazy, possibly infinite streams of evolution results.

A stream pulls results from a cursor shared by all of its split and limited
views. The cursor evolves each generation exactly once, under a lock, no
matter how many halves consume it; every result reaches exactly one consumer.
"""

from __future__ import annotations

import sys
import threading
from typing import Any, Callable, Iterable, Iterator, Optional, Tuple

from loguru import logger

from evokit.evolution.results import (
    EvolutionResult,
    EvolutionStart,
    to_best_evolution_result,
)

Predicate = Callable[[EvolutionResult], bool]


def evolve_forever(
    start: Callable[[], EvolutionStart],
    evolution: Callable[[EvolutionStart], EvolutionResult],
) -> Iterator[EvolutionResult]:
    """Feed each result's `next()` back into `evolution`, forever."""
    current = start()
    while True:
        result = evolution(current)
        yield result
        current = result.next()


class ResultCursor:
    """Lock-guarded position in a result iterator, shared by every source over it."""

    def __init__(self, results: Iterator[EvolutionResult]):
        self.results = results
        self.lock = threading.Lock()
        self.exhausted = False
        self.produced = 0


class GenerationSource:
    """Thread-safe producer of results with a stack of proceed predicates.

    Sources created by `limit` share one cursor, so every result is pulled
    exactly once no matter which source asks for it. The first result failing
    one of a source's predicates is dropped and stops that source; the shared
    cursor is exhausted only when the underlying results run out. Predicates
    are only ever called under the cursor's lock.
    """

    def __init__(
        self,
        results: Iterator[EvolutionResult] | ResultCursor,
        predicates: Tuple[Predicate, ...] = (),
    ):
        self._cursor = results if isinstance(results, ResultCursor) else ResultCursor(results)
        self._predicates = predicates
        self._stopped = False

    def limit(self, predicate: Predicate) -> "GenerationSource":
        """New source over the same cursor with one more predicate."""
        return GenerationSource(self._cursor, self._predicates + (predicate,))

    def next_result(self) -> Optional[EvolutionResult]:
        cursor = self._cursor
        with cursor.lock:
            if self._stopped or cursor.exhausted:
                return None
            result = next(cursor.results, None)
            if result is None:
                cursor.exhausted = True
            elif all(p(result) for p in self._predicates):
                cursor.produced += 1
                return result
            self._stopped = True
            logger.debug(
                "[EvolutionStream] exhausted after {} result(s)", cursor.produced
            )
            return None

    @property
    def exhausted(self) -> bool:
        with self._cursor.lock:
            return self._stopped or self._cursor.exhausted

    @property
    def remaining(self) -> int:
        """Estimated number of results still to come."""
        with self._cursor.lock:
            if self._stopped or self._cursor.exhausted:
                return 0
            return sys.maxsize - self._cursor.produced


class EvolutionSpliterator:
    """Splittable cursor over a generation source.

    Every split halves the size estimate of both halves; the estimate also
    shrinks with every result the shared source produces.
    """

    def __init__(self, source: GenerationSource, depth: int = 0):
        self._source = source
        self._depth = depth

    def try_advance(self, action: Callable[[EvolutionResult], Any]) -> bool:
        result = self._source.next_result()
        if result is None:
            return False
        action(result)
        return True

    def try_split(self) -> Optional["EvolutionSpliterator"]:
        if self._source.exhausted:
            return None
        self._depth += 1
        return EvolutionSpliterator(self._source, self._depth)

    def estimate_size(self) -> int:
        return self._source.remaining >> self._depth

    def limit(self, predicate: Predicate) -> "EvolutionSpliterator":
        return EvolutionSpliterator(self._source.limit(predicate), self._depth)


class EvolutionStream:
    """Iterable of evolution results.

    Like any stream, a stream object should be consumed once; `limit` and
    `split` return new streams over the same source.
    """

    def __init__(self, spliterator: EvolutionSpliterator):
        self._spliterator = spliterator

    @classmethod
    def of(
        cls,
        start: Callable[[], EvolutionStart],
        evolution: Callable[[EvolutionStart], EvolutionResult],
    ) -> "EvolutionStream":
        return cls.from_results(evolve_forever(start, evolution))

    @classmethod
    def from_results(cls, results: Iterable[EvolutionResult]) -> "EvolutionStream":
        return cls(EvolutionSpliterator(GenerationSource(iter(results))))

    def limit(self, predicate: Predicate) -> "EvolutionStream":
        """Stream ending before the first result for which `predicate` is false."""
        return EvolutionStream(self._spliterator.limit(predicate))

    def spliterator(self) -> EvolutionSpliterator:
        return self._spliterator

    def split(self) -> Tuple["EvolutionStream", Optional["EvolutionStream"]]:
        """This stream and a second one sharing its remaining results."""
        other = self._spliterator.try_split()
        return self, EvolutionStream(other) if other is not None else None

    def __iter__(self) -> Iterator[EvolutionResult]:
        box: list[EvolutionResult] = []
        while self._spliterator.try_advance(box.append):
            yield box.pop()

    def collect(self, collector: Callable[[Iterable[EvolutionResult]], Any]) -> Any:
        return collector(iter(self))

    def best(self) -> Optional[EvolutionResult]:
        """Best result of the stream, or None for an empty stream."""
        return self.collect(to_best_evolution_result)
