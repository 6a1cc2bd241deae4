"""Joining evolution streams of several engines.

A segment is anything with a `stream(start)` method returning an
`EvolutionStream` that ends by itself, typically `Engine.limit(...)`. Each
segment starts from the last result of the previous one, so a later segment
resumes where the earlier stopped.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, Optional, Protocol, Sequence, runtime_checkable

from loguru import logger

from evokit.exceptions import ConfigurationError
from evokit.evolution.results import EvolutionResult
from evokit.evolution.stream.evolution_stream import EvolutionStream


@runtime_checkable
class Streamable(Protocol):
    def stream(self, start: Any = None) -> EvolutionStream: ...


class LimitedStreamable:
    """Streamable whose streams are limited by a fresh predicate each time."""

    def __init__(
        self,
        streamable: Streamable,
        predicate_factory: Callable[[], Callable[[EvolutionResult], bool]],
    ):
        self.streamable = streamable
        self.predicate_factory = predicate_factory

    def stream(self, start: Any = None) -> EvolutionStream:
        return self.streamable.stream(start).limit(self.predicate_factory())


class _EnginePool:
    def __init__(self, segments: Sequence[Streamable]):
        if not segments:
            raise ConfigurationError("At least one segment is required")
        self.segments = tuple(segments)

    @classmethod
    def of(cls, *segments: Streamable):
        return cls(segments)

    def stream(self, start: Any = None) -> EvolutionStream:
        return EvolutionStream.from_results(self._results(start))

    def _results(self, start: Any) -> Iterator[EvolutionResult]:
        raise NotImplementedError

    @staticmethod
    def _run_segment(
        segment: Streamable, start: Any, last: list[Optional[EvolutionResult]]
    ) -> Iterator[EvolutionResult]:
        seg_start = last[0].next() if last[0] is not None else start
        for result in segment.stream(seg_start):
            last[0] = result
            yield result


class ConcatEngine(_EnginePool):
    """Runs the segments one after another."""

    def _results(self, start: Any) -> Iterator[EvolutionResult]:
        last: list[Optional[EvolutionResult]] = [None]
        for index, segment in enumerate(self.segments):
            logger.debug("[ConcatEngine] entering segment {}", index)
            yield from self._run_segment(segment, start, last)


class CyclicEngine(_EnginePool):
    """Cycles through the segments forever; limit the resulting stream.

    Stops when a full cycle produces no result at all.
    """

    def _results(self, start: Any) -> Iterator[EvolutionResult]:
        last: list[Optional[EvolutionResult]] = [None]
        while True:
            produced = False
            for segment in self.segments:
                for result in self._run_segment(segment, start, last):
                    produced = True
                    yield result
            if not produced:
                logger.info("[CyclicEngine] no segment produced a result; stopping")
                return

