from __future__ import annotations

from datetime import timedelta
from typing import Any, Callable, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")

Clock = Callable[[], float]


class EvolutionDurations(BaseModel):
    """Wall-clock time spent in each stage of one evolution step."""

    offspring_selection: timedelta = Field(default=timedelta(0))
    survivors_selection: timedelta = Field(default=timedelta(0))
    offspring_alter: timedelta = Field(default=timedelta(0))
    offspring_filter: timedelta = Field(default=timedelta(0))
    survivor_filter: timedelta = Field(default=timedelta(0))
    evaluation: timedelta = Field(default=timedelta(0))
    evolve: timedelta = Field(default=timedelta(0))

    model_config = ConfigDict(frozen=True)

    def __add__(self, other: "EvolutionDurations") -> "EvolutionDurations":
        if not isinstance(other, EvolutionDurations):
            return NotImplemented
        return EvolutionDurations(
            **{
                name: getattr(self, name) + getattr(other, name)
                for name in type(self).model_fields
            }
        )


ZERO_DURATIONS = EvolutionDurations()


class Timer:
    """Measures the time between `start` and `stop` with the given clock."""

    def __init__(self, clock: Clock):
        self._clock = clock
        self._start: float | None = None
        self.elapsed = timedelta(0)

    def start(self) -> "Timer":
        self._start = self._clock()
        return self

    def stop(self) -> timedelta:
        if self._start is not None:
            self.elapsed = timedelta(seconds=self._clock() - self._start)
        return self.elapsed

    def __enter__(self) -> "Timer":
        return self.start()

    def __exit__(self, *exc: Any) -> None:
        self.stop()


def timed(clock: Clock, fn: Callable[..., T], *args: Any) -> Tuple[T, timedelta]:
    """Call `fn(*args)` and return its result together with the elapsed time."""
    with Timer(clock) as timer:
        result = fn(*args)
    return result, timer.elapsed
