"""Proceed predicates for `EvolutionStream.limit`.

Each factory returns a fresh predicate; most of them are stateful, so a
predicate instance belongs to exactly one stream.
"""

from __future__ import annotations

from collections import deque
from datetime import timedelta
import threading
import time
from typing import Any, Callable, Optional, Union

import numpy as np

from evokit.exceptions import ConfigurationError
from evokit.evolution.results import EvolutionResult

Predicate = Callable[[EvolutionResult], bool]


def infinite() -> Predicate:
    return lambda result: True


def by_fixed_generation(generations: int) -> Predicate:
    """Proceed for exactly `generations` results."""
    if generations < 0:
        raise ConfigurationError(
            f"The number of generations must be non-negative, got {generations}"
        )
    counter = _Counter()
    return lambda result: counter.increment() <= generations


class _Counter:
    def __init__(self):
        self._lock = threading.Lock()
        self._value = 0

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value


class SteadyFitnessLimit:
    """Stops once the best fitness did not improve for `generations` results."""

    def __init__(self, generations: int):
        if generations < 1:
            raise ConfigurationError(
                f"Steady generations must be positive, got {generations}"
            )
        self.generations = generations
        self._lock = threading.Lock()
        self._proceed = True
        self._stable = 0
        self._fitness: Any = None

    def __call__(self, result: EvolutionResult) -> bool:
        with self._lock:
            if not self._proceed:
                return False
            if self._fitness is None:
                self._fitness = result.best_fitness
                self._stable = 1
            elif result.optimize.compare(self._fitness, result.best_fitness) >= 0:
                self._stable += 1
                self._proceed = self._stable <= self.generations
            else:
                self._fitness = result.best_fitness
                self._stable = 1
            return self._proceed


def by_steady_fitness(generations: int) -> Predicate:
    return SteadyFitnessLimit(generations)


class ExecutionTimeLimit:
    """Proceeds while less than `duration` elapsed since the first test."""

    def __init__(self, duration: timedelta, clock: Callable[[], float] = time.perf_counter):
        self.duration = duration
        self.clock = clock
        self._lock = threading.Lock()
        self._start: Optional[float] = None

    def __call__(self, result: EvolutionResult) -> bool:
        with self._lock:
            now = self.clock()
            if self._start is None:
                self._start = now
            return timedelta(seconds=now - self._start) <= self.duration


def by_execution_time(
    duration: Union[timedelta, float], clock: Callable[[], float] = time.perf_counter
) -> Predicate:
    if not isinstance(duration, timedelta):
        duration = timedelta(seconds=duration)
    if duration < timedelta(0):
        raise ConfigurationError(f"Duration must be non-negative, got {duration}")
    return ExecutionTimeLimit(duration, clock)


class FitnessThresholdLimit:
    """Proceeds while the best fitness is not better than `threshold`.

    The first result better than the threshold is still emitted; the
    stream ends at the following one.
    """

    def __init__(self, threshold: Any):
        self.threshold = threshold
        self._lock = threading.Lock()
        self._proceed = True

    def __call__(self, result: EvolutionResult) -> bool:
        with self._lock:
            proceed = self._proceed
            self._proceed = proceed and result.optimize.compare(
                self.threshold, result.best_fitness
            ) >= 0
            return proceed


def by_fitness_threshold(threshold: Any) -> Predicate:
    return FitnessThresholdLimit(threshold)


def relative_difference(a: float, b: float) -> float:
    div = max(abs(a), abs(b))
    return abs(a - b) / (1.0 if div <= 10e-20 else div)


class FitnessConvergenceLimit:
    """Compares short- and long-term moving averages of the best fitness.

    Proceeds until the long buffer is full, then while
    `proceed(short_window, long_window)` holds.
    """

    def __init__(
        self,
        short_filter_size: int,
        long_filter_size: int,
        proceed: Callable[[np.ndarray, np.ndarray], bool],
    ):
        if short_filter_size < 1 or long_filter_size < short_filter_size:
            raise ConfigurationError(
                "Filter sizes must satisfy 0 < short <= long, got "
                f"{short_filter_size} and {long_filter_size}"
            )
        self.short_filter_size = short_filter_size
        self.long_filter_size = long_filter_size
        self.proceed = proceed
        self._lock = threading.Lock()
        self._buffer: deque[float] = deque(maxlen=long_filter_size)

    def __call__(self, result: EvolutionResult) -> bool:
        with self._lock:
            self._buffer.append(float(result.best_fitness))
            if len(self._buffer) < self.long_filter_size:
                return True
            values = np.fromiter(self._buffer, dtype=float)
            return bool(self.proceed(values[-self.short_filter_size :], values))


def by_fitness_convergence(
    short_filter_size: int, long_filter_size: int, epsilon: float
) -> Predicate:
    """Proceed while the short and long average differ by at least `epsilon` (relative)."""
    _check_epsilon(epsilon)
    return FitnessConvergenceLimit(
        short_filter_size,
        long_filter_size,
        lambda short, long_: relative_difference(short.mean(), long_.mean()) >= epsilon,
    )


class PopulationConvergenceLimit:
    """Proceeds while `proceed(best_fitness, population_fitness)` holds."""

    def __init__(self, proceed: Callable[[float, np.ndarray], bool]):
        self.proceed = proceed

    def __call__(self, result: EvolutionResult) -> bool:
        fitness = np.array([float(pt.fitness) for pt in result.population])
        if fitness.size == 0:
            return True
        return bool(self.proceed(float(result.best_fitness), fitness))


def by_population_convergence(epsilon: float) -> Predicate:
    """Proceed while the best fitness differs from the mean by at least `epsilon`."""
    _check_epsilon(epsilon)
    return PopulationConvergenceLimit(
        lambda best, fitness: relative_difference(best, fitness.mean()) >= epsilon
    )


def _check_epsilon(epsilon: float) -> None:
    if not 0.0 <= epsilon <= 1.0:
        raise ConfigurationError(f"The given epsilon is not in the range [0, 1]: {epsilon}")
