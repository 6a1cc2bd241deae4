from __future__ import annotations

import threading
from typing import Callable, Iterable, Optional, Tuple

from loguru import logger

from evokit.exceptions import ConfigurationError
from evokit.evolution.results import EvolutionResult, EvolutionStart
from evokit.genetics.genotype import Factory, Genotype
from evokit.genetics.phenotype import Phenotype


class EvolutionInterceptor:
    """Hooks around one evolution step.

    `before` may rewrite the start of a step. `after` may rewrite its result
    and reports whether the population was changed; a changed population is
    re-evaluated by the engine before the result is handed out.
    """

    def before(self, start: EvolutionStart) -> EvolutionStart:
        return start

    def after(self, result: EvolutionResult) -> Tuple[EvolutionResult, bool]:
        return result, False

    def and_then(self, other: "EvolutionInterceptor") -> "EvolutionInterceptor":
        return compose(self, other)

    @classmethod
    def of(
        cls,
        before: Optional[Callable[[EvolutionStart], EvolutionStart]] = None,
        after: Optional[Callable[[EvolutionResult], Tuple[EvolutionResult, bool]]] = None,
    ) -> "EvolutionInterceptor":
        return _FunctionInterceptor(before, after)


class _FunctionInterceptor(EvolutionInterceptor):
    def __init__(self, before, after):
        self._before = before
        self._after = after

    def before(self, start: EvolutionStart) -> EvolutionStart:
        return self._before(start) if self._before else start

    def after(self, result: EvolutionResult) -> Tuple[EvolutionResult, bool]:
        return self._after(result) if self._after else (result, False)


class CompositeInterceptor(EvolutionInterceptor):
    """Runs `before` hooks in order and `after` hooks in order."""

    def __init__(self, interceptors: Iterable[EvolutionInterceptor]):
        flat: list[EvolutionInterceptor] = []
        for interceptor in interceptors:
            if isinstance(interceptor, CompositeInterceptor):
                flat.extend(interceptor.interceptors)
            else:
                flat.append(interceptor)
        self.interceptors = tuple(flat)

    def before(self, start: EvolutionStart) -> EvolutionStart:
        for interceptor in self.interceptors:
            start = interceptor.before(start)
        return start

    def after(self, result: EvolutionResult) -> Tuple[EvolutionResult, bool]:
        changed = False
        for interceptor in self.interceptors:
            result, step_changed = interceptor.after(result)
            changed = changed or step_changed
        return result, changed


def compose(*interceptors: EvolutionInterceptor) -> EvolutionInterceptor:
    return CompositeInterceptor(interceptors)


IDENTITY = EvolutionInterceptor()


class FitnessNullifier(EvolutionInterceptor):
    """Invalidates the population's fitness at the start of the next step.

    Useful when the fitness function changes while an evolution is running.
    `nullify` sets a single flag which the next `before` call consumes.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._invalidate = False

    def nullify(self) -> bool:
        """Request invalidation; False when a request is already pending."""
        with self._lock:
            if self._invalidate:
                return False
            self._invalidate = True
            return True

    def _consume(self) -> bool:
        with self._lock:
            pending, self._invalidate = self._invalidate, False
            return pending

    def before(self, start: EvolutionStart) -> EvolutionStart:
        if not self._consume():
            return start
        logger.debug(
            "[FitnessNullifier] invalidating fitness of generation {}", start.generation
        )
        return EvolutionStart(
            tuple(pt.non_evaluated() for pt in start.population),
            start.generation,
            True,
        )


class UniquePopulation(EvolutionInterceptor):
    """Replaces individuals with duplicate genotypes by fresh ones.

    For each duplicate at most `max_retries` new genotypes are drawn; if all
    of them are taken too, the last one is used anyway.
    """

    def __init__(self, factory: Factory[Genotype], max_retries: int = 100):
        if max_retries < 1:
            raise ConfigurationError(f"Max retries must be positive, got {max_retries}")
        self.factory = factory
        self.max_retries = max_retries

    def after(self, result: EvolutionResult) -> Tuple[EvolutionResult, bool]:
        seen: set[Genotype] = set()
        population: list[Phenotype] = []
        replaced = 0
        for pt in result.population:
            if pt.genotype not in seen:
                seen.add(pt.genotype)
                population.append(pt)
                continue

            genotype = pt.genotype
            for _ in range(self.max_retries):
                genotype = self.factory.new_instance()
                if genotype not in seen:
                    break
            seen.add(genotype)
            population.append(Phenotype(genotype, result.generation))
            replaced += 1

        if not replaced:
            return result, False

        logger.debug(
            "[UniquePopulation] replaced {} duplicate(s) in generation {}",
            replaced,
            result.generation,
        )
        return result.with_population(population), True
