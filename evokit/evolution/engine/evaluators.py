"""Fitness evaluation strategies.

Every evaluator only passes not yet evaluated individuals to the fitness
function; evaluated ones are returned untouched. The returned population has
the size and order of the input.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
import concurrent.futures as cf
from typing import Any, Awaitable, Callable, Optional, Sequence

from loguru import logger

from evokit.exceptions import EvaluationCancelledError, EvaluationError
from evokit.genetics.genotype import Genotype
from evokit.genetics.phenotype import Population

Fitness = Callable[[Genotype], Any]


class Evaluator(ABC):
    """Assigns fitness values to a population."""

    @abstractmethod
    def eval(self, population: Population) -> Population:
        """Return `population` with every individual evaluated."""

    def __call__(self, population: Population) -> Population:
        return self.eval(population)


class FitnessEvaluator(Evaluator):
    """Base class for evaluators calling a per-genotype fitness function."""

    def __init__(self, fitness: Callable[[Genotype], Any]):
        self.fitness = fitness

    def eval(self, population: Population) -> Population:
        indexes = [i for i, pt in enumerate(population) if not pt.is_evaluated]
        if not indexes:
            return tuple(population)

        values = self.compute([population[i].genotype for i in indexes])
        result = list(population)
        for i, value in zip(indexes, values):
            result[i] = population[i].with_fitness(value)

        logger.debug(
            "[{}] evaluated {} of {} individuals",
            type(self).__name__,
            len(indexes),
            len(population),
        )
        return tuple(result)

    @abstractmethod
    def compute(self, genotypes: Sequence[Genotype]) -> list[Any]:
        """Fitness values for `genotypes`, in order."""


class SerialEvaluator(FitnessEvaluator):
    """Evaluates in the calling thread."""

    def compute(self, genotypes: Sequence[Genotype]) -> list[Any]:
        return [self.fitness(gt) for gt in genotypes]


class ConcurrentEvaluator(FitnessEvaluator):
    """Submits one task per individual to an executor and waits for all of them."""

    def __init__(self, fitness: Callable[[Genotype], Any], executor: cf.Executor):
        super().__init__(fitness)
        self.executor = executor

    def compute(self, genotypes: Sequence[Genotype]) -> list[Any]:
        futures = [self.executor.submit(self.fitness, gt) for gt in genotypes]
        return join_futures(futures)


class FutureEvaluator(FitnessEvaluator):
    """The fitness function returns a `concurrent.futures.Future` per genotype.

    The first failing future fails the whole evaluation; all still pending
    futures are cancelled.
    """

    def __init__(self, fitness: Callable[[Genotype], cf.Future]):
        super().__init__(fitness)

    def compute(self, genotypes: Sequence[Genotype]) -> list[Any]:
        futures = []
        try:
            for gt in genotypes:
                futures.append(self.fitness(gt))
        except Exception as exc:
            _cancel(futures)
            raise EvaluationError(f"Creating fitness future failed: {exc}") from exc
        return join_futures(futures)


class AsyncEvaluator(FitnessEvaluator):
    """The fitness function is a coroutine function.

    All fitness coroutines of one population run concurrently on an event
    loop: a fresh one per evaluation, or `loop` (running in another thread)
    when given. The first failure cancels the other coroutines.
    """

    def __init__(
        self,
        fitness: Callable[[Genotype], Awaitable[Any]],
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        super().__init__(fitness)
        self.loop = loop

    def compute(self, genotypes: Sequence[Genotype]) -> list[Any]:
        if self.loop is None:
            return asyncio.run(self._compute(genotypes))
        return asyncio.run_coroutine_threadsafe(self._compute(genotypes), self.loop).result()

    async def _compute(self, genotypes: Sequence[Genotype]) -> list[Any]:
        tasks = [asyncio.ensure_future(self.fitness(gt)) for gt in genotypes]
        try:
            done, pending = await asyncio.wait(
                tasks, return_when=asyncio.FIRST_EXCEPTION
            )
        except asyncio.CancelledError:
            await _cancel_tasks(tasks)
            raise

        failed = next(
            (t for t in done if not t.cancelled() and t.exception() is not None), None
        )
        if failed is not None:
            await _cancel_tasks(pending)
            exc = failed.exception()
            logger.error("[AsyncEvaluator] fitness coroutine failed: {}", exc)
            raise EvaluationError(f"Fitness evaluation failed: {exc}") from exc

        if any(t.cancelled() for t in tasks):
            raise EvaluationCancelledError(
                f"{sum(t.cancelled() for t in tasks)} of {len(tasks)} fitness "
                "computations were cancelled"
            )
        return [t.result() for t in tasks]


# -------------------------- joining --------------------------


def join_futures(futures: Sequence[cf.Future]) -> list[Any]:
    """Wait for all futures; fail on the first failure, cancelling the rest."""
    if not futures:
        return []

    done, not_done = cf.wait(futures, return_when=cf.FIRST_EXCEPTION)
    failed = next(
        (f for f in done if not f.cancelled() and f.exception() is not None), None
    )
    if failed is not None:
        _cancel(not_done)
        exc = failed.exception()
        logger.error("[Evaluator] fitness computation failed: {}", exc)
        raise EvaluationError(f"Fitness evaluation failed: {exc}") from exc

    if not_done:
        # only reachable when a future was cancelled while others still ran
        cf.wait(not_done)

    cancelled = sum(1 for f in futures if f.cancelled())
    if cancelled:
        raise EvaluationCancelledError(
            f"{cancelled} of {len(futures)} fitness computations were cancelled"
        )
    return [f.result() for f in futures]


def _cancel(futures) -> None:
    for future in futures:
        future.cancel()


async def _cancel_tasks(tasks) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


# -------------------------- factories --------------------------


def _compose(fitness: Callable[[Any], Any], decoder: Optional[Callable[[Genotype], Any]]):
    if decoder is None:
        return fitness
    return lambda gt: fitness(decoder(gt))


def serial(
    fitness: Callable[[Any], Any], decoder: Optional[Callable[[Genotype], Any]] = None
) -> SerialEvaluator:
    return SerialEvaluator(_compose(fitness, decoder))


def concurrent(
    fitness: Callable[[Any], Any],
    executor: cf.Executor,
    decoder: Optional[Callable[[Genotype], Any]] = None,
) -> ConcurrentEvaluator:
    return ConcurrentEvaluator(_compose(fitness, decoder), executor)


def futures(
    fitness: Callable[[Any], cf.Future],
    decoder: Optional[Callable[[Genotype], Any]] = None,
) -> FutureEvaluator:
    return FutureEvaluator(_compose(fitness, decoder))


def coroutines(
    fitness: Callable[[Any], Awaitable[Any]],
    decoder: Optional[Callable[[Genotype], Any]] = None,
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> AsyncEvaluator:
    return AsyncEvaluator(_compose(fitness, decoder), loop)
