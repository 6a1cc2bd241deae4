"""Tests for the fitness evaluation strategies."""

from __future__ import annotations

import asyncio
import concurrent.futures as cf

import pytest

from evokit.exceptions import EvaluationCancelledError, EvaluationError
from evokit.evolution.engine import evaluators
from evokit.evolution.engine.evaluators import join_futures


def bits(gt):
    return gt.chromosome.bit_count


class TestMemoization:
    def test_only_unevaluated_individuals_are_computed(self, bit_population):
        population = bit_population(6)
        population = population[:2] + tuple(pt.with_fitness(-1) for pt in population[2:])
        seen = []

        def fitness(gt):
            seen.append(gt)
            return bits(gt)

        result = evaluators.serial(fitness).eval(population)
        assert len(seen) == 2
        assert [pt.fitness for pt in result[2:]] == [-1] * 4
        assert result[0].fitness == bits(population[0].genotype)

    def test_fully_evaluated_population_is_untouched(self, evaluated_population):
        population = evaluated_population([1.0, 2.0])
        evaluator = evaluators.serial(lambda gt: pytest.fail("must not be called"))
        assert evaluator(population) == population


class TestConcurrentEvaluator:
    def test_matches_serial_evaluation(self, bit_population):
        population = bit_population(40)
        with cf.ThreadPoolExecutor(4) as executor:
            result = evaluators.concurrent(bits, executor).eval(population)
        assert [pt.fitness for pt in result] == [bits(pt.genotype) for pt in population]
        assert [pt.genotype for pt in result] == [pt.genotype for pt in population]

    def test_failure_is_wrapped(self, bit_population):
        def fitness(gt):
            raise ValueError("boom")

        with cf.ThreadPoolExecutor(2) as executor:
            with pytest.raises(EvaluationError) as info:
                evaluators.concurrent(fitness, executor).eval(bit_population(3))
        assert isinstance(info.value.__cause__, ValueError)

    def test_decoder_is_composed(self, bit_population):
        population = bit_population(3)
        evaluator = evaluators.serial(len, decoder=lambda gt: gt.chromosome.alleles)
        assert [pt.fitness for pt in evaluator(population)] == [10, 10, 10]


class TestJoinFutures:
    def test_first_failure_cancels_pending(self):
        failing, pending = cf.Future(), cf.Future()
        failing.set_exception(RuntimeError("failed"))

        with pytest.raises(EvaluationError):
            join_futures([pending, failing])
        assert pending.cancelled()

    def test_cancelled_future(self):
        done, cancelled = cf.Future(), cf.Future()
        done.set_result(1)
        cancelled.cancel()
        with pytest.raises(EvaluationCancelledError):
            join_futures([done, cancelled])

    def test_results_in_order(self):
        futures = [cf.Future() for _ in range(3)]
        for i, future in enumerate(reversed(futures)):
            future.set_result(i)
        assert join_futures(futures) == [2, 1, 0]
        assert join_futures([]) == []


class TestFutureEvaluator:
    def test_future_results(self, bit_population):
        def fitness(gt):
            future = cf.Future()
            future.set_result(bits(gt))
            return future

        population = bit_population(5)
        result = evaluators.futures(fitness).eval(population)
        assert [pt.fitness for pt in result] == [bits(pt.genotype) for pt in population]

    def test_failure_creating_future(self, bit_population):
        created = []

        def fitness(gt):
            if created:
                raise KeyError("no more")
            created.append(cf.Future())
            return created[0]

        with pytest.raises(EvaluationError):
            evaluators.futures(fitness).eval(bit_population(3))
        assert created[0].cancelled()


class TestAsyncEvaluator:
    def test_coroutines_run_concurrently(self, bit_population):
        population = bit_population(8)
        started = []

        async def fitness(gt):
            started.append(gt)
            await asyncio.sleep(0.01)
            # all coroutines start before any one of them finishes
            assert len(started) == len(population)
            return bits(gt)

        result = evaluators.coroutines(fitness).eval(population)
        assert [pt.fitness for pt in result] == [bits(pt.genotype) for pt in population]

    def test_failure_cancels_siblings(self, bit_population):
        finished = []

        async def fitness(gt):
            if gt is population[0].genotype:
                raise ValueError("bad individual")
            await asyncio.sleep(10)
            finished.append(gt)
            return 0

        population = bit_population(4)
        with pytest.raises(EvaluationError):
            evaluators.coroutines(fitness).eval(population)
        assert finished == []

    def test_cancelled_coroutine_is_reported_once(self, bit_population):
        population = bit_population(4)

        async def fitness(gt):
            if gt is population[1].genotype:
                asyncio.current_task().cancel()
            await asyncio.sleep(0)
            return bits(gt)

        with pytest.raises(EvaluationCancelledError, match="1 of 4"):
            evaluators.coroutines(fitness).eval(population)
