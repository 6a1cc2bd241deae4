"""Tests for the engine: configuration, generation step and interceptors."""

from __future__ import annotations

import concurrent.futures as cf
from datetime import timedelta
import threading

import pytest

from evokit.exceptions import ConfigurationError, EvaluationError, EvaluatorContractError
from evokit.evolution.alteration import Mutator
from evokit.evolution.engine import (
    Engine,
    EngineConfig,
    Evaluator,
    EvolutionInterceptor,
    FitnessNullifier,
    Problem,
    RetryConstraint,
    UniquePopulation,
    codec,
)
from evokit.evolution.engine.core import unalias
from evokit.evolution.results import EvolutionStart, to_best_result
from evokit.evolution.stream import limits
from evokit.genetics import Optimize, Phenotype


def bits(gt):
    return gt.chromosome.bit_count


def run_in_thread(fn, timeout=60):
    """Result of `fn()` run in a daemon thread; fails instead of hanging."""
    box = []
    thread = threading.Thread(target=lambda: box.append(fn()), daemon=True)
    thread.start()
    thread.join(timeout)
    assert not thread.is_alive(), f"{fn} did not finish within {timeout}s"
    return box[0]


@pytest.fixture
def engine(bit_factory):
    return Engine.of(bits, bit_factory, population_size=50)


class TestEngineConfig:
    def test_defaults(self):
        config = EngineConfig()
        assert config.population_size == 50
        assert config.offspring_size == 30
        assert config.survivors_size == 20
        assert config.max_phenotype_age == 70
        assert config.optimize is Optimize.MAXIMUM

    @pytest.mark.parametrize(
        "fraction, offspring", [(0.0, 0), (1.0, 10), (0.25, 3), (0.35, 4), (0.5, 5)]
    )
    def test_offspring_size_rounds_half_up(self, fraction, offspring):
        config = EngineConfig.create(population_size=10, offspring_fraction=fraction)
        assert config.offspring_size == offspring
        assert config.survivors_size == 10 - offspring

    @pytest.mark.parametrize(
        "knobs",
        [
            {"population_size": 0},
            {"offspring_fraction": 1.5},
            {"offspring_fraction": -0.1},
            {"max_phenotype_age": 0},
        ],
    )
    def test_invalid_knobs(self, knobs, bit_factory):
        with pytest.raises(ConfigurationError):
            Engine.of(bits, bit_factory, **knobs)

    def test_with_changes(self):
        config = EngineConfig().with_changes(population_size=10)
        assert config.offspring_size == 6
        with pytest.raises(ConfigurationError):
            config.with_changes(population_size=-1)


class TestEvolve:
    def test_population_size_is_kept(self, engine):
        for expected, result in enumerate(
            engine.stream().limit(limits.by_fixed_generation(10)), start=1
        ):
            assert result.generation == expected
            assert len(result.population) == 50
            assert all(pt.is_evaluated for pt in result.population)
            assert result.kill_count == 0
            assert result.invalid_count == 0

    def test_start_population_is_padded(self, engine, bit_population):
        result = engine.evolve(bit_population(10), generation=3)
        assert len(result.population) == 50
        assert result.generation == 3

    def test_start_population_is_cut(self, engine, bit_population):
        result = engine.evolve(EvolutionStart.of(bit_population(80), 1))
        assert len(result.population) == 50

    def test_evolve_from_result_continues(self, engine):
        first = engine.evolve()
        second = engine.evolve(first)
        assert second.generation == first.generation + 1

    def test_durations(self, engine):
        durations = engine.evolve().durations
        assert durations.evolve >= durations.offspring_selection >= timedelta(0)
        assert durations.evaluation > timedelta(0)

    def test_alteration_is_counted(self, bit_factory):
        engine = Engine.of(bits, bit_factory, population_size=20, alterer=Mutator(1.0))
        # offspring_size = 12 individuals of 10 bits, every bit flipped
        assert engine.evolve().alter_count == 120

    def test_optimum_is_approached(self, bit_factory):
        engine = Engine.of(bits, bit_factory, population_size=30)
        best = engine.stream().limit(limits.by_fixed_generation(40)).best()
        assert best.best_fitness >= 9
        assert best.total_generations == 40

    def test_minimization(self, bit_factory):
        engine = Engine.of(bits, bit_factory, population_size=30, optimize=Optimize.MINIMUM)
        best = engine.stream().limit(limits.by_fixed_generation(40)).best()
        assert best.best_fitness <= 1


class TestFilter:
    def test_old_individuals_are_replaced(self, bit_factory):
        engine = Engine.of(
            bits, bit_factory, population_size=20, max_phenotype_age=1, alterer=Mutator(0.0)
        )
        results = list(engine.stream().limit(limits.by_fixed_generation(3)))
        assert [r.kill_count for r in results] == [0, 0, 20]
        assert all(pt.generation == 3 for pt in results[-1].population)

    def test_invalid_individuals_are_repaired(self, bit_factory):
        constraint = RetryConstraint(lambda pt: False, bit_factory, retry_limit=2)
        engine = Engine.of(bits, bit_factory, population_size=20, constraint=constraint)
        result = engine.evolve()
        assert result.invalid_count == 20
        assert result.kill_count == 0
        assert all(pt.is_evaluated for pt in result.population)

    def test_default_constraint_uses_genotype_factory(self, engine, bit_factory):
        assert isinstance(engine.constraint, RetryConstraint)
        assert engine.constraint.factory is bit_factory


class TruncatingEvaluator(Evaluator):
    def eval(self, population):
        return tuple(pt.with_fitness(0) for pt in population[:-1])


class LazyEvaluator(Evaluator):
    def eval(self, population):
        return tuple(population)


class TestEvaluatorContract:
    @pytest.mark.parametrize(
        "evaluator", [TruncatingEvaluator(), LazyEvaluator()], ids=["truncating", "lazy"]
    )
    def test_broken_evaluator_fails_fast(self, evaluator, bit_factory):
        engine = Engine.of(bits, bit_factory, evaluator=evaluator, population_size=10)
        with pytest.raises(EvaluatorContractError):
            engine.evolve()


class TestExecutor:
    def test_concurrent_engine_keeps_invariants(self, bit_factory):
        with cf.ThreadPoolExecutor(4) as executor:
            engine = Engine.of(bits, bit_factory, population_size=30, executor=executor)
            results = list(engine.stream().limit(limits.by_fixed_generation(5)))
        assert [r.generation for r in results] == [1, 2, 3, 4, 5]
        for result in results:
            assert len(result.population) == 30
            assert all(pt.is_evaluated for pt in result.population)

    def test_single_worker_executor(self, bit_factory):
        with cf.ThreadPoolExecutor(1) as executor:
            engine = Engine.of(bits, bit_factory, population_size=10, executor=executor)
            result = run_in_thread(engine.evolve)
        assert len(result.population) == 10
        assert all(pt.is_evaluated for pt in result.population)

    @pytest.mark.parametrize("workers", [1, 2])
    def test_concurrent_streams_share_engine(self, bit_factory, workers):
        with cf.ThreadPoolExecutor(workers) as executor:
            engine = Engine.of(bits, bit_factory, population_size=12, executor=executor)
            generations = {}

            def consume(index):
                stream = engine.stream().limit(limits.by_fixed_generation(20))
                generations[index] = [r.generation for r in stream]

            threads = [
                threading.Thread(target=consume, args=(i,), daemon=True) for i in range(3)
            ]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join(timeout=60)
            assert not any(thread.is_alive() for thread in threads)

        assert generations == {i: list(range(1, 21)) for i in range(3)}

    def test_fitness_failure_propagates(self, bit_factory):
        def fitness(gt):
            raise ValueError("broken fitness")

        with cf.ThreadPoolExecutor(4) as executor:
            engine = Engine.of(fitness, bit_factory, population_size=10, executor=executor)
            with pytest.raises(EvaluationError):
                engine.evolve()


class TestInterceptors:
    def test_unique_population(self, bit_factory):
        engine = Engine.of(
            bits,
            bit_factory,
            population_size=50,
            interceptor=UniquePopulation(bit_factory),
        )
        for result in engine.stream().limit(limits.by_fixed_generation(10)):
            assert len(set(result.genotypes)) == 50
            assert all(pt.is_evaluated for pt in result.population)

    def test_fitness_nullifier_forces_reevaluation(self, bit_factory):
        offset = [0]
        nullifier = FitnessNullifier()
        engine = Engine.of(
            lambda gt: bits(gt) + offset[0],
            bit_factory,
            population_size=20,
            interceptor=nullifier,
        )
        first = engine.evolve()
        offset[0] = 1000
        assert nullifier.nullify()
        assert not nullifier.nullify()
        second = engine.evolve(first)
        assert all(pt.fitness >= 1000 for pt in second.population)

        engine.evolve(second)
        # the pending request was consumed by a single step
        assert nullifier.nullify()

    def test_before_hook_sees_start(self, bit_factory):
        seen = []

        def before(start):
            seen.append(start.generation)
            return start

        engine = Engine.of(
            bits,
            bit_factory,
            population_size=10,
            interceptor=EvolutionInterceptor.of(before=before),
        )
        list(engine.stream(generation=5).limit(limits.by_fixed_generation(3)))
        assert seen == [5, 6, 7]


class TestProblemEngine:
    def test_from_problem(self):
        c = codec.of_integer_scalar(0, 100)
        problem = Problem.of(lambda x: -((x - 42) ** 2), c)
        engine = Engine.from_problem(problem, population_size=30)
        value = engine.stream().limit(limits.by_fixed_generation(30)).collect(
            to_best_result(c)
        )
        assert 0 <= value < 100

    def test_problem_constraint_is_used(self):
        c = codec.of_integer_scalar(0, 100)
        constraint = RetryConstraint(retry_limit=3)
        engine = Engine.from_problem(Problem.of(float, c, constraint), population_size=5)
        assert engine.constraint is constraint


class TestUnalias:
    def test_repeated_instances_are_copied(self, bit_factory):
        a, b = Phenotype(bit_factory, 1, 1.0), Phenotype(bit_factory, 1, 2.0)
        result = unalias((a, a, b, a))
        assert result[0] is a
        assert result[1] is not a and result[1] == a
        assert len({id(pt) for pt in result}) == 4
