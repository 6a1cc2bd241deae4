"""The generation-step orchestrator.

One `evolve` call evaluates the start population, runs the selection and
alteration stages of a single generation as a task graph, and evaluates the
resulting population:

    evaluation ─┬─ offspring_selection ── offspring_alter ── offspring_filter ─┬─ next_evaluation
                └─ survivors_selection ─────────────────── survivor_filter ───┘

Both selections and both filters are independent of each other and run
concurrently when an executor is configured. The two evaluations run on the
calling thread: an evaluator may fan out to the same executor, and no worker
may block on it. The engine holds no per-call state, so one instance can drive
many streams at once.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Callable, Iterator, NamedTuple, Optional, Sequence, Union

from loguru import logger

from evokit.exceptions import EvaluatorContractError
from evokit.evolution.alteration.base import AltererResult
from evokit.evolution.engine import evaluators
from evokit.evolution.engine.config import EngineConfig
from evokit.evolution.engine.constraints import Constraint, RetryConstraint
from evokit.evolution.engine.evaluators import Evaluator
from evokit.evolution.engine.pipeline import Task, TaskGraph
from evokit.evolution.engine.pool import LimitedStreamable
from evokit.evolution.engine.problem import Problem
from evokit.evolution.results import EvolutionResult, EvolutionStart
from evokit.evolution.stream.evolution_stream import EvolutionStream
from evokit.evolution.timing import EvolutionDurations, Timer, timed
from evokit.genetics.genotype import Factory, Genotype
from evokit.genetics.phenotype import Phenotype, Population

StartLike = Union[EvolutionStart, EvolutionResult, Sequence[Phenotype], None]


class FilterResult(NamedTuple):
    population: Population
    kill_count: int
    invalid_count: int


class _Timed(NamedTuple):
    value: Any
    duration: timedelta


class Engine:
    """Evolves populations of genotypes created by `genotype_factory`."""

    def __init__(
        self,
        config: EngineConfig,
        genotype_factory: Factory[Genotype],
        evaluator: Evaluator,
    ):
        self.config = config
        self.genotype_factory = genotype_factory
        self.evaluator = evaluator
        self.constraint: Constraint = config.constraint or RetryConstraint(
            factory=genotype_factory
        )
        self._graph = TaskGraph(
            [
                Task.of("offspring_selection", self._offspring_selection_stage),
                Task.of("survivors_selection", self._survivors_selection_stage),
                Task.of("offspring_alter", self._offspring_alter_stage, "offspring_selection"),
                Task.of("offspring_filter", self._filter_stage, "offspring_alter"),
                Task.of("survivor_filter", self._filter_stage, "survivors_selection"),
            ]
        )
        logger.info(
            "[Engine] created: population_size={}, offspring_size={}, "
            "survivors_size={}, optimize={}",
            config.population_size,
            config.offspring_size,
            config.survivors_size,
            config.optimize.value,
        )

    # ---------------- Construction helpers ----------------

    @classmethod
    def of(
        cls,
        fitness: Callable[[Genotype], Any],
        genotype_factory: Factory[Genotype],
        evaluator: Optional[Evaluator] = None,
        **knobs: Any,
    ) -> "Engine":
        """Engine for a genotype fitness function.

        Without an explicit evaluator, fitness runs on the configured
        executor, or inline when there is none.
        """
        config = EngineConfig.create(**knobs)
        if evaluator is None:
            evaluator = (
                evaluators.concurrent(fitness, config.executor)
                if config.executor is not None
                else evaluators.serial(fitness)
            )
        return cls(config, genotype_factory, evaluator)

    @classmethod
    def from_problem(
        cls, problem: Problem, evaluator: Optional[Evaluator] = None, **knobs: Any
    ) -> "Engine":
        if problem.constraint is not None:
            knobs.setdefault("constraint", problem.constraint)
        return cls.of(problem.genotype_fitness(), problem.encoding(), evaluator, **knobs)

    # ---------------- Evolution ----------------

    def evolve(self, start: StartLike = None, generation: int = 1) -> EvolutionResult:
        """Perform one evolution step."""
        timer = Timer(self.config.clock).start()
        start = self.config.interceptor.before(self._to_start(start, generation))

        evaluation = self._evaluation_stage(start)
        evaluated = EvolutionStart(evaluation.value, start.generation, False)

        results = self._graph.run(evaluated, self.config.executor)

        offspring_selection = results["offspring_selection"]
        survivors_selection = results["survivors_selection"]
        alter: _Timed = results["offspring_alter"]
        offspring_filter = results["offspring_filter"]
        survivor_filter = results["survivor_filter"]
        alter_result: AltererResult = alter.value

        next_evaluation = self._next_evaluation_stage(survivor_filter, offspring_filter)

        result = EvolutionResult(
            optimize=self.config.optimize,
            population=next_evaluation.value,
            generation=start.generation,
            total_generations=1,
            kill_count=offspring_filter.value.kill_count + survivor_filter.value.kill_count,
            invalid_count=offspring_filter.value.invalid_count
            + survivor_filter.value.invalid_count,
            alter_count=alter_result.alterations,
        )

        result, changed = self.config.interceptor.after(result)
        after_evaluation = timedelta(0)
        if changed:
            population, after_evaluation = timed(
                self.config.clock, self.evaluate, unalias(result.population)
            )
            result = result.with_population(population)

        durations = EvolutionDurations(
            offspring_selection=offspring_selection.duration,
            survivors_selection=survivors_selection.duration,
            offspring_alter=alter.duration,
            offspring_filter=offspring_filter.duration,
            survivor_filter=survivor_filter.duration,
            evaluation=evaluation.duration + next_evaluation.duration + after_evaluation,
            evolve=timer.stop(),
        )
        logger.debug(
            "[Engine] generation {}: best={}, altered={}, killed={}, invalid={}, took {}",
            result.generation,
            result.best_fitness,
            result.alter_count,
            result.kill_count,
            result.invalid_count,
            durations.evolve,
        )
        return result.with_durations(durations)

    def evaluate(self, population: Sequence[Phenotype]) -> Population:
        """Evaluate `population`, failing fast on a broken evaluator."""
        population = tuple(population)
        evaluated = tuple(self.evaluator.eval(population))
        if len(evaluated) != len(population):
            raise EvaluatorContractError(
                f"Expected {len(population)} individuals, but got {len(evaluated)}. "
                "Check your evaluator function."
            )
        if not all(pt.is_evaluated for pt in evaluated):
            raise EvaluatorContractError(
                "Some individuals are not evaluated. Check your evaluator function."
            )
        return evaluated

    # ---------------- Stages ----------------

    def _evaluation_stage(self, start: EvolutionStart) -> _Timed:
        with Timer(self.config.clock) as timer:
            start = self._seed(start)
            population = start.population
            if start.dirty or not all(pt.is_evaluated for pt in population):
                population = self.evaluate(population)
        return _Timed(population, timer.elapsed)

    def _offspring_selection_stage(self, start: EvolutionStart) -> _Timed:
        return _Timed(
            *timed(
                self.config.clock,
                self.config.offspring_selector.select,
                start.population,
                self.config.offspring_size,
                self.config.optimize,
            )
        )

    def _survivors_selection_stage(self, start: EvolutionStart) -> _Timed:
        return _Timed(
            *timed(
                self.config.clock,
                self.config.survivors_selector.select,
                start.population,
                self.config.survivors_size,
                self.config.optimize,
            )
        )

    def _offspring_alter_stage(self, start: EvolutionStart, selection: _Timed) -> _Timed:
        return _Timed(
            *timed(
                self.config.clock,
                self.config.alterer.alter,
                selection.value,
                start.generation,
            )
        )

    def _filter_stage(self, start: EvolutionStart, upstream: _Timed) -> _Timed:
        population = upstream.value
        if isinstance(population, AltererResult):
            population = population.population
        return _Timed(
            *timed(self.config.clock, self.filter, population, start.generation)
        )

    def _next_evaluation_stage(self, survivors: _Timed, offspring: _Timed) -> _Timed:
        population = unalias(survivors.value.population + offspring.value.population)
        return _Timed(*timed(self.config.clock, self.evaluate, population))

    # ---------------- Helpers ----------------

    def filter(self, population: Sequence[Phenotype], generation: int) -> FilterResult:
        """Repair invalid and replace over-aged individuals."""
        filtered = list(population)
        kill_count = 0
        invalid_count = 0
        for i, individual in enumerate(filtered):
            if not self.constraint.test(individual):
                filtered[i] = self.constraint.repair(individual, generation)
                invalid_count += 1
            elif individual.age(generation) > self.config.max_phenotype_age:
                filtered[i] = Phenotype(self.genotype_factory.new_instance(), generation)
                kill_count += 1
        return FilterResult(tuple(filtered), kill_count, invalid_count)

    def _seed(self, start: EvolutionStart) -> EvolutionStart:
        """Pad the start population with fresh individuals, or cut it, to size."""
        size = self.config.population_size
        population = start.population
        if len(population) == size:
            return start
        if len(population) > size:
            return EvolutionStart(population[:size], start.generation, start.dirty)

        fresh = tuple(
            Phenotype(self.genotype_factory.new_instance(), start.generation)
            for _ in range(size - len(population))
        )
        logger.debug(
            "[Engine] seeded {} new individuals at generation {}",
            len(fresh),
            start.generation,
        )
        return EvolutionStart(population + fresh, start.generation, True)

    @staticmethod
    def _to_start(start: StartLike, generation: int = 1) -> EvolutionStart:
        if start is None:
            return EvolutionStart((), generation, True)
        if isinstance(start, EvolutionStart):
            return start
        if isinstance(start, EvolutionResult):
            return start.next()
        return EvolutionStart.of(start, generation)

    # ---------------- Streams ----------------

    def stream(self, start: StartLike = None, generation: int = 1) -> EvolutionStream:
        """Lazy, infinite stream of evolution results beginning at `start`."""
        first = self._to_start(start, generation)
        return EvolutionStream.of(lambda: first, self.evolve)

    def iterator(self, start: StartLike = None, generation: int = 1) -> Iterator[EvolutionResult]:
        return iter(self.stream(start, generation))

    def limit(self, predicate_factory: Callable[[], Callable[[EvolutionResult], bool]]) -> LimitedStreamable:
        """Streamable whose every stream is limited by a fresh predicate."""
        return LimitedStreamable(self, predicate_factory)

    def __repr__(self) -> str:
        return (
            f"Engine(population_size={self.config.population_size}, "
            f"optimize={self.config.optimize.value})"
        )


def unalias(population: Sequence[Phenotype]) -> Population:
    """Copy every instance that already occupies an earlier slot."""
    seen: set[int] = set()
    result = []
    for pt in population:
        if id(pt) in seen:
            pt = pt.copy()
        seen.add(id(pt))
        result.append(pt)
    return tuple(result)
