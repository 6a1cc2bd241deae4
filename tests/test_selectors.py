"""Tests for the selector family, including goodness-of-fit checks."""

from __future__ import annotations

from collections import Counter
import math
import random

import numpy as np
import pytest
from scipy.stats import chisquare

from evokit.exceptions import ConfigurationError
from evokit.evolution.selection import (
    BoltzmannSelector,
    EliteSelector,
    ExponentialRankSelector,
    LinearRankSelector,
    MonteCarloSelector,
    RouletteWheelSelector,
    StochasticUniversalSelector,
    TournamentSelector,
    TruncationSelector,
)
from evokit.evolution.selection.probability import incremental, index_of, sort_and_revert
from evokit.genetics import Optimize

# significance level for the goodness-of-fit tests
ALPHA = 1e-4
DRAWS = 20_000


def selection_counts(selected, population):
    position = {id(pt): i for i, pt in enumerate(population)}
    counts = Counter(position[id(pt)] for pt in selected)
    return np.array([counts.get(i, 0) for i in range(len(population))], dtype=float)


def assert_fits(observed, probabilities):
    expected = np.asarray(probabilities, dtype=float) * observed.sum()
    assert chisquare(observed, expected).pvalue > ALPHA


class TestProbabilitySums:
    SELECTORS = [
        RouletteWheelSelector(),
        StochasticUniversalSelector(),
        BoltzmannSelector(2.0),
        LinearRankSelector(0.3),
        ExponentialRankSelector(0.9),
    ]

    @pytest.mark.parametrize("selector", SELECTORS, ids=repr)
    @pytest.mark.parametrize("optimize", list(Optimize))
    def test_probabilities_sum_to_one(self, selector, optimize, evaluated_population):
        source = random.Random(7)
        for size in (1, 2, 13, 100):
            population = evaluated_population(
                [source.uniform(-50.0, 50.0) for _ in range(size)]
            )
            prob = selector.probabilities(population, size, optimize)
            assert len(prob) == size
            assert abs(math.fsum(prob) - 1.0) <= 1e-9
            assert np.all(prob >= 0)


class TestRouletteWheel:
    def test_fitness_proportional(self, evaluated_population, rng):
        population = evaluated_population([1.0, 2.0, 3.0, 4.0])
        selected = RouletteWheelSelector(rng).select(population, DRAWS, Optimize.MAXIMUM)
        assert_fits(selection_counts(selected, population), [0.1, 0.2, 0.3, 0.4])

    def test_minimum_reverts_probability_mass(self, evaluated_population):
        population = evaluated_population([1.0, 2.0, 3.0, 4.0])
        prob = RouletteWheelSelector().probabilities(population, 4, Optimize.MINIMUM)
        assert np.allclose(prob, [0.4, 0.3, 0.2, 0.1])

    def test_zero_fitness_is_uniform(self, evaluated_population):
        population = evaluated_population([0.0] * 5)
        prob = RouletteWheelSelector().probabilities(population, 5, Optimize.MAXIMUM)
        assert np.allclose(prob, 0.2)

    def test_negative_fitness_is_shifted(self, evaluated_population):
        population = evaluated_population([-2.0, -1.0, 0.0])
        prob = RouletteWheelSelector().probabilities(population, 3, Optimize.MAXIMUM)
        assert np.allclose(prob, [0.0, 1.0 / 3.0, 2.0 / 3.0])


class TestStochasticUniversal:
    def test_counts_stay_within_one_of_expectation(self, evaluated_population, rng):
        population = evaluated_population([1.0, 2.0, 3.0, 4.0])
        selector = StochasticUniversalSelector(rng)
        for _ in range(50):
            selected = selector.select(population, 100, Optimize.MAXIMUM)
            counts = selection_counts(selected, population)
            assert np.all(np.abs(counts - [10, 20, 30, 40]) <= 1)

    def test_selects_requested_count(self, evaluated_population, rng):
        population = evaluated_population([3.0, 1.0, 2.0])
        assert len(StochasticUniversalSelector(rng).select(population, 7, Optimize.MINIMUM)) == 7


class TestBoltzmann:
    def test_all_zero_fitness_does_not_throw(self, evaluated_population, rng):
        population = evaluated_population([0.0] * 6)
        selector = BoltzmannSelector(4.0, rng)
        assert np.allclose(selector.probabilities(population, 6, Optimize.MAXIMUM), 1 / 6)
        assert len(selector.select(population, 10, Optimize.MAXIMUM)) == 10

    def test_reference_distribution(self, evaluated_population, rng):
        fitness = np.array([0.0, 1.0, 2.0, 4.0])
        population = evaluated_population(fitness.tolist())
        weights = np.exp(1.5 * fitness / 4.0)
        selected = BoltzmannSelector(1.5, rng).select(population, DRAWS, Optimize.MAXIMUM)
        assert_fits(selection_counts(selected, population), weights / weights.sum())

    def test_infinite_parameter_rejected(self):
        with pytest.raises(ConfigurationError):
            BoltzmannSelector(float("inf"))


class TestLinearRank:
    def test_reference_distribution(self, evaluated_population, rng):
        # population order differs from rank order
        population = evaluated_population([3.0, 1.0, 4.0, 2.0])
        selected = LinearRankSelector(0.5, rng).select(population, DRAWS, Optimize.MAXIMUM)
        by_rank = np.array([1.5, 1.5 - 1 / 3, 1.5 - 2 / 3, 0.5]) / 4
        # ranks of population slots: 4.0 best, then 3.0, 2.0, 1.0
        expected = [by_rank[1], by_rank[3], by_rank[0], by_rank[2]]
        assert_fits(selection_counts(selected, population), expected)

    def test_minimum_prefers_small_fitness(self, evaluated_population, rng):
        population = evaluated_population([10.0, 20.0, 30.0])
        selected = LinearRankSelector(0.0, rng).select(population, DRAWS, Optimize.MINIMUM)
        counts = selection_counts(selected, population)
        assert counts[0] > counts[1] > counts[2] == 0

    def test_nminus_out_of_range(self):
        with pytest.raises(ConfigurationError):
            LinearRankSelector(1.5)


class TestExponentialRank:
    def test_reference_distribution(self, evaluated_population, rng):
        c = 0.5
        population = evaluated_population([1.0, 2.0, 3.0])
        selected = ExponentialRankSelector(c, rng).select(population, DRAWS, Optimize.MAXIMUM)
        by_rank = np.array([c**i for i in range(3)]) * (c - 1) / (c**3 - 1)
        assert_fits(selection_counts(selected, population), by_rank[::-1])

    def test_c_out_of_range(self):
        with pytest.raises(ConfigurationError):
            ExponentialRankSelector(1.0)


class TestTournament:
    def test_binary_tournament_distribution(self, evaluated_population, rng):
        population = evaluated_population([1.0, 2.0, 3.0, 4.0, 5.0])
        selected = TournamentSelector(2, rng).select(population, DRAWS, Optimize.MAXIMUM)
        counts = selection_counts(selected, population)
        # an individual wins iff its partner is worse: rank / C(5, 2)
        assert counts[0] == 0
        assert_fits(counts[1:], np.array([1, 2, 3, 4]) / 10)

    def test_full_tournament_always_picks_best(self, evaluated_population, rng):
        population = evaluated_population([5.0, 1.0, 3.0])
        selected = TournamentSelector(3, rng).select(population, 20, Optimize.MINIMUM)
        assert all(pt is population[1] for pt in selected)

    def test_sample_size_must_be_at_least_two(self):
        with pytest.raises(ConfigurationError):
            TournamentSelector(1)


class TestTruncation:
    def test_repeats_best_individuals(self, evaluated_population):
        population = evaluated_population([5.0, 1.0, 4.0, 2.0, 3.0])
        selected = TruncationSelector(2).select(population, 5, Optimize.MAXIMUM)
        assert [pt.fitness for pt in selected] == [5.0, 4.0, 5.0, 4.0, 5.0]

    def test_default_keeps_whole_ranking(self, evaluated_population):
        population = evaluated_population([2.0, 3.0, 1.0])
        selected = TruncationSelector().select(population, 3, Optimize.MINIMUM)
        assert [pt.fitness for pt in selected] == [1.0, 2.0, 3.0]


class TestMonteCarlo:
    def test_uniform(self, evaluated_population, rng):
        population = evaluated_population([1.0, 100.0, 5.0, 3.0])
        selected = MonteCarloSelector(rng).select(population, DRAWS, Optimize.MAXIMUM)
        assert_fits(selection_counts(selected, population), [0.25] * 4)


class TestElite:
    def test_best_always_included(self, evaluated_population, rng):
        population = evaluated_population([1.0, 9.0, 3.0, 2.0])
        selector = EliteSelector(1, MonteCarloSelector(rng))
        for _ in range(20):
            selected = selector.select(population, 3, Optimize.MAXIMUM)
            assert len(selected) == 3
            assert selected[0] is population[1]

    def test_count_smaller_than_elite_count(self, evaluated_population):
        population = evaluated_population([1.0, 9.0, 3.0])
        selected = EliteSelector(2).select(population, 1, Optimize.MAXIMUM)
        assert [pt.fitness for pt in selected] == [9.0]


class TestSelectorContract:
    @pytest.mark.parametrize(
        "selector",
        [TournamentSelector(), RouletteWheelSelector(), TruncationSelector(), LinearRankSelector()],
        ids=repr,
    )
    def test_zero_count_and_negative_count(self, selector, evaluated_population):
        population = evaluated_population([1.0, 2.0])
        assert selector.select(population, 0, Optimize.MAXIMUM) == ()
        with pytest.raises(ConfigurationError):
            selector.select(population, -1, Optimize.MAXIMUM)

    def test_unevaluated_population_rejected(self, bit_population):
        with pytest.raises(ConfigurationError):
            TournamentSelector().select(bit_population(4), 2, Optimize.MAXIMUM)


class TestHelpers:
    def test_sort_and_revert(self):
        assert sort_and_revert(np.array([0.1, 0.6, 0.3])).tolist() == [0.6, 0.1, 0.3]

    def test_index_of_cumulative_table(self):
        table = incremental(np.array([0.25, 0.25, 0.5]))
        assert index_of(table, np.array([0.0, 0.3, 0.99])).tolist() == [0, 1, 2]
