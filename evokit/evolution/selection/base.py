from abc import ABC, abstractmethod

from evokit.exceptions import ConfigurationError
from evokit.genetics.optimize import Optimize
from evokit.genetics.phenotype import Population
from evokit.utils.random_source import RandomSource, random_source


class Selector(ABC):
    """Base class for selection strategies.

    A selector turns a population into a sub-population of exactly `count`
    individuals, preferring fitter ones according to the optimization
    direction. Selection is with replacement unless a subclass says otherwise,
    so the same individual may occupy several slots of the result.
    """

    def __init__(self, rng: RandomSource | None = None):
        self._rng = rng

    @property
    def rng(self) -> RandomSource:
        return random_source(self._rng)

    def __call__(
        self, population: Population, count: int, optimize: Optimize
    ) -> Population:
        return self.select(population, count, optimize)

    @abstractmethod
    def select(
        self, population: Population, count: int, optimize: Optimize
    ) -> Population:
        """Select `count` individuals from `population`."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def check_count(count: int) -> None:
    if count < 0:
        raise ConfigurationError(
            f"Selection count must be greater or equal than zero, but was {count}"
        )


def check_evaluated(population: Population) -> None:
    for pt in population:
        if not pt.is_evaluated:
            raise ConfigurationError(
                "Selection requires an evaluated population; "
                f"found unevaluated individual born at generation {pt.generation}"
            )
