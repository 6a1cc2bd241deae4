from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from loguru import logger

from evokit.exceptions import ConfigurationError
from evokit.evolution.engine.codec import InvertibleCodec
from evokit.genetics.genotype import Factory, Genotype
from evokit.genetics.phenotype import Phenotype


class Constraint(ABC):
    """Validity test plus repair strategy for individuals.

    `repair` must terminate and must not call back into itself; the engine
    calls it once per invalid individual and uses whatever it returns.
    """

    @abstractmethod
    def test(self, individual: Phenotype) -> bool:
        """Whether `individual` is valid."""

    @abstractmethod
    def repair(self, individual: Phenotype, generation: int) -> Phenotype:
        """A replacement for the invalid `individual`, born at `generation`."""


class RetryConstraint(Constraint):
    """Repairs by re-sampling fresh genotypes from a factory.

    At most `retry_limit` genotypes are drawn; the first valid one is
    returned, otherwise the last attempt is returned as is (still invalid).
    Without a factory, the invalid individual's own genotype serves as the
    factory.
    """

    DEFAULT_RETRY_LIMIT = 10

    def __init__(
        self,
        validator: Optional[Callable[[Phenotype], bool]] = None,
        factory: Optional[Factory[Genotype]] = None,
        retry_limit: int = DEFAULT_RETRY_LIMIT,
    ):
        if retry_limit < 1:
            raise ConfigurationError(f"Retry limit must be positive, got {retry_limit}")
        self.validator = validator or _is_valid
        self.factory = factory
        self.retry_limit = retry_limit

    @classmethod
    def of(
        cls,
        factory: Optional[Factory[Genotype]] = None,
        validator: Optional[Callable[[Phenotype], bool]] = None,
        retry_limit: int = DEFAULT_RETRY_LIMIT,
    ) -> "RetryConstraint":
        return cls(validator, factory, retry_limit)

    def test(self, individual: Phenotype) -> bool:
        return self.validator(individual)

    def repair(self, individual: Phenotype, generation: int) -> Phenotype:
        factory = self.factory or individual.genotype
        candidate = individual
        for attempt in range(1, self.retry_limit + 1):
            candidate = Phenotype(factory.new_instance(), generation)
            if self.validator(candidate):
                logger.debug(
                    "[RetryConstraint] repaired individual after {} attempt(s)", attempt
                )
                return candidate

        logger.warning(
            "[RetryConstraint] no valid individual after {} attempts; keeping last",
            self.retry_limit,
        )
        return candidate

    def __repr__(self) -> str:
        return f"RetryConstraint(retry_limit={self.retry_limit})"


class DomainConstraint(Constraint):
    """Constraint expressed on decoded (problem domain) values.

    Validity is tested on `codec.decode(genotype)`. Repair maps the decoded
    value through `repairer` and encodes the result back; without a repairer
    the constraint falls back to re-sampling like `RetryConstraint`.
    """

    def __init__(
        self,
        codec: InvertibleCodec,
        validator: Callable[[Any], bool],
        repairer: Optional[Callable[[Any, int], Any]] = None,
        retry_limit: int = RetryConstraint.DEFAULT_RETRY_LIMIT,
    ):
        self.codec = codec
        self.validator = validator
        self.repairer = repairer
        self._fallback = RetryConstraint(self.test, codec.encoding, retry_limit)

    def test(self, individual: Phenotype) -> bool:
        return bool(self.validator(self.codec.decode(individual.genotype)))

    def repair(self, individual: Phenotype, generation: int) -> Phenotype:
        if self.repairer is None:
            return self._fallback.repair(individual, generation)
        value = self.repairer(self.codec.decode(individual.genotype), generation)
        return Phenotype(self.codec.encode(value), generation)


def _is_valid(individual: Phenotype) -> bool:
    return individual.is_valid
