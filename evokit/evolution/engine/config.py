from __future__ import annotations

import concurrent.futures as cf
import math
import time
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, computed_field

from evokit.exceptions import ConfigurationError
from evokit.evolution.alteration import (
    Alterer,
    CompositeAlterer,
    Mutator,
    SinglePointCrossover,
)
from evokit.evolution.engine.constraints import Constraint
from evokit.evolution.engine.interceptors import IDENTITY, EvolutionInterceptor
from evokit.evolution.selection import Selector, TournamentSelector
from evokit.genetics.optimize import Optimize


class EngineConfig(BaseModel):
    """Configuration options controlling Engine behaviour."""

    population_size: int = Field(default=50, gt=0)
    offspring_fraction: float = Field(default=0.6, ge=0.0, le=1.0)
    max_phenotype_age: int = Field(
        default=70, gt=0, description="Individuals older than this are replaced"
    )
    optimize: Optimize = Optimize.MAXIMUM
    offspring_selector: Selector = Field(
        default_factory=lambda: TournamentSelector(3)
    )
    survivors_selector: Selector = Field(
        default_factory=lambda: TournamentSelector(3)
    )
    alterer: Alterer = Field(
        default_factory=lambda: CompositeAlterer.of(
            SinglePointCrossover(0.2), Mutator(0.15)
        )
    )
    constraint: Optional[Constraint] = Field(
        default=None,
        description="Validity test and repair; None retries with the genotype factory",
    )
    executor: Optional[cf.Executor] = Field(
        default=None, description="Executor for the stage graph; None runs inline"
    )
    interceptor: EvolutionInterceptor = Field(default=IDENTITY)
    clock: Callable[[], float] = Field(
        default=time.perf_counter, description="Monotonic clock in seconds"
    )
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def offspring_size(self) -> int:
        # round half up
        return int(math.floor(self.offspring_fraction * self.population_size + 0.5))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def survivors_size(self) -> int:
        return self.population_size - self.offspring_size

    @classmethod
    def create(cls, **knobs: Any) -> "EngineConfig":
        """Build a config, reporting invalid knobs as ConfigurationError."""
        try:
            return cls(**knobs)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid engine configuration: {exc}") from exc

    def with_changes(self, **changes: Any) -> "EngineConfig":
        return type(self).create(**{**dict(self), **changes})
