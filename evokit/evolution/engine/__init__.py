from __future__ import annotations

from evokit.evolution.engine import codec, evaluators
from evokit.evolution.engine.codec import Codec, InvertibleCodec
from evokit.evolution.engine.config import EngineConfig
from evokit.evolution.engine.constraints import (
    Constraint,
    DomainConstraint,
    RetryConstraint,
)
from evokit.evolution.engine.core import Engine, FilterResult
from evokit.evolution.engine.evaluators import (
    AsyncEvaluator,
    ConcurrentEvaluator,
    Evaluator,
    FutureEvaluator,
    SerialEvaluator,
)
from evokit.evolution.engine.interceptors import (
    EvolutionInterceptor,
    FitnessNullifier,
    UniquePopulation,
)
from evokit.evolution.engine.pool import ConcatEngine, CyclicEngine, LimitedStreamable
from evokit.evolution.engine.problem import Problem

__all__ = [
    "AsyncEvaluator",
    "Codec",
    "ConcatEngine",
    "ConcurrentEvaluator",
    "Constraint",
    "CyclicEngine",
    "DomainConstraint",
    "Engine",
    "EngineConfig",
    "Evaluator",
    "EvolutionInterceptor",
    "FilterResult",
    "FitnessNullifier",
    "FutureEvaluator",
    "InvertibleCodec",
    "LimitedStreamable",
    "Problem",
    "RetryConstraint",
    "SerialEvaluator",
    "UniquePopulation",
    "codec",
    "evaluators",
]
