"""evokit: a generic evolutionary computation engine."""

from evokit.evolution.engine import Engine, EngineConfig, Problem
from evokit.evolution.results import (
    EvolutionResult,
    EvolutionStart,
    to_best_evolution_result,
    to_best_genotype,
    to_best_phenotype,
    to_best_result,
)
from evokit.evolution.stream import EvolutionStream, limits
from evokit.genetics import Genotype, Optimize, Phenotype

__version__ = "0.1.0"

__all__ = [
    "Engine",
    "EngineConfig",
    "EvolutionResult",
    "EvolutionStart",
    "EvolutionStream",
    "Genotype",
    "Optimize",
    "Phenotype",
    "Problem",
    "limits",
    "to_best_evolution_result",
    "to_best_genotype",
    "to_best_phenotype",
    "to_best_result",
]
