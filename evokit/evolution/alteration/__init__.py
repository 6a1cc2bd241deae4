from evokit.evolution.alteration.base import (
    AbstractAlterer,
    Alterer,
    AltererResult,
    CompositeAlterer,
    PartialAlterer,
    changed_genes,
    count_changes,
)
from evokit.evolution.alteration.crossovers import (
    Crossover,
    MultiPointCrossover,
    SinglePointCrossover,
    UniformCrossover,
)
from evokit.evolution.alteration.mutators import GaussianMutator, Mutator, SwapMutator
from evokit.evolution.alteration.numeric import (
    IntermediateCrossover,
    LineCrossover,
    MeanAlterer,
)
from evokit.evolution.alteration.permutation import (
    OrderCrossover,
    PartiallyMatchedCrossover,
)

__all__ = [
    "AbstractAlterer",
    "Alterer",
    "AltererResult",
    "CompositeAlterer",
    "Crossover",
    "GaussianMutator",
    "IntermediateCrossover",
    "LineCrossover",
    "MeanAlterer",
    "MultiPointCrossover",
    "Mutator",
    "OrderCrossover",
    "PartialAlterer",
    "PartiallyMatchedCrossover",
    "SinglePointCrossover",
    "SwapMutator",
    "UniformCrossover",
    "changed_genes",
    "count_changes",
]
