from evokit.evolution.selection.base import Selector
from evokit.evolution.selection.probability import (
    BoltzmannSelector,
    ExponentialRankSelector,
    LinearRankSelector,
    ProbabilitySelector,
    RouletteWheelSelector,
    StochasticUniversalSelector,
)
from evokit.evolution.selection.selectors import (
    EliteSelector,
    MonteCarloSelector,
    TournamentSelector,
    TruncationSelector,
)

__all__ = [
    "BoltzmannSelector",
    "EliteSelector",
    "ExponentialRankSelector",
    "LinearRankSelector",
    "MonteCarloSelector",
    "ProbabilitySelector",
    "RouletteWheelSelector",
    "Selector",
    "StochasticUniversalSelector",
    "TournamentSelector",
    "TruncationSelector",
]
