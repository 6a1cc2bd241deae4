from evokit.evolution.stream import limits
from evokit.evolution.stream.evolution_stream import (
    EvolutionSpliterator,
    EvolutionStream,
    GenerationSource,
    ResultCursor,
)

__all__ = [
    "EvolutionSpliterator",
    "EvolutionStream",
    "GenerationSource",
    "ResultCursor",
    "limits",
]
