from evokit.genetics.chromosome import (
    BitChromosome,
    Chromosome,
    DoubleChromosome,
    IntegerChromosome,
    PermutationChromosome,
)
from evokit.genetics.gene import (
    BitGene,
    DoubleGene,
    EnumGene,
    Gene,
    IntegerGene,
    NumericGene,
)
from evokit.genetics.genotype import Factory, Genotype
from evokit.genetics.optimize import Optimize
from evokit.genetics.phenotype import Phenotype, Population

__all__ = [
    "BitChromosome",
    "BitGene",
    "Chromosome",
    "DoubleChromosome",
    "DoubleGene",
    "EnumGene",
    "Factory",
    "Gene",
    "Genotype",
    "IntegerChromosome",
    "IntegerGene",
    "NumericGene",
    "Optimize",
    "PermutationChromosome",
    "Phenotype",
    "Population",
]
