from __future__ import annotations

from loguru import logger

from evokit.evolution.alteration.base import AbstractAlterer, AltererResult
from evokit.genetics.chromosome import Chromosome
from evokit.genetics.gene import BitGene, Gene, NumericGene
from evokit.genetics.genotype import Genotype
from evokit.genetics.phenotype import Phenotype, Population
from evokit.utils.random_source import RandomSource


class Mutator(AbstractAlterer):
    """Independently mutates every gene with probability `p`.

    Bit genes are flipped, all other genes are replaced by a random sibling.
    The alteration count is the number of genes whose allele changed; an
    individual with at least one changed gene is reborn in the current
    generation (and must be evaluated again).
    """

    DEFAULT_ALTER_PROBABILITY = 0.01

    def __init__(
        self, probability: float = DEFAULT_ALTER_PROBABILITY, rng: RandomSource | None = None
    ):
        super().__init__(probability, rng)

    def alter(self, population: Population, generation: int) -> AltererResult:
        if self.probability == 0.0 or not population:
            return AltererResult(tuple(population), 0)

        result = []
        alterations = 0
        for pt in population:
            genotype, mutations = self.mutate_genotype(pt.genotype)
            if mutations:
                result.append(Phenotype(genotype, generation))
                alterations += mutations
            else:
                result.append(pt)

        logger.debug(
            "[{}] generation {}: {} genes mutated",
            type(self).__name__,
            generation,
            alterations,
        )
        return AltererResult(tuple(result), alterations)

    def mutate_genotype(self, genotype: Genotype) -> tuple[Genotype, int]:
        chromosomes = []
        mutations = 0
        for chromosome in genotype:
            mutated, count = self.mutate_chromosome(chromosome)
            chromosomes.append(mutated if count else chromosome)
            mutations += count
        if not mutations:
            return genotype, 0
        return Genotype(tuple(chromosomes)), mutations

    def mutate_chromosome(self, chromosome: Chromosome) -> tuple[Chromosome, int]:
        rng = self.rng
        p = self.probability
        genes = []
        mutations = 0
        for gene in chromosome:
            if rng.random() < p:
                mutated = self.mutate_gene(gene)
                if mutated.allele != gene.allele:
                    mutations += 1
                genes.append(mutated)
            else:
                genes.append(gene)
        if not mutations:
            return chromosome, 0
        return chromosome.with_genes(genes), mutations

    def mutate_gene(self, gene: Gene) -> Gene:
        if isinstance(gene, BitGene):
            return gene.flip()
        return gene.new_instance(self.rng)


class GaussianMutator(Mutator):
    """Mutates numeric genes by adding normally distributed noise.

    The standard deviation is a quarter of the gene's domain width; the new
    allele is clamped into the domain.
    """

    def mutate_gene(self, gene: Gene) -> Gene:
        if not isinstance(gene, NumericGene):
            return super().mutate_gene(gene)
        std = (gene.max - gene.min) * 0.25
        value = self.rng.gauss(float(gene.allele), std)
        return gene.with_allele(gene.clamp(value))


class SwapMutator(Mutator):
    """Swaps genes inside a chromosome; keeps permutations valid.

    Every gene is, with probability `p`, swapped with a randomly chosen gene
    of the same chromosome.
    """

    DEFAULT_ALTER_PROBABILITY = 0.2

    def __init__(
        self, probability: float = DEFAULT_ALTER_PROBABILITY, rng: RandomSource | None = None
    ):
        super().__init__(probability, rng)

    def mutate_chromosome(self, chromosome: Chromosome) -> tuple[Chromosome, int]:
        if len(chromosome) < 2:
            return chromosome, 0

        rng = self.rng
        genes = list(chromosome.genes)
        for i in range(len(genes)):
            if rng.random() < self.probability:
                j = rng.randrange(len(genes))
                genes[i], genes[j] = genes[j], genes[i]

        mutations = sum(
            1 for g1, g2 in zip(chromosome.genes, genes) if g1.allele != g2.allele
        )
        if not mutations:
            return chromosome, 0
        return chromosome.with_genes(genes), mutations
