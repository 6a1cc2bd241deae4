"""Tests for the genetic data model: genes, chromosomes, genotypes, phenotypes."""

from __future__ import annotations

import random

import pytest

from evokit.exceptions import ConfigurationError, InvalidGeneError
from evokit.genetics import (
    BitChromosome,
    BitGene,
    DoubleChromosome,
    DoubleGene,
    EnumGene,
    Factory,
    Genotype,
    IntegerChromosome,
    IntegerGene,
    NumericGene,
    Optimize,
    PermutationChromosome,
    Phenotype,
)
from evokit.utils.random_source import RandomSource, random_source


class TestGenes:
    def test_bit_gene_flip(self):
        assert BitGene(True).flip() == BitGene(False)
        assert not BitGene(False)

    def test_integer_gene_domain_is_half_open(self, rng):
        for _ in range(200):
            gene = IntegerGene.of(3, 7, rng)
            assert 3 <= gene.allele < 7
            assert gene.is_valid
        assert not IntegerGene(7, 3, 7).is_valid

    def test_integer_gene_requires_min_below_max(self):
        with pytest.raises(InvalidGeneError):
            IntegerGene(1, 5, 5)

    def test_double_gene_new_instance_keeps_domain(self, rng):
        gene = DoubleGene.of(-1.0, 1.0, rng)
        for _ in range(200):
            sibling = gene.new_instance(rng)
            assert -1.0 <= sibling.allele < 1.0
            assert (sibling.min, sibling.max) == (-1.0, 1.0)

    def test_double_gene_clamp(self):
        gene = DoubleGene(0.5, 0.0, 1.0)
        assert gene.clamp(-3.0) == 0.0
        assert gene.clamp(1.0) < 1.0
        assert gene.with_allele(gene.clamp(5.0)).is_valid

    def test_numeric_gene_requires_clamp(self):
        assert {"mean", "clamp"} <= NumericGene.__abstractmethods__

    def test_numeric_mean(self):
        assert IntegerGene(2, 0, 10).mean(IntegerGene(6, 0, 10)).allele == 4
        assert DoubleGene(1.0, 0.0, 10.0).mean(DoubleGene(3.0, 0.0, 10.0)).allele == 2.0

    def test_with_allele_keeps_domain(self):
        gene = IntegerGene(1, 0, 10).with_allele(9)
        assert gene == IntegerGene(9, 0, 10)

    def test_enum_gene_resolves_allele(self):
        gene = EnumGene.of("abc", index=2)
        assert gene.allele == "c"
        assert gene.with_allele("a").allele_index == 0

    def test_enum_gene_rejects_unknown_allele(self):
        with pytest.raises(InvalidGeneError):
            EnumGene.of("abc", index=0).with_allele("z")


class TestChromosomes:
    def test_empty_chromosome_rejected(self):
        with pytest.raises(InvalidGeneError):
            BitChromosome(())

    def test_bit_chromosome_of_bits(self):
        ch = BitChromosome.of_bits("1101")
        assert ch.alleles == (True, True, False, True)
        assert ch.bit_count == 3
        assert ch.to_int() == 0b1011

    def test_bit_chromosome_probability(self, rng):
        assert BitChromosome.of(50, p=1.0, rng=rng).bit_count == 50
        assert BitChromosome.of(50, p=0.0, rng=rng).bit_count == 0

    def test_with_genes_keeps_type(self, rng):
        ch = IntegerChromosome.of(0, 10, 4, rng)
        rebuilt = ch.with_genes(list(reversed(ch.genes)))
        assert type(rebuilt) is IntegerChromosome
        assert rebuilt.alleles == tuple(reversed(ch.alleles))

    def test_new_instance_has_same_shape(self, rng):
        ch = DoubleChromosome.of(0.0, 5.0, 7, rng)
        other = ch.new_instance(rng)
        assert type(other) is DoubleChromosome
        assert len(other) == 7
        assert other.is_valid

    def test_permutation_is_valid(self, rng):
        ch = PermutationChromosome.of_integer(20, rng=rng)
        assert sorted(ch.alleles) == list(range(20))
        assert ch.is_valid

    def test_permutation_with_duplicates_is_invalid(self):
        ch = PermutationChromosome.of_integer(4, rng=random.Random(1))
        assert not ch.with_indices([0, 0, 1, 2]).is_valid

    def test_partial_permutation(self, rng):
        ch = PermutationChromosome.of("abcdef", length=3, rng=rng)
        assert len(ch) == 3
        assert len(set(ch.alleles)) == 3
        assert ch.new_instance(rng).is_valid

    def test_permutation_too_long_rejected(self):
        with pytest.raises(InvalidGeneError):
            PermutationChromosome.of("abc", length=4)


class TestGenotype:
    def test_accessors(self, rng):
        gt = Genotype.of(BitChromosome.of(3, rng=rng), IntegerChromosome.of(0, 5, 2, rng))
        assert len(gt) == 2
        assert gt.gene_count == 5
        assert gt.gene is gt[0][0]
        assert gt.is_valid

    def test_is_factory(self, bit_factory):
        assert isinstance(bit_factory, Factory)
        other = bit_factory.new_instance()
        assert len(other.chromosome) == 10

    def test_empty_genotype_rejected(self):
        with pytest.raises(InvalidGeneError):
            Genotype(())

    def test_value_equality(self):
        a = Genotype.of(BitChromosome.of_bits("0101"))
        b = Genotype.of(BitChromosome.of_bits("0101"))
        assert a == b
        assert hash(a) == hash(b)


class TestPhenotype:
    def test_negative_generation_rejected(self, bit_factory):
        with pytest.raises(ConfigurationError):
            Phenotype(bit_factory, -1)

    def test_evaluation_state(self, bit_factory):
        pt = Phenotype.of(bit_factory, 3)
        assert not pt.is_evaluated
        evaluated = pt.with_fitness(1.5)
        assert evaluated.is_evaluated
        assert evaluated.non_evaluated() == pt

    def test_age(self, bit_factory):
        assert Phenotype(bit_factory, 3).age(10) == 7

    def test_copy_has_new_identity(self, bit_factory):
        pt = Phenotype(bit_factory, 1, 2.0)
        copy = pt.copy()
        assert copy == pt
        assert copy is not pt


class TestOptimize:
    def test_compare(self):
        assert Optimize.MAXIMUM.compare(2, 1) > 0
        assert Optimize.MINIMUM.compare(2, 1) < 0
        assert Optimize.MINIMUM.compare(1, 1) == 0

    def test_best_and_worst(self):
        assert Optimize.MAXIMUM.best(1, 3) == 3
        assert Optimize.MINIMUM.best(1, 3) == 1
        assert Optimize.MAXIMUM.worst(1, 3) == 1

    def test_ties_keep_first(self):
        a, b = ("a", 1), ("b", 1)
        assert Optimize.MAXIMUM.best(a, b, key=lambda x: x[1]) is a

    def test_sorted_best_first_is_stable(self):
        items = [("a", 1), ("b", 3), ("c", 1), ("d", 3)]
        ranked = Optimize.MAXIMUM.sorted_best_first(items, key=lambda x: x[1])
        assert [name for name, _ in ranked] == ["b", "d", "a", "c"]
        ranked = Optimize.MINIMUM.sorted_best_first(items, key=lambda x: x[1])
        assert [name for name, _ in ranked] == ["a", "c", "b", "d"]


def test_random_source_protocol():
    assert isinstance(random.Random(1), RandomSource)
    assert isinstance(random, RandomSource)
    assert random_source(None) is random
