"""
Gene registration: the one-shot V feature correction heuristic and the registration of usable genes.
"""
from dataclasses import dataclass
from typing import Iterable
from warnings import warn

from vdjalign import VdjalignError, GeneExclusionWarning, FeatureCorrectionWarning
from vdjalign.core.genes import Gene, GeneType, GeneFeature
from vdjalign.engines.aligner import BaseAligner
from vdjalign.engines.parameters import AlignerParameters


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class NoUsableGenesError(VdjalignError):
    """Raised when no V or no J gene could be registered with the aligner."""


# Constants ------------------------------------------------------------------------------------------------------------
MISSING_FRACTION = 0.9
FALLBACK_FRACTION = 0.8


# Classes --------------------------------------------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class FeatureCorrection:
    """
    The decision on whether to widen the V feature to align.

    Attributes:
        current: The V feature to align before correction.
        fallback: The broader feature that would replace it.
        total_v: Number of V genes considered.
        missing: V genes lacking *current*.
        has_fallback: Genes among *missing* that provide *fallback*.
    """
    current: GeneFeature
    fallback: GeneFeature
    total_v: int
    missing: int
    has_fallback: int

    @property
    def fires(self) -> bool:
        return self.missing > self.total_v * MISSING_FRACTION and self.has_fallback > self.missing * FALLBACK_FRACTION

    @property
    def missing_percent(self) -> float: return 100.0 * self.missing / self.total_v if self.total_v else 0.0

    @classmethod
    def evaluate(cls, genes: Iterable[Gene], parameters: AlignerParameters) -> 'FeatureCorrection':
        """Counts V genes in *genes* lacking the current V feature and how many of those have the fallback."""
        current = parameters.feature_to_align(GeneType.VARIABLE)
        fallback = correcting_feature(current)
        total_v = missing = has_fallback = 0
        for gene in genes:
            if gene.gene_type != GeneType.VARIABLE: continue
            total_v += 1
            if not parameters.contains_required_feature(gene):
                missing += 1
                if gene.is_available(fallback): has_fallback += 1
        return cls(current, fallback, total_v, missing, has_fallback)


@dataclass(frozen=True, slots=True)
class RegistrationSummary:
    """Outcome of registering a gene set with an aligner."""
    registered: int
    excluded_functional: int
    excluded_non_functional: int

    @property
    def excluded(self) -> int: return self.excluded_functional + self.excluded_non_functional


# Functions ------------------------------------------------------------------------------------------------------------
def correcting_feature(feature: GeneFeature) -> GeneFeature:
    """
    The V feature to fall back to: ``VRegionWithP`` if *feature* has reversed regions, else ``VRegion``.

    The fallback keeps the P segment only when the current feature already aligns one, so widening never adds
    or drops palindromic nucleotides the engine was configured for. This is the rule of the MiXCR ``align`` action;
    mapping the other way round would switch P-segment alignment on or off as a side effect of the correction.
    """
    return GeneFeature.V_REGION_WITH_P if feature.has_reversed_regions else GeneFeature.V_REGION


def correct_feature_to_align(aligner: BaseAligner, genes: Iterable[Gene]) -> FeatureCorrection:
    """
    Widens the aligner's V feature to align when most V genes lack it but provide the fallback.

    Must run once, before any gene is registered; the change is not undone.

    Raises:
        RuntimeError: If genes are already registered with *aligner*.
    """
    if aligner.has_genes: raise RuntimeError('Feature correction must run before any gene is registered')
    decision = FeatureCorrection.evaluate(genes, aligner.parameters)
    if decision.fires:
        warn(f'Forcing v_parameters.feature_to_align={decision.fallback} since current gene feature '
             f'({decision.current}) is absent in {decision.missing_percent:.1f}% of V genes.',
             FeatureCorrectionWarning, stacklevel=2)
        aligner.parameters.set_feature_to_align(GeneType.VARIABLE, decision.fallback)
    return decision


def register_genes(aligner: BaseAligner, genes: Iterable[Gene], print_warnings: bool = True,
                   print_non_functional_warnings: bool = False) -> RegistrationSummary:
    """
    Registers every gene providing its type's feature to align and checks V and J genes remain.

    Excluded genes are reported through ``GeneExclusionWarning``: the first by name, the rest as a single
    summary. Non-functional genes are only reported with *print_non_functional_warnings*.

    Raises:
        NoUsableGenesError: If no V gene or no J gene was registered.
    """
    registered = excluded_functional = excluded_non_functional = reported = 0
    parameters = aligner.parameters
    for gene in genes:
        if not parameters.contains_required_feature(gene):
            if gene.functional: excluded_functional += 1
            else: excluded_non_functional += 1
            if print_warnings and (gene.functional or print_non_functional_warnings):
                reported += 1
                if reported == 1:
                    feature = parameters.feature_to_align(gene.gene_type)
                    reason = f"doesn't contain full {feature}" if feature else 'is of a gene type that is not aligned'
                    warn(f"{'Functional gene' if gene.functional else 'Gene'} {gene.name} {reason} (excluded)",
                         GeneExclusionWarning, stacklevel=2)
            continue
        aligner.add_gene(gene)
        registered += 1

    if reported > 1:
        warn(f'... {reported - 1} more genes excluded due to absent feature to align.', GeneExclusionWarning,
             stacklevel=2)

    for gene_type in (GeneType.VARIABLE, GeneType.JOINING):
        if not aligner.genes(gene_type):
            raise NoUsableGenesError(f'No {gene_type.letter} genes to align. Aborting execution. '
                                     f'See warnings for more info (turn on warnings to see excluded genes).')
    return RegistrationSummary(registered, excluded_functional, excluded_non_functional)
