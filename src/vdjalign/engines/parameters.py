"""
Aligner parameters: per gene type feature to align and scoring thresholds, named presets and string overrides.
"""
from copy import deepcopy
from dataclasses import dataclass, fields, is_dataclass
from typing import Optional, Mapping, Union, Callable, get_type_hints, get_origin, get_args

from vdjalign import VdjalignError
from vdjalign.core.genes import Gene, GeneType, GeneFeature
from vdjalign.core.reads import ReadsLayout


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class ParameterError(VdjalignError):
    """Raised for unknown presets, invalid overrides and inconsistent run options."""


# Classes --------------------------------------------------------------------------------------------------------------
@dataclass(slots=True)
class GeneAlignerParameters:
    """
    Parameters for aligning one gene type.

    Only ``feature_to_align`` is interpreted outside the engine: genes lacking it are never registered.
    """
    feature_to_align: GeneFeature
    relative_min_score: float = 0.87
    min_score: float = 0.0
    max_hits: int = 5


@dataclass(slots=True)
class AlignerParameters:
    """
    Complete aligner configuration.

    A gene type whose parameters are ``None`` is not aligned at all.

    Examples:
        >>> params = AlignerParameters.preset('default').override({'allow_chimeras': 'true'})
        >>> params.feature_to_align(GeneType.JOINING)
        GeneFeature(name='JRegion', regions=('JCDR3Part', 'FR4'))
    """
    v_parameters: GeneAlignerParameters
    j_parameters: GeneAlignerParameters
    d_parameters: Optional[GeneAlignerParameters] = None
    c_parameters: Optional[GeneAlignerParameters] = None
    allow_chimeras: bool = False
    reads_layout: ReadsLayout = ReadsLayout.OPPOSITE
    min_sum_score: float = 120.0
    max_hits: int = 5

    _PRESETS = {}
    _FIELD_BY_TYPE = {GeneType.VARIABLE: 'v_parameters', GeneType.DIVERSITY: 'd_parameters',
                      GeneType.JOINING: 'j_parameters', GeneType.CONSTANT: 'c_parameters'}

    def gene_aligner_parameters(self, gene_type: GeneType) -> Optional[GeneAlignerParameters]:
        return getattr(self, self._FIELD_BY_TYPE[gene_type])

    @property
    def gene_types(self) -> tuple[GeneType, ...]:
        """Gene types with parameters, in enum order."""
        return tuple(gt for gt in GeneType if self.gene_aligner_parameters(gt) is not None)

    def feature_to_align(self, gene_type: GeneType) -> Optional[GeneFeature]:
        return p.feature_to_align if (p := self.gene_aligner_parameters(gene_type)) else None

    def set_feature_to_align(self, gene_type: GeneType, feature: GeneFeature):
        if (p := self.gene_aligner_parameters(gene_type)) is None:
            raise ParameterError(f'No {gene_type.name.lower()} gene parameters to set a feature on')
        p.feature_to_align = feature

    def contains_required_feature(self, gene: Gene) -> bool:
        """Whether *gene*'s type is aligned and the gene provides that type's feature to align."""
        feature = self.feature_to_align(gene.gene_type)
        return feature is not None and gene.is_available(feature)

    def copy(self) -> 'AlignerParameters': return deepcopy(self)

    # Presets --------------------------------------------------------------------------------------------------------
    @classmethod
    def register_preset(cls, name: str):
        def decorator(func: Callable[[], 'AlignerParameters']):
            cls._PRESETS[name] = func
            return func
        return decorator

    @classmethod
    def preset(cls, name: str) -> 'AlignerParameters':
        """
        Returns a fresh copy of a named parameter set.

        Raises:
            ParameterError: If no preset has that name.
        """
        if (factory := cls._PRESETS.get(name)) is None:
            raise ParameterError(f'Unknown aligner parameters: {name} (known: {", ".join(sorted(cls._PRESETS))})')
        return factory()

    # Overrides ------------------------------------------------------------------------------------------------------
    def override(self, overrides: Mapping[str, str]) -> 'AlignerParameters':
        """
        Returns a copy with dotted-path fields replaced by values parsed from strings.

        Args:
            overrides: e.g. ``{'v_parameters.feature_to_align': 'VRegion', 'reads_layout': 'Collinear'}``.

        Raises:
            ParameterError: If a path does not exist or a value cannot be converted.
        """
        params = self.copy()
        for key, value in overrides.items():
            *parents, name = key.split('.')
            target = params
            for parent in parents:
                if not _has_field(target, parent):
                    raise ParameterError(f'Failed to override {key}: unknown parameter {parent!r}')
                if (target := getattr(target, parent)) is None:
                    raise ParameterError(f'Failed to override {key}: {parent!r} is not set')
            if not _has_field(target, name):
                raise ParameterError(f'Failed to override {key}: unknown parameter {name!r}')
            try: setattr(target, name, _convert(value, get_type_hints(type(target))[name]))
            except (ValueError, TypeError, KeyError, VdjalignError) as e:
                raise ParameterError(f'Failed to override {key}={value!r}: {e}') from e
        return params


# Functions ------------------------------------------------------------------------------------------------------------
def _has_field(obj, name: str) -> bool:
    return is_dataclass(obj) and any(f.name == name for f in fields(obj))


_BOOLEANS = {'true': True, 'yes': True, '1': True, 'false': False, 'no': False, '0': False}


def _convert(value: str, type_) -> Union[bool, int, float, str, GeneFeature, ReadsLayout, None]:
    if get_origin(type_) is Union:
        if value.strip().lower() in {'null', 'none'}: return None
        type_ = next(arg for arg in get_args(type_) if arg is not type(None))
    if type_ is bool: return _BOOLEANS[value.strip().lower()]
    if type_ is GeneFeature: return GeneFeature.parse(value)
    if type_ is ReadsLayout:
        value = value.strip()
        try: return ReadsLayout(value)
        except ValueError: return ReadsLayout[value.upper()]
    if type_ in (int, float, str): return type_(value)
    raise TypeError(f'cannot set a value of type {getattr(type_, "__name__", type_)} from a string')


# Presets --------------------------------------------------------------------------------------------------------------
@AlignerParameters.register_preset('default')
def _default_parameters() -> AlignerParameters:
    return AlignerParameters(
        v_parameters=GeneAlignerParameters(GeneFeature.V_TRANSCRIPT_WITH_P),
        j_parameters=GeneAlignerParameters(GeneFeature.J_REGION, relative_min_score=0.8),
        d_parameters=GeneAlignerParameters(GeneFeature.D_REGION, relative_min_score=0.85, min_score=25.0, max_hits=3),
        c_parameters=GeneAlignerParameters(GeneFeature.C_EXON_1, relative_min_score=0.8, min_score=40.0),
    )
