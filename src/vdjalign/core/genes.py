"""Reference genes, the features (sub-regions) they can be aligned on, and the chains (loci) they belong to."""
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, ClassVar, Union

from vdjalign import VdjalignError


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class GeneFeatureError(VdjalignError):
    """Raised when a gene feature name cannot be resolved."""


# Classes --------------------------------------------------------------------------------------------------------------
class GeneType(IntEnum):
    """
    Segment types of a rearranged immune receptor.

    Examples:
        >>> GeneType.from_letter('V')
        <GeneType.VARIABLE: 0>
        >>> GeneType.JOINING.letter
        'J'
    """
    VARIABLE = 0
    DIVERSITY = 1
    JOINING = 2
    CONSTANT = 3

    @property
    def letter(self) -> str: return self.name[0]

    @classmethod
    def from_letter(cls, letter: str) -> 'GeneType':
        for gene_type in cls:
            if gene_type.letter == letter.upper(): return gene_type
        raise ValueError(f'Unknown gene type: {letter}')


@dataclass(frozen=True, slots=True)
class GeneFeature:
    """
    A named, contiguous span of reference regions used as an alignment target.

    Features are compared by the regions they cover; a gene can provide a feature only if every region is
    annotated on it.

    Attributes:
        name: Display name (e.g. ``'VRegion'``).
        regions: Ordered tuple of region names the feature spans.

    Examples:
        >>> GeneFeature.parse('VRegionWithP').has_reversed_regions
        True
        >>> GeneFeature.parse('VRegion+VPSegment') == GeneFeature.V_REGION_WITH_P
        True
    """
    name: str = field(compare=False)
    regions: tuple[str, ...]

    # Palindromic (P) segments are stored as reverse complements of the neighbouring gene end
    REVERSED_REGIONS: ClassVar[frozenset[str]] = frozenset({'VPSegment', 'DPSegmentLeft', 'DPSegmentRight',
                                                            'JPSegment'})
    _REGISTRY: ClassVar[dict[str, 'GeneFeature']] = {}

    V_REGION: ClassVar['GeneFeature']
    V_REGION_WITH_P: ClassVar['GeneFeature']
    V_TRANSCRIPT_WITH_P: ClassVar['GeneFeature']
    D_REGION: ClassVar['GeneFeature']
    J_REGION: ClassVar['GeneFeature']
    C_EXON_1: ClassVar['GeneFeature']

    def __str__(self): return self.name
    def __copy__(self): return self
    def __deepcopy__(self, memo): return self

    @property
    def has_reversed_regions(self) -> bool:
        return any(region in self.REVERSED_REGIONS for region in self.regions)

    @classmethod
    def register(cls, name: str, *regions: str) -> 'GeneFeature':
        cls._REGISTRY[name] = feature = cls(name, regions)
        return feature

    @classmethod
    def parse(cls, value: Union[str, 'GeneFeature']) -> 'GeneFeature':
        """
        Resolves a feature from its name, or from ``+``-joined names of registered features or bare regions.

        Raises:
            GeneFeatureError: If the string is empty.
        """
        if isinstance(value, cls): return value
        if not (value := value.strip()): raise GeneFeatureError('Empty gene feature')
        if feature := cls._REGISTRY.get(value): return feature
        regions = []
        for part in value.split('+'):
            if not (part := part.strip()): raise GeneFeatureError(f'Malformed gene feature: {value!r}')
            regions.extend(cls._REGISTRY[part].regions if part in cls._REGISTRY else (part,))
        return cls(value, tuple(regions))


GeneFeature.V_REGION = GeneFeature.register('VRegion', 'FR1', 'CDR1', 'FR2', 'CDR2', 'FR3', 'VCDR3Part')
GeneFeature.V_REGION_WITH_P = GeneFeature.register('VRegionWithP', *GeneFeature.V_REGION.regions, 'VPSegment')
GeneFeature.V_TRANSCRIPT_WITH_P = GeneFeature.register('VTranscriptWithout5UTRWithP', 'L1', 'L2',
                                                       *GeneFeature.V_REGION_WITH_P.regions)
GeneFeature.D_REGION = GeneFeature.register('DRegion', 'DRegion')
GeneFeature.J_REGION = GeneFeature.register('JRegion', 'JCDR3Part', 'FR4')
GeneFeature.C_EXON_1 = GeneFeature.register('CExon1', 'CExon1')


class Chains(frozenset):
    """
    An immutable set of chain (locus) names such as ``IGH`` or ``TRB``.

    Examples:
        >>> Chains.parse('IGH,TRB')
        Chains({'IGH', 'TRB'})
        >>> Chains.parse('ALL').intersects(Chains.parse('TRA'))
        True
    """
    KNOWN: ClassVar[tuple[str, ...]] = ('TRA', 'TRB', 'TRG', 'TRD', 'IGH', 'IGK', 'IGL')
    ALL: ClassVar['Chains']

    def __repr__(self): return f"Chains({set(self) or '{}'})"
    def __str__(self): return ','.join(sorted(self))

    @classmethod
    def parse(cls, value: Union[str, Iterable[str]]) -> 'Chains':
        """Parses ``'ALL'`` or a comma separated list of chain names (case insensitive)."""
        if isinstance(value, cls): return value
        names = value.split(',') if isinstance(value, str) else value
        names = {name.strip().upper() for name in names if name.strip()}
        if 'ALL' in names: return cls.ALL
        return cls(names)

    def intersects(self, other: Iterable[str]) -> bool: return not self.isdisjoint(other)


Chains.ALL = Chains(Chains.KNOWN)


@dataclass(frozen=True, slots=True)
class Gene:
    """
    A reference gene record.

    Attributes:
        name: Allele-level gene name (e.g. ``'TRBV12-3*00'``).
        gene_type: The segment type.
        chains: Chains the gene participates in.
        functional: ``False`` for pseudogenes and open reading frames.
        regions: Region names annotated on the reference sequence.
    """
    name: str
    gene_type: GeneType
    chains: Chains
    functional: bool = True
    regions: frozenset[str] = frozenset()

    def is_available(self, feature: GeneFeature) -> bool:
        """Whether every region of *feature* is annotated on this gene."""
        return self.regions.issuperset(feature.regions)


class GeneLibrary:
    """
    An in-memory, species-tagged collection of genes.

    Examples:
        >>> library = GeneLibrary('default', 'hs', genes)
        >>> [g.name for g in library.genes(Chains.parse('TRB'))]
    """
    __slots__ = ('name', 'species', '_genes')
    def __init__(self, name: str, species: str, genes: Iterable[Gene] = ()):
        self.name = name
        self.species = species
        self._genes = list(genes)

    def __len__(self): return len(self._genes)
    def __repr__(self): return f"<GeneLibrary {self.library_id}: {len(self)} genes>"

    @property
    def library_id(self) -> str: return f"{self.name}:{self.species}"

    def add(self, gene: Gene): self._genes.append(gene)

    def genes(self, chains: Chains = Chains.ALL) -> list[Gene]:
        """Returns the genes belonging to at least one of *chains*, in library order."""
        return [gene for gene in self._genes if chains.intersects(gene.chains)]


class GeneLibraryRegistry:
    """
    Libraries indexed by name and species.

    Examples:
        >>> registry = GeneLibraryRegistry()
        >>> registry.register(GeneLibrary('default', 'hs', genes))
        >>> registry.get('default', 'hs').library_id
        'default:hs'
    """
    __slots__ = ('_libraries',)
    def __init__(self, *libraries: GeneLibrary):
        self._libraries: dict[tuple[str, str], GeneLibrary] = {}
        for library in libraries: self.register(library)

    def __len__(self): return len(self._libraries)

    def register(self, library: GeneLibrary):
        self._libraries[(library.name, library.species.lower())] = library

    def get(self, name: str, species: str) -> GeneLibrary:
        """
        Raises:
            LookupError: If no library with that name and species was registered.
        """
        try: return self._libraries[(name, species.lower())]
        except KeyError:
            raise LookupError(f'No library {name!r} for species {species!r}') from None
