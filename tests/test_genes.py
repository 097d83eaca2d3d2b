import copy

import pytest

from vdjalign.core.genes import GeneType, GeneFeature, GeneFeatureError, Chains, Gene, GeneLibrary, GeneLibraryRegistry
from conftest import v_gene, j_gene, V_REGION_ONLY


class TestGeneType:
    def test_letters(self):
        assert [gt.letter for gt in GeneType] == ['V', 'D', 'J', 'C']

    def test_from_letter(self):
        assert GeneType.from_letter('j') is GeneType.JOINING
        with pytest.raises(ValueError):
            GeneType.from_letter('X')


class TestGeneFeature:
    def test_registered_lookup(self):
        assert GeneFeature.parse('VRegion') is GeneFeature.V_REGION
        assert GeneFeature.parse(GeneFeature.J_REGION) is GeneFeature.J_REGION

    def test_concatenation(self):
        feature = GeneFeature.parse('VRegion+VPSegment')
        assert feature == GeneFeature.V_REGION_WITH_P
        assert feature.name == 'VRegion+VPSegment'

    def test_transcript_contains_region_with_p(self):
        assert GeneFeature.V_TRANSCRIPT_WITH_P.regions[:2] == ('L1', 'L2')
        assert GeneFeature.V_TRANSCRIPT_WITH_P.regions[2:] == GeneFeature.V_REGION_WITH_P.regions

    def test_reversed_regions(self):
        assert GeneFeature.V_REGION_WITH_P.has_reversed_regions
        assert GeneFeature.V_TRANSCRIPT_WITH_P.has_reversed_regions
        assert not GeneFeature.V_REGION.has_reversed_regions

    @pytest.mark.parametrize('value', ['', '   ', 'VRegion+', '+FR4'])
    def test_malformed(self, value):
        with pytest.raises(GeneFeatureError):
            GeneFeature.parse(value)

    def test_copy_keeps_identity(self):
        assert copy.deepcopy(GeneFeature.V_REGION) is GeneFeature.V_REGION


class TestChains:
    def test_parse_list(self):
        assert Chains.parse('igh, TRB') == {'IGH', 'TRB'}
        assert str(Chains.parse('TRB,IGH')) == 'IGH,TRB'

    def test_parse_all(self):
        assert Chains.parse('all') is Chains.ALL
        assert Chains.ALL.intersects(['TRD'])

    def test_disjoint(self):
        assert not Chains.parse('TRA').intersects(Chains.parse('TRB'))


class TestGene:
    def test_is_available(self):
        gene = v_gene('TRBV1*00', regions=V_REGION_ONLY)
        assert gene.is_available(GeneFeature.V_REGION)
        assert not gene.is_available(GeneFeature.V_REGION_WITH_P)


class TestGeneLibrary:
    def test_filter_by_chains(self):
        library = GeneLibrary('default', 'hs', [v_gene('TRBV1*00'), v_gene('TRAV1*00', 'TRA'), j_gene('TRBJ1*00')])
        assert [g.name for g in library.genes(Chains.parse('TRB'))] == ['TRBV1*00', 'TRBJ1*00']
        assert len(library.genes()) == 3
        assert library.library_id == 'default:hs'

    def test_registry(self):
        library = GeneLibrary('default', 'HS', [])
        registry = GeneLibraryRegistry(library)
        assert registry.get('default', 'hs') is library
        with pytest.raises(LookupError, match='mmu'):
            registry.get('default', 'mmu')

    def test_multi_chain_gene(self):
        gene = Gene('TRAV29/DV5*00', GeneType.VARIABLE, Chains.parse('TRA,TRD'))
        library = GeneLibrary('default', 'hs', [gene])
        assert library.genes(Chains.parse('TRD')) == [gene]
