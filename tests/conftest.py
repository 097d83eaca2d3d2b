import random
import time

import pytest

from vdjalign.core.genes import Gene, GeneType, GeneFeature, GeneLibrary, GeneLibraryRegistry, Chains
from vdjalign.core.reads import ReadData, SingleRead, PairedRead
from vdjalign.containers.alignments import Alignment, AlignmentResult, FailCause, Hit
from vdjalign.engines.aligner import BaseAligner
from vdjalign.engines.parameters import AlignerParameters


# Helpers --------------------------------------------------------------------------------------------------------------
V_FULL = frozenset(GeneFeature.V_TRANSCRIPT_WITH_P.regions)
V_REGION_ONLY = frozenset(GeneFeature.V_REGION.regions)
J_FULL = frozenset(GeneFeature.J_REGION.regions)
D_FULL = frozenset(GeneFeature.D_REGION.regions)
C_FULL = frozenset(GeneFeature.C_EXON_1.regions)


def v_gene(name, chain='TRB', regions=V_FULL, functional=True):
    return Gene(name, GeneType.VARIABLE, Chains.parse(chain), functional, regions)


def j_gene(name, chain='TRB', regions=J_FULL, functional=True):
    return Gene(name, GeneType.JOINING, Chains.parse(chain), functional, regions)


def make_read(id_, seq=b'ACGTACGTTG', paired=False):
    mate = ReadData.from_ascii(b'read%d' % id_, seq, b'I' * len(seq))
    if paired: return PairedRead(id_, mate, ReadData.from_ascii(b'read%d/2' % id_, b'CCGGA', b'IIIII'))
    return SingleRead(id_, mate)


class FakeAligner(BaseAligner):
    """
    Deterministic stand-in for a scoring engine.

    Reads in *fail_ids* are not aligned, reads in *chimera_ids* get a TRB V hit and a TRA J hit, others get the
    first registered V and J genes. *jitter* sleeps a per-read random time so workers finish out of order.
    """
    def __init__(self, parameters=None, paired=False, merge=True, fail_ids=(), chimera_ids=(), jitter=0.0,
                 raise_on=None):
        super().__init__(parameters or AlignerParameters.preset('default'), paired, merge)
        self.fail_ids = set(fail_ids)
        self.chimera_ids = set(chimera_ids)
        self.jitter = jitter
        self.raise_on = raise_on
        self.aligned_ids = []

    def _first(self, gene_type, chain):
        return next(g for g in self.genes(gene_type) if chain in g.chains)

    def align(self, read):
        if self.jitter: time.sleep(random.Random(read.id).random() * self.jitter)
        self.aligned_ids.append(read.id)
        if read.id == self.raise_on: raise RuntimeError(f'engine crashed on read {read.id}')
        if read.id in self.fail_ids: return AlignmentResult(read, fail_cause=FailCause.NO_V_HITS)
        j_chain = 'TRA' if read.id in self.chimera_ids else 'TRB'
        hits = {GeneType.VARIABLE: [Hit(self._first(GeneType.VARIABLE, 'TRB'), 200.0)],
                GeneType.JOINING: [Hit(self._first(GeneType.JOINING, j_chain), 60.0)]}
        targets = self.parameters.reads_layout.create_targets(read)[0]
        return AlignmentResult(read, Alignment(read.id, hits, targets))


class ListReader:
    """In-memory read source recording how it was opened."""
    def __init__(self, reads, error_at=None):
        self._reads = list(reads)
        self._error_at = error_at
        self.number_of_reads = 0
        self.entered = False
        self.closed = False

    def __repr__(self): return f"ListReader({len(self._reads)})"

    def __iter__(self):
        for read in self._reads:
            if read.id == self._error_at: raise OSError(f'read {read.id} is corrupt')
            self.number_of_reads += 1
            yield read

    def __enter__(self):
        self.entered = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb): self.closed = True


class ListSink:
    def __init__(self):
        self.reads = []
        self.entered = False
        self.closed = False

    def write(self, read): self.reads.append(read)

    def __enter__(self):
        self.entered = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb): self.closed = True


# Fixtures -------------------------------------------------------------------------------------------------------------
@pytest.fixture
def genes():
    return [
        v_gene('TRBV1*00'), v_gene('TRBV2*00'), v_gene('TRAV1*00', 'TRA'),
        j_gene('TRBJ1-1*00'), j_gene('TRAJ1*00', 'TRA'),
        Gene('TRBD1*00', GeneType.DIVERSITY, Chains.parse('TRB'), True, D_FULL),
        Gene('TRBC1*00', GeneType.CONSTANT, Chains.parse('TRB'), True, C_FULL),
    ]


@pytest.fixture
def library(genes):
    return GeneLibrary('default', 'hs', genes)


@pytest.fixture
def registry(library):
    return GeneLibraryRegistry(library)
