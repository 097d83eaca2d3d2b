"""Run-level accumulators updated by the single consumer of the ordered alignment stream."""
from collections import defaultdict
from typing import Optional

from vdjalign.containers.alignments import Alignment, FailCause


# Classes --------------------------------------------------------------------------------------------------------------
class ChainUsageStats:
    """
    Counts emitted alignments per attributed chain.

    Every ``put`` increments ``total`` and exactly one bucket: ``chimeras`` for chimeric alignments, otherwise
    the alignment's chain key (``'IGH'``, ``'TRA,TRD'`` ...; ``''`` when no chain can be attributed).
    """
    __slots__ = ('total', 'chimeras', '_counts')
    def __init__(self):
        self.total = 0
        self.chimeras = 0
        self._counts: dict[str, int] = defaultdict(int)

    def __repr__(self): return f"<ChainUsageStats total={self.total} chimeras={self.chimeras} {dict(self._counts)}>"
    def __getitem__(self, chain: str) -> int: return self._counts.get(chain, 0)

    def put(self, alignment: Alignment):
        self.total += 1
        if alignment.is_chimera: self.chimeras += 1
        else: self._counts[str(alignment.chains)] += 1

    @property
    def counts(self) -> dict[str, int]: return dict(self._counts)

    def fraction(self, chain: str) -> float:
        return self[chain] / self.total if self.total else 0.0


class AlignerReport:
    """
    Counters describing the outcome of an alignment run.

    Each read ends in exactly one of ``aligned`` (emitted), ``synthesized`` (written as an empty placeholder) or
    ``skipped``, so ``aligned + synthesized + skipped == total``. ``chimeras`` counts aligned reads whose
    alignment is chimeric and never exceeds ``aligned``.
    """
    __slots__ = ('total', 'aligned', 'synthesized', 'skipped', 'chimeras', 'failed_by_cause')
    def __init__(self):
        self.total = 0
        self.aligned = 0
        self.synthesized = 0
        self.skipped = 0
        self.chimeras = 0
        self.failed_by_cause: dict[Optional[FailCause], int] = defaultdict(int)

    def __repr__(self):
        return (f"<AlignerReport total={self.total} aligned={self.aligned} synthesized={self.synthesized} "
                f"skipped={self.skipped} chimeras={self.chimeras}>")

    @property
    def failed(self) -> int: return self.synthesized + self.skipped

    def on_successful_alignment(self):
        self.total += 1
        self.aligned += 1

    def on_failed_alignment(self, cause: Optional[FailCause], synthesized: bool):
        self.total += 1
        self.failed_by_cause[cause] += 1
        if synthesized: self.synthesized += 1
        else: self.skipped += 1

    def on_chimera(self): self.chimeras += 1

    def percent(self, count: int) -> float:
        return 100.0 * count / self.total if self.total else 0.0
