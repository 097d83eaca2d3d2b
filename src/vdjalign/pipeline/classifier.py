"""
Resolution of ordered alignment results: placeholder synthesis, failed-read routing, aggregation and writing.
"""
from enum import Enum
from typing import Optional

from vdjalign.containers.alignments import Alignment, AlignmentResult
from vdjalign.containers.stats import ChainUsageStats, AlignerReport
from vdjalign.engines.parameters import AlignerParameters
from vdjalign.utils.protocols import AlignmentWriter, ReadSink


# Classes --------------------------------------------------------------------------------------------------------------
class Resolution(str, Enum):
    """How a result left the pipeline."""
    EMITTED = 'emitted'
    SYNTHESIZED = 'synthesized'
    SKIPPED = 'skipped'


class ResultClassifier:
    """
    Consumes the ordered result stream on a single thread.

    * Aligned reads are emitted: original descriptions and/or reads are attached when requested, chain usage and
      the chimera counter are updated and the alignment is written.
    * Unaligned reads become empty placeholder alignments when *write_all_results* is set (counted in chain usage
      and written like any other alignment).
    * Otherwise unaligned reads are skipped: written to *failed_sink* if there is one, excluded from the output
      and from chain usage.

    The report and chain statistics belong to this object; no other thread may touch them while it runs.
    """
    def __init__(self, parameters: AlignerParameters, writer: Optional[AlignmentWriter] = None,
                 failed_sink: Optional[ReadSink] = None, write_all_results: bool = False,
                 save_read_description: bool = False, save_original_reads: bool = False,
                 report: AlignerReport = None, chain_stats: ChainUsageStats = None):
        self._writer = writer
        self._failed_sink = failed_sink
        self._write_all_results = write_all_results
        self._save_descriptions = save_read_description or save_original_reads
        self._save_reads = save_original_reads
        self._gene_types = parameters.gene_types
        self._reads_layout = parameters.reads_layout
        self.report = report if report is not None else AlignerReport()
        self.chain_stats = chain_stats if chain_stats is not None else ChainUsageStats()

    def process(self, result: AlignmentResult) -> Resolution:
        read, alignment = result.read, result.alignment
        if alignment is None:
            if not self._write_all_results:
                self.report.on_failed_alignment(result.fail_cause, synthesized=False)
                if self._failed_sink is not None: self._failed_sink.write(read)
                return Resolution.SKIPPED
            alignment = Alignment.empty(read.id, self._gene_types, self._reads_layout.create_targets(read)[0])
            self.report.on_failed_alignment(result.fail_cause, synthesized=True)
            resolution = Resolution.SYNTHESIZED
        else:
            self.report.on_successful_alignment()
            if alignment.is_chimera: self.report.on_chimera()
            resolution = Resolution.EMITTED

        self.chain_stats.put(alignment)
        if self._writer is not None:
            if self._save_descriptions: alignment.original_descriptions = read.descriptions()
            if self._save_reads: alignment.original_sequences = read.sequences()
            self._writer.write(alignment)
        return resolution

    def finish(self, processed_reads: int):
        """Tells the writer how many reads were pulled from the input."""
        if self._writer is not None: self._writer.set_processed_count(processed_reads)
