"""
The alignment action: prepares the aligner from a gene library, then aligns a read source in parallel and
resolves the results in input order.
"""
from contextlib import ExitStack
from dataclasses import dataclass, field
from itertools import islice
from operator import itemgetter
from time import time
from typing import Optional, Mapping, Callable
from warnings import warn

from vdjalign import DeprecatedOptionWarning
from vdjalign.core.genes import Chains, GeneLibraryRegistry
from vdjalign.containers.stats import AlignerReport, ChainUsageStats
from vdjalign.engines.aligner import BaseAligner
from vdjalign.engines.correction import (FeatureCorrection, RegistrationSummary, correct_feature_to_align,
                                         register_genes)
from vdjalign.engines.parameters import AlignerParameters, ParameterError
from vdjalign.io.report import write_report, append_report
from vdjalign.pipeline.classifier import ResultClassifier
from vdjalign.pipeline.dispatcher import ParallelProcessor, CHUNK_SIZE, BUFFER_SIZE
from vdjalign.pipeline.ordering import OrderedOutput
from vdjalign.utils import Config, ProgressBar
from vdjalign.utils.protocols import ReadSource, AlignmentWriter, ReadSink, GeneSource
from vdjalign.utils.resources import RESOURCES


# Classes --------------------------------------------------------------------------------------------------------------
@dataclass(slots=True, frozen=True, kw_only=True)
class AlignConfig(Config):
    """
    Options of an alignment run.

    Attributes:
        chains: Chains to align against, ``'ALL'`` or comma separated (``'IGH,IGK'``).
        species: Species of the gene library.
        library: Name of the gene library.
        parameters: Name of the aligner parameter preset.
        overrides: Dotted parameter paths to string values applied on top of the preset.
        threads: Number of alignment threads.
        limit: Maximum number of reads to align (0 for all).
        no_merge: Do not let the engine merge overlapping paired mates.
        write_all_results: Write an empty alignment for every read that failed to align.
        save_read_description: Attach read description lines to alignments.
        save_original_reads: Attach original reads (and descriptions) to alignments.
        failed_reads_r1: File receiving reads that failed to align (R1 for paired input).
        failed_reads_r2: File receiving R2 of paired reads that failed to align.
        print_warnings: Report genes excluded for lacking the feature to align.
        print_non_functional_warnings: Also report excluded non-functional genes.
        allow_different_vj_loci: Deprecated alias of the ``allow_chimeras`` override.
        chunk_size: Reads per dispatched chunk.
        buffer_size: Chunks held in the prefetch queue.
        show_progress: Draw a progress bar on stderr.
        print_report: Print the report to stdout when done.
        report: Text file the report is appended to.
    """
    chains: str = 'ALL'
    species: str = 'hs'
    library: str = 'default'
    parameters: str = 'default'
    overrides: Mapping[str, str] = field(default_factory=dict)
    threads: int = field(default_factory=lambda: RESOURCES.available_cpus)
    limit: int = 0
    no_merge: bool = False
    write_all_results: bool = False
    save_read_description: bool = False
    save_original_reads: bool = False
    failed_reads_r1: Optional[str] = None
    failed_reads_r2: Optional[str] = None
    print_warnings: bool = True
    print_non_functional_warnings: bool = False
    allow_different_vj_loci: Optional[bool] = None
    chunk_size: int = CHUNK_SIZE
    buffer_size: int = BUFFER_SIZE
    show_progress: bool = True
    print_report: bool = True
    report: Optional[str] = None

    def validate(self, paired: bool = False):
        """
        Raises:
            ParameterError: For non-positive sizes, a negative limit or failed-read files not matching the input.
        """
        for name in ('threads', 'chunk_size', 'buffer_size'):
            if getattr(self, name) < 1: raise ParameterError(f'{name} must be a positive integer')
        if self.limit < 0: raise ParameterError('limit must not be negative')
        if self.failed_reads_r2 is not None and self.failed_reads_r1 is None:
            raise ParameterError('Wrong input for failed reads: R2 file given without R1')
        if self.failed_reads_r1 is not None and (self.failed_reads_r2 is not None) != paired:
            raise ParameterError('Failed reads R2 file is required for paired input' if paired else
                                 'Failed reads R2 file given for single-end input')

    def aligner_parameters(self) -> AlignerParameters:
        """The named preset with overrides (and the deprecated chimera toggle) applied."""
        params = AlignerParameters.preset(self.parameters)
        if self.overrides: params = params.override(self.overrides)
        if self.allow_different_vj_loci:
            warn('allow_different_vj_loci is deprecated, override allow_chimeras=true instead.',
                 DeprecatedOptionWarning, stacklevel=2)
            params.allow_chimeras = True
        return params


@dataclass(frozen=True, slots=True)
class AlignmentSummary:
    """What an alignment run did."""
    library_id: str
    correction: FeatureCorrection
    registration: RegistrationSummary
    report: AlignerReport
    chain_stats: ChainUsageStats
    processed_reads: int
    max_buffered: int
    elapsed: float


class AlignAction:
    """
    Runs one alignment: gene preparation, then parallel alignment with ordered result resolution.

    Gene preparation (feature correction, registration and the check that V and J genes remain) happens before
    any input or output is opened, so a library without usable genes fails without leaving partial output.

    Examples:
        >>> action = AlignAction.from_config(config, MyAligner, registry, paired=False)
        >>> summary = action.run(open_reads('reads.fastq.gz'), writer=AlignmentCollector())
    """
    def __init__(self, config: AlignConfig, aligner: BaseAligner, library: GeneSource):
        self.config = config
        self.aligner = aligner
        self.library = library
        self._prepared: Optional[tuple[FeatureCorrection, RegistrationSummary]] = None

    @classmethod
    def from_config(cls, config: AlignConfig, aligner_factory: Callable[[AlignerParameters, bool, bool], BaseAligner],
                    registry: GeneLibraryRegistry, paired: bool = False) -> 'AlignAction':
        """
        Builds the aligner parameters and resolves the library named by *config*.

        Args:
            aligner_factory: Called as ``aligner_factory(parameters, paired, merge)``.

        Raises:
            ParameterError: If the preset, an override or the library cannot be resolved.
        """
        try: library = registry.get(config.library, config.species)
        except LookupError as e: raise ParameterError(str(e)) from e
        return cls(config, aligner_factory(config.aligner_parameters(), paired, not config.no_merge), library)

    def prepare(self) -> tuple[FeatureCorrection, RegistrationSummary]:
        """
        Corrects the V feature to align and registers genes; runs once.

        Raises:
            NoUsableGenesError: If no V or no J gene can be registered.
        """
        if self._prepared is None:
            genes = list(self.library.genes(Chains.parse(self.config.chains)))
            correction = correct_feature_to_align(self.aligner, genes)
            registration = register_genes(self.aligner, genes, self.config.print_warnings,
                                          self.config.print_non_functional_warnings)
            self._prepared = (correction, registration)
        return self._prepared

    def run(self, reader: ReadSource, writer: Optional[AlignmentWriter] = None,
            failed_sink: Optional[ReadSink] = None) -> AlignmentSummary:
        """
        Aligns every read of *reader* (up to the configured limit).

        The reader, writer and failed-read sink are opened here and closed on every exit path. Alignments reach
        the writer in the order the reader produced them, whatever the number of threads and whatever ids the
        reads carry.

        Raises:
            ParameterError: If the configuration is invalid.
            NoUsableGenesError: If no V or no J gene can be registered.
        """
        start = time()
        config = self.config
        config.validate(self.aligner.paired)
        correction, registration = self.prepare()

        with ExitStack() as stack:
            reader = stack.enter_context(reader)
            if writer is not None:
                writer = stack.enter_context(writer)
                writer.write_header(self.aligner)
            if failed_sink is not None: failed_sink = stack.enter_context(failed_sink)

            classifier = ResultClassifier(
                self.aligner.parameters, writer, failed_sink, write_all_results=config.write_all_results,
                save_read_description=config.save_read_description, save_original_reads=config.save_original_reads
            )
            reads = islice(reader, config.limit) if config.limit else reader
            processor = stack.enter_context(
                ParallelProcessor(reads, self.aligner, config.threads, config.chunk_size, config.buffer_size)
            )
            ordered = OrderedOutput(processor, key=itemgetter(0))
            for _, result in ProgressBar(ordered, total=config.limit or None, desc='Alignment', unit='reads',
                                         disable=not config.show_progress):
                classifier.process(result)
            classifier.finish(reader.number_of_reads)

        elapsed = time() - start
        summary = AlignmentSummary(self.library.library_id, correction, registration, classifier.report,
                                   classifier.chain_stats, reader.number_of_reads, ordered.max_buffered, elapsed)
        if config.print_report: write_report(elapsed, classifier.report, classifier.chain_stats)
        if config.report:
            append_report(config.report, elapsed, classifier.report, classifier.chain_stats, input_names=[repr(reader)],
                          output_name=repr(writer) if writer is not None else None)
        return summary
