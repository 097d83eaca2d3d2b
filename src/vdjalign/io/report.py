"""Human-readable run reports."""
from datetime import datetime
from pathlib import Path
import sys
from typing import IO, Union, Sequence

from vdjalign.containers.stats import AlignerReport, ChainUsageStats

REPORT_HEADER = "============= Report =============="


# Functions ------------------------------------------------------------------------------------------------------------
def _line(label: str, count: int, total: int) -> str:
    percent = 100.0 * count / total if total else 0.0
    return f"{label}: {count} ({percent:.2f}%)\n"


def format_report(elapsed: float, report: AlignerReport, chain_stats: ChainUsageStats) -> str:
    """
    Formats the counters of a run.

    Examples:
        >>> print(format_report(1.5, report, chain_stats))
        Analysis time: 1.50s
        Total sequencing reads: 10
        Successfully aligned reads: 7 (70.00%)
        ...
    """
    total = report.total
    text = f"Analysis time: {elapsed:.2f}s\nTotal sequencing reads: {total}\n"
    text += _line("Successfully aligned reads", report.aligned, total)
    text += _line("Chimeras", report.chimeras, total)
    text += _line("Empty results written for failed reads", report.synthesized, total)
    text += _line("Failed reads not written", report.skipped, total)
    for cause, count in sorted(report.failed_by_cause.items(), key=lambda i: -1 if i[0] is None else int(i[0])):
        text += _line(f"Alignment failed, {cause if cause is not None else 'no reason given'}", count, total)
    for chain, count in sorted(chain_stats.counts.items()):
        text += _line(f"{chain or 'Unassigned'} chains", count, chain_stats.total)
    return text


def write_report(elapsed: float, report: AlignerReport, chain_stats: ChainUsageStats, stream: IO[str] = None):
    """Prints the report block, headed by ``REPORT_HEADER``, to *stream* (stdout by default)."""
    stream = stream or sys.stdout
    stream.write(f"{REPORT_HEADER}\n{format_report(elapsed, report, chain_stats)}")
    stream.flush()


def append_report(path: Union[str, Path], elapsed: float, report: AlignerReport, chain_stats: ChainUsageStats,
                  input_names: Sequence[str] = (), output_name: str = None, command_line: str = None):
    """Appends a timestamped report block describing the run to a text file."""
    with open(path, 'a') as handle:
        handle.write(f"Analysis Date: {datetime.now():%a %b %d %H:%M:%S %Y}\n")
        if input_names: handle.write(f"Input file(s): {','.join(map(str, input_names))}\n")
        if output_name: handle.write(f"Output file: {output_name}\n")
        if command_line: handle.write(f"Command line arguments: {command_line}\n")
        handle.write(format_report(elapsed, report, chain_stats))
        handle.write("======================================\n")
