"""FASTQ and FASTA readers producing numbered reads, and FASTQ writers used as failed-read sinks."""
from itertools import zip_longest
from pathlib import Path
from typing import Union, Generator, BinaryIO, Optional

from vdjalign.core.reads import ReadData, SequenceRead, SingleRead, PairedRead
from vdjalign.io import BaseReader, BaseWriter, SeqIOError, TruncatedFileError, ParserError
from vdjalign.engines.parameters import ParameterError


# Functions ------------------------------------------------------------------------------------------------------------
def _fastq_entries(handle: BinaryIO, chunk_size: int) -> Generator[tuple[bytes, bytes, bytes], None, None]:
    """Yields ``(header, sequence, quality)`` for each 4-line FASTQ record."""
    buf = b""
    while True:
        chunk = handle.read(chunk_size)
        if not chunk:
            if not buf.strip(): return
            # Ensure last line has a newline to simplify parsing logic
            if not buf.endswith(b'\n'): buf += b'\n'
        else:
            buf += chunk

        pos = 0
        n_len = len(buf)
        while pos < n_len:
            # Skip whitespace between records
            while pos < n_len and buf[pos] in (10, 13, 32, 9): pos += 1
            if pos >= n_len: break
            if buf[pos] != 64:  # @
                raise ParserError(f"Invalid FASTQ header at byte {pos}: expected '@'")
            nl1 = buf.find(b'\n', pos)
            nl2 = buf.find(b'\n', nl1 + 1) if nl1 != -1 else -1
            nl3 = buf.find(b'\n', nl2 + 1) if nl2 != -1 else -1
            nl4 = buf.find(b'\n', nl3 + 1) if nl3 != -1 else -1
            if nl4 == -1: break
            header = buf[pos + 1:nl1].rstrip()
            seq = buf[nl1 + 1:nl2].rstrip()
            if not buf[nl2 + 1:nl3].startswith(b'+'):
                raise ParserError(f"Invalid FASTQ separator for record {header!r}: expected '+'")
            qual = buf[nl3 + 1:nl4].rstrip()
            if len(qual) != len(seq):
                raise ParserError(f"Sequence and quality lengths differ for record {header!r}")
            yield header, seq, qual
            pos = nl4 + 1

        buf = buf[pos:]
        if not chunk:
            if buf.strip(): raise TruncatedFileError(f"Incomplete FASTQ record at end of file: {buf[:50]!r}")
            return


def _fasta_entries(handle: BinaryIO) -> Generator[tuple[bytes, bytes], None, None]:
    """Yields ``(header, sequence)`` for each FASTA record, joining wrapped sequence lines."""
    header, parts = None, []
    for line in handle:
        line = line.rstrip()
        if line.startswith(b'>'):
            if header is not None: yield header, b"".join(parts)
            header, parts = line[1:], []
        elif line:
            if header is None: raise ParserError(f"Sequence data before the first FASTA header: {line[:50]!r}")
            parts.append(line)
    if header is not None: yield header, b"".join(parts)


def _write_fastq(handle: BinaryIO, mate: ReadData):
    handle.write(b"@" + mate.description + b"\n" + mate.sequence + b"\n+\n" + mate.quality_ascii + b"\n")


# Classes --------------------------------------------------------------------------------------------------------------
class FastqReader(BaseReader):
    """
    Reader for single-end FASTQ files (plain or compressed).

    Examples:
        >>> with FastqReader("reads.fastq.gz") as reader:
        ...     for read in reader:
        ...         print(read.id, read[0].description)
    """
    def __init__(self, file: Union[str, Path, BinaryIO]): super().__init__(file)

    def _reads(self, handles: list[BinaryIO]) -> Generator[SequenceRead, None, None]:
        for header, seq, qual in _fastq_entries(handles[0], self._CHUNK_SIZE):
            yield SingleRead(self._next_id(), ReadData.from_ascii(header, seq, qual))


class FastaReader(BaseReader):
    """
    Reader for single-end FASTA files; bases get a constant high quality.
    """
    def __init__(self, file: Union[str, Path, BinaryIO]): super().__init__(file)

    def _reads(self, handles: list[BinaryIO]) -> Generator[SequenceRead, None, None]:
        for header, seq in _fasta_entries(handles[0]):
            yield SingleRead(self._next_id(), ReadData.from_ascii(header, seq))


class PairedFastqReader(BaseReader):
    """
    Reader for paired-end FASTQ files read in lock-step.

    Raises:
        SeqIOError: If one file has more records than the other.
    """
    def __init__(self, file1: Union[str, Path, BinaryIO], file2: Union[str, Path, BinaryIO]):
        super().__init__(file1, file2)

    def _reads(self, handles: list[BinaryIO]) -> Generator[SequenceRead, None, None]:
        entries1, entries2 = (_fastq_entries(handle, self._CHUNK_SIZE) for handle in handles)
        for r1, r2 in zip_longest(entries1, entries2):
            if r1 is None or r2 is None:
                raise SeqIOError(f'Paired files have different numbers of reads (R{2 if r1 is None else 1} has '
                                 f'more than {self._next_id()})')
            yield PairedRead(self._next_id(), ReadData.from_ascii(*r1), ReadData.from_ascii(*r2))


class FastqWriter(BaseWriter):
    """
    Writes reads to FASTQ; paired reads are written as consecutive records.
    """
    def __init__(self, file: Union[str, Path, BinaryIO]): super().__init__(file)

    def write_one(self, read: SequenceRead):
        for mate in read: _write_fastq(self._handles[0], mate)


class PairedFastqWriter(BaseWriter):
    """
    Writes paired reads to two FASTQ files (R1 and R2).
    """
    def __init__(self, file1: Union[str, Path, BinaryIO], file2: Union[str, Path, BinaryIO]):
        super().__init__(file1, file2)

    def write_one(self, read: SequenceRead):
        if not read.paired: raise SeqIOError(f'Cannot write single-end read {read.id} to paired files')
        for handle, mate in zip(self._handles, read): _write_fastq(handle, mate)


# Functions ------------------------------------------------------------------------------------------------------------
_FASTA_SUFFIXES = {'.fasta', '.fa', '.fna'}
_COMPRESSION_SUFFIXES = {'.gz', '.bz2', '.xz', '.zst'}


def open_reads(file1: Union[str, Path], file2: Union[str, Path] = None) -> BaseReader:
    """
    Picks a reader for the input: paired FASTQ for two files, otherwise FASTA or FASTQ by file extension.

    Examples:
        >>> open_reads("sample_R1.fastq.gz", "sample_R2.fastq.gz")
        PairedFastqReader(sample_R1.fastq.gz, sample_R2.fastq.gz)
    """
    if file2 is not None: return PairedFastqReader(file1, file2)
    suffixes = [s.lower() for s in Path(file1).suffixes]
    if suffixes and suffixes[-1] in _COMPRESSION_SUFFIXES: suffixes.pop()
    if suffixes and suffixes[-1] in _FASTA_SUFFIXES: return FastaReader(file1)
    return FastqReader(file1)


def open_failed_sink(r1: Optional[Union[str, Path]], r2: Optional[Union[str, Path]] = None,
                     paired: bool = False) -> Optional[BaseWriter]:
    """
    Creates the writer for reads that failed to align, or ``None`` when no file was given.

    Raises:
        ParameterError: If only R2 is given, or the number of files does not match the input.
    """
    if r1 is None:
        if r2 is not None: raise ParameterError('Wrong input for failed reads: R2 file given without R1')
        return None
    if paired != (r2 is not None):
        raise ParameterError('Failed reads R2 file is required for paired input' if paired else
                             'Failed reads R2 file given for single-end input')
    return PairedFastqWriter(r1, r2) if paired else FastqWriter(r1)
