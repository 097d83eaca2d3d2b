import gzip
from io import BytesIO

import numpy as np
import pytest

from vdjalign.core.reads import ReadData, SingleRead, PairedRead
from vdjalign.engines.parameters import ParameterError
from vdjalign.io import ParserError, TruncatedFileError, SeqIOError
from vdjalign.io.seq import (FastqReader, FastaReader, PairedFastqReader, FastqWriter, PairedFastqWriter,
                             open_reads, open_failed_sink)

FASTQ = b"@r0 first\nACGT\n+\nII5!\n@r1\nGGCA\n+r1\nIIII\n"
FASTA = b">s0 desc\nACGT\nAC\n>s1\nTTT\n"


class TestFastqReader:
    def test_parse(self):
        with FastqReader(BytesIO(FASTQ)) as reader:
            reads = list(reader)
        assert [r.id for r in reads] == [0, 1]
        assert reads[0][0].description == b'r0 first'
        assert reads[0][0].sequence == b'ACGT'
        np.testing.assert_array_equal(reads[0][0].quality, [40, 40, 20, 0])
        assert reader.number_of_reads == 2

    def test_small_chunks(self):
        reader = FastqReader(BytesIO(FASTQ * 50))
        reader._CHUNK_SIZE = 7
        assert [r.id for r in reader] == list(range(100))

    def test_crlf_and_missing_final_newline(self):
        reads = list(FastqReader(BytesIO(b"@r0\r\nAC\r\n+\r\nII")))
        assert reads[0][0].sequence == b'AC'

    def test_gzip(self, tmp_path):
        path = tmp_path / 'reads.fastq.gz'
        with gzip.open(path, 'wb') as handle: handle.write(FASTQ)
        with open_reads(path) as reader:
            assert len(list(reader)) == 2

    def test_bad_header(self):
        with pytest.raises(ParserError, match="expected '@'"):
            list(FastqReader(BytesIO(b">r0\nAC\n+\nII\n")))

    def test_bad_separator(self):
        with pytest.raises(ParserError, match="expected '\\+'"):
            list(FastqReader(BytesIO(b"@r0\nAC\n-\nII\n")))

    def test_quality_length(self):
        with pytest.raises(ParserError, match='lengths differ'):
            list(FastqReader(BytesIO(b"@r0\nACG\n+\nII\n")))

    def test_truncated(self):
        with pytest.raises(TruncatedFileError):
            list(FastqReader(BytesIO(FASTQ + b"@r2\nAC\n")))


class TestFastaReader:
    def test_parse(self):
        reads = list(FastaReader(BytesIO(FASTA)))
        assert [r[0].sequence for r in reads] == [b'ACGTAC', b'TTT']
        assert reads[0][0].description == b's0 desc'
        assert (reads[1][0].quality == 40).all()

    def test_data_before_header(self):
        with pytest.raises(ParserError):
            list(FastaReader(BytesIO(b"ACGT\n>s0\nAC\n")))


class TestPairedFastqReader:
    def test_parse(self):
        r2 = FASTQ.replace(b'@r', b'@m')
        reads = list(PairedFastqReader(BytesIO(FASTQ), BytesIO(r2)))
        assert [r.id for r in reads] == [0, 1]
        assert all(r.paired for r in reads)
        assert reads[1].descriptions() == (b'r1', b'm1')

    def test_uneven(self):
        with pytest.raises(SeqIOError, match='R1 has more'):
            list(PairedFastqReader(BytesIO(FASTQ), BytesIO(FASTQ.split(b'@r1')[0])))


class TestWriters:
    def test_fastq(self, tmp_path):
        path = tmp_path / 'failed.fastq'
        read = SingleRead(0, ReadData.from_ascii(b'r0', b'ACGT', b'II5!'))
        with FastqWriter(path) as writer:
            writer.write(read)
        assert path.read_bytes() == b"@r0\nACGT\n+\nII5!\n"

    def test_fastq_gzip(self, tmp_path):
        path = tmp_path / 'failed.fastq.gz'
        with FastqWriter(path) as writer:
            writer.write(*FastqReader(BytesIO(FASTQ)))
        assert gzip.decompress(path.read_bytes()) == b"@r0 first\nACGT\n+\nII5!\n@r1\nGGCA\n+\nIIII\n"

    def test_paired(self, tmp_path):
        read = PairedRead(0, ReadData.from_ascii(b'a', b'AC', b'II'), ReadData.from_ascii(b'b', b'GT', b'!!'))
        with PairedFastqWriter(tmp_path / 'r1.fq', tmp_path / 'r2.fq') as writer:
            writer.write(read)
        assert (tmp_path / 'r2.fq').read_bytes() == b"@b\nGT\n+\n!!\n"

    def test_paired_rejects_single(self, tmp_path):
        with PairedFastqWriter(tmp_path / 'r1.fq', tmp_path / 'r2.fq') as writer:
            with pytest.raises(SeqIOError):
                writer.write(SingleRead(0, ReadData.from_ascii(b'a', b'AC')))


class TestOpeners:
    def test_open_reads(self):
        assert isinstance(open_reads('x.fasta.gz'), FastaReader)
        assert isinstance(open_reads('x.fq'), FastqReader)
        assert isinstance(open_reads('x_R1.fq', 'x_R2.fq'), PairedFastqReader)

    def test_failed_sink(self, tmp_path):
        assert open_failed_sink(None) is None
        assert isinstance(open_failed_sink(tmp_path / 'f.fq'), FastqWriter)
        assert isinstance(open_failed_sink(tmp_path / 'f1.fq', tmp_path / 'f2.fq', paired=True), PairedFastqWriter)

    @pytest.mark.parametrize('r1, r2, paired', [(None, 'f2.fq', True), ('f1.fq', None, True),
                                                ('f1.fq', 'f2.fq', False)])
    def test_failed_sink_mismatch(self, r1, r2, paired):
        with pytest.raises(ParameterError):
            open_failed_sink(r1, r2, paired)
