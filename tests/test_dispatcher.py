import threading
from operator import itemgetter
import time

import pytest

from vdjalign.core.genes import GeneType
from vdjalign.engines.correction import register_genes
from vdjalign.pipeline.dispatcher import ParallelProcessor
from vdjalign.utils import Prefetcher, chunked
from conftest import FakeAligner, make_read


def slow_source(n, delay=0.0, fail_at=None):
    for i in range(n):
        if i == fail_at: raise OSError(f'bad item {i}')
        if delay: time.sleep(delay)
        yield i


@pytest.fixture
def aligner(genes):
    aligner = FakeAligner(jitter=0.002)
    register_genes(aligner, genes)
    return aligner


class TestChunked:
    def test_chunks(self):
        assert list(chunked(range(7), 3)) == [[0, 1, 2], [3, 4, 5], [6]]

    def test_lazy(self):
        source = iter(range(10))
        chunks = chunked(source, 4)
        assert next(chunks) == [0, 1, 2, 3]
        assert next(source) == 4

    def test_size(self):
        with pytest.raises(ValueError):
            list(chunked([1], 0))


class TestPrefetcher:
    def test_yields_in_order(self):
        with Prefetcher(slow_source(50), queue_size=4) as prefetcher:
            assert list(prefetcher) == list(range(50))

    def test_bounded(self):
        pulled = []

        def source():
            for i in range(100):
                pulled.append(i)
                yield i

        with Prefetcher(source(), queue_size=3) as prefetcher:
            assert prefetcher.get() == 0
            time.sleep(0.2)
            # Queue of 3, one taken, one held by the blocked producer
            assert len(pulled) <= 5

    def test_end_seen_by_every_consumer(self):
        with Prefetcher(iter([1]), queue_size=2) as prefetcher:
            assert prefetcher.get() == 1
            assert Prefetcher.is_end(prefetcher.get())
            assert Prefetcher.is_end(prefetcher.get())

    def test_error_propagates(self):
        with Prefetcher(slow_source(10, fail_at=5), queue_size=2) as prefetcher:
            with pytest.raises(OSError, match='bad item 5'):
                list(prefetcher)

    def test_close_unblocks_producer(self):
        prefetcher = Prefetcher(slow_source(10_000), queue_size=1)
        prefetcher.close()
        # At most the single queued item is left before the end marker
        assert len(list(prefetcher)) <= 1

    def test_queue_size(self):
        with pytest.raises(ValueError):
            Prefetcher([], queue_size=0)


class TestParallelProcessor:
    @pytest.mark.parametrize('threads', [1, 4])
    def test_every_read_once(self, aligner, threads):
        reads = [make_read(i) for i in range(300)]
        with ParallelProcessor(reads, aligner, threads=threads, chunk_size=7, buffer_size=2) as processor:
            pairs = list(processor)
        assert sorted(arrival for arrival, _ in pairs) == list(range(300))
        assert all(result.read_id == arrival for arrival, result in pairs)

    @pytest.mark.parametrize('threads', [1, 3])
    def test_arrival_numbers_ignore_read_ids(self, aligner, threads):
        ids = [1, 7, 8, 20, 21, 22, 500, 1000, 1001]
        reads = [make_read(i) for i in ids]
        with ParallelProcessor(reads, aligner, threads=threads, chunk_size=2) as processor:
            pairs = sorted(processor, key=itemgetter(0))
        assert [arrival for arrival, _ in pairs] == list(range(len(ids)))
        assert [result.read_id for _, result in pairs] == ids

    def test_in_flight_bounded(self, genes):
        aligner = FakeAligner(jitter=0.001)
        register_genes(aligner, genes)
        pulled = []

        def reads():
            for i in range(10_000):
                pulled.append(i)
                yield make_read(i)

        with ParallelProcessor(reads(), aligner, threads=2, chunk_size=4, buffer_size=2) as processor:
            next(iter(processor))
            time.sleep(0.2)
            # Four submitted chunks, two queued and one held by the blocked prefetch thread
            assert len(pulled) <= 4 * (4 + 2 + 1)

    def test_empty_input(self, aligner):
        with ParallelProcessor([], aligner, threads=3) as processor:
            assert list(processor) == []

    def test_aligner_error(self, genes):
        aligner = FakeAligner(raise_on=123)
        register_genes(aligner, genes)
        reads = [make_read(i) for i in range(1000)]
        with ParallelProcessor(reads, aligner, threads=4, chunk_size=10) as processor:
            with pytest.raises(RuntimeError, match='engine crashed on read 123'):
                list(processor)

    def test_reader_error(self, aligner):
        def reads():
            for i in range(100):
                if i == 42: raise OSError('truncated input')
                yield make_read(i)

        with ParallelProcessor(reads(), aligner, threads=2, chunk_size=5) as processor:
            with pytest.raises(OSError, match='truncated input'):
                list(processor)

    def test_threads_stop(self, aligner):
        before = threading.active_count()
        processor = ParallelProcessor((make_read(i) for i in range(10_000)), aligner, threads=4, chunk_size=4)
        next(iter(processor))
        processor.close()
        assert threading.active_count() <= before

    def test_threads(self, aligner):
        with pytest.raises(ValueError):
            ParallelProcessor([], aligner, threads=0)

    def test_aligner_read_only(self, aligner):
        before = {gt: aligner.genes(gt) for gt in GeneType}
        with ParallelProcessor([make_read(i) for i in range(40)], aligner, threads=4, chunk_size=3) as processor:
            list(processor)
        assert {gt: aligner.genes(gt) for gt in GeneType} == before
