"""
Shared utilities: run configuration base, chunking and background prefetch, compressed file handles and
terminal progress.
"""
from dataclasses import dataclass, fields
from io import IOBase
from itertools import islice
from pathlib import Path
from typing import Union, Iterable, Iterator, BinaryIO, Optional, IO, Any, TypeVar
from time import time
from sys import stderr, stdout, stdin
from importlib import import_module
import threading
import queue

from .resources import RESOURCES

T = TypeVar('T')


# Functions ------------------------------------------------------------------------------------------------------------
def chunked(iterable: Iterable[T], size: int) -> Iterator[list[T]]:
    """
    Lazily groups an iterable into lists of at most *size* items, preserving order.

    Examples:
        >>> list(chunked(range(5), 2))
        [[0, 1], [2, 3], [4]]
    """
    if size < 1: raise ValueError(f'Chunk size must be positive, got {size}')
    iterator = iter(iterable)
    while chunk := list(islice(iterator, size)):
        yield chunk


# Classes --------------------------------------------------------------------------------------------------------------
@dataclass(slots=True, frozen=True, kw_only=True)
class Config:
    """
    Base of frozen option sets; ``from_obj`` picks matching attributes off a namespace such as parsed CLI args.
    """
    @classmethod
    def from_obj(cls, obj: Any) -> 'Config':
        return cls(**{f.name: val for f in fields(cls) if (val := getattr(obj, f.name, None)) is not None})


class Prefetcher:
    """
    Pulls items from an iterable in a background thread into a bounded queue.

    Hides upstream latency (parsing, decompression) from the consumer. When the queue is full the background
    thread blocks, so memory use is bounded by *queue_size* items. Exceptions raised upstream are re-raised in the
    consuming thread.

    Examples:
        >>> with Prefetcher(chunked(reads, 64), queue_size=16) as buffered:
        ...     for chunk in buffered: ...
    """
    _END = object()
    _POLL = 0.1

    def __init__(self, iterable: Iterable, queue_size: int = 16):
        if queue_size < 1: raise ValueError(f'Queue size must be positive, got {queue_size}')
        self._iterable = iterable
        self._queue = queue.Queue(maxsize=queue_size)
        self._closed = threading.Event()
        self._thread = threading.Thread(target=self._worker, name='vdjalign-prefetch', daemon=True)
        self._thread.start()

    def _put(self, item) -> bool:
        while not self._closed.is_set():
            try:
                self._queue.put(item, timeout=self._POLL)
                return True
            except queue.Full: continue
        return False

    def _worker(self):
        try:
            for item in self._iterable:
                if not self._put(item): return
        except Exception as e:
            self._put(e)
            return
        self._put(self._END)

    def get(self):
        """
        Returns the next item, blocking until one is available.

        Safe to call from several consumer threads. Once the source is exhausted (or the prefetcher is closed)
        every call returns the end marker, test it with ``Prefetcher.is_end``.
        """
        while True:
            try: item = self._queue.get(timeout=self._POLL)
            except queue.Empty:
                if self._closed.is_set(): return self._END
                continue
            if item is self._END or isinstance(item, Exception):
                # Terminal items stay visible to every other consumer
                self._queue.put(item)
            if isinstance(item, Exception): raise item
            return item

    @classmethod
    def is_end(cls, item) -> bool: return item is cls._END

    def __iter__(self):
        while not self.is_end(item := self.get()):
            yield item

    def close(self):
        """Stops the background thread; items still queued are dropped."""
        self._closed.set()
        self._thread.join()

    def __enter__(self): return self
    def __exit__(self, exc_type, exc_val, exc_tb): self.close()


class Xopen:
    """
    Handles the Physical Layer: Compression and File System.

    Examples:
        >>> with Xopen("reads.fastq.gz", "rb") as f:
        ...     content = f.read()
    """
    _MAGIC = {
        b'\x1f\x8b': 'gzip',
        b'\x42\x5a': 'bz2',
        b'\xfd7zXZ\x00': 'lzma',
        b'\x28\xb5\x2f\xfd': 'zstandard'
    }
    _EXT_TO_PKG = {'gz': 'gzip', 'bz2': 'bz2', 'xz': 'lzma', 'zst': 'zstandard'}
    _MIN_N_BYTES = max(len(i) for i in _MAGIC.keys())

    def __init__(self, file: Union[str, Path, BinaryIO], mode: str = 'rb'):
        """
        Initializes the Xopen context manager.

        Args:
            file: File path (str or Path), ``'-'`` for stdin/stdout, or an existing binary file object.
            mode: File opening mode (``'rb'``, ``'wb'`` or ``'ab'``).
        """
        self.file = file
        self.mode = mode
        self._handle: Optional[BinaryIO] = None
        self._close_on_exit = False

    def __enter__(self) -> BinaryIO:
        self._handle = self._open()
        return self._handle

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._close_on_exit and self._handle: self._handle.close()
        self._handle = None

    @staticmethod
    def _get_opener(pkg_name: str):
        if not RESOURCES.has_module(pkg_name):
            raise ModuleNotFoundError(f"Compression module '{pkg_name}' not installed.")
        return import_module(pkg_name).open

    def _open(self) -> BinaryIO:
        writing = 'w' in self.mode or 'a' in self.mode
        if isinstance(self.file, IOBase): return self.file
        if str(self.file) in {'-', 'stdin', 'stdout'}: return stdout.buffer if writing else stdin.buffer

        path = Path(self.file).expanduser()
        self._close_on_exit = True
        if writing:
            if pkg := self._EXT_TO_PKG.get(path.suffix.lower().lstrip('.')):
                return self._get_opener(pkg)(path, mode=self.mode)
            return open(path, mode=self.mode)

        raw_stream = open(path, mode='rb')
        start = raw_stream.read(self._MIN_N_BYTES)
        raw_stream.seek(0)
        for magic, pkg in self._MAGIC.items():
            if start.startswith(magic):
                return self._get_opener(pkg)(raw_stream, mode='rb')
        return raw_stream


class ProgressBar:
    """
    Counts the items of an iteration on a terminal stream (stderr by default).

    Redraws one line at most every *min_interval* seconds: the percentage done when *total* is known (or the
    iterable has a length), otherwise the running count, followed by the elapsed time and the mean rate.

    Examples:
        >>> for result in ProgressBar(results, desc='Alignment', unit='reads'):
        ...     ...
        Alignment: 1200 reads [00:03, 400 reads/s]
    """
    __slots__ = ('_iterable', '_total', '_desc', '_unit', '_file', '_min_interval', '_disable', '_n')

    def __init__(self, iterable: Iterable, total: int = None, desc: str = None, unit: str = 'it', file: IO = stderr,
                 min_interval: float = 0.5, disable: bool = False):
        self._iterable = iterable
        if total is None:
            try: total = len(iterable)
            except TypeError: pass
        self._total = total
        self._desc = f"{desc}: " if desc else ""
        self._unit = unit
        self._file = file
        self._min_interval = min_interval
        self._disable = disable
        self._n = 0

    @property
    def n(self) -> int: return self._n

    def __iter__(self):
        start = last = time()
        for item in self._iterable:
            yield item
            self._n += 1
            if not self._disable and (now := time()) - last >= self._min_interval:
                self._draw(now - start)
                last = now
        if not self._disable: self._draw(time() - start, end='\n')

    def _draw(self, elapsed: float, end: str = ''):
        done = f"{100 * self._n / self._total:3.0f}% ({self._n}/{self._total})" if self._total else str(self._n)
        rate = self._n / elapsed if elapsed > 0 else 0.0
        minutes, seconds = divmod(int(elapsed), 60)
        self._file.write(f"\r{self._desc}{done} {self._unit} [{minutes:02d}:{seconds:02d}, "
                         f"{rate:.0f} {self._unit}/s]{end}")
        self._file.flush()
