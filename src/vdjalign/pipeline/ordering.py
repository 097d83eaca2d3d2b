"""Restores input order of results produced out of order by concurrent workers."""
from heapq import heappush, heappop
from itertools import count
from typing import Iterable, Iterator, Callable, TypeVar

from vdjalign import VdjalignError

T = TypeVar('T')


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class OrderingError(VdjalignError):
    """Raised when result indices are duplicated or leave a gap."""


# Classes --------------------------------------------------------------------------------------------------------------
class OrderedOutput(Iterator[T]):
    """
    Re-emits items in ascending, contiguous index order.

    Items arriving ahead of the cursor are held in a min-heap; whenever the item matching the cursor arrives it
    is released together with the contiguous run buffered behind it. Memory use is bounded by how far the input
    runs ahead of the slowest item.

    Args:
        items: Items in any order.
        key: Returns an item's integer index. The pipeline keys on the arrival number given by
            ``ParallelProcessor``, which is contiguous from 0 whatever ids the reads carry.
        start: Index of the first item.

    Raises:
        OrderingError: On an index below the cursor or already buffered (duplicates), or if the input ends while
            items are still buffered (a missing index).

    Examples:
        >>> list(OrderedOutput([2, 0, 1, 3], key=lambda x: x))
        [0, 1, 2, 3]
    """
    def __init__(self, items: Iterable[T], key: Callable[[T], int], start: int = 0):
        self._items = iter(items)
        self._key = key
        self._cursor = start
        self._heap: list[tuple[int, int, T]] = []
        self._indices: set[int] = set()
        self._tiebreak = count()
        self.max_buffered = 0

    @property
    def cursor(self) -> int:
        """Index of the next item to be released."""
        return self._cursor

    @property
    def buffered(self) -> int: return len(self._heap)

    def __iter__(self) -> 'OrderedOutput[T]': return self

    def __next__(self) -> T:
        while not (self._heap and self._heap[0][0] == self._cursor):
            try: item = next(self._items)
            except StopIteration:
                if self._heap:
                    raise OrderingError(f'Input ended while waiting for index {self._cursor} '
                                        f'({len(self._heap)} items buffered)') from None
                raise
            self._push(item)
        index, _, item = heappop(self._heap)
        self._indices.discard(index)
        self._cursor += 1
        return item

    def _push(self, item: T):
        index = self._key(item)
        if index < self._cursor or index in self._indices:
            raise OrderingError(f'Duplicate index {index} (next expected: {self._cursor})')
        heappush(self._heap, (index, next(self._tiebreak), item))
        self._indices.add(index)
        if len(self._heap) > self.max_buffered: self.max_buffered = len(self._heap)
