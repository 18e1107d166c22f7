"""In-process locks serializing writes to the same (user, neighborhood) pair."""

import threading
from contextlib import contextmanager
from typing import Generator, Iterable, Tuple
from weakref import WeakValueDictionary

Pair = Tuple[int, int]


class PairLockRegistry:
    """Hands out one lock per (user_id, neighborhood_id) pair.

    Locks are held weakly, so pairs nobody is writing do not accumulate.
    ``hold`` acquires several locks in sorted order, which keeps two writers
    with overlapping pair sets from deadlocking.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: "WeakValueDictionary[Pair, threading.Lock]" = WeakValueDictionary()

    def lock_for(self, pair: Pair) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(pair)
            if lock is None:
                lock = threading.Lock()
                self._locks[pair] = lock
            return lock

    @contextmanager
    def hold(self, pairs: Iterable[Pair]) -> Generator[None, None, None]:
        locks = [self.lock_for(pair) for pair in sorted(set(pairs))]
        acquired = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
