"""
=============================================================================
OBJECT POOL
=============================================================================

Reuses expensive-to-build objects across requests. staticserve keeps one
pool of gzip writers: allocating a fresh deflate state for every
compressed response costs far more than resetting an idle one.

    acquire() ──► idle object, or factory() if none is idle
                       │
                       ▼
              checked out: owned by exactly ONE response
                       │
    release() ◄────────┘   back to the idle list (or dropped if the
                           idle list is already at max_idle)

    with pool.borrow() as writer:    acquire + guaranteed release
        ...

The pool enforces single ownership: releasing an object that is not
checked out (a double release, or a stranger) raises PoolError instead
of letting two responses share one object later.

=============================================================================
"""

import threading
from contextlib import contextmanager
from typing import Callable, Dict, Generic, Iterator, List, Optional, TypeVar


T = TypeVar("T")


class PoolError(RuntimeError):
    """An object was released that this pool had not handed out."""


class ObjectPool(Generic[T]):
    """
    Thread-safe pool of reusable objects.

    Args:
        factory:  Builds a new object when none is idle.
        max_idle: Keep at most this many idle objects; None keeps all.

    Usage:
        pool = ObjectPool(lambda: GzipWriter(level=6), max_idle=32)
        with pool.borrow() as writer:
            writer.reset(target)
            ...
    """

    def __init__(self, factory: Callable[[], T], max_idle: Optional[int] = None):
        self._factory = factory
        self._max_idle = max_idle
        self._lock = threading.Lock()
        self._idle: List[T] = []
        self._checked_out: Dict[int, T] = {}
        self.created = 0

    def acquire(self) -> T:
        """Take an idle object or build a new one."""
        with self._lock:
            if self._idle:
                obj = self._idle.pop()
            else:
                obj = None

        if obj is None:
            obj = self._factory()
            with self._lock:
                self.created += 1

        with self._lock:
            self._checked_out[id(obj)] = obj
        return obj

    def release(self, obj: T) -> None:
        """
        Return a checked-out object.

        Raises:
            PoolError: If obj is not currently checked out of this pool.
        """
        with self._lock:
            if self._checked_out.pop(id(obj), None) is None:
                raise PoolError(f"{type(obj).__name__} was not checked out of this pool")
            if self._max_idle is None or len(self._idle) < self._max_idle:
                self._idle.append(obj)

    @contextmanager
    def borrow(self) -> Iterator[T]:
        obj = self.acquire()
        try:
            yield obj
        finally:
            self.release(obj)

    @property
    def idle_count(self) -> int:
        with self._lock:
            return len(self._idle)

    @property
    def in_use(self) -> int:
        with self._lock:
            return len(self._checked_out)
