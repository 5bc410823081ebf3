"""Scoped scratch buffers for per-frame vector and matrix arithmetic.

Two entry points:

1. ``pool.get()`` / ``pool.release(*items)``: manual acquire/return.

2. ``pool.scoped(n)``: context manager, hands out ``n`` buffers and returns
   them when the block exits, even on error.  Prefer this form: a pooled
   buffer must never outlive the function that acquired it.

Usage::

    with matrices.scoped(2) as (inverse, relative):
        np.copyto(inverse, np.linalg.inv(parent.matrix_world))
        np.matmul(inverse, child.matrix_world, out=relative)

Pools are not thread-safe; the engine runs single-threaded inside one frame.
"""
from __future__ import annotations

import contextlib
import logging
from typing import Callable, Generator, Generic, List, Tuple, TypeVar

import numpy as np

log = logging.getLogger(__name__)

T = TypeVar("T")


class ScratchPool(Generic[T]):
    """Free-list of reusable buffers built by ``factory`` and cleared by ``reset``."""

    def __init__(self, factory: Callable[[], T], reset: Callable[[T], None], name: str = "pool"):
        self._factory = factory
        self._reset = reset
        self._free: List[T] = []
        self.name = name
        self.outstanding = 0

    def get(self) -> T:
        self.outstanding += 1
        if self._free:
            return self._free.pop()
        return self._factory()

    def release(self, *items: T) -> None:
        for item in items:
            self._reset(item)
            self._free.append(item)
        self.outstanding -= len(items)
        if self.outstanding < 0:
            log.warning("[%s] released more buffers than were acquired", self.name)
            self.outstanding = 0

    @contextlib.contextmanager
    def scoped(self, count: int = 1) -> Generator[Tuple[T, ...], None, None]:
        items = tuple(self.get() for _ in range(count))
        try:
            yield items
        finally:
            self.release(*items)

    @property
    def free_count(self) -> int:
        return len(self._free)


def _zero(vec: np.ndarray) -> None:
    vec.fill(0.0)


def _identity(mat: np.ndarray) -> None:
    mat.fill(0.0)
    np.fill_diagonal(mat, 1.0)


vectors: ScratchPool[np.ndarray] = ScratchPool(lambda: np.zeros(3), _zero, name="vectors")
matrices: ScratchPool[np.ndarray] = ScratchPool(lambda: np.eye(4), _identity, name="matrices")
