"""Invalidation engine: dirty marking, effect scheduling and batching.

On a signal write the engine walks the graph outward, marking every
reachable Derivation dirty (once) and collecting every Effect subscribed to
something that changed. Collected effects run in registration order; each
pulls the derivations it needs, which recompute lazily.

Batching: writes inside `with session.batch()` invalidate immediately but
defer effects until the outermost scope exits, so each affected effect runs
once and sees every write of the batch.
"""

from __future__ import annotations

import logging
from collections import Counter
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterator

from sessionfx._anchor import Anchor
from sessionfx.errors import CascadeOverflow

if TYPE_CHECKING:
    from sessionfx.effect import Effect

logger = logging.getLogger("sessionfx.engine")


class InvalidationEngine:
    def __init__(self, anchor: Anchor, *, max_reruns: int = 100) -> None:
        self._anchor = anchor
        self.max_reruns = max_reruns
        # Set by the EffectRunner that owns effect isolation.
        self.run_effect: Callable[[Effect], object] | None = None
        self._batch_depth = 0
        self._flushing = False
        # Effects waiting to run, keyed by registration order.
        self._pending: dict[int, Effect] = {}

    def invalidate(self, source) -> None:
        """Mark everything downstream of source dirty and schedule effects."""
        observers = self._anchor.observers
        stack = [source]
        walked = set()
        marked = 0
        while stack:
            node = stack.pop()
            for observer in list(observers[node._id]):
                if observer.kind == "derivation":
                    if observer._mark_dirty():
                        marked += 1
                    # A derivation left dirty by a failed evaluation still
                    # has readers waiting on it.
                    if observer._id not in walked:
                        walked.add(observer._id)
                        stack.append(observer)
                elif not observer.disposed:
                    self._pending[observer.order] = observer

        logger.debug(
            "Write to %r invalidated %d derivations, %d effects pending",
            source.name, marked, len(self._pending),
        )
        if self._batch_depth == 0:
            self.flush()

    def flush(self) -> None:
        """Run pending effects in registration order until none are left.

        Writes made by running effects join the same pass. An effect already
        waiting is not queued twice.
        """
        if self._flushing:
            return
        self._flushing = True
        runs: Counter[str] = Counter()
        try:
            while self._pending:
                effect = self._pending.pop(min(self._pending))
                runs[effect.name] += 1
                if runs[effect.name] > self.max_reruns:
                    raise CascadeOverflow(effect.name, runs[effect.name])
                self.run_effect(effect)
        finally:
            self._pending.clear()
            self._flushing = False

    def begin_batch(self) -> None:
        """Enter a batching scope. Nested batches are supported."""
        self._batch_depth += 1

    def end_batch(self) -> None:
        """Exit a batching scope. The outermost exit flushes pending effects."""
        self._batch_depth -= 1
        if self._batch_depth == 0:
            self.flush()

    @contextmanager
    def batch(self) -> Iterator[None]:
        self.begin_batch()
        try:
            yield
        finally:
            self.end_batch()

    @property
    def in_batch(self) -> bool:
        return self._batch_depth > 0

    def pending_count(self) -> int:
        """Number of effects waiting to run. Useful for testing."""
        return len(self._pending)
