"""Signals: named mutable values that track their readers.

When a Signal is read inside a Derivation or Effect evaluation, the
dependency is registered automatically. When the SignalStore writes a new
value, the session's InvalidationEngine marks every dependent dirty and
schedules the affected effects before set() returns.

All state lives in the session's Anchor; Signal instances are thin handles.

Thread safety: call set_scheduler() once from the thread that owns the
session. After that, any set() from another thread is marshaled through the
scheduler. Same-thread writes remain synchronous.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Callable, Generic, Iterator, TypeVar

from sessionfx._anchor import Anchor
from sessionfx._tracking import track
from sessionfx.errors import UnknownSignal

if TYPE_CHECKING:
    from sessionfx.engine import InvalidationEngine

T = TypeVar("T")


class Signal(Generic[T]):
    """A single named value with automatic dependency tracking."""

    __slots__ = ("_id", "_anchor", "name")

    kind = "signal"

    def __init__(self, anchor: Anchor, name: str, value: T) -> None:
        self._anchor = anchor
        self._id = anchor.new_id()
        self.name = name
        anchor.values[self._id] = value
        anchor.observers[self._id] = set()

    def get(self) -> T:
        """Read the value. If inside an evaluation, registers the dependency."""
        track(self)
        return self._anchor.values[self._id]

    def peek(self) -> T:
        """Read the value without registering a dependency."""
        return self._anchor.values[self._id]

    def _remove_observer(self, observer) -> None:
        self._anchor.observers[self._id].discard(observer)

    def __repr__(self) -> str:
        return f"Signal({self.name}={self._anchor.values[self._id]!r})"


class SignalStore:
    """Named Signals for one session.

    With change_detection on, writing the value a signal already holds is a
    no-op. With it off, every write invalidates dependents.
    With auto_declare on, writing an undeclared name declares it.
    """

    def __init__(
        self,
        anchor: Anchor,
        engine: InvalidationEngine,
        *,
        change_detection: bool = True,
        auto_declare: bool = False,
    ) -> None:
        self._anchor = anchor
        self._engine = engine
        self._signals: dict[str, Signal] = {}
        self.change_detection = change_detection
        self.auto_declare = auto_declare
        self._scheduler: Callable[[Callable[[], None]], object] | None = None
        self._scheduler_thread: threading.Thread | None = None

    def declare(self, name: str, value: object = None) -> Signal:
        signal = Signal(self._anchor, name, value)
        self._anchor.register(name, signal)
        self._signals[name] = signal
        return signal

    def signal(self, name: str) -> Signal:
        signal = self._signals.get(name)
        if signal is None:
            raise UnknownSignal(name)
        return signal

    def get(self, name: str) -> object:
        return self.signal(name).get()

    def peek(self, name: str) -> object:
        return self.signal(name).peek()

    def set(self, name: str, value: object) -> None:
        """Write a value. Marshals to the scheduler thread when one is set."""
        signal = self._signals.get(name)
        if signal is None:
            if not self.auto_declare:
                raise UnknownSignal(name)
            signal = self.declare(name)
        if self._scheduler is not None and threading.current_thread() is not self._scheduler_thread:
            self._scheduler(lambda s=signal, v=value: self._set_direct(s, v))
        else:
            self._set_direct(signal, value)

    def _set_direct(self, signal: Signal, value: object) -> bool:
        """Store the value and invalidate dependents. Returns whether it changed."""
        values = self._anchor.values
        old = values[signal._id]
        if self.change_detection and _same(old, value):
            return False
        values[signal._id] = value
        self._engine.invalidate(signal)
        return True

    def set_scheduler(self, scheduler: Callable[[Callable[[], None]], object]) -> None:
        """Route writes from other threads through scheduler.

        Call once from the thread that owns the session:
            session.set_scheduler(app.call_from_thread)
        """
        self._scheduler = scheduler
        self._scheduler_thread = threading.current_thread()

    def __contains__(self, name: object) -> bool:
        return name in self._signals

    def __iter__(self) -> Iterator[str]:
        return iter(self._signals)

    def __len__(self) -> int:
        return len(self._signals)


def _same(old: object, new: object) -> bool:
    # Array-like values compare elementwise and refuse bool().
    if old is new:
        return True
    try:
        return bool(old == new)
    except (TypeError, ValueError):
        return False
