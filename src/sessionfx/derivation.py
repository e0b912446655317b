"""Derivations: named, lazily computed values with automatic dependency tracking.

A Derivation wraps a function. When evaluated, it records which signals and
derivations the function reads and caches the result. When any dependency
changes, the InvalidationEngine marks it dirty. On the next read, it
re-evaluates with a fresh dependency set, so the edges can differ from one
evaluation to the next.

Derivations are lazy: they only recompute when read.

All state lives in the session's Anchor; instances are thin handles.
"""

from __future__ import annotations

from typing import Callable, Generic, Iterator, TypeVar

from sessionfx import _tracking
from sessionfx._anchor import Anchor, NodeState
from sessionfx.errors import CyclicDependency, UnknownDerivation

T = TypeVar("T")

_UNSET = object()


class Derivation(Generic[T]):
    """A derived value that auto-tracks dependencies and caches the result."""

    __slots__ = ("_id", "_anchor", "name", "evaluations", "invalidations")

    kind = "derivation"

    def __init__(self, anchor: Anchor, name: str, fn: Callable[[], T]) -> None:
        self._anchor = anchor
        self._id = anchor.new_id()
        self.name = name
        self.evaluations = 0
        self.invalidations = 0
        anchor.fns[self._id] = fn
        anchor.cached_values[self._id] = _UNSET
        anchor.states[self._id] = NodeState.DIRTY
        anchor.dependencies[self._id] = set()
        anchor.observers[self._id] = set()

    @property
    def _fn(self) -> Callable[[], T]:
        return self._anchor.fns[self._id]

    @property
    def state(self) -> NodeState:
        return self._anchor.states[self._id]

    def get(self) -> T:
        """Read the derived value. Recomputes if dirty."""
        if self.state is NodeState.COMPUTING:
            raise CyclicDependency(self._cycle_path())

        _tracking.track(self)
        if self.state is NodeState.DIRTY:
            self._recompute()
        return self._anchor.cached_values[self._id]

    def _recompute(self) -> None:
        """Re-evaluate the function, tracking dependencies."""
        anchor = self._anchor
        for dep in anchor.dependencies[self._id]:
            dep._remove_observer(self)
        anchor.dependencies[self._id].clear()

        anchor.states[self._id] = NodeState.COMPUTING
        try:
            with _tracking.evaluating(self):
                value = self._fn()
        except BaseException:
            anchor.states[self._id] = NodeState.DIRTY
            raise

        anchor.cached_values[self._id] = value
        anchor.states[self._id] = NodeState.CLEAN
        self.evaluations += 1

    def _track(self, source) -> None:
        self._anchor.observers[source._id].add(self)
        self._anchor.dependencies[self._id].add(source)

    def _mark_dirty(self) -> bool:
        """Called by the engine when a dependency changed.

        Returns True when this call moved the derivation from clean to dirty.
        """
        state = self.state
        if state is NodeState.COMPUTING:
            raise CyclicDependency(
                (self.name,),
                f"Derivation {self.name!r} was invalidated while computing",
            )
        if state is NodeState.DIRTY:
            return False
        self._anchor.states[self._id] = NodeState.DIRTY
        self.invalidations += 1
        return True

    def _remove_observer(self, observer) -> None:
        self._anchor.observers[self._id].discard(observer)

    def _cycle_path(self) -> tuple[str, ...]:
        names = [node.name for node in _tracking.stack()]
        if self.name in names:
            names = names[names.index(self.name):]
        return (*names, self.name)

    def dispose(self) -> None:
        """Disconnect from all dependencies. The derivation becomes inert."""
        anchor = self._anchor
        for dep in anchor.dependencies[self._id]:
            dep._remove_observer(self)
        anchor.dependencies[self._id].clear()
        anchor.observers[self._id].clear()
        anchor.states[self._id] = NodeState.DIRTY
        anchor.cached_values[self._id] = _UNSET

    def __repr__(self) -> str:
        val = self._anchor.cached_values[self._id]
        state = "dirty" if self.state is NodeState.DIRTY else f"cached={val!r}"
        return f"Derivation({self.name}, {state})"


class DerivationCache:
    """Named Derivations for one session."""

    def __init__(self, anchor: Anchor) -> None:
        self._anchor = anchor
        self._derivations: dict[str, Derivation] = {}

    def define(self, name: str, fn: Callable[[], T]) -> Derivation[T]:
        derivation = Derivation(self._anchor, name, fn)
        self._anchor.register(name, derivation)
        self._derivations[name] = derivation
        return derivation

    def derivation(self, name: str) -> Derivation:
        derivation = self._derivations.get(name)
        if derivation is None:
            raise UnknownDerivation(name)
        return derivation

    def get(self, name: str) -> object:
        return self.derivation(name).get()

    def dispose(self) -> None:
        for derivation in self._derivations.values():
            derivation.dispose()

    def __contains__(self, name: object) -> bool:
        return name in self._derivations

    def __iter__(self) -> Iterator[str]:
        return iter(self._derivations)

    def __len__(self) -> int:
        return len(self._derivations)
