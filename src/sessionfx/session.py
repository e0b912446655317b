"""Session: one isolated reactive graph.

A Session owns its own Anchor, SignalStore, DerivationCache, EffectRunner and
InvalidationEngine. Nothing is shared between sessions, so two browser
connections (or two tests) never see each other's values.

Usage:
    session = Session()
    session.signal("x", "sepal_length")

    @session.calc
    def label():
        return session.get("x").replace("_", " ")

    session.on_change("title", [], label.get, render=print)
    # prints "sepal length"
    session.set("x", "petal_length")
    # prints "petal length"
"""

from __future__ import annotations

import functools
import logging
import uuid
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, Mapping, ParamSpec, TypeVar

from sessionfx._anchor import Anchor, NodeState
from sessionfx.derivation import Derivation, DerivationCache
from sessionfx.effect import Effect, EffectRunner, Render
from sessionfx.engine import InvalidationEngine
from sessionfx.errors import EffectFailure, UnknownName, UnknownSignal
from sessionfx.signal import Signal, SignalStore

P = ParamSpec("P")
R = TypeVar("R")
T = TypeVar("T")

logger = logging.getLogger("sessionfx.session")


class Session:
    def __init__(
        self,
        session_id: str | None = None,
        *,
        change_detection: bool = True,
        auto_declare: bool = False,
        max_reruns: int = 100,
        on_error: Callable[[EffectFailure], object] | None = None,
        failure_history: int = 100,
    ) -> None:
        self.id = session_id or uuid.uuid4().hex[:12]
        self._anchor = Anchor()
        self.engine = InvalidationEngine(self._anchor, max_reruns=max_reruns)
        self.signals = SignalStore(
            self._anchor,
            self.engine,
            change_detection=change_detection,
            auto_declare=auto_declare,
        )
        self.derivations = DerivationCache(self._anchor)
        self.effects = EffectRunner(
            self._anchor,
            self.engine,
            on_error=on_error,
            failure_history=failure_history,
        )
        self.closed = False

    # --- Signals ---

    def signal(self, name: str, value: object = None) -> Signal:
        """Declare a signal with an initial value."""
        return self.signals.declare(name, value)

    def set(self, name: str, value: object) -> None:
        self.signals.set(name, value)

    def update(self, values: Mapping[str, object]) -> None:
        """Write several signals as one batch.

        Every name is checked before anything is written.
        """
        if not self.signals.auto_declare:
            for name in values:
                if name not in self.signals:
                    raise UnknownSignal(name)
        with self.engine.batch():
            for name, value in values.items():
                self.signals.set(name, value)

    def set_scheduler(self, scheduler: Callable[[Callable[[], None]], object]) -> None:
        self.signals.set_scheduler(scheduler)

    # --- Reads ---

    def node(self, name: str):
        """Any signal, derivation or effect by name."""
        node = self._anchor.lookup(name)
        if node is None:
            raise UnknownName(name)
        return node

    def get(self, name: str) -> object:
        """Read a signal or derivation, tracking the read."""
        node = self._anchor.lookup(name)
        if node is None or node.kind == "effect":
            raise UnknownSignal(name)
        return node.get()

    def __getitem__(self, name: str) -> object:
        return self.get(name)

    # --- Derivations ---

    def define(self, name: str, fn: Callable[[], T]) -> Derivation[T]:
        return self.derivations.define(name, fn)

    def calc(self, fn: Callable[[], T]) -> Derivation[T]:
        """Decorator: define a derivation named after the function.

        Usage:
            @session.calc
            def doubled():
                return session.get("n") * 2

            doubled.get()
        """
        return self.define(fn.__name__, fn)

    # --- Effects ---

    def on_change(
        self,
        name: str,
        dependencies: Iterable[str],
        callback: Callable[[], object],
        *,
        render: Render | None = None,
    ) -> Effect:
        return self.effects.on_change(name, dependencies, callback, render=render)

    def on_event(
        self,
        name: str,
        triggers: Iterable[str],
        callback: Callable[[], object],
        *,
        render: Render | None = None,
    ) -> Effect:
        return self.effects.on_event(name, triggers, callback, render=render)

    def effect(self, *dependencies: str, render: Render | None = None) -> Callable[[Callable[[], object]], Effect]:
        """Decorator form of on_change."""

        def decorate(fn: Callable[[], object]) -> Effect:
            return self.on_change(fn.__name__, dependencies, fn, render=render)

        return decorate

    def event(self, *triggers: str, render: Render | None = None) -> Callable[[Callable[[], object]], Effect]:
        """Decorator form of on_event."""

        def decorate(fn: Callable[[], object]) -> Effect:
            return self.on_event(fn.__name__, triggers, fn, render=render)

        return decorate

    @property
    def failures(self) -> list[EffectFailure]:
        return list(self.effects.failures)

    # --- Batching ---

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Context manager for batching writes.

        Usage:
            with session.batch():
                session.set("x", "petal_length")
                session.set("y", "petal_width")
                # effects run here, once each
        """
        with self.engine.batch():
            yield

    def action(self, fn: Callable[P, R]) -> Callable[P, R]:
        """Decorator: batch all writes made inside fn."""

        @functools.wraps(fn)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            with self.engine.batch():
                return fn(*args, **kwargs)

        return wrapper

    # --- Introspection ---

    def state(self, name: str) -> NodeState:
        """Current state of a derivation or effect. Signals are always clean."""
        node = self.node(name)
        if node.kind == "signal":
            return NodeState.CLEAN
        return self._anchor.states[node._id]

    def dependencies(self, name: str) -> list[str]:
        """Names the node read on its last evaluation, sorted."""
        node = self.node(name)
        deps = self._anchor.dependencies.get(node._id, ())
        return sorted(dep.name for dep in deps)

    def dependents(self, name: str) -> list[str]:
        """Names of the nodes that read this one on their last evaluation."""
        node = self.node(name)
        return sorted(
            other.name
            for other in self._anchor.names.values()
            if node in self._anchor.dependencies.get(other._id, ())
        )

    def __contains__(self, name: object) -> bool:
        return name in self._anchor.names

    # --- Lifecycle ---

    def close(self) -> None:
        """Dispose every effect and derivation. Signal values stay readable."""
        if self.closed:
            return
        self.effects.dispose()
        self.derivations.dispose()
        self.closed = True
        logger.debug("Session %s closed", self.id)

    def __repr__(self) -> str:
        return (
            f"Session({self.id}, signals={len(self.signals)}, "
            f"derivations={len(self.derivations)}, effects={len(self.effects)})"
        )
