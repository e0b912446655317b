"""Effects: side effects driven by signal and derivation changes.

Unlike a Derivation (lazy, evaluated on read), an Effect runs eagerly when
the InvalidationEngine schedules it.

Two flavors:
- on_change: runs at registration, re-runs after any invalidating write to a
  listed dependency or to anything the callback read on its last run.
- on_event: never runs at registration; re-runs only after a write to one of
  its triggers. Reads inside the callback are recorded as edges but do not
  re-run it, so the callback always sees the latest values.

A failure inside an effect is caught here, wrapped in EffectFailure, logged,
and reported. It never stops other effects in the same pass.

All state lives in the session's Anchor; instances are thin handles.
"""

from __future__ import annotations

import itertools
import logging
from collections import deque
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, Sequence

from sessionfx import _tracking
from sessionfx._anchor import Anchor, NodeState
from sessionfx.errors import CyclicDependency, EffectFailure, UnknownEffect, UnknownSignal

if TYPE_CHECKING:
    from sessionfx.engine import InvalidationEngine

logger = logging.getLogger("sessionfx.effect")

Render = Callable[[object], object]


class Effect:
    """A named side effect with optional trigger gating and an output render."""

    __slots__ = (
        "_id",
        "_anchor",
        "name",
        "order",
        "runs",
        "_render",
        "_sources",
        "_gated",
        "_arming",
    )

    kind = "effect"

    def __init__(
        self,
        anchor: Anchor,
        name: str,
        order: int,
        fn: Callable[[], object],
        sources: Sequence = (),
        *,
        gated: bool = False,
        render: Render | None = None,
    ) -> None:
        self._anchor = anchor
        self._id = anchor.new_id()
        self.name = name
        self.order = order
        self.runs = 0
        self._render = render
        self._sources = tuple(sources)
        self._gated = gated
        self._arming = False
        anchor.fns[self._id] = fn
        anchor.dependencies[self._id] = set()
        anchor.states[self._id] = NodeState.CLEAN
        anchor.disposed[self._id] = False

    @property
    def _fn(self) -> Callable[[], object]:
        return self._anchor.fns[self._id]

    @property
    def gated(self) -> bool:
        return self._gated

    @property
    def disposed(self) -> bool:
        return self._anchor.disposed[self._id]

    @property
    def triggers(self) -> tuple[str, ...]:
        return tuple(source.name for source in self._sources) if self._gated else ()

    def _arm(self) -> None:
        """Drop old edges and subscribe to the listed sources."""
        anchor = self._anchor
        for dep in anchor.dependencies[self._id]:
            dep._remove_observer(self)
        anchor.dependencies[self._id].clear()

        self._arming = True
        try:
            for source in self._sources:
                source.get()
        finally:
            self._arming = False

    def _run(self) -> None:
        """Re-arm, run the callback while tracking reads, then render."""
        if self.disposed:
            return

        anchor = self._anchor
        anchor.states[self._id] = NodeState.COMPUTING
        try:
            with _tracking.evaluating(self):
                self._arm()
                self.runs += 1
                result = self._fn()
        finally:
            anchor.states[self._id] = NodeState.CLEAN

        if self._render is not None:
            with _tracking.untracked():
                self._render(result)

    def _track(self, source) -> None:
        self._anchor.dependencies[self._id].add(source)
        if not self._gated or self._arming:
            self._anchor.observers[source._id].add(self)

    def dispose(self) -> None:
        """Stop this effect. Disconnects from all dependencies."""
        anchor = self._anchor
        anchor.disposed[self._id] = True
        for dep in anchor.dependencies[self._id]:
            dep._remove_observer(self)
        anchor.dependencies[self._id].clear()

    def __repr__(self) -> str:
        state = "disposed" if self.disposed else "active"
        flavor = "event" if self._gated else "change"
        return f"Effect({self.name}, {flavor}, {state})"


class EffectRunner:
    """Registers effects for one session and runs them in isolation."""

    def __init__(
        self,
        anchor: Anchor,
        engine: InvalidationEngine,
        *,
        on_error: Callable[[EffectFailure], object] | None = None,
        failure_history: int = 100,
    ) -> None:
        self._anchor = anchor
        self._engine = engine
        self._effects: dict[str, Effect] = {}
        self._order = itertools.count()
        self.on_error = on_error
        self.failures: deque[EffectFailure] = deque(maxlen=failure_history)
        engine.run_effect = self.run

    def on_change(
        self,
        name: str,
        dependencies: Iterable[str],
        callback: Callable[[], object],
        *,
        render: Render | None = None,
    ) -> Effect:
        """Register a continuous effect and run it once to record its baseline."""
        effect = self._register(name, dependencies, callback, gated=False, render=render)
        with self._engine.batch():
            try:
                effect._run()
            except CyclicDependency:
                # A cycle found while wiring is a construction error.
                self._discard(effect)
                raise
            except Exception as exc:
                self._report(self._failure(effect, exc))
        return effect

    def on_event(
        self,
        name: str,
        triggers: Iterable[str],
        callback: Callable[[], object],
        *,
        render: Render | None = None,
    ) -> Effect:
        """Register an effect that runs only when one of triggers is written."""
        triggers = list(triggers)
        if not triggers:
            raise ValueError(f"Event effect {name!r} needs at least one trigger")
        effect = self._register(name, triggers, callback, gated=True, render=render)
        with _tracking.evaluating(effect):
            effect._arm()
        return effect

    def _register(self, name, sources, callback, *, gated, render) -> Effect:
        resolved = []
        for source_name in sources:
            source = self._anchor.lookup(source_name)
            if source is None or source.kind == "effect":
                raise UnknownSignal(source_name)
            resolved.append(source)

        effect = Effect(
            self._anchor,
            name,
            next(self._order),
            callback,
            resolved,
            gated=gated,
            render=render,
        )
        self._anchor.register(name, effect)
        self._effects[name] = effect
        return effect

    def _discard(self, effect: Effect) -> None:
        """Dispose a half-registered effect and free its name."""
        effect.dispose()
        del self._effects[effect.name]
        self._anchor.unregister(effect.name)

    def run(self, effect: Effect) -> EffectFailure | None:
        """Run one effect. Failures are reported and returned, never raised."""
        try:
            effect._run()
        except Exception as exc:
            failure = self._failure(effect, exc)
            self._report(failure)
            return failure
        return None

    @staticmethod
    def _failure(effect: Effect, exc: Exception) -> EffectFailure:
        failure = EffectFailure(effect.name, exc)
        failure.__cause__ = exc
        return failure

    def _report(self, failure: EffectFailure) -> None:
        logger.error("Effect %r failed", failure.name, exc_info=failure.cause)
        self.failures.append(failure)
        if self.on_error is not None:
            try:
                self.on_error(failure)
            except Exception:
                logger.exception("Error observer raised while reporting %r", failure.name)

    def effect(self, name: str) -> Effect:
        effect = self._effects.get(name)
        if effect is None:
            raise UnknownEffect(name)
        return effect

    def dispose(self) -> None:
        for effect in self._effects.values():
            effect.dispose()

    def __contains__(self, name: object) -> bool:
        return name in self._effects

    def __iter__(self) -> Iterator[str]:
        return iter(self._effects)

    def __len__(self) -> int:
        return len(self._effects)
