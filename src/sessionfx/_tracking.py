"""Dependency tracking: the evaluation context stack.

Uses a contextvar holding the stack of nodes currently being evaluated.
Reading a Signal or Derivation records an edge from whichever node is on
top of the stack. Evaluating a node pushes it; finishing pops it.

The stack lives in a contextvar rather than on the Session so that a read
never needs the session passed in; edges are only recorded between nodes
of the same session.
"""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

if TYPE_CHECKING:
    from sessionfx.derivation import Derivation
    from sessionfx.effect import Effect

    Evaluator = Derivation | Effect

_stack: contextvars.ContextVar[tuple[Evaluator, ...]] = contextvars.ContextVar(
    "sessionfx_evaluation_stack", default=()
)


def current() -> Evaluator | None:
    """The node being evaluated right now, if any."""
    stack = _stack.get()
    return stack[-1] if stack else None


def stack() -> tuple[Evaluator, ...]:
    return _stack.get()


@contextmanager
def evaluating(node: Evaluator) -> Iterator[None]:
    """Push node for the duration of the block."""
    token = _stack.set(_stack.get() + (node,))
    try:
        yield
    finally:
        _stack.reset(token)


@contextmanager
def untracked() -> Iterator[None]:
    """Run a block with no evaluator on the stack, so reads record nothing."""
    token = _stack.set(())
    try:
        yield
    finally:
        _stack.reset(token)


def track(source) -> None:
    """Register source as a dependency of the current evaluator."""
    node = current()
    if node is not None and node._anchor is source._anchor:
        node._track(source)
