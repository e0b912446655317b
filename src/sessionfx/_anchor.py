"""Data anchor: plain Python structures that hold one session's reactive state.

Signals, Derivations and Effects are thin handles holding an _id; their
values, caches, states and edges live here. Every Session owns exactly one
Anchor, so two sessions never share mutable state.
"""

import itertools
from enum import Enum

from sessionfx.errors import DuplicateName


class NodeState(Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    COMPUTING = "computing"


class Anchor:
    __slots__ = (
        "values",
        "observers",
        "dependencies",
        "states",
        "cached_values",
        "fns",
        "disposed",
        "names",
        "_id_counter",
    )

    def __init__(self) -> None:
        # Signal state
        self.values: dict[int, object] = {}
        # node_id -> nodes notified when it changes
        self.observers: dict[int, set] = {}

        # Derivation + Effect state
        self.dependencies: dict[int, set] = {}  # node_id -> nodes it read
        self.states: dict[int, NodeState] = {}
        self.cached_values: dict[int, object] = {}
        self.fns: dict[int, object] = {}
        self.disposed: dict[int, bool] = {}

        # One namespace for every node in the session
        self.names: dict[str, object] = {}

        self._id_counter = itertools.count(1)

    def new_id(self) -> int:
        return next(self._id_counter)

    def register(self, name: str, node) -> None:
        if name in self.names:
            raise DuplicateName(name)
        self.names[name] = node

    def unregister(self, name: str) -> None:
        node = self.names.pop(name)
        self.fns.pop(node._id, None)

    def lookup(self, name: str):
        return self.names.get(name)
