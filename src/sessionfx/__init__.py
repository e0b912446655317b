"""sessionfx: session-scoped reactive dataflow for interactive data apps."""

from importlib.metadata import version as _version

__version__ = _version("sessionfx")

from sessionfx._anchor import NodeState
from sessionfx.errors import (
    CascadeOverflow,
    CyclicDependency,
    DuplicateName,
    EffectFailure,
    InvalidInput,
    ReactiveError,
    UnknownColumn,
    UnknownDerivation,
    UnknownEffect,
    UnknownName,
    UnknownSession,
    UnknownSignal,
    UnknownWidget,
)
from sessionfx.signal import Signal, SignalStore
from sessionfx.derivation import Derivation, DerivationCache
from sessionfx.effect import Effect, EffectRunner
from sessionfx.engine import InvalidationEngine
from sessionfx.session import Session
from sessionfx.inputs import InputBinding, InputKind, InputMap
from sessionfx.dataset import DataSource, Table
from sessionfx.app import App
from sessionfx.scatter import ScatterPlot, scatter_inputs, scatter_server
# textual NOT auto-imported, opt-in only

__all__ = [
    "App",
    "CascadeOverflow",
    "CyclicDependency",
    "DataSource",
    "Derivation",
    "DerivationCache",
    "DuplicateName",
    "Effect",
    "EffectFailure",
    "EffectRunner",
    "InputBinding",
    "InputKind",
    "InputMap",
    "InvalidInput",
    "InvalidationEngine",
    "NodeState",
    "ReactiveError",
    "ScatterPlot",
    "Session",
    "Signal",
    "SignalStore",
    "Table",
    "UnknownColumn",
    "UnknownDerivation",
    "UnknownEffect",
    "UnknownName",
    "UnknownSession",
    "UnknownSignal",
    "UnknownWidget",
    "scatter_inputs",
    "scatter_server",
]
