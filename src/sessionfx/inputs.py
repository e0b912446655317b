"""Input bindings: map widget events onto session signals.

Each InputBinding ties a widget id to a signal name and a value domain.
InputMap.install() declares the signals with their defaults; deliver()
coerces a raw widget value and writes it. deliver_many() writes several
values as one batch, the way one user action would.

Action buttons carry a click count: every press increments it, so an event
gated on the button fires once per press.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Iterator, Mapping

from sessionfx.errors import InvalidInput, UnknownWidget

if TYPE_CHECKING:
    from sessionfx.session import Session

_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0", ""}


class InputKind(str, Enum):
    CHOICE = "choice"
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ACTION = "action"


@dataclass(frozen=True)
class InputBinding:
    widget_id: str
    signal: str | None = None
    kind: InputKind = InputKind.TEXT
    choices: tuple = ()
    default: object = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", InputKind(self.kind))
        object.__setattr__(self, "choices", tuple(self.choices))
        if self.signal is None:
            object.__setattr__(self, "signal", self.widget_id)
        if self.kind is InputKind.CHOICE and not self.choices:
            raise ValueError(f"Choice input {self.widget_id!r} needs choices")

    @property
    def initial(self) -> object:
        if self.kind is InputKind.ACTION:
            return 0
        if self.default is not None:
            return self.coerce(self.default)
        if self.kind is InputKind.CHOICE:
            return self.choices[0]
        if self.kind is InputKind.BOOLEAN:
            return False
        return self.default

    def coerce(self, raw: object) -> object:
        """Convert a raw widget value into the signal's domain."""
        kind = self.kind
        if kind is InputKind.CHOICE:
            if raw not in self.choices:
                raise InvalidInput(self.widget_id, raw, f"expected one of {list(self.choices)}")
            return raw
        if kind is InputKind.NUMBER:
            if isinstance(raw, bool):
                raise InvalidInput(self.widget_id, raw, "expected a number")
            try:
                return float(raw)
            except (TypeError, ValueError) as exc:
                raise InvalidInput(self.widget_id, raw, "expected a number") from exc
        if kind is InputKind.BOOLEAN:
            if isinstance(raw, bool):
                return raw
            text = str(raw).strip().lower()
            if text in _TRUE:
                return True
            if text in _FALSE:
                return False
            raise InvalidInput(self.widget_id, raw, "expected a boolean")
        if kind is InputKind.TEXT:
            return "" if raw is None else str(raw)
        return raw


class InputMap:
    """Widget id -> InputBinding table shared by every session of an app."""

    def __init__(self, bindings: Iterable[InputBinding] = ()) -> None:
        self._bindings: dict[str, InputBinding] = {}
        for binding in bindings:
            self.add(binding)

    def add(self, binding: InputBinding) -> None:
        if binding.widget_id in self._bindings:
            raise ValueError(f"Widget already bound: {binding.widget_id!r}")
        self._bindings[binding.widget_id] = binding

    def binding(self, widget_id: str) -> InputBinding:
        binding = self._bindings.get(widget_id)
        if binding is None:
            raise UnknownWidget(widget_id)
        return binding

    def install(self, session: Session) -> None:
        """Declare one signal per binding in session."""
        for binding in self._bindings.values():
            session.signal(binding.signal, binding.initial)

    def deliver(self, session: Session, widget_id: str, raw: object = None) -> None:
        """Write one widget event into session."""
        binding, value = self._convert(session, widget_id, raw)
        session.set(binding.signal, value)

    def deliver_many(self, session: Session, events: Mapping[str, object]) -> None:
        """Write several widget events as one batch. Nothing is written if any is invalid."""
        values = {}
        for widget_id, raw in events.items():
            binding, value = self._convert(session, widget_id, raw)
            values[binding.signal] = value
        session.update(values)

    def _convert(self, session: Session, widget_id: str, raw: object) -> tuple[InputBinding, object]:
        binding = self.binding(widget_id)
        if binding.kind is InputKind.ACTION:
            return binding, session.signals.peek(binding.signal) + 1
        return binding, binding.coerce(raw)

    def __iter__(self) -> Iterator[InputBinding]:
        return iter(self._bindings.values())

    def __len__(self) -> int:
        return len(self._bindings)

    def __contains__(self, widget_id: object) -> bool:
        return widget_id in self._bindings
