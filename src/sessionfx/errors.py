"""Error taxonomy for sessionfx.

Lookup errors are fatal to the calling operation only. Construction errors
(duplicate names, cycles found while wiring) surface immediately. Failures
inside effects are wrapped in EffectFailure and reported without stopping
the rest of the invalidation pass.
"""

from __future__ import annotations


class ReactiveError(Exception):
    """Base class for every error raised by sessionfx."""


class UnknownName(ReactiveError, LookupError):
    kind = "name"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown {self.kind}: {name!r}")


class UnknownSignal(UnknownName):
    kind = "signal"


class UnknownDerivation(UnknownName):
    kind = "derivation"


class UnknownEffect(UnknownName):
    kind = "effect"


class UnknownWidget(UnknownName):
    kind = "widget"


class UnknownColumn(UnknownName):
    kind = "column"


class UnknownSession(UnknownName):
    kind = "session"


class DuplicateName(ReactiveError, ValueError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Name already declared in this session: {name!r}")


class CyclicDependency(ReactiveError):
    def __init__(self, path: tuple[str, ...] | list[str], message: str | None = None) -> None:
        self.path = tuple(path)
        super().__init__(message or "Cyclic dependency: " + " -> ".join(self.path))


class CascadeOverflow(CyclicDependency):
    """Effects kept re-triggering each other without settling."""

    def __init__(self, name: str, runs: int) -> None:
        self.runs = runs
        super().__init__(
            (name,),
            f"Effect {name!r} re-ran {runs} times in one pass; writes never settled",
        )


class EffectFailure(ReactiveError):
    def __init__(self, name: str, cause: BaseException) -> None:
        self.name = name
        self.cause = cause
        super().__init__(f"Effect {name!r} failed: {cause!r}")


class InvalidInput(ReactiveError, ValueError):
    def __init__(self, widget_id: str, value: object, reason: str) -> None:
        self.widget_id = widget_id
        self.value = value
        super().__init__(f"Invalid value {value!r} for {widget_id!r}: {reason}")
