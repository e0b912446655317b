"""Read-only tabular data sources.

Derivations read data through a single accessor, column(name), and never
mutate it. Table is the in-memory implementation: columns are stored as
tuples, so one Table can safely back every session of an app.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Protocol, Sequence, runtime_checkable

from sessionfx.errors import UnknownColumn


@runtime_checkable
class DataSource(Protocol):
    def column(self, name: str) -> Sequence: ...


class Table:
    """Immutable named columns of equal length."""

    __slots__ = ("_columns", "_length")

    def __init__(self, columns: Mapping[str, Iterable]) -> None:
        frozen = {name: tuple(values) for name, values in columns.items()}
        lengths = {len(values) for values in frozen.values()}
        if len(lengths) > 1:
            raise ValueError(f"Columns differ in length: {sorted(lengths)}")
        self._columns = frozen
        self._length = lengths.pop() if lengths else 0

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, object]], columns: Sequence[str] | None = None) -> Table:
        rows = list(rows)
        if columns is None:
            columns = list(rows[0]) if rows else []
        return cls({name: [row[name] for row in rows] for name in columns})

    def column(self, name: str) -> tuple:
        try:
            return self._columns[name]
        except KeyError:
            raise UnknownColumn(name) from None

    def pairs(self, x: str, y: str) -> list[tuple]:
        """Rows of (x, y) values."""
        return list(zip(self.column(x), self.column(y)))

    def numeric_columns(self) -> list[str]:
        return [
            name
            for name, values in self._columns.items()
            if all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values)
        ]

    @property
    def names(self) -> list[str]:
        return list(self._columns)

    def __len__(self) -> int:
        return self._length

    def __contains__(self, name: object) -> bool:
        return name in self._columns

    def __repr__(self) -> str:
        return f"Table({self._length} rows, columns={self.names})"

