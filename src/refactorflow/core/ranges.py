"""Row/column positions and spans used to address text inside a document."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Iterator


@dataclass(slots=True, frozen=True, order=True)
class Point:
    """Zero-based ``(row, column)`` position inside a document."""

    row: int
    column: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "row", self._coerce_index(self.row, "row"))
        object.__setattr__(self, "column", self._coerce_index(self.column, "column"))

    @staticmethod
    def _coerce_index(value: Any, label: str) -> int:
        try:
            number = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Point {label} must be an integer") from exc
        if number < 0:
            return 0
        return number

    def __iter__(self) -> Iterator[int]:
        yield self.row
        yield self.column

    def to_tuple(self) -> tuple[int, int]:
        """Return the point as a ``(row, column)`` tuple."""

        return (self.row, self.column)

    def to_dict(self) -> dict[str, int]:
        return {"row": self.row, "column": self.column}

    @classmethod
    def from_value(cls, value: Any) -> Point:
        """Coerce ``value`` into a :class:`Point`."""

        if isinstance(value, Point):
            return value
        if isinstance(value, Mapping):
            row = value.get("row")
            column = value.get("column")
            if row is None or column is None:
                raise ValueError("Point mappings require row and column keys")
            return cls(row, column)
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            seq = list(value)
            if len(seq) != 2:
                raise ValueError("Point sequences must have exactly two entries")
            return cls(seq[0], seq[1])
        row = getattr(value, "row", None)
        column = getattr(value, "column", None)
        if row is not None and column is not None:
            return cls(row, column)
        raise TypeError("Unsupported Point input")

    @classmethod
    def zero(cls) -> Point:
        return cls(0, 0)


@dataclass(slots=True, frozen=True)
class Range(Sequence[Point]):
    """Span between two :class:`Point` values with ``start <= end``."""

    start: Point
    end: Point

    def __post_init__(self) -> None:
        start = Point.from_value(self.start)
        end = Point.from_value(self.end)
        if end < start:
            start, end = end, start
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    def __len__(self) -> int:
        return 2

    def __getitem__(self, index: int | slice) -> Point | tuple[Point, ...]:
        if isinstance(index, slice):
            return (self.start, self.end)[index]
        if index == 0:
            return self.start
        if index == 1:
            return self.end
        raise IndexError("Range index out of range")

    def __iter__(self) -> Iterator[Point]:
        yield self.start
        yield self.end

    @property
    def is_empty(self) -> bool:
        """Return ``True`` when the range collapses to a single point."""

        return self.start == self.end

    @property
    def is_single_line(self) -> bool:
        return self.start.row == self.end.row

    def contains_point(self, point: Point) -> bool:
        return self.start <= point <= self.end

    def to_list(self) -> list[list[int]]:
        """Return the range as a JSON-friendly nested list."""

        return [list(self.start.to_tuple()), list(self.end.to_tuple())]

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}

    @classmethod
    def from_value(cls, value: Any) -> Range:
        """Coerce ``value`` into a :class:`Range`.

        Accepts another range, a ``{"start": ..., "end": ...}`` mapping, a
        two-item sequence of point-like values, or any object exposing
        ``start``/``end`` attributes.
        """

        if isinstance(value, Range):
            return value
        if value is None:
            raise ValueError("Range value is required")
        if isinstance(value, Mapping):
            start = value.get("start")
            end = value.get("end")
            if start is None or end is None:
                raise ValueError("Range mappings require start and end keys")
            return cls(Point.from_value(start), Point.from_value(end))
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            seq = list(value)
            if len(seq) != 2:
                raise ValueError("Range sequences must have exactly two entries")
            return cls(Point.from_value(seq[0]), Point.from_value(seq[1]))
        start = getattr(value, "start", None)
        end = getattr(value, "end", None)
        if start is not None and end is not None:
            return cls(Point.from_value(start), Point.from_value(end))
        raise TypeError("Unsupported Range input")

    @classmethod
    def at(cls, point: Point) -> Range:
        """Return an empty range positioned at ``point``."""

        return cls(point, point)


__all__ = ["Point", "Range"]
