"""Core value types shared by the editor and refactor packages."""

from .ranges import Point, Range

__all__ = ["Point", "Range"]
