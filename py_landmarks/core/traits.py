"""
Geometric traits for landmark generation.

The generator never evaluates exact predicates. It only needs an
approximation of each coordinate plus ordering and sign tests on the
approximate number type, which is what this module provides.
"""

from enum import IntEnum
from numbers import Real
from typing import NamedTuple, Protocol


class Point(NamedTuple):
    """A planar point. Coordinates may be floats or exact numbers (Fraction)."""
    x: Real
    y: Real


class Comparison(IntEnum):
    """Result of comparing two approximate numbers."""
    SMALLER = -1
    EQUAL = 0
    LARGER = 1


class Sign(IntEnum):
    """Sign of an approximate number."""
    NEGATIVE = -1
    ZERO = 0
    POSITIVE = 1


class GeometryTraits(Protocol):
    """Operations the landmark generator consumes from a geometry kernel."""

    def approximate(self, point: Point, axis: int) -> float:
        ...

    def compare(self, a: float, b: float) -> Comparison:
        ...

    def sign(self, a: float) -> Sign:
        ...

    def construct_point(self, x: float, y: float) -> Point:
        ...


class CartesianTraits:
    """
    Default traits using Python floats as the approximate number type.

    Any ``numbers.Real`` coordinate is accepted; ``float()`` is the
    approximation, so exact ``Fraction`` input is rounded to the nearest
    double.
    """

    def approximate(self, point: Point, axis: int) -> float:
        if axis not in (0, 1):
            raise ValueError(f"axis must be 0 (x) or 1 (y), got {axis}")
        return float(point[axis])

    def compare(self, a: float, b: float) -> Comparison:
        if a < b:
            return Comparison.SMALLER
        if a > b:
            return Comparison.LARGER
        return Comparison.EQUAL

    def sign(self, a: float) -> Sign:
        if a < 0:
            return Sign.NEGATIVE
        if a > 0:
            return Sign.POSITIVE
        return Sign.ZERO

    def construct_point(self, x: float, y: float) -> Point:
        return Point(float(x), float(y))

    def __repr__(self) -> str:
        return "CartesianTraits()"
