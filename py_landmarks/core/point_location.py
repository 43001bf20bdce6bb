"""
Batched point location.

Resolves many query points against a subdivision in one pass. The result is
returned sorted lexicographically by point (x first, then y); the landmark
generator relies on this ordering to index its landmark set.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Sequence, Tuple

import numpy as np
import structlog

from .traits import Point

logger = structlog.get_logger()


class FeatureKind(str, Enum):
    """Kind of subdivision feature a point can lie on."""

    VERTEX = "vertex"
    EDGE = "edge"
    FACE = "face"


@dataclass(frozen=True)
class Feature:
    """A located subdivision feature, identified by kind and index."""

    kind: FeatureKind
    index: int

    @classmethod
    def vertex(cls, index: int) -> "Feature":
        return cls(FeatureKind.VERTEX, int(index))

    @classmethod
    def edge(cls, index: int) -> "Feature":
        return cls(FeatureKind.EDGE, int(index))

    @classmethod
    def face(cls, index: int) -> "Feature":
        return cls(FeatureKind.FACE, int(index))


LocatedPair = Tuple[Point, Feature]
Locator = Callable[[object, Sequence[Point]], List[LocatedPair]]


def lexicographic_order(points: Sequence[Point]) -> np.ndarray:
    """Return the stable (x, y) lexicographic order of ``points`` as indices."""
    if len(points) == 0:
        return np.zeros(0, dtype=np.intp)
    coords = np.asarray([(float(p[0]), float(p[1])) for p in points], dtype=np.float64)
    # lexsort sorts by the last key first
    return np.lexsort((coords[:, 1], coords[:, 0]))


def batched_locate(subdivision, points: Sequence[Point]) -> List[LocatedPair]:
    """
    Locate every point of ``points`` in ``subdivision``.

    Args:
        subdivision: Any object exposing ``locate_many(coords)`` for an
            ``(N, 2)`` float array, returning one ``Feature`` per row
        points: Query points in any order

    Returns:
        ``(point, feature)`` pairs sorted lexicographically by point
    """
    if len(points) == 0:
        return []

    order = lexicographic_order(points)
    sorted_points = [points[k] for k in order]
    coords = np.asarray([(float(p[0]), float(p[1])) for p in sorted_points], dtype=np.float64)

    features = subdivision.locate_many(coords)
    if len(features) != len(sorted_points):
        raise ValueError(
            f"locate_many returned {len(features)} features for {len(sorted_points)} points"
        )

    logger.debug("Batched point location complete", points=len(sorted_points))
    return list(zip(sorted_points, features))
