"""
Constant-time nearest-landmark lookup on a sampled grid.

The query snaps to the nearest grid cell by rounding ``(q - min) / step``
half-up (``+ offset`` then truncation). Queries outside the bounding box
clamp to the border row or column; there is no true nearest-point search
outside the box.
"""

from typing import Optional

from ..config import settings
from .grid_sampler import GridParameters
from .traits import Comparison, GeometryTraits, Point


def grid_index(
    q: float,
    lower: float,
    upper: float,
    step: float,
    resolution: int,
    traits: GeometryTraits,
    offset: Optional[float] = None,
) -> int:
    """Index of the grid line nearest to ``q`` along one axis."""
    if offset is None:
        offset = settings.rounding_offset
    if traits.compare(q, lower) == Comparison.SMALLER:
        return 0
    if traits.compare(q, upper) == Comparison.LARGER:
        return resolution - 1
    # int() truncates toward zero
    return int(((q - lower) / step) + offset)


def landmark_index(
    query: Point,
    params: GridParameters,
    traits: GeometryTraits,
    offset: Optional[float] = None,
) -> int:
    """
    Position in the sorted landmark set of the grid point nearest ``query``.

    Args:
        query: Query point
        params: Grid the landmark set was built from
        traits: Geometry traits used to approximate the query
        offset: Rounding offset, defaults to settings

    Returns:
        ``resolution * i + j`` for grid cell ``(i, j)``
    """
    qx = traits.approximate(query, 0)
    qy = traits.approximate(query, 1)

    i = grid_index(qx, params.x_min, params.x_max, params.step_x,
                   params.resolution, traits, offset)
    j = grid_index(qy, params.y_min, params.y_max, params.step_y,
                   params.resolution, traits, offset)

    return params.resolution * i + j
