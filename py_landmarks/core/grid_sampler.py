"""
Grid sampling over the bounding box of a subdivision's vertices.

Produces the landmark query points: a square grid of ``resolution x
resolution`` points spanning the vertex bounding box, emitted with x as the
outer (slower) index and y as the inner index. That is the lexicographic
order batched point location returns, so entry ``resolution * i + j`` of
the located set is grid cell ``(i, j)``.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
import structlog

from ..config import settings
from .errors import DegenerateGridError
from .traits import Comparison, GeometryTraits, Point, Sign

logger = structlog.get_logger()


@dataclass(frozen=True)
class GridParameters:
    """Grid geometry derived on every rebuild."""

    x_min: float
    x_max: float
    y_min: float
    y_max: float
    step_x: float
    step_y: float
    resolution: int
    target_count: int

    @property
    def effective_count(self) -> int:
        """Number of landmarks actually generated (a perfect square)."""
        return self.resolution * self.resolution


def grid_resolution(count: int, epsilon: Optional[float] = None) -> int:
    """
    Smallest integer whose square is at least ``count``.

    Computed as ``int(sqrt(count) + epsilon)`` with ``epsilon`` just below
    one, so exact squares are not pushed up by floating error.
    """
    if epsilon is None:
        epsilon = settings.resolution_epsilon
    return int(math.sqrt(float(count)) + epsilon)


def sample_grid(
    subdivision,
    target_count: int,
    traits: GeometryTraits,
    epsilon: Optional[float] = None,
) -> Tuple[Optional[GridParameters], List[Point]]:
    """
    Create the landmark grid for ``subdivision``.

    Args:
        subdivision: Object exposing ``vertices()`` (items with ``.point``)
            and ``number_of_vertices()``
        target_count: Requested number of landmarks; 0 uses the vertex count
        traits: Geometry traits providing coordinate approximation
        epsilon: Rounding epsilon for the resolution, defaults to settings

    Returns:
        Tuple of (grid parameters, grid points). Parameters are ``None`` and
        the point list empty when the subdivision has no vertices.

    Raises:
        DegenerateGridError: The resolution is at most 1 for a multi-vertex
            subdivision, or all vertices coincide
    """
    n_vertices = subdivision.number_of_vertices()
    if n_vertices == 0:
        logger.debug("No vertices to sample")
        return None, []

    approx = traits.approximate
    vertex_iter = iter(subdivision.vertices())
    first = next(vertex_iter).point
    x_min = x_max = approx(first, 0)
    y_min = y_max = approx(first, 1)

    if n_vertices == 1:
        params = GridParameters(
            x_min=x_min, x_max=x_max, y_min=y_min, y_max=y_max,
            step_x=1.0, step_y=1.0, resolution=1, target_count=target_count,
        )
        return params, [traits.construct_point(x_min, y_min)]

    left = right = bottom = top = first
    for vertex in vertex_iter:
        x = approx(vertex.point, 0)
        y = approx(vertex.point, 1)

        if traits.compare(x, x_min) == Comparison.SMALLER:
            x_min, left = x, vertex.point
        elif traits.compare(x, x_max) == Comparison.LARGER:
            x_max, right = x, vertex.point

        if traits.compare(y, y_min) == Comparison.SMALLER:
            y_min, bottom = y, vertex.point
        elif traits.compare(y, y_max) == Comparison.LARGER:
            y_max, top = y, vertex.point

    count = target_count if target_count else n_vertices
    resolution = grid_resolution(count, epsilon)
    if resolution <= 1:
        raise DegenerateGridError(
            f"grid resolution {resolution} requested for {n_vertices} vertices "
            f"(landmark count {count})"
        )

    delta_x = approx(right, 0) - approx(left, 0)
    delta_y = approx(top, 1) - approx(bottom, 1)

    if traits.sign(delta_x) == Sign.ZERO:
        delta_x = delta_y
    if traits.sign(delta_y) == Sign.ZERO:
        delta_y = delta_x

    if not (traits.sign(delta_x) == Sign.POSITIVE and traits.sign(delta_y) == Sign.POSITIVE):
        raise DegenerateGridError(
            f"all {n_vertices} vertices coincide at ({x_min}, {y_min})"
        )

    step_x = delta_x / (resolution - 1)
    step_y = delta_y / (resolution - 1)

    params = GridParameters(
        x_min=x_min, x_max=x_max, y_min=y_min, y_max=y_max,
        step_x=step_x, step_y=step_y, resolution=resolution,
        target_count=target_count,
    )

    # Final coordinates use plain double arithmetic, i outer and j inner
    steps = np.arange(resolution, dtype=np.float64)
    xs = float(approx(left, 0)) + steps * float(step_x)
    ys = float(approx(bottom, 1)) + steps * float(step_y)
    grid = np.column_stack((np.repeat(xs, resolution), np.tile(ys, resolution)))

    points = [traits.construct_point(float(px), float(py)) for px, py in grid]

    logger.debug(
        "Grid sampled",
        vertices=n_vertices,
        resolution=resolution,
        step_x=step_x,
        step_y=step_y,
    )
    return params, points
