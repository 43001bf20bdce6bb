"""Storage for the located landmark set."""

from typing import NamedTuple, Optional, Sequence, Tuple

import structlog

from .grid_sampler import GridParameters
from .point_location import Feature, Locator
from .traits import Point

logger = structlog.get_logger()


class LandmarkEntry(NamedTuple):
    """A landmark point together with the feature that contains it."""
    point: Point
    feature: Feature


class LandmarkStore:
    """
    Holds the landmark set and the grid it was sampled from.

    The set is only ever replaced as a whole: ``rebuild`` swaps in the
    locator's result verbatim and ``clear`` drops it. There is no way to
    patch individual entries.
    """

    def __init__(self):
        self._entries: Tuple[LandmarkEntry, ...] = ()
        self._params: Optional[GridParameters] = None
        self.is_built = False

    @property
    def entries(self) -> Tuple[LandmarkEntry, ...]:
        return self._entries

    @property
    def params(self) -> Optional[GridParameters]:
        return self._params

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> LandmarkEntry:
        return self._entries[index]

    def rebuild(
        self,
        subdivision,
        params: Optional[GridParameters],
        points: Sequence[Point],
        locator: Locator,
    ) -> Tuple[LandmarkEntry, ...]:
        """
        Locate ``points`` and store the result.

        The locator returns its pairs sorted lexicographically by point,
        which is the order the grid index formula expects.

        An empty point list (no vertices) leaves the store unbuilt.
        """
        self.clear()
        if not points:
            return self._entries

        located = locator(subdivision, points)
        self._entries = tuple(LandmarkEntry(point, feature) for point, feature in located)
        self._params = params
        self.is_built = True

        logger.debug("Landmark store rebuilt", entries=len(self._entries))
        return self._entries

    def clear(self) -> None:
        self._entries = ()
        self._params = None
        self.is_built = False
