"""
Grid landmark generator with incremental maintenance.

``GridLandmarkGenerator`` samples a square grid over the vertex bounding box
of a subdivision, locates every grid point in one batched call and then
answers nearest-landmark queries in constant time. It listens to the
subdivision's change notifications and keeps the landmark set consistent:

- a single local edit clears and rebuilds the set immediately;
- inside a batch bracket (assignment, attachment, global change) local
  edits are ignored and one rebuild happens when the bracket closes;
- detaching or closing the subdivision clears the set and leaves the
  generator inert until it is attached again.
"""

from enum import Enum
from typing import Optional, Tuple

import structlog

from ..config import Settings, settings as default_settings
from .errors import GeneratorNotBuiltError
from .events import BatchReason, EditEvent, EventKind
from .grid_sampler import GridParameters, sample_grid
from .landmark_store import LandmarkEntry, LandmarkStore
from .nearest_landmark import landmark_index
from .point_location import Locator, batched_locate
from .traits import CartesianTraits, GeometryTraits, Point

logger = structlog.get_logger()


class NotificationState(str, Enum):
    """Whether local edits trigger rebuilds."""

    IDLE = "idle"
    BATCHING = "batching"


class GridLandmarkGenerator:
    """
    Landmark generator using a set of points on a grid as its landmarks.

    The generator observes, but never owns, its subdivision. It must be
    detached (or the subdivision closed) before the subdivision is
    discarded.
    """

    def __init__(
        self,
        subdivision=None,
        number_of_landmarks: Optional[int] = None,
        *,
        locator: Locator = batched_locate,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the generator, building immediately if a subdivision is given.

        Args:
            subdivision: Observable subdivision to attach to (optional)
            number_of_landmarks: Requested landmark count; 0 uses the vertex
                count, ``None`` the configured default
            locator: Batched point-location callable returning
                ``(point, feature)`` pairs sorted lexicographically
            settings: Settings overriding the module defaults
        """
        self.settings = settings or default_settings
        self._locator = locator
        self._subdivision = None
        self._traits: GeometryTraits = CartesianTraits()
        self._state = NotificationState.IDLE
        self._store = LandmarkStore()
        self._target_count = self._resolve_count(number_of_landmarks)

        if subdivision is not None:
            self.attach(subdivision, self._target_count)

    def __copy__(self):
        raise TypeError("GridLandmarkGenerator cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("GridLandmarkGenerator cannot be copied")

    # Properties

    @property
    def subdivision(self):
        return self._subdivision

    @property
    def traits(self) -> GeometryTraits:
        return self._traits

    @property
    def is_built(self) -> bool:
        return self._store.is_built

    @property
    def ignoring_notifications(self) -> bool:
        return self._state == NotificationState.BATCHING

    @property
    def state(self) -> NotificationState:
        return self._state

    @property
    def grid_parameters(self) -> Optional[GridParameters]:
        return self._store.params

    @property
    def landmarks(self) -> Tuple[LandmarkEntry, ...]:
        return self._store.entries

    @property
    def number_of_landmarks(self) -> int:
        """The requested landmark count (0 means "use the vertex count")."""
        return self._target_count

    def __len__(self) -> int:
        return len(self._store)

    # Lifecycle

    def attach(self, subdivision, number_of_landmarks: Optional[int] = None) -> None:
        """
        Attach to ``subdivision`` and build the landmark set before returning.

        A generator that is attached elsewhere is detached first.
        """
        if number_of_landmarks is not None:
            self._target_count = self._resolve_count(number_of_landmarks)
        if self._subdivision is not None:
            self.detach()

        # The subdivision answers with an ATTACH batch bracket
        subdivision.attach_listener(self)

    def detach(self) -> None:
        """Detach from the current subdivision, clearing the landmark set."""
        if self._subdivision is None:
            return
        self._subdivision.detach_listener(self)

    # Landmark set maintenance

    def build_landmark_set(self) -> None:
        """Sample the grid and locate it in the subdivision."""
        if self._subdivision is None:
            raise GeneratorNotBuiltError("Generator is not attached to a subdivision")

        params, points = sample_grid(
            self._subdivision,
            self._target_count,
            self._traits,
            epsilon=self.settings.resolution_epsilon,
        )
        self._store.rebuild(self._subdivision, params, points, self._locator)

        logger.info(
            "Landmark set built",
            landmarks=len(self._store),
            resolution=params.resolution if params else 0,
            vertices=self._subdivision.number_of_vertices(),
        )

    def clear_landmark_set(self) -> None:
        self._store.clear()

    # Queries

    def closest_landmark(self, query: Point) -> LandmarkEntry:
        """
        Get the landmark nearest to ``query``.

        Args:
            query: Query point

        Returns:
            ``LandmarkEntry(point, feature)`` of the nearest grid landmark

        Raises:
            GeneratorNotBuiltError: The landmark set is not built
        """
        if not self._store.is_built:
            raise GeneratorNotBuiltError(
                "Landmark set is not built (empty subdivision, pending batch or detached)"
            )

        index = landmark_index(
            query,
            self._store.params,
            self._traits,
            offset=self.settings.rounding_offset,
        )
        return self._store[index]

    # Change notifications

    def on_edit(self, event: EditEvent) -> None:
        """Dispatch one structural-change notification."""
        logger.debug(
            "Change notification",
            kind=event.kind.value,
            reason=event.reason.value if event.reason else None,
            edit=event.edit.value if event.edit else None,
            state=self._state.value,
        )

        if event.kind == EventKind.BATCH_BEGIN:
            self._begin_batch(event)
        elif event.kind == EventKind.BATCH_END:
            self._end_batch(event)
        elif event.kind == EventKind.DETACH:
            self.clear_landmark_set()
            self._subdivision = None
            self._state = NotificationState.IDLE
        elif event.kind == EventKind.CLEARED:
            self.clear_landmark_set()
            self.build_landmark_set()
        elif event.kind == EventKind.LOCAL_EDIT:
            self._handle_local_change()
        else:
            raise ValueError(f"Unknown event kind: {event.kind}")

    def _begin_batch(self, event: EditEvent) -> None:
        self.clear_landmark_set()
        if event.reason in (BatchReason.ASSIGN, BatchReason.ATTACH) and event.source is not None:
            self._traits = event.source.traits
            if event.reason == BatchReason.ATTACH:
                self._subdivision = event.source
        self._state = NotificationState.BATCHING

    def _end_batch(self, event: EditEvent) -> None:
        if self._state != NotificationState.BATCHING:
            logger.warning("Batch end without batch begin", reason=event.reason.value)
        try:
            self.build_landmark_set()
        finally:
            self._state = NotificationState.IDLE

    def _handle_local_change(self) -> None:
        if self._state == NotificationState.BATCHING:
            logger.debug("Local edit deferred until batch end")
            return
        self.clear_landmark_set()
        self.build_landmark_set()

    def _resolve_count(self, number_of_landmarks: Optional[int]) -> int:
        if number_of_landmarks is None:
            return self.settings.default_landmark_count
        if number_of_landmarks < 0:
            raise ValueError(f"number_of_landmarks must be >= 0, got {number_of_landmarks}")
        return int(number_of_landmarks)

    def __repr__(self) -> str:
        return (
            f"GridLandmarkGenerator(landmarks={len(self._store)}, "
            f"built={self.is_built}, state={self._state.value})"
        )
