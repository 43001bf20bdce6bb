"""
Observable planar subdivision base.

Holds the listener registration table and forwards structural-change
notifications synchronously, in registration order. Concrete subdivisions
subclass ``ObservableSubdivision`` and report their edits through
``_notify_local`` / ``_notify_cleared``.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, List

import structlog

from .events import BatchReason, ChangeListener, EditEvent, LocalEditKind
from .traits import CartesianTraits, GeometryTraits

logger = structlog.get_logger()


class ObservableSubdivision(ABC):
    """
    Listener bookkeeping shared by every subdivision.

    Listeners are held by plain reference. The subdivision does not own
    them and a listener must be detached (or the subdivision closed) before
    the subdivision is discarded.
    """

    def __init__(self, traits: GeometryTraits = None):
        self.traits: GeometryTraits = traits if traits is not None else CartesianTraits()
        self._listeners: List[ChangeListener] = []
        self._global_depth = 0

    # Listener registration

    @property
    def listeners(self) -> tuple:
        return tuple(self._listeners)

    def attach_listener(self, listener: ChangeListener) -> None:
        """Register ``listener`` and let it build against the current state."""
        if any(existing is listener for existing in self._listeners):
            raise ValueError("Listener is already attached to this subdivision")

        listener.on_edit(EditEvent.batch_begin(BatchReason.ATTACH, source=self))
        self._listeners.append(listener)
        try:
            listener.on_edit(EditEvent.batch_end(BatchReason.ATTACH))
        except Exception:
            # A listener that cannot build against this subdivision is not kept
            self._listeners = [existing for existing in self._listeners if existing is not listener]
            listener.on_edit(EditEvent.detach())
            logger.warning("Listener failed to attach", listeners=len(self._listeners))
            raise
        logger.debug("Listener attached", listeners=len(self._listeners))

    def detach_listener(self, listener: ChangeListener) -> None:
        """Send ``DETACH`` to ``listener`` and unregister it."""
        for idx, existing in enumerate(self._listeners):
            if existing is listener:
                break
        else:
            raise ValueError("Listener is not attached to this subdivision")

        listener.on_edit(EditEvent.detach())
        del self._listeners[idx]
        logger.debug("Listener detached", listeners=len(self._listeners))

    def close(self) -> None:
        """Tear down the subdivision: every listener is detached."""
        for listener in list(self._listeners):
            self.detach_listener(listener)

    # Notification forwarding

    def _notify(self, event: EditEvent) -> None:
        """
        Send ``event`` to every listener.

        A listener that raises does not stop delivery: the remaining listeners
        still see the event, then the first error is re-raised.
        """
        error = None
        # Copy: a listener may detach itself while handling the event.
        for listener in list(self._listeners):
            try:
                listener.on_edit(event)
            except Exception as exc:
                if error is None:
                    error = exc
                logger.warning(
                    "Listener failed to handle change",
                    kind=event.kind.value,
                    error=repr(exc),
                )
        if error is not None:
            raise error

    def _notify_local(self, edit: LocalEditKind) -> None:
        self._notify(EditEvent.local_edit(edit))

    def _notify_cleared(self) -> None:
        self._notify(EditEvent.cleared())

    @contextmanager
    def global_change(self) -> Iterator["ObservableSubdivision"]:
        """
        Bracket a bulk edit.

        Listeners see one ``BATCH_BEGIN``/``BATCH_END`` pair around the
        whole block; nested brackets only report the outermost one.
        """
        self._global_depth += 1
        if self._global_depth == 1:
            self._notify(EditEvent.batch_begin(BatchReason.GLOBAL_CHANGE))
        try:
            yield self
        finally:
            self._global_depth -= 1
            if self._global_depth == 0:
                self._notify(EditEvent.batch_end(BatchReason.GLOBAL_CHANGE))

    def assign(self, other: "ObservableSubdivision") -> None:
        """Replace this subdivision's contents with a copy of ``other``."""
        self._notify(EditEvent.batch_begin(BatchReason.ASSIGN, source=other))
        try:
            self._copy_from(other)
            self.traits = other.traits
        finally:
            self._notify(EditEvent.batch_end(BatchReason.ASSIGN))

    # Subclass hooks

    @abstractmethod
    def _copy_from(self, other: "ObservableSubdivision") -> None:
        """Copy the contents of ``other`` into this subdivision."""
        pass

    @abstractmethod
    def vertices(self):
        """Iterate over vertices; each item exposes ``.point``."""
        pass

    @abstractmethod
    def number_of_vertices(self) -> int:
        pass

    @abstractmethod
    def number_of_edges(self) -> int:
        pass

    @abstractmethod
    def number_of_faces(self) -> int:
        pass

    def is_empty(self) -> bool:
        return self.number_of_vertices() == 0 and self.number_of_edges() == 0

    @abstractmethod
    def locate_many(self, coords):
        """Return one ``Feature`` per row of an ``(N, 2)`` coordinate array."""
        pass
