"""
Structural-change notifications sent from a subdivision to its listeners.

Every edit of an observed subdivision is reported as one ``EditEvent``.
The event kinds are deliberately coarse: a listener that maintains a
derived structure (such as a landmark set) only needs to know whether an
edit is a single local change or part of a larger batch.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol


class EventKind(str, Enum):
    """Top-level classification of a structural change."""

    BATCH_BEGIN = "batch_begin"
    BATCH_END = "batch_end"
    DETACH = "detach"
    CLEARED = "cleared"
    LOCAL_EDIT = "local_edit"


class BatchReason(str, Enum):
    """Why a batch bracket was opened."""

    ASSIGN = "assign"
    ATTACH = "attach"
    GLOBAL_CHANGE = "global_change"


class LocalEditKind(str, Enum):
    """Single local topology edits."""

    CREATE_VERTEX = "create_vertex"
    CREATE_EDGE = "create_edge"
    SPLIT_EDGE = "split_edge"
    SPLIT_FACE = "split_face"
    SPLIT_OUTER_CCB = "split_outer_ccb"
    SPLIT_INNER_CCB = "split_inner_ccb"
    ADD_OUTER_CCB = "add_outer_ccb"
    ADD_INNER_CCB = "add_inner_ccb"
    ADD_ISOLATED_VERTEX = "add_isolated_vertex"
    MERGE_EDGE = "merge_edge"
    MERGE_FACE = "merge_face"
    MERGE_OUTER_CCB = "merge_outer_ccb"
    MERGE_INNER_CCB = "merge_inner_ccb"
    MOVE_OUTER_CCB = "move_outer_ccb"
    MOVE_INNER_CCB = "move_inner_ccb"
    MOVE_ISOLATED_VERTEX = "move_isolated_vertex"
    REMOVE_VERTEX = "remove_vertex"
    REMOVE_EDGE = "remove_edge"
    REMOVE_OUTER_CCB = "remove_outer_ccb"
    REMOVE_INNER_CCB = "remove_inner_ccb"


@dataclass(frozen=True)
class EditEvent:
    """
    Tagged notification payload.

    ``reason`` is set for batch events, ``edit`` for local edits. For
    ``ASSIGN`` and ``ATTACH`` batch-begin events ``source`` is the
    subdivision whose geometry traits become current.
    """

    kind: EventKind
    reason: Optional[BatchReason] = None
    edit: Optional[LocalEditKind] = None
    source: Any = None

    @classmethod
    def batch_begin(cls, reason: BatchReason, source: Any = None) -> "EditEvent":
        return cls(EventKind.BATCH_BEGIN, reason=reason, source=source)

    @classmethod
    def batch_end(cls, reason: BatchReason) -> "EditEvent":
        return cls(EventKind.BATCH_END, reason=reason)

    @classmethod
    def detach(cls) -> "EditEvent":
        return cls(EventKind.DETACH)

    @classmethod
    def cleared(cls) -> "EditEvent":
        return cls(EventKind.CLEARED)

    @classmethod
    def local_edit(cls, edit: LocalEditKind) -> "EditEvent":
        return cls(EventKind.LOCAL_EDIT, edit=edit)


class ChangeListener(Protocol):
    """Anything that can be registered on an observable subdivision."""

    def on_edit(self, event: EditEvent) -> None:
        ...
