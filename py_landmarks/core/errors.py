"""Exceptions raised by the landmark generator."""


class LandmarkError(Exception):
    """Base class for landmark generator errors."""


class PreconditionViolation(LandmarkError):
    """
    A fatal precondition was violated.

    No sound landmark grid exists for the current request, so the operation
    is aborted instead of falling back to a partial result.
    """


class GeneratorNotBuiltError(PreconditionViolation):
    """The landmark set was queried before it was built (or while cleared)."""


class DegenerateGridError(PreconditionViolation):
    """A grid cannot be laid over the subdivision's vertices."""
