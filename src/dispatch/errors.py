"""Error kinds raised by the dispatch engine.

NotFound is Protean's ``ObjectNotFoundError`` and lost concurrency races
surface as Protean's ``ExpectedVersionError``; both are raised by the
repositories themselves. The two kinds below are specific to stop progression.
"""

from protean.exceptions import ValidationError


class InvalidTransition(ValidationError):
    """A stop or delivery transition that would break stop ordering or
    rewrite terminal state (out-of-order arrival, re-completing a stop, ...).
    """


class StoreUnavailable(Exception):
    """The store kept rejecting a write; the caller should retry later."""

    def __init__(self, message: str, attempts: int | None = None):
        super().__init__(message)
        self.attempts = attempts
