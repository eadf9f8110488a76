"""Conflict-aware command processing.

Two writers racing on the same delivery both load version N; the second
``repo.add`` fails with ``ExpectedVersionError``. Re-processing the command
re-reads the delivery, so the loser either succeeds against fresh state or
fails with the proper domain error (e.g. the stop is already completed).
"""

import os

import structlog
from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain

from dispatch.errors import StoreUnavailable

logger = structlog.get_logger(__name__)

DEFAULT_CONFLICT_RETRIES = 3


def conflict_retries() -> int:
    return int(os.environ.get("DISPATCH_CONFLICT_RETRIES", DEFAULT_CONFLICT_RETRIES))


def process_with_retry(command, attempts: int | None = None):
    """Process ``command`` synchronously, retrying lost version races.

    Raises ``StoreUnavailable`` if every attempt conflicts.
    """
    attempts = attempts or conflict_retries()
    for attempt in range(1, attempts + 1):
        try:
            return current_domain.process(command, asynchronous=False)
        except ExpectedVersionError as e:
            logger.warning(
                "Concurrent update detected, retrying command",
                command=command.__class__.__name__,
                attempt=attempt,
                attempts=attempts,
                error=str(e),
            )

    raise StoreUnavailable(
        f"{command.__class__.__name__} kept conflicting after {attempts} attempts",
        attempts=attempts,
    )
