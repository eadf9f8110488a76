"""Live stop list for one delivery.

``watch_stops`` yields the full, ordered stop list immediately and then
again after every committed change, until the consumer stops iterating.
"""

from collections.abc import AsyncIterator

import structlog
from fastapi.concurrency import run_in_threadpool

from dispatch.delivery.queries import list_stops
from dispatch.domain import dispatch
from dispatch.feed import get_change_feed

logger = structlog.get_logger(__name__)


def stop_snapshot(delivery_id: str) -> list[dict]:
    """Blocking read of the ordered stop list. Safe to run on a worker thread."""
    with dispatch.domain_context():
        return [stop.to_dict() for stop in list_stops(delivery_id)]


async def watch_stops(delivery_id: str) -> AsyncIterator[list[dict]]:
    """Yield the ordered stop list now and after each change.

    The subscription opens before the first read so no change between the
    snapshot and the first notification is lost. Raises
    ``ObjectNotFoundError`` if the delivery does not exist.
    """
    subscription = get_change_feed().subscribe(delivery_id)
    await subscription.open()
    logger.debug("Stop watcher subscribed", delivery_id=str(delivery_id))
    try:
        yield await run_in_threadpool(stop_snapshot, delivery_id)
        async for _ in subscription:
            yield await run_in_threadpool(stop_snapshot, delivery_id)
    finally:
        await subscription.close()
        logger.debug("Stop watcher closed", delivery_id=str(delivery_id))
