"""Read-side helpers over a single delivery's stops.

All reads go to the aggregate itself, so they always reflect the last
committed transition, unlike the progress projection which may lag when
events are processed asynchronously.
"""

import structlog
from protean.utils.globals import current_domain

from dispatch.delivery.delivery import Delivery

logger = structlog.get_logger(__name__)


def load_delivery(delivery_id: str) -> Delivery:
    """Fetch a delivery or raise ``ObjectNotFoundError``."""
    return current_domain.repository_for(Delivery).get(delivery_id)


def list_stops(delivery_id: str) -> list:
    """All stops of a delivery sorted by stop number."""
    stops = load_delivery(delivery_id).ordered_stops()
    if not stops:
        logger.warning("Delivery has no stops", delivery_id=str(delivery_id))
    return stops


def current_stop(delivery_id: str):
    """The stop under the cursor, or None when every stop is resolved."""
    return load_delivery(delivery_id).current_stop


def remaining_stops(delivery_id: str) -> list:
    """Pending stops in visiting order."""
    return load_delivery(delivery_id).remaining_stops()


def all_completed(delivery_id: str) -> bool:
    """True only if the delivery has stops and every one is completed."""
    return load_delivery(delivery_id).all_stops_completed()


def delivery_progress(delivery_id: str) -> float:
    """Percentage of stops completed. Failed stops do not count."""
    return load_delivery(delivery_id).progress_percent()
