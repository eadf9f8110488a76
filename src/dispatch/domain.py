"""Dispatch bounded context — Multi-Stop Delivery Progression.

Tracks the ordered stops of a delivery, advances the delivery's stop cursor
as drivers arrive at, complete or fail stops, and cascades completion to the
delivery and to driver availability. Uses CQRS: the Delivery aggregate is the
source of truth, projections and the change feed are derived from its events.
"""

from protean.domain import Domain

from dispatch.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

dispatch = Domain(name="dispatch")
