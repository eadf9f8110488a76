"""Outbound change notifications — announces committed stop changes.

Runs after the delivery's unit of work commits, so a notification never
announces a change that was rolled back. Publishing is best-effort: the
transition already happened, and watchers fall back to their next read.
"""

import structlog
from protean.utils.mixins import handle

from dispatch.delivery.delivery import Delivery
from dispatch.delivery.events import (
    DeliveryCompleted,
    DeliveryCreated,
    DeliveryStarted,
    StopArrived,
    StopCompleted,
    StopCorrected,
    StopFailed,
    StopsReordered,
)
from dispatch.domain import dispatch
from dispatch.feed import get_change_feed

logger = structlog.get_logger(__name__)


def _publish(delivery_id, event_name: str) -> None:
    try:
        get_change_feed().publish(str(delivery_id))
    except Exception as e:
        logger.warning(
            "Stop change notification failed",
            delivery_id=str(delivery_id),
            trigger=event_name,
            error=str(e),
        )


@dispatch.event_handler(part_of=Delivery)
class StopChangePublisher:
    """Publishes the delivery id to the change feed on every stop change."""

    @handle(DeliveryCreated)
    def on_delivery_created(self, event: DeliveryCreated) -> None:
        _publish(event.delivery_id, "DeliveryCreated")

    @handle(DeliveryStarted)
    def on_delivery_started(self, event: DeliveryStarted) -> None:
        _publish(event.delivery_id, "DeliveryStarted")

    @handle(StopArrived)
    def on_stop_arrived(self, event: StopArrived) -> None:
        _publish(event.delivery_id, "StopArrived")

    @handle(StopCompleted)
    def on_stop_completed(self, event: StopCompleted) -> None:
        _publish(event.delivery_id, "StopCompleted")

    @handle(StopFailed)
    def on_stop_failed(self, event: StopFailed) -> None:
        _publish(event.delivery_id, "StopFailed")

    @handle(StopCorrected)
    def on_stop_corrected(self, event: StopCorrected) -> None:
        _publish(event.delivery_id, "StopCorrected")

    @handle(StopsReordered)
    def on_stops_reordered(self, event: StopsReordered) -> None:
        _publish(event.delivery_id, "StopsReordered")

    @handle(DeliveryCompleted)
    def on_delivery_completed(self, event: DeliveryCompleted) -> None:
        _publish(event.delivery_id, "DeliveryCompleted")
