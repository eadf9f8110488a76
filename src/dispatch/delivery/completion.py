"""Stop completion — command and handler.

Completing a stop is the engine's cascade: the stop is closed, the cursor
advances, and after the last stop the delivery is delivered and its driver
is released. The delivery and the driver register entry are persisted in the
same unit of work.
"""

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from dispatch.delivery.delivery import Delivery, DeliveryStatus
from dispatch.domain import dispatch
from dispatch.driver.availability import set_available
from dispatch.utils.logging import get_logger

logger = get_logger(__name__)


def release_driver_if_delivered(delivery: Delivery) -> bool:
    """Make the driver available again once their delivery is delivered."""
    if delivery.status != DeliveryStatus.DELIVERED.value:
        return False

    set_available(str(delivery.driver_id), True)
    logger.info(
        "Delivery delivered, driver released",
        delivery_id=str(delivery.id),
        driver_id=str(delivery.driver_id),
        all_completed=delivery.all_stops_completed(),
    )
    return True


@dispatch.command(part_of="Delivery")
class CompleteStop:
    """Complete the current stop, with optional proof of delivery."""

    delivery_id = Identifier(required=True)
    stop_id = Identifier(required=True)
    proof_photo_url = String(max_length=1000)
    signature_url = String(max_length=1000)
    completion_notes = Text()


@dispatch.command_handler(part_of=Delivery)
class CompletionHandler:
    @handle(CompleteStop)
    def complete_stop(self, command):
        repo = current_domain.repository_for(Delivery)
        delivery = repo.get(command.delivery_id)
        delivery.complete_stop(
            command.stop_id,
            proof_photo_url=command.proof_photo_url,
            signature_url=command.signature_url,
            completion_notes=command.completion_notes,
        )
        repo.add(delivery)
        release_driver_if_delivered(delivery)
