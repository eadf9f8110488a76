"""Corrective stop updates — command and handler.

Used by operators to fix up a stop after the fact: fill in a missing proof
URL, back-date an arrival, or push a stop through a transition the driver
app never sent.
"""

from protean import handle
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from dispatch.delivery.completion import release_driver_if_delivered
from dispatch.delivery.delivery import Delivery, StopStatus
from dispatch.domain import dispatch


@dispatch.command(part_of="Delivery")
class UpdateStopStatus:
    """Patch a stop's status and/or its write-once fields."""

    delivery_id = Identifier(required=True)
    stop_id = Identifier(required=True)
    status = String(max_length=20, choices=StopStatus)
    arrived_at = DateTime()
    completed_at = DateTime()
    proof_photo_url = String(max_length=1000)
    signature_url = String(max_length=1000)
    completion_notes = Text()


@dispatch.command_handler(part_of=Delivery)
class CorrectionHandler:
    @handle(UpdateStopStatus)
    def update_stop_status(self, command):
        repo = current_domain.repository_for(Delivery)
        delivery = repo.get(command.delivery_id)
        delivery.correct_stop(
            command.stop_id,
            status=command.status,
            arrived_at=command.arrived_at,
            completed_at=command.completed_at,
            proof_photo_url=command.proof_photo_url,
            signature_url=command.signature_url,
            completion_notes=command.completion_notes,
        )
        repo.add(delivery)
        release_driver_if_delivered(delivery)
