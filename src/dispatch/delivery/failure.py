"""Stop failure — command and handler.

A failed stop is skipped: the cursor moves on and the rest of the route
stays workable. Failing the last open stop still delivers the delivery.
"""

from protean import handle
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from dispatch.delivery.completion import release_driver_if_delivered
from dispatch.delivery.delivery import Delivery
from dispatch.domain import dispatch


@dispatch.command(part_of="Delivery")
class MarkStopFailed:
    """The current stop could not be served."""

    delivery_id = Identifier(required=True)
    stop_id = Identifier(required=True)
    reason = Text(required=True)


@dispatch.command_handler(part_of=Delivery)
class FailureHandler:
    @handle(MarkStopFailed)
    def mark_failed(self, command):
        repo = current_domain.repository_for(Delivery)
        delivery = repo.get(command.delivery_id)
        delivery.fail_stop(command.stop_id, reason=command.reason)
        repo.add(delivery)
        release_driver_if_delivered(delivery)
