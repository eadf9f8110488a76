"""Stop arrival — command and handler."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from dispatch.delivery.delivery import Delivery
from dispatch.domain import dispatch


@dispatch.command(part_of="Delivery")
class MarkStopArrived:
    """The driver reached the current stop."""

    delivery_id = Identifier(required=True)
    stop_id = Identifier(required=True)


@dispatch.command_handler(part_of=Delivery)
class ArrivalHandler:
    @handle(MarkStopArrived)
    def mark_arrived(self, command):
        repo = current_domain.repository_for(Delivery)
        delivery = repo.get(command.delivery_id)
        delivery.mark_arrived(command.stop_id)
        repo.add(delivery)
