"""Stop reordering — command and handler."""

import json

from protean import handle
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from dispatch.delivery.delivery import Delivery
from dispatch.domain import dispatch


@dispatch.command(part_of="Delivery")
class ReorderStops:
    """Change the visiting order of a delivery that has not started."""

    delivery_id = Identifier(required=True)
    stop_ids = Text(required=True)  # JSON list of stop ids in the new order


@dispatch.command_handler(part_of=Delivery)
class ReorderingHandler:
    @handle(ReorderStops)
    def reorder_stops(self, command):
        stop_ids = json.loads(command.stop_ids) if isinstance(command.stop_ids, str) else command.stop_ids
        repo = current_domain.repository_for(Delivery)
        delivery = repo.get(command.delivery_id)
        delivery.reorder_stops(stop_ids)
        repo.add(delivery)
