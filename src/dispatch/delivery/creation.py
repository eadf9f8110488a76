"""Delivery intake — command and handler."""

import json

from protean import handle
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from dispatch.delivery.delivery import Delivery
from dispatch.domain import dispatch
from dispatch.driver.availability import set_available


@dispatch.command(part_of="Delivery")
class CreateDelivery:
    """Hand a multi-stop delivery to a driver."""

    driver_id = Identifier(required=True)
    customer_id = Identifier()
    stops = Text(required=True)  # JSON list of stop dicts, in visiting order


@dispatch.command_handler(part_of=Delivery)
class CreateDeliveryHandler:
    @handle(CreateDelivery)
    def create_delivery(self, command):
        stops_data = json.loads(command.stops) if isinstance(command.stops, str) else command.stops
        delivery = Delivery.create(
            driver_id=command.driver_id,
            stops_data=stops_data,
            customer_id=command.customer_id,
        )
        current_domain.repository_for(Delivery).add(delivery)
        set_available(command.driver_id, False)
        return str(delivery.id)
