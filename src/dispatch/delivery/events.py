"""Delivery domain events — immutable facts about stop progression.

All events are past tense, versioned, and carry the delivery id plus the
cursor position after the change so projectors and the change feed never
need to reload the aggregate to stay consistent.
"""

from protean.fields import DateTime, Identifier, Integer, String, Text

from dispatch.domain import dispatch


@dispatch.event(part_of="Delivery")
class DeliveryCreated:
    """A multi-stop delivery was handed to the engine."""

    __version__ = "v1"

    delivery_id = Identifier(required=True)
    driver_id = Identifier(required=True)
    customer_id = Identifier()
    total_stops = Integer(required=True)
    stops = Text(required=True)  # JSON list of {stop_id, stop_number, stop_type}
    created_at = DateTime(required=True)


@dispatch.event(part_of="Delivery")
class DeliveryStarted:
    """The driver started working the route (first stop event)."""

    __version__ = "v1"

    delivery_id = Identifier(required=True)
    driver_id = Identifier(required=True)
    started_at = DateTime(required=True)


@dispatch.event(part_of="Delivery")
class StopArrived:
    """The driver arrived at the current stop."""

    __version__ = "v1"

    delivery_id = Identifier(required=True)
    stop_id = Identifier(required=True)
    stop_number = Integer(required=True)
    stop_type = String(required=True)
    arrived_at = DateTime(required=True)


@dispatch.event(part_of="Delivery")
class StopCompleted:
    """The current stop was completed and the cursor moved past it."""

    __version__ = "v1"

    delivery_id = Identifier(required=True)
    stop_id = Identifier(required=True)
    stop_number = Integer(required=True)
    stop_type = String(required=True)
    current_stop_index = Integer(required=True)
    proof_photo_url = String()
    signature_url = String()
    completion_notes = Text()
    completed_at = DateTime(required=True)


@dispatch.event(part_of="Delivery")
class StopFailed:
    """The current stop could not be served; the route continues past it."""

    __version__ = "v1"

    delivery_id = Identifier(required=True)
    stop_id = Identifier(required=True)
    stop_number = Integer(required=True)
    stop_type = String(required=True)
    current_stop_index = Integer(required=True)
    reason = Text(required=True)
    failed_at = DateTime(required=True)


@dispatch.event(part_of="Delivery")
class StopCorrected:
    """Unset stop fields were filled in by a corrective update."""

    __version__ = "v1"

    delivery_id = Identifier(required=True)
    stop_id = Identifier(required=True)
    stop_number = Integer(required=True)
    fields = Text(required=True)  # JSON list of field names that were filled
    corrected_at = DateTime(required=True)


@dispatch.event(part_of="Delivery")
class StopsReordered:
    """Stops were renumbered before the route started."""

    __version__ = "v1"

    delivery_id = Identifier(required=True)
    stop_ids = Text(required=True)  # JSON list of stop ids in visiting order
    reordered_at = DateTime(required=True)


@dispatch.event(part_of="Delivery")
class DeliveryCompleted:
    """The cursor passed the last stop; the delivery is delivered."""

    __version__ = "v1"

    delivery_id = Identifier(required=True)
    driver_id = Identifier(required=True)
    total_stops = Integer(required=True)
    completed_stops = Integer(required=True)
    failed_stops = Integer(required=True)
    completed_at = DateTime(required=True)
