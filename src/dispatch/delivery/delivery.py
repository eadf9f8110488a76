"""Delivery aggregate (CQRS) — the core of the dispatch domain.

A Delivery owns an ordered list of Stops and a 1-based cursor
(``current_stop_index``) pointing at the stop the driver is working. Stops
are resolved strictly in ``stop_number`` order; every resolution (completion
or failure) moves the cursor forward by exactly one, and once the cursor has
passed the last stop the delivery is delivered.

Stop state machine:
    pending → in_progress → {completed, failed}
    pending → {completed, failed}      (arrival tracking is optional)

Delivery state machine:
    created → in_transit → delivered
    {created, in_transit} → failed      (set by external workflows only)

A failed stop does not block the route: the cursor skips past it and the
remaining stops continue. ``all_stops_completed`` stays false forever.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
)

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
from dispatch.errors import InvalidTransition

FIRST_STOP_NUMBER = 1


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class DeliveryStatus(Enum):
    CREATED = "created"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    FAILED = "failed"


class StopStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class StopType(Enum):
    PICKUP = "pickup"
    DROPOFF = "dropoff"


_VALID_STOP_TRANSITIONS = {
    StopStatus.PENDING: {StopStatus.IN_PROGRESS, StopStatus.COMPLETED, StopStatus.FAILED},
    StopStatus.IN_PROGRESS: {StopStatus.COMPLETED, StopStatus.FAILED},
    StopStatus.COMPLETED: set(),  # terminal
    StopStatus.FAILED: set(),  # terminal
}

_VALID_DELIVERY_TRANSITIONS = {
    DeliveryStatus.CREATED: {DeliveryStatus.IN_TRANSIT, DeliveryStatus.FAILED},
    DeliveryStatus.IN_TRANSIT: {DeliveryStatus.DELIVERED, DeliveryStatus.FAILED},
    DeliveryStatus.DELIVERED: set(),  # terminal
    DeliveryStatus.FAILED: set(),  # terminal
}

TERMINAL_STOP_STATUSES = frozenset({StopStatus.COMPLETED, StopStatus.FAILED})


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@dispatch.entity(part_of="Delivery")
class Stop:
    """One ordered waypoint of a delivery."""

    stop_number = Integer(required=True, min_value=FIRST_STOP_NUMBER)
    stop_type = String(max_length=20, choices=StopType, default=StopType.DROPOFF.value)
    address = String(max_length=500)
    latitude = Float()
    longitude = Float()
    contact_name = String(max_length=200)
    contact_phone = String(max_length=50)
    instructions = Text()
    status = String(
        max_length=20,
        choices=StopStatus,
        default=StopStatus.PENDING.value,
    )
    arrived_at = DateTime()
    completed_at = DateTime()
    proof_photo_url = String(max_length=1000)
    signature_url = String(max_length=1000)
    completion_notes = Text()
    updated_at = DateTime()


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@dispatch.aggregate
class Delivery:
    driver_id = Identifier(required=True)
    customer_id = Identifier()
    status = String(
        max_length=20,
        choices=DeliveryStatus,
        default=DeliveryStatus.CREATED.value,
    )
    current_stop_index = Integer(default=FIRST_STOP_NUMBER, min_value=FIRST_STOP_NUMBER)
    total_stops = Integer(required=True, min_value=1)
    stops = HasMany(Stop)
    created_at = DateTime()
    updated_at = DateTime()
    completed_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, driver_id: str, stops_data: list[dict], customer_id: str | None = None):
        """Create a delivery, numbering stops 1..n in the order given."""
        if not stops_data:
            raise ValidationError({"stops": ["A delivery needs at least one stop"]})

        now = datetime.now(UTC)
        delivery = cls(
            driver_id=driver_id,
            customer_id=customer_id,
            status=DeliveryStatus.CREATED.value,
            current_stop_index=FIRST_STOP_NUMBER,
            total_stops=len(stops_data),
            created_at=now,
            updated_at=now,
        )
        for stop_number, stop_data in enumerate(stops_data, start=FIRST_STOP_NUMBER):
            delivery.add_stops(
                Stop(
                    **{
                        **stop_data,
                        "stop_number": stop_number,
                        "status": StopStatus.PENDING.value,
                        "updated_at": now,
                    }
                )
            )

        delivery.raise_(
            DeliveryCreated(
                delivery_id=str(delivery.id),
                driver_id=driver_id,
                customer_id=customer_id,
                total_stops=delivery.total_stops,
                stops=json.dumps(
                    [
                        {"stop_id": str(s.id), "stop_number": s.stop_number, "stop_type": s.stop_type}
                        for s in delivery.ordered_stops()
                    ]
                ),
                created_at=now,
            )
        )
        return delivery

    # -------------------------------------------------------------------
    # Read helpers
    # -------------------------------------------------------------------
    def ordered_stops(self) -> list:
        return sorted(self.stops or [], key=lambda s: s.stop_number)

    def stop(self, stop_id: str):
        stop = next((s for s in (self.stops or []) if str(s.id) == str(stop_id)), None)
        if stop is None:
            raise ObjectNotFoundError(f"Stop {stop_id} does not belong to delivery {self.id}")
        return stop

    @property
    def current_stop(self):
        """The stop under the cursor, or None once the route is exhausted."""
        return next(
            (s for s in (self.stops or []) if s.stop_number == self.current_stop_index),
            None,
        )

    def remaining_stops(self) -> list:
        return [s for s in self.ordered_stops() if s.status == StopStatus.PENDING.value]

    def all_stops_completed(self) -> bool:
        stops = self.stops or []
        return bool(stops) and all(s.status == StopStatus.COMPLETED.value for s in stops)

    @property
    def is_route_exhausted(self) -> bool:
        return self.current_stop_index - FIRST_STOP_NUMBER >= self.total_stops

    def progress_percent(self) -> float:
        stops = self.stops or []
        if not stops:
            return 0.0
        completed = sum(1 for s in stops if s.status == StopStatus.COMPLETED.value)
        return round(completed / len(stops) * 100, 2)

    def _count_stops(self, status: StopStatus) -> int:
        return sum(1 for s in (self.stops or []) if s.status == status.value)

    # -------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: DeliveryStatus) -> None:
        current = DeliveryStatus(self.status)
        if target_status not in _VALID_DELIVERY_TRANSITIONS.get(current, set()):
            raise InvalidTransition(
                {"status": [f"Cannot transition delivery from {current.value} to {target_status.value}"]}
            )

    def _assert_route_open(self) -> None:
        current = DeliveryStatus(self.status)
        if current not in (DeliveryStatus.CREATED, DeliveryStatus.IN_TRANSIT):
            raise InvalidTransition({"status": [f"Delivery is {current.value}; its stops can no longer change"]})

    @staticmethod
    def _assert_stop_can_transition(stop, target_status: StopStatus) -> None:
        current = StopStatus(stop.status)
        if target_status not in _VALID_STOP_TRANSITIONS[current]:
            raise InvalidTransition(
                {"status": [f"Cannot transition stop {stop.stop_number} from {current.value} to {target_status.value}"]}
            )

    def _assert_is_current(self, stop, action: str) -> None:
        if stop.stop_number != self.current_stop_index:
            raise InvalidTransition(
                {
                    "stop_number": [
                        f"Cannot {action} stop {stop.stop_number} while the current stop is {self.current_stop_index}"
                    ]
                }
            )

    @staticmethod
    def _fill(stop, field_name: str, value) -> bool:
        """Set a write-once stop field. Returns True if the field was filled."""
        if value is None:
            return False
        existing = getattr(stop, field_name)
        if existing is None or existing == "":
            setattr(stop, field_name, value)
            return True
        if existing != value:
            raise InvalidTransition({field_name: [f"{field_name} is already set on stop {stop.stop_number}"]})
        return False

    # -------------------------------------------------------------------
    # Cursor and delivery lifecycle
    # -------------------------------------------------------------------
    def _begin_route(self, now: datetime) -> None:
        if DeliveryStatus(self.status) != DeliveryStatus.CREATED:
            return
        self._assert_can_transition(DeliveryStatus.IN_TRANSIT)
        self.status = DeliveryStatus.IN_TRANSIT.value
        self.raise_(
            DeliveryStarted(
                delivery_id=str(self.id),
                driver_id=str(self.driver_id),
                started_at=now,
            )
        )

    def _advance_cursor(self, now: datetime) -> None:
        self.current_stop_index += 1
        self.updated_at = now

    def _finish_if_exhausted(self, now: datetime) -> None:
        if not self.is_route_exhausted:
            return
        self._assert_can_transition(DeliveryStatus.DELIVERED)
        self.status = DeliveryStatus.DELIVERED.value
        self.completed_at = now
        self.updated_at = now
        self.raise_(
            DeliveryCompleted(
                delivery_id=str(self.id),
                driver_id=str(self.driver_id),
                total_stops=self.total_stops,
                completed_stops=self._count_stops(StopStatus.COMPLETED),
                failed_stops=self._count_stops(StopStatus.FAILED),
                completed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Arrival
    # -------------------------------------------------------------------
    def mark_arrived(self, stop_id: str, arrived_at: datetime | None = None) -> None:
        """Record that the driver reached the current stop."""
        stop = self.stop(stop_id)
        self._assert_route_open()
        self._assert_stop_can_transition(stop, StopStatus.IN_PROGRESS)
        self._assert_is_current(stop, "arrive at")

        now = datetime.now(UTC)
        self._begin_route(now)
        stop.status = StopStatus.IN_PROGRESS.value
        stop.arrived_at = arrived_at or now
        stop.updated_at = now
        self.updated_at = now
        self.raise_(
            StopArrived(
                delivery_id=str(self.id),
                stop_id=str(stop.id),
                stop_number=stop.stop_number,
                stop_type=stop.stop_type,
                arrived_at=stop.arrived_at,
            )
        )

    # -------------------------------------------------------------------
    # Completion (the cascade)
    # -------------------------------------------------------------------
    def complete_stop(
        self,
        stop_id: str,
        proof_photo_url: str | None = None,
        signature_url: str | None = None,
        completion_notes: str | None = None,
        completed_at: datetime | None = None,
    ) -> None:
        """Complete the current stop, advance the cursor and, after the last
        stop, deliver the delivery.
        """
        stop = self.stop(stop_id)
        self._assert_route_open()
        self._assert_stop_can_transition(stop, StopStatus.COMPLETED)
        self._assert_is_current(stop, "complete")

        now = datetime.now(UTC)
        self._begin_route(now)
        stop.status = StopStatus.COMPLETED.value
        self._fill(stop, "completed_at", completed_at or now)
        self._fill(stop, "proof_photo_url", proof_photo_url)
        self._fill(stop, "signature_url", signature_url)
        self._fill(stop, "completion_notes", completion_notes)
        stop.updated_at = now

        self._advance_cursor(now)
        self.raise_(
            StopCompleted(
                delivery_id=str(self.id),
                stop_id=str(stop.id),
                stop_number=stop.stop_number,
                stop_type=stop.stop_type,
                current_stop_index=self.current_stop_index,
                proof_photo_url=stop.proof_photo_url,
                signature_url=stop.signature_url,
                completion_notes=stop.completion_notes,
                completed_at=stop.completed_at,
            )
        )
        self._finish_if_exhausted(now)

    # -------------------------------------------------------------------
    # Failure
    # -------------------------------------------------------------------
    def fail_stop(self, stop_id: str, reason: str) -> None:
        """Mark the current stop failed and skip past it."""
        if not reason:
            raise ValidationError({"reason": ["A failure reason is required"]})

        stop = self.stop(stop_id)
        self._assert_route_open()
        self._assert_stop_can_transition(stop, StopStatus.FAILED)
        self._assert_is_current(stop, "fail")

        now = datetime.now(UTC)
        self._begin_route(now)
        stop.status = StopStatus.FAILED.value
        self._fill(stop, "completion_notes", reason)
        stop.updated_at = now

        self._advance_cursor(now)
        self.raise_(
            StopFailed(
                delivery_id=str(self.id),
                stop_id=str(stop.id),
                stop_number=stop.stop_number,
                stop_type=stop.stop_type,
                current_stop_index=self.current_stop_index,
                reason=reason,
                failed_at=now,
            )
        )
        self._finish_if_exhausted(now)

    # -------------------------------------------------------------------
    # Corrective updates
    # -------------------------------------------------------------------
    def correct_stop(
        self,
        stop_id: str,
        status: str | None = None,
        arrived_at: datetime | None = None,
        completed_at: datetime | None = None,
        proof_photo_url: str | None = None,
        signature_url: str | None = None,
        completion_notes: str | None = None,
    ) -> None:
        """Administrative patch of a single stop.

        Status changes go through the regular transitions so the cursor stays
        consistent; field patches only fill fields that are still unset.
        """
        stop = self.stop(stop_id)
        current = StopStatus(stop.status)
        target = StopStatus(status) if status else current

        if target != current:
            self._assert_stop_can_transition(stop, target)
        if arrived_at is not None and target == StopStatus.PENDING:
            raise InvalidTransition({"arrived_at": ["A pending stop cannot have an arrival time"]})
        if completed_at is not None and target != StopStatus.COMPLETED:
            raise InvalidTransition({"completed_at": ["Only a completed stop can have a completion time"]})

        # Proof and notes are the outcome of a stop; they stay unset until it
        # is completed or failed.
        outcome = {
            "proof_photo_url": proof_photo_url,
            "signature_url": signature_url,
            "completion_notes": completion_notes,
        }
        early = [name for name, value in outcome.items() if value is not None]
        if early and target not in TERMINAL_STOP_STATUSES:
            raise InvalidTransition(
                {name: [f"{name} can only be recorded once stop {stop.stop_number} is completed or failed"] for name in early}
            )

        if target == StopStatus.IN_PROGRESS and current != target:
            self.mark_arrived(stop_id, arrived_at=arrived_at)
        elif target == StopStatus.COMPLETED and current != target:
            self.complete_stop(
                stop_id,
                proof_photo_url=proof_photo_url,
                signature_url=signature_url,
                completion_notes=completion_notes,
                completed_at=completed_at,
            )
            self._patch_stop(stop, arrived_at=arrived_at)
        elif target == StopStatus.FAILED and current != target:
            self.fail_stop(stop_id, reason=completion_notes)
            self._patch_stop(
                stop,
                arrived_at=arrived_at,
                proof_photo_url=proof_photo_url,
                signature_url=signature_url,
            )
        else:
            self._patch_stop(
                stop,
                arrived_at=arrived_at,
                completed_at=completed_at,
                proof_photo_url=proof_photo_url,
                signature_url=signature_url,
                completion_notes=completion_notes,
            )

    def _patch_stop(self, stop, **fields) -> list[str]:
        filled = [name for name, value in fields.items() if self._fill(stop, name, value)]
        if not filled:
            return filled

        now = datetime.now(UTC)
        stop.updated_at = now
        self.updated_at = now
        self.raise_(
            StopCorrected(
                delivery_id=str(self.id),
                stop_id=str(stop.id),
                stop_number=stop.stop_number,
                fields=json.dumps(filled),
                corrected_at=now,
            )
        )
        return filled

    # -------------------------------------------------------------------
    # Reordering
    # -------------------------------------------------------------------
    def reorder_stops(self, stop_ids: list[str]) -> None:
        """Renumber stops in the given order. Only before the route starts."""
        if DeliveryStatus(self.status) != DeliveryStatus.CREATED:
            raise InvalidTransition({"status": ["Stops can only be reordered before the route starts"]})

        stops_by_id = {str(s.id): s for s in (self.stops or [])}
        requested = [str(stop_id) for stop_id in stop_ids]
        if len(requested) != len(stops_by_id) or set(requested) != set(stops_by_id):
            raise ValidationError({"stop_ids": ["Must list every stop of the delivery exactly once"]})

        now = datetime.now(UTC)
        for stop_number, stop_id in enumerate(requested, start=FIRST_STOP_NUMBER):
            stop = stops_by_id[stop_id]
            stop.stop_number = stop_number
            stop.updated_at = now
        self.updated_at = now
        self.raise_(
            StopsReordered(
                delivery_id=str(self.id),
                stop_ids=json.dumps(requested),
                reordered_at=now,
            )
        )
