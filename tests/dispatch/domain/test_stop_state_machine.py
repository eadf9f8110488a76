"""Tests for the stop state machine — valid and invalid transitions."""

import pytest
from dispatch.delivery.delivery import Delivery, DeliveryStatus, StopStatus
from dispatch.errors import InvalidTransition
from protean.exceptions import ObjectNotFoundError, ValidationError


def _make_delivery(count=3):
    return Delivery.create(
        driver_id="drv-001",
        stops_data=[{"address": f"{i} Elm Street"} for i in range(1, count + 1)],
    )


def _stop_id(delivery, number):
    return str(next(s.id for s in delivery.stops if s.stop_number == number))


class TestValidTransitions:
    def test_pending_to_in_progress(self):
        delivery = _make_delivery()
        delivery.mark_arrived(_stop_id(delivery, 1))
        stop = delivery.stop(_stop_id(delivery, 1))
        assert stop.status == StopStatus.IN_PROGRESS.value
        assert stop.arrived_at is not None

    def test_in_progress_to_completed(self):
        delivery = _make_delivery()
        delivery.mark_arrived(_stop_id(delivery, 1))
        delivery.complete_stop(_stop_id(delivery, 1))
        assert delivery.stop(_stop_id(delivery, 1)).status == StopStatus.COMPLETED.value

    def test_pending_to_completed_without_arrival(self):
        delivery = _make_delivery()
        delivery.complete_stop(_stop_id(delivery, 1))
        stop = delivery.stop(_stop_id(delivery, 1))
        assert stop.status == StopStatus.COMPLETED.value
        assert stop.arrived_at is None
        assert stop.completed_at is not None

    def test_in_progress_to_failed(self):
        delivery = _make_delivery()
        delivery.mark_arrived(_stop_id(delivery, 1))
        delivery.fail_stop(_stop_id(delivery, 1), reason="Recipient absent")
        stop = delivery.stop(_stop_id(delivery, 1))
        assert stop.status == StopStatus.FAILED.value
        assert stop.completion_notes == "Recipient absent"

    def test_pending_to_failed(self):
        delivery = _make_delivery()
        delivery.fail_stop(_stop_id(delivery, 1), reason="Gate locked")
        assert delivery.stop(_stop_id(delivery, 1)).status == StopStatus.FAILED.value

    def test_first_stop_event_starts_the_route(self):
        delivery = _make_delivery()
        delivery.mark_arrived(_stop_id(delivery, 1))
        assert delivery.status == DeliveryStatus.IN_TRANSIT.value

    def test_completion_stores_proof_of_delivery(self):
        delivery = _make_delivery()
        delivery.complete_stop(
            _stop_id(delivery, 1),
            proof_photo_url="https://cdn.example.com/p1.jpg",
            signature_url="https://cdn.example.com/s1.png",
            completion_notes="Left with concierge",
        )
        stop = delivery.stop(_stop_id(delivery, 1))
        assert stop.proof_photo_url == "https://cdn.example.com/p1.jpg"
        assert stop.signature_url == "https://cdn.example.com/s1.png"
        assert stop.completion_notes == "Left with concierge"


class TestInvalidTransitions:
    def test_cannot_arrive_at_completed_stop(self):
        delivery = _make_delivery()
        delivery.complete_stop(_stop_id(delivery, 1))
        with pytest.raises(InvalidTransition) as exc:
            delivery.mark_arrived(_stop_id(delivery, 1))
        assert "from completed to in_progress" in str(exc.value.messages)

    def test_cannot_complete_twice(self):
        delivery = _make_delivery()
        delivery.complete_stop(_stop_id(delivery, 1))
        with pytest.raises(InvalidTransition):
            delivery.complete_stop(_stop_id(delivery, 1))

    def test_cannot_fail_completed_stop(self):
        delivery = _make_delivery()
        delivery.complete_stop(_stop_id(delivery, 1))
        with pytest.raises(InvalidTransition):
            delivery.fail_stop(_stop_id(delivery, 1), reason="Too late")

    def test_cannot_complete_failed_stop(self):
        delivery = _make_delivery()
        delivery.fail_stop(_stop_id(delivery, 1), reason="Closed")
        with pytest.raises(InvalidTransition):
            delivery.complete_stop(_stop_id(delivery, 1))

    def test_cannot_arrive_twice(self):
        delivery = _make_delivery()
        delivery.mark_arrived(_stop_id(delivery, 1))
        with pytest.raises(InvalidTransition):
            delivery.mark_arrived(_stop_id(delivery, 1))

    def test_cannot_arrive_out_of_order(self):
        delivery = _make_delivery()
        with pytest.raises(InvalidTransition) as exc:
            delivery.mark_arrived(_stop_id(delivery, 2))
        assert "current stop is 1" in str(exc.value.messages)

    def test_cannot_complete_out_of_order(self):
        delivery = _make_delivery()
        with pytest.raises(InvalidTransition):
            delivery.complete_stop(_stop_id(delivery, 3))

    def test_cannot_fail_out_of_order(self):
        delivery = _make_delivery()
        with pytest.raises(InvalidTransition):
            delivery.fail_stop(_stop_id(delivery, 2), reason="Skipping ahead")

    def test_failure_requires_reason(self):
        delivery = _make_delivery()
        with pytest.raises(ValidationError) as exc:
            delivery.fail_stop(_stop_id(delivery, 1), reason="")
        assert "reason" in exc.value.messages

    def test_unknown_stop(self):
        delivery = _make_delivery()
        with pytest.raises(ObjectNotFoundError):
            delivery.complete_stop("missing-stop")

    def test_stops_frozen_once_delivery_failed(self):
        delivery = _make_delivery()
        delivery.status = DeliveryStatus.FAILED.value
        with pytest.raises(InvalidTransition) as exc:
            delivery.mark_arrived(_stop_id(delivery, 1))
        assert "no longer change" in str(exc.value.messages)

    def test_rejected_transition_leaves_state_untouched(self):
        delivery = _make_delivery()
        with pytest.raises(InvalidTransition):
            delivery.complete_stop(_stop_id(delivery, 2))
        assert delivery.current_stop_index == 1
        assert delivery.status == DeliveryStatus.CREATED.value
        assert all(s.status == StopStatus.PENDING.value for s in delivery.stops)
