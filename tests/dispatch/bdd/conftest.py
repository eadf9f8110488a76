"""Shared BDD fixtures and step definitions for the Dispatch domain."""

import pytest
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
from dispatch.errors import InvalidTransition
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then, when

_DELIVERY_EVENT_CLASSES = {
    "DeliveryCreated": DeliveryCreated,
    "DeliveryStarted": DeliveryStarted,
    "StopArrived": StopArrived,
    "StopCompleted": StopCompleted,
    "StopFailed": StopFailed,
    "StopCorrected": StopCorrected,
    "StopsReordered": StopsReordered,
    "DeliveryCompleted": DeliveryCompleted,
}


def _new_delivery(count):
    return Delivery.create(
        driver_id="drv-bdd",
        stops_data=[{"address": f"{i} Canal Street"} for i in range(1, count + 1)],
        customer_id="cust-bdd",
    )


def _stop_id(delivery, number):
    return str(next(s.id for s in delivery.stops if s.stop_number == number))


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("a delivery with {count:d} stops"), target_fixture="delivery")
def delivery_with_stops(count):
    delivery = _new_delivery(count)
    delivery._events.clear()
    return delivery


@given(
    parsers.cfparse("a delivery with {count:d} stops where stop 1 is completed"),
    target_fixture="delivery",
)
def delivery_with_first_stop_completed(count):
    delivery = _new_delivery(count)
    delivery.complete_stop(_stop_id(delivery, 1))
    delivery._events.clear()
    return delivery


# ---------------------------------------------------------------------------
# Shared when steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse("stop {number:d} is completed"), target_fixture="delivery")
def complete_stop(delivery, number):
    delivery.complete_stop(_stop_id(delivery, number))
    return delivery


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the delivery status is "{status}"'))
def delivery_status_is(delivery, status):
    assert delivery.status == status


@then(parsers.cfparse("the current stop index is {index:d}"))
def current_stop_index_is(delivery, index):
    assert delivery.current_stop_index == index


@then(parsers.cfparse('stop {number:d} is "{status}"'))
def stop_status_is(delivery, number, status):
    assert delivery.stop(_stop_id(delivery, number)).status == status


@then("all stops are completed")
def all_stops_completed(delivery):
    assert delivery.all_stops_completed() is True


@then("not all stops are completed")
def not_all_stops_completed(delivery):
    assert delivery.all_stops_completed() is False


@then("the stop action fails with an invalid transition")
def stop_action_invalid(error):
    assert error["exc"] is not None, "Expected an invalid transition but none was raised"
    assert isinstance(error["exc"], InvalidTransition)


@then("the stop action fails with a validation error")
def stop_action_fails(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse("a {event_type} event is raised"))
def delivery_event_raised(delivery, event_type):
    event_cls = _DELIVERY_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in delivery._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in delivery._events]}"
