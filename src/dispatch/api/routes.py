"""FastAPI routes for the Dispatch domain."""

import json

from fastapi import APIRouter
from fastapi.responses import StreamingResponse
from protean.utils.globals import current_domain

from dispatch.api.schemas import (
    CompleteStopRequest,
    CreateDeliveryRequest,
    DeliveryIdResponse,
    DeliveryResponse,
    DriverAvailabilityRequest,
    DriverAvailabilityResponse,
    FailStopRequest,
    ProgressResponse,
    ReorderStopsRequest,
    StatusResponse,
    StopResponse,
    UpdateStopRequest,
)
from dispatch.delivery import queries
from dispatch.delivery.arrival import MarkStopArrived
from dispatch.delivery.completion import CompleteStop
from dispatch.delivery.correction import UpdateStopStatus
from dispatch.delivery.creation import CreateDelivery
from dispatch.delivery.failure import MarkStopFailed
from dispatch.delivery.reordering import ReorderStops
from dispatch.delivery.retry import process_with_retry
from dispatch.delivery.watch import watch_stops
from dispatch.driver.availability import SetDriverAvailability, is_available
from dispatch.projections.delivery_progress import DeliveryProgressView


def _stop_response(stop) -> StopResponse:
    return StopResponse(
        stop_id=str(stop.id),
        stop_number=stop.stop_number,
        stop_type=stop.stop_type,
        status=stop.status,
        address=stop.address,
        latitude=stop.latitude,
        longitude=stop.longitude,
        contact_name=stop.contact_name,
        contact_phone=stop.contact_phone,
        instructions=stop.instructions,
        arrived_at=stop.arrived_at,
        completed_at=stop.completed_at,
        proof_photo_url=stop.proof_photo_url,
        signature_url=stop.signature_url,
        completion_notes=stop.completion_notes,
    )


# ---------------------------------------------------------------------------
# Delivery Router
# ---------------------------------------------------------------------------
delivery_router = APIRouter(prefix="/deliveries", tags=["deliveries"])


@delivery_router.post("", status_code=201, response_model=DeliveryIdResponse)
async def create_delivery(body: CreateDeliveryRequest) -> DeliveryIdResponse:
    """Hand a multi-stop delivery to a driver."""
    command = CreateDelivery(
        driver_id=body.driver_id,
        customer_id=body.customer_id,
        stops=json.dumps([stop.model_dump(exclude_none=True) for stop in body.stops]),
    )
    result = current_domain.process(command, asynchronous=False)
    return DeliveryIdResponse(delivery_id=result)


@delivery_router.get("/{delivery_id}", response_model=DeliveryResponse)
async def get_delivery(delivery_id: str) -> DeliveryResponse:
    delivery = queries.load_delivery(delivery_id)
    return DeliveryResponse(
        delivery_id=str(delivery.id),
        driver_id=str(delivery.driver_id),
        customer_id=str(delivery.customer_id) if delivery.customer_id else None,
        status=delivery.status,
        current_stop_index=delivery.current_stop_index,
        total_stops=delivery.total_stops,
        all_completed=delivery.all_stops_completed(),
        stops=[_stop_response(s) for s in delivery.ordered_stops()],
        created_at=delivery.created_at,
        completed_at=delivery.completed_at,
    )


@delivery_router.get("/{delivery_id}/progress", response_model=ProgressResponse)
async def get_progress(delivery_id: str) -> ProgressResponse:
    """Dashboard progress, served from the progress projection."""
    view = current_domain.repository_for(DeliveryProgressView).get(delivery_id)
    return ProgressResponse(
        delivery_id=str(view.delivery_id),
        driver_id=str(view.driver_id),
        status=view.status,
        current_stop_index=view.current_stop_index,
        total_stops=view.total_stops,
        completed_stops=view.completed_stops or 0,
        failed_stops=view.failed_stops or 0,
        progress=view.progress or 0.0,
    )


# ---------------------------------------------------------------------------
# Stop reads
# ---------------------------------------------------------------------------
@delivery_router.get("/{delivery_id}/stops", response_model=list[StopResponse])
async def list_stops(delivery_id: str) -> list[StopResponse]:
    return [_stop_response(s) for s in queries.list_stops(delivery_id)]


@delivery_router.get("/{delivery_id}/stops/current", response_model=StopResponse | None)
async def current_stop(delivery_id: str) -> StopResponse | None:
    """The stop under the cursor; null once every stop is resolved."""
    stop = queries.current_stop(delivery_id)
    return _stop_response(stop) if stop is not None else None


@delivery_router.get("/{delivery_id}/stops/remaining", response_model=list[StopResponse])
async def remaining_stops(delivery_id: str) -> list[StopResponse]:
    return [_stop_response(s) for s in queries.remaining_stops(delivery_id)]


@delivery_router.get("/{delivery_id}/stops/watch")
async def watch(delivery_id: str) -> StreamingResponse:
    """Server-sent events: the ordered stop list now and after each change."""
    # Raise 404 before the stream starts
    queries.load_delivery(delivery_id)

    async def event_stream():
        async for snapshot in watch_stops(delivery_id):
            yield f"data: {json.dumps(snapshot, default=str)}\n\n"

    return StreamingResponse(event_stream(), media_type="text/event-stream")


# ---------------------------------------------------------------------------
# Stop transitions
# ---------------------------------------------------------------------------
@delivery_router.put("/{delivery_id}/stops/order", response_model=StatusResponse)
async def reorder_stops(delivery_id: str, body: ReorderStopsRequest) -> StatusResponse:
    """Change the visiting order before the route starts."""
    command = ReorderStops(delivery_id=delivery_id, stop_ids=json.dumps(body.stop_ids))
    process_with_retry(command)
    return StatusResponse(status="stops_reordered")


@delivery_router.put("/{delivery_id}/stops/{stop_id}/arrive", response_model=StatusResponse)
async def mark_arrived(delivery_id: str, stop_id: str) -> StatusResponse:
    """The driver reached the current stop."""
    process_with_retry(MarkStopArrived(delivery_id=delivery_id, stop_id=stop_id))
    return StatusResponse(status="arrived")


@delivery_router.put("/{delivery_id}/stops/{stop_id}/complete", response_model=StatusResponse)
async def complete_stop(delivery_id: str, stop_id: str, body: CompleteStopRequest) -> StatusResponse:
    """Complete the current stop and advance the route."""
    command = CompleteStop(
        delivery_id=delivery_id,
        stop_id=stop_id,
        proof_photo_url=body.proof_photo_url,
        signature_url=body.signature_url,
        completion_notes=body.completion_notes,
    )
    process_with_retry(command)
    return StatusResponse(status="completed")


@delivery_router.put("/{delivery_id}/stops/{stop_id}/fail", response_model=StatusResponse)
async def mark_failed(delivery_id: str, stop_id: str, body: FailStopRequest) -> StatusResponse:
    """Fail the current stop; the route continues with the next one."""
    process_with_retry(MarkStopFailed(delivery_id=delivery_id, stop_id=stop_id, reason=body.reason))
    return StatusResponse(status="failed")


@delivery_router.patch("/{delivery_id}/stops/{stop_id}", response_model=StatusResponse)
async def update_stop(delivery_id: str, stop_id: str, body: UpdateStopRequest) -> StatusResponse:
    """Corrective update of a stop's status or write-once fields."""
    command = UpdateStopStatus(
        delivery_id=delivery_id,
        stop_id=stop_id,
        status=body.status,
        arrived_at=body.arrived_at,
        completed_at=body.completed_at,
        proof_photo_url=body.proof_photo_url,
        signature_url=body.signature_url,
        completion_notes=body.completion_notes,
    )
    process_with_retry(command)
    return StatusResponse(status="updated")


# ---------------------------------------------------------------------------
# Driver Router
# ---------------------------------------------------------------------------
driver_router = APIRouter(prefix="/drivers", tags=["drivers"])


@driver_router.get("/{driver_id}/availability", response_model=DriverAvailabilityResponse)
async def get_availability(driver_id: str) -> DriverAvailabilityResponse:
    return DriverAvailabilityResponse(driver_id=driver_id, is_available=is_available(driver_id))


@driver_router.put("/{driver_id}/availability", response_model=DriverAvailabilityResponse)
async def set_availability(driver_id: str, body: DriverAvailabilityRequest) -> DriverAvailabilityResponse:
    command = SetDriverAvailability(driver_id=driver_id, is_available=body.is_available)
    result = process_with_retry(command)
    return DriverAvailabilityResponse(driver_id=driver_id, is_available=result)
