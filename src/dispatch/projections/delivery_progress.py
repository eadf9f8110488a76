"""Delivery progress — dashboard view of how far each route has got."""

from protean.core.projector import on
from protean.fields import DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from dispatch.delivery.delivery import Delivery, DeliveryStatus
from dispatch.delivery.events import (
    DeliveryCompleted,
    DeliveryCreated,
    DeliveryStarted,
    StopCompleted,
    StopFailed,
)
from dispatch.domain import dispatch


@dispatch.projection
class DeliveryProgressView:
    delivery_id = Identifier(identifier=True, required=True)
    driver_id = Identifier(required=True)
    status = String(required=True)
    current_stop_index = Integer(default=1)
    total_stops = Integer(required=True)
    completed_stops = Integer(default=0)
    failed_stops = Integer(default=0)
    progress = Float(default=0.0)
    created_at = DateTime()
    updated_at = DateTime()


def _progress(view) -> float:
    if not view.total_stops:
        return 0.0
    return round(view.completed_stops / view.total_stops * 100, 2)


@dispatch.projector(projector_for=DeliveryProgressView, aggregates=[Delivery])
class DeliveryProgressProjector:
    @on(DeliveryCreated)
    def on_delivery_created(self, event):
        current_domain.repository_for(DeliveryProgressView).add(
            DeliveryProgressView(
                delivery_id=event.delivery_id,
                driver_id=event.driver_id,
                status=DeliveryStatus.CREATED.value,
                current_stop_index=1,
                total_stops=event.total_stops,
                created_at=event.created_at,
                updated_at=event.created_at,
            )
        )

    @on(DeliveryStarted)
    def on_delivery_started(self, event):
        repo = current_domain.repository_for(DeliveryProgressView)
        view = repo.get(event.delivery_id)
        view.status = DeliveryStatus.IN_TRANSIT.value
        view.updated_at = event.started_at
        repo.add(view)

    @on(StopCompleted)
    def on_stop_completed(self, event):
        repo = current_domain.repository_for(DeliveryProgressView)
        view = repo.get(event.delivery_id)
        view.completed_stops = (view.completed_stops or 0) + 1
        view.current_stop_index = event.current_stop_index
        view.progress = _progress(view)
        view.updated_at = event.completed_at
        repo.add(view)

    @on(StopFailed)
    def on_stop_failed(self, event):
        repo = current_domain.repository_for(DeliveryProgressView)
        view = repo.get(event.delivery_id)
        view.failed_stops = (view.failed_stops or 0) + 1
        view.current_stop_index = event.current_stop_index
        view.updated_at = event.failed_at
        repo.add(view)

    @on(DeliveryCompleted)
    def on_delivery_completed(self, event):
        repo = current_domain.repository_for(DeliveryProgressView)
        view = repo.get(event.delivery_id)
        view.status = DeliveryStatus.DELIVERED.value
        view.completed_stops = event.completed_stops
        view.failed_stops = event.failed_stops
        view.progress = _progress(view)
        view.updated_at = event.completed_at
        repo.add(view)
