"""Pydantic API schemas for the Dispatch domain.

These are the external API contracts — separate from domain commands.
The API layer translates between these schemas and domain commands.
"""

from datetime import datetime

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class StopRequest(BaseModel):
    stop_type: str = "dropoff"
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    contact_name: str | None = None
    contact_phone: str | None = None
    instructions: str | None = None


class CreateDeliveryRequest(BaseModel):
    driver_id: str
    customer_id: str | None = None
    stops: list[StopRequest]


class CompleteStopRequest(BaseModel):
    proof_photo_url: str | None = None
    signature_url: str | None = None
    completion_notes: str | None = None


class FailStopRequest(BaseModel):
    reason: str


class UpdateStopRequest(BaseModel):
    status: str | None = None
    arrived_at: datetime | None = None
    completed_at: datetime | None = None
    proof_photo_url: str | None = None
    signature_url: str | None = None
    completion_notes: str | None = None


class ReorderStopsRequest(BaseModel):
    stop_ids: list[str]


class DriverAvailabilityRequest(BaseModel):
    is_available: bool


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class DeliveryIdResponse(BaseModel):
    delivery_id: str


class StatusResponse(BaseModel):
    status: str


class StopResponse(BaseModel):
    stop_id: str
    stop_number: int
    stop_type: str
    status: str
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    contact_name: str | None = None
    contact_phone: str | None = None
    instructions: str | None = None
    arrived_at: datetime | None = None
    completed_at: datetime | None = None
    proof_photo_url: str | None = None
    signature_url: str | None = None
    completion_notes: str | None = None


class DeliveryResponse(BaseModel):
    delivery_id: str
    driver_id: str
    customer_id: str | None = None
    status: str
    current_stop_index: int
    total_stops: int
    all_completed: bool
    stops: list[StopResponse]
    created_at: datetime | None = None
    completed_at: datetime | None = None


class ProgressResponse(BaseModel):
    delivery_id: str
    driver_id: str
    status: str
    current_stop_index: int
    total_stops: int
    completed_stops: int
    failed_stops: int
    progress: float


class DriverAvailabilityResponse(BaseModel):
    driver_id: str
    is_available: bool
