"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the dispatch domain's validation
rules (at least one stop, known stop types) and match the exact field names
expected by the API's Pydantic request schemas.
"""

import random
import uuid

from faker import Faker

fake = Faker()


def unique_driver_id() -> str:
    """Generate unique driver IDs like 'DRV-LT-a1b2c3d4'."""
    return f"DRV-LT-{uuid.uuid4().hex[:8]}"


def valid_phone() -> str:
    area = random.randint(200, 999)
    prefix = random.randint(200, 999)
    line = random.randint(1000, 9999)
    return f"+1-{area}-{prefix}-{line}"


def stop_data(stop_type: str = "dropoff") -> dict:
    """A single stop with a real-looking address and coordinates."""
    return {
        "stop_type": stop_type,
        "address": fake.street_address(),
        "latitude": float(fake.latitude()),
        "longitude": float(fake.longitude()),
        "contact_name": fake.name(),
        "contact_phone": valid_phone(),
        "instructions": random.choice([None, "Ring twice", "Leave at reception", "Call on arrival"]),
    }


def delivery_data(stop_count: int | None = None) -> dict:
    """A delivery that starts with a pickup followed by dropoffs."""
    stop_count = stop_count or random.randint(2, 6)
    stops = [stop_data("pickup")] + [stop_data("dropoff") for _ in range(stop_count - 1)]
    return {
        "driver_id": unique_driver_id(),
        "customer_id": f"CUST-LT-{uuid.uuid4().hex[:8]}",
        "stops": stops,
    }


def proof_of_delivery() -> dict:
    token = uuid.uuid4().hex[:12]
    return {
        "proof_photo_url": f"https://cdn.loadtest.example.com/proof/{token}.jpg",
        "signature_url": f"https://cdn.loadtest.example.com/signatures/{token}.png",
        "completion_notes": random.choice([None, "Handed to recipient", "Left with neighbour"]),
    }


def failure_reason() -> str:
    return random.choice(
        [
            "Recipient not available",
            "Business closed",
            "Address not found",
            "Access denied by building security",
        ]
    )
