"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state — no cross-user sharing.
State tracks entity IDs returned by creation endpoints so follow-up
operations can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class DeliveryState:
    """Tracks state for a single simulated delivery route."""

    delivery_id: str | None = None
    driver_id: str | None = None
    stop_ids: list[str] = field(default_factory=list)
    next_stop: int = 0
    current_status: str = "created"

    @property
    def current_stop_id(self) -> str | None:
        if self.next_stop >= len(self.stop_ids):
            return None
        return self.stop_ids[self.next_stop]

    @property
    def route_finished(self) -> bool:
        return self.next_stop >= len(self.stop_ids)
