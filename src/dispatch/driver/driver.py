"""Driver availability register.

The dispatch engine only tracks one fact about a driver: whether they can
take new work. Registration and profiles live elsewhere; an entry is created
the first time availability is recorded for a driver id.
"""

from datetime import UTC, datetime

from protean.fields import Boolean, DateTime, Identifier

from dispatch.domain import dispatch


@dispatch.event(part_of="Driver")
class DriverAvailabilityChanged:
    """A driver became available or unavailable for new deliveries."""

    __version__ = "v1"

    driver_id = Identifier(required=True)
    is_available = Boolean(required=True)
    changed_at = DateTime(required=True)


@dispatch.aggregate
class Driver:
    driver_id = Identifier(identifier=True)
    is_available = Boolean(default=True)
    updated_at = DateTime()

    @classmethod
    def register(cls, driver_id: str, is_available: bool = True):
        driver = cls(driver_id=driver_id, is_available=is_available, updated_at=datetime.now(UTC))
        driver.raise_(
            DriverAvailabilityChanged(
                driver_id=str(driver_id),
                is_available=is_available,
                changed_at=driver.updated_at,
            )
        )
        return driver

    def set_available(self, is_available: bool) -> bool:
        """Record availability. Returns True if the flag actually changed."""
        if self.is_available == is_available:
            return False

        self.is_available = is_available
        self.updated_at = datetime.now(UTC)
        self.raise_(
            DriverAvailabilityChanged(
                driver_id=str(self.driver_id),
                is_available=is_available,
                changed_at=self.updated_at,
            )
        )
        return True
