"""Driver availability — command, handler and the register helper used by
the delivery handlers.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, Identifier
from protean.utils.globals import current_domain

from dispatch.domain import dispatch
from dispatch.driver.driver import Driver
from dispatch.utils.logging import get_logger

logger = get_logger(__name__)


def set_available(driver_id: str, is_available: bool) -> Driver:
    """Upsert the register entry for ``driver_id``.

    Runs inside the caller's unit of work, so a delivery handler that flips
    availability persists it together with the delivery.
    """
    repo = current_domain.repository_for(Driver)
    try:
        driver = repo.get(driver_id)
    except ObjectNotFoundError:
        driver = Driver.register(driver_id, is_available=is_available)
        logger.info("Driver registered in availability register", driver_id=str(driver_id), is_available=is_available)
    else:
        if not driver.set_available(is_available):
            return driver
        logger.info("Driver availability changed", driver_id=str(driver_id), is_available=is_available)

    repo.add(driver)
    return driver


def is_available(driver_id: str) -> bool:
    """Drivers without a register entry are treated as available."""
    try:
        return bool(current_domain.repository_for(Driver).get(driver_id).is_available)
    except ObjectNotFoundError:
        return True


@dispatch.command(part_of="Driver")
class SetDriverAvailability:
    """Mark a driver available or unavailable for new deliveries."""

    driver_id = Identifier(required=True)
    is_available = Boolean(required=True)


@dispatch.command_handler(part_of=Driver)
class DriverAvailabilityHandler:
    @handle(SetDriverAvailability)
    def set_driver_availability(self, command):
        driver = set_available(command.driver_id, command.is_available)
        return bool(driver.is_available)
