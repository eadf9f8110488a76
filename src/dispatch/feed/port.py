"""Change feed port — abstract interface for stop change notifications.

A notification carries only the delivery id. Watchers treat it as "the
stops of this delivery changed" and re-read the ordered list, so adapters
may coalesce bursts of notifications freely.
"""

from abc import ABC, abstractmethod


class Subscription(ABC):
    """An open subscription to one delivery's change notifications.

    Iterate it with ``async for`` to receive the delivery id each time a
    change is published. Always ``close()`` it when done.
    """

    @abstractmethod
    async def open(self) -> None:
        """Start listening. Notifications published after this returns are
        guaranteed to be delivered.
        """
        ...

    @abstractmethod
    async def __anext__(self) -> str: ...

    def __aiter__(self):
        return self

    @abstractmethod
    async def close(self) -> None: ...


class ChangeFeedPort(ABC):
    """Abstract interface for change feed adapters."""

    @abstractmethod
    def publish(self, delivery_id: str) -> None:
        """Announce that the stops of ``delivery_id`` changed."""
        ...

    @abstractmethod
    def subscribe(self, delivery_id: str) -> Subscription:
        """Create a subscription for ``delivery_id`` (not yet opened)."""
        ...

    def close(self) -> None:
        """Release adapter resources."""
