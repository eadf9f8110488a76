"""Redis change feed — cross-process notifications over Redis pub/sub.

Publishes the delivery id on ``stops:<delivery_id>``. Publishing uses a
blocking client since it runs inside command handlers; subscriptions use
``redis.asyncio`` so watchers never block the event loop.
"""

import redis
import redis.asyncio as aioredis

from dispatch.feed.port import ChangeFeedPort, Subscription

CHANNEL_PREFIX = "stops:"


def channel_for(delivery_id: str) -> str:
    return f"{CHANNEL_PREFIX}{delivery_id}"


class RedisSubscription(Subscription):
    def __init__(self, url: str, delivery_id: str):
        self.url = url
        self.delivery_id = str(delivery_id)
        self.client: aioredis.Redis | None = None
        self.pubsub = None

    async def open(self) -> None:
        self.client = aioredis.Redis.from_url(self.url, decode_responses=True)
        self.pubsub = self.client.pubsub()
        await self.pubsub.subscribe(channel_for(self.delivery_id))

    async def __anext__(self) -> str:
        if self.pubsub is None:
            raise StopAsyncIteration
        while True:
            message = await self.pubsub.get_message(ignore_subscribe_messages=True, timeout=None)
            if message is not None and message.get("type") == "message":
                return message["data"]

    async def close(self) -> None:
        if self.pubsub is not None:
            await self.pubsub.unsubscribe()
            await self.pubsub.aclose()
            self.pubsub = None
        if self.client is not None:
            await self.client.aclose()
            self.client = None


class RedisChangeFeed(ChangeFeedPort):
    def __init__(self, url: str):
        self.url = url
        self.client = redis.Redis.from_url(url, decode_responses=True)

    def publish(self, delivery_id: str) -> None:
        self.client.publish(channel_for(delivery_id), str(delivery_id))

    def subscribe(self, delivery_id: str) -> RedisSubscription:
        return RedisSubscription(self.url, delivery_id)

    def close(self) -> None:
        self.client.close()
