"""Stop change feed — pluggable notification channel for stop changes.

Committed stop transitions are announced per delivery so watchers can
re-read the stop list. The in-memory feed is the default; in production,
configure via the CHANGE_FEED_ADAPTER environment variable.
"""

import os

_feed_instance = None


def get_change_feed():
    """Return the configured change feed adapter (singleton)."""
    global _feed_instance
    if _feed_instance is None:
        adapter = os.environ.get("CHANGE_FEED_ADAPTER", "memory")
        if adapter == "memory":
            from dispatch.feed.memory_adapter import InMemoryChangeFeed

            _feed_instance = InMemoryChangeFeed()
        elif adapter == "redis":
            from dispatch.feed.redis_adapter import RedisChangeFeed

            _feed_instance = RedisChangeFeed(
                os.environ.get("CHANGE_FEED_REDIS_URL", "redis://127.0.0.1:6379/0"),
            )
        else:
            raise ValueError(f"Unknown change feed adapter: {adapter}")
    return _feed_instance


def reset_change_feed():
    """Reset the change feed singleton (useful for testing)."""
    global _feed_instance
    if _feed_instance is not None:
        _feed_instance.close()
    _feed_instance = None
