"""Protean Engine runner for the Dispatch domain.

Starts the Engine workers that process events asynchronously in production:
- OutboxProcessor: polls the outbox table, publishes events to Redis Streams
- StreamSubscriptions: reads Redis Streams, invokes the progress projector
  and the stop change publisher

Usage:
    python src/server.py
    python src/server.py --test-mode    # Drain pending events, then exit
"""

import argparse
import asyncio

from protean.server.engine import Engine


def _get_domain():
    """Import and initialize the dispatch domain."""
    from dispatch.domain import dispatch

    dispatch.init()
    return dispatch


async def run(test_mode: bool = False):
    engine = Engine(_get_domain(), test_mode=test_mode)
    await engine.run()


def main():
    parser = argparse.ArgumentParser(description="RouteStream Engine runner")
    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Process pending events once and exit",
    )
    args = parser.parse_args()

    asyncio.run(run(test_mode=args.test_mode))


if __name__ == "__main__":
    main()
