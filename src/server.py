"""Protean Engine runner for the dropship domain.

Only needed when event processing is asynchronous (PROTEAN_ENV=production):
- OutboxProcessor: polls the outbox table, publishes events to the broker
- StreamSubscriptions: reads broker streams, invokes event handlers

Usage:
    python src/server.py
    python src/server.py --test-mode   # process what is queued, then exit
"""

import argparse
import asyncio

from protean.server.engine import Engine

from dropship.domain import dropship
from dropship.utils.logging import configure_logging


async def run(test_mode: bool = False):
    dropship.init()
    engine = Engine(dropship, test_mode=test_mode)
    await engine.run()


def main():
    parser = argparse.ArgumentParser(description="Dropline Engine runner")
    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Drain pending messages once and exit",
    )
    args = parser.parse_args()

    configure_logging()
    asyncio.run(run(test_mode=args.test_mode))


if __name__ == "__main__":
    main()
