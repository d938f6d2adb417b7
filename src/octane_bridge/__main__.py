"""
GitHub Action entry point
Reads the triggering webhook payload from GITHUB_EVENT_PATH and handles it
"""

import asyncio
import json
import logging
import os
import sys

from .context import BridgeContext
from .event_handler import handle_event
from .shared.config import Config
from .shared.exceptions import describe_error
from .shared.github_models import ActionsEvent
from .shared.logging_setup import configure_logging

logger = logging.getLogger("octane_bridge")


def load_event(event_path: str) -> ActionsEvent:
    with open(event_path, encoding="utf-8") as f:
        return ActionsEvent.from_payload(json.load(f))


async def run() -> None:
    config = Config.from_env()
    configure_logging(config.log_level)

    event_path = os.getenv("GITHUB_EVENT_PATH")
    if not event_path:
        raise ValueError("GITHUB_EVENT_PATH must be set")

    event = load_event(event_path)
    logger.info(f"Handling '{event.action}' event for {event.repository.owner}/{event.repository.name}")

    await handle_event(event, BridgeContext.from_config(config))


def main() -> int:
    try:
        asyncio.run(run())
    except Exception as e:
        logger.debug("Event handling failed", exc_info=True)
        print(f"::error::{describe_error(e)}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
