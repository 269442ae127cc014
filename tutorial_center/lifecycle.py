"""
Process start-up and shut-down hooks.

Whatever hosts the services (ASGI app, worker, script) calls ``startup``
once before serving and ``shutdown`` once when stopping.
"""
import logging

from tutorial_center import database
from tutorial_center.cache import cache
from tutorial_center.logging_config import configure_logging

logger = logging.getLogger(__name__)


async def startup() -> None:
    configure_logging()
    # The services work without Redis; connect() logs and disables the
    # cache when the server cannot be reached.
    await cache.connect()
    logger.info("Tutorial center services started")


async def shutdown() -> None:
    await cache.disconnect()
    await database.engine.dispose()
    logger.info("Tutorial center services stopped")
