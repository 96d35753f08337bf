"""Process startup and shutdown for the reconciliation engine.

The transport that receives agent polls and user requests calls startup()
once before serving and shutdown() on exit:

    engine = await startup()
    try:
        ...  # serve
    finally:
        await shutdown()
"""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from remotedev.app.logging import setup_logging
from remotedev.core.logging_schema import LogEvent
from remotedev.infra.postgresql import close_db, init_db

logger = logging.getLogger(__name__)


async def startup(
    db_url: str | None = None,
    create_tables: bool = False,
    log_level: int | None = None,
) -> AsyncEngine:
    """Configure JSON logging and connect the database.

    Args:
        db_url: Database URL. Defaults to DATABASE_URL from settings.
        create_tables: Create tables from model metadata
        log_level: Log level. Defaults to LOGGING_LEVEL from settings.
    """
    setup_logging(log_level)
    engine = await init_db(db_url, create_tables=create_tables)
    logger.info(
        "Reconciler started",
        extra={
            "event": LogEvent.APP_STARTED,
            "dialect": engine.dialect.name,
        },
    )
    return engine


async def shutdown() -> None:
    await close_db()
    logger.info("Reconciler stopped", extra={"event": LogEvent.APP_STOPPED})
