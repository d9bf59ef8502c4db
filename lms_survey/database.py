"""Database connection management for the database-backed record store."""
import logging
from functools import lru_cache

from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import declarative_base

from lms_survey.config import get_settings

logger = logging.getLogger(__name__)

# Base class for models
Base = declarative_base()


@lru_cache()
def get_engine() -> AsyncEngine:
    """Create the async engine for the configured DATABASE_URL on first use."""
    settings = get_settings()

    try:
        parsed_url = make_url(settings.database_url)
        logger.debug(f"Using database driver {parsed_url.drivername}")
    except Exception as e:
        logger.error(f"Failed to parse DATABASE_URL: {e}")
        raise

    connect_args = {}
    if settings.environment == "production" and "sqlite" not in parsed_url.drivername:
        connect_args["ssl"] = "require"
        logger.debug("SSL connection enabled (ssl=require)")

    engine = create_async_engine(
        settings.database_url,
        echo=False,
        future=True,
        connect_args=connect_args,
        pool_pre_ping=True,  # Verify connections before use
    )
    logger.debug("Database engine created successfully")
    return engine
