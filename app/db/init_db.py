import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from app.db.base import Base
import app.models  # noqa: F401 - registers tables on Base.metadata

logger = logging.getLogger(__name__)


async def init_db(engine: AsyncEngine) -> None:
    """
    Create the lifecycle tables and their uniqueness guards if missing.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ensured for tables=%s", sorted(Base.metadata.tables))
