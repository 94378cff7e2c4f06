from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.db.url import normalize_database_url


def build_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    return create_async_engine(normalize_database_url(database_url), future=True, echo=echo)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
