from __future__ import annotations

from sqlalchemy.engine import make_url

_ASYNC_DRIVERS = {
    "postgres": "postgresql+asyncpg",
    "postgresql": "postgresql+asyncpg",
    "postgresql+psycopg": "postgresql+asyncpg",
    "postgresql+psycopg2": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}


def normalize_database_url(url: str) -> str:
    """Point plain database URLs at the async drivers the engine needs."""
    url = (url or "").strip()
    if not url:
        return url

    parsed = make_url(url)
    drivername = _ASYNC_DRIVERS.get(parsed.drivername, parsed.drivername)
    parsed = parsed.set(drivername=drivername)

    # asyncpg understands "ssl", not libpq's "sslmode"
    if drivername == "postgresql+asyncpg" and "sslmode" in parsed.query:
        query = dict(parsed.query)
        sslmode = str(query.pop("sslmode")).lower().strip()
        if "ssl" not in query:
            query["ssl"] = "disable" if sslmode in {"disable", "allow"} else sslmode
        parsed = parsed.set(query=query)

    return parsed.render_as_string(hide_password=False)
