from __future__ import annotations

from typing import Optional

from psycopg_pool import ConnectionPool

from access_codes.settings import get_settings

_pool: Optional[ConnectionPool] = None


def _add_connect_timeout(dsn: str, seconds: int = 3) -> str:
    if "connect_timeout=" in dsn:
        return dsn
    sep = "&" if "?" in dsn else "?"
    return f"{dsn}{sep}connect_timeout={seconds}"


def get_pool() -> ConnectionPool:
    """
    Create (if needed) and return the global pool WITHOUT opening it.
    The store opens it in initialize().
    """
    global _pool
    if _pool is None:
        _pool = ConnectionPool(
            _add_connect_timeout(get_settings().database_url),
            min_size=1,
            max_size=10,
            timeout=5,
            open=False,
        )
    return _pool


def close_pool() -> None:
    global _pool
    if _pool is not None:
        _pool.close()
        _pool = None
