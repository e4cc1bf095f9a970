# tests/integration/conftest.py
import os
from uuid import uuid4

import pytest
from psycopg_pool import ConnectionPool
from redis import Redis

from access_codes.infrastructure.db.pg_store import PgCodeStore


@pytest.fixture
def pg_store():
    url = os.environ.get("DATABASE_URL")
    if not url:
        pytest.skip("DATABASE_URL not set")
    pool = ConnectionPool(url, min_size=1, max_size=4, timeout=30, open=False)
    s = PgCodeStore(pool)
    s.initialize()
    with pool.connection() as conn:
        conn.execute("TRUNCATE access_codes;")
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def redis_client():
    url = os.environ.get("REDIS_URL")
    if not url:
        pytest.skip("REDIS_URL not set")
    r = Redis.from_url(url, encoding="utf-8", decode_responses=True)
    try:
        yield r
    finally:
        r.close()


@pytest.fixture
def redis_key(redis_client):
    key = f"test:members:{uuid4()}"
    try:
        yield key
    finally:
        redis_client.delete(key)
