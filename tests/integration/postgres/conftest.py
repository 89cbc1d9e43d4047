"""
Fixtures for PostgreSQL integration tests.
"""
import time

import pytest


@pytest.fixture
def users_table(pg_cursor):
    """Create a populated users table unique to the test and drop it afterwards."""
    table = f'test_users_{int(time.time() * 1000)}'
    pg_cursor.execute(f"""
    CREATE TABLE {table} (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        code CHAR(4),
        score SMALLINT,
        balance NUMERIC(12, 2),
        ratio REAL,
        active BOOLEAN,
        bio TEXT,
        age INTEGER,
        tags TEXT[],
        profile JSONB
    )
    """)
    pg_cursor.execute(f"""
    INSERT INTO {table} VALUES
        (1, 'alice', 'AB', 7, 1234.50, 0.5, true, 'hi', 30, ARRAY['a', NULL, 'c'],
         '{{"bio": "x", "age": 5}}'),
        (2, 'bob', NULL, NULL, NULL, NULL, NULL, NULL, NULL, NULL, NULL)
    """)
    yield table
    pg_cursor.execute(f'DROP TABLE IF EXISTS {table}')
