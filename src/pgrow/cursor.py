"""
Typed fetch helpers over a psycopg cursor.

Queries are executed in binary mode and rows are read straight from the
cursor's PGresult, so the deserializer sees the wire bytes and type OIDs
rather than values psycopg has already converted.
"""
import logging
from collections.abc import Iterator
from typing import Any, TypeVar

from pgrow.deserializer import RowDeserializer, describe_row
from pgrow.exceptions import ValidationError
from pgrow.options import DeserializeOptions
from pgrow.row import RowView

logger = logging.getLogger(__name__)

T = TypeVar('T')


def rows_from_cursor(cursor: Any) -> Iterator[RowView]:
    """Yield a RowView for each row of the cursor's current result.
    """
    pgresult = cursor.pgresult
    if pgresult is None:
        raise ValidationError('Cursor has no result; execute a query first')
    for row_number in range(pgresult.ntuples):
        yield RowView.from_pgresult(pgresult, row_number)


def _execute(cursor: Any, query: Any, params: Any) -> None:
    cursor.execute(query, params, binary=True)
    logger.debug(f'Executed query, {cursor.pgresult.ntuples if cursor.pgresult else 0} rows returned')


def fetch_all(cursor: Any, target: type[T] | Any, query: Any, params: Any = None,
              options: DeserializeOptions | dict | None = None, **kw: Any) -> list[T]:
    """Execute a query and deserialize every returned row into ``target``.
    """
    _execute(cursor, query, params)
    deserializer = RowDeserializer(target, options, **kw)
    return [deserializer(row) for row in rows_from_cursor(cursor)]


def fetch_optional(cursor: Any, target: type[T] | Any, query: Any, params: Any = None,
                   options: DeserializeOptions | dict | None = None, **kw: Any) -> T | None:
    """Execute a query and deserialize its first row, or return None if it has none.
    """
    _execute(cursor, query, params)
    rows = rows_from_cursor(cursor)
    row = next(rows, None)
    if row is None:
        return None
    logger.debug(f'Deserializing first row ({describe_row(row)})')
    return RowDeserializer(target, options, **kw)(row)


def fetch_one(cursor: Any, target: type[T] | Any, query: Any, params: Any = None,
              options: DeserializeOptions | dict | None = None, **kw: Any) -> T:
    """Execute a query and deserialize its first row.

    Raises ValidationError if the query returns no rows.
    """
    _execute(cursor, query, params)
    row = next(rows_from_cursor(cursor), None)
    if row is None:
        raise ValidationError('Query returned no rows')
    logger.debug(f'Deserializing first row ({describe_row(row)})')
    return RowDeserializer(target, options, **kw)(row)


__all__ = [
    'rows_from_cursor',
    'fetch_all',
    'fetch_one',
    'fetch_optional',
]
