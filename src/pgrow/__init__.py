"""
Typed deserialization of PostgreSQL result rows.

A row (column names, type OIDs and binary values) is turned into any value
described by ordinary type hints: dataclasses, TypedDicts, NamedTuples,
tuples, lists, dicts, NewTypes, optionals and primitives. Nested dataclasses
without a column of their own are flattened onto sibling columns; JSON and
JSONB columns feed nested values through pydantic; array columns feed lists.

Usage:
- One row: pgrow.from_row(row, User)
- Many rows: pgrow.from_rows(rows, User) or RowDeserializer(User)
- From psycopg: pgrow.fetch_all(cursor, User, 'select ...')
"""
__version__ = '0.1.0'

from pgrow.cursor import fetch_all, fetch_one, fetch_optional, rows_from_cursor
from pgrow.deserializer import RowDeserializer, from_row, from_rows, iter_rows
from pgrow.exceptions import ArityMismatch, ArrayFormatError, DocumentMismatch
from pgrow.exceptions import DuplicateColumn, FieldConflict, JsonSyntaxError
from pgrow.exceptions import MissingColumn, NullNotAllowed, PgRowError
from pgrow.exceptions import RowDeserializeError, TypeConversionError, TypeMismatch
from pgrow.exceptions import UnsupportedArrayShape, UnsupportedTarget, ValidationError
from pgrow.options import DeserializeOptions
from pgrow.row import ColumnValue, RowView
from pgrow.shapes import Float32, Float64, Int16, Int32, Int64, flatten
from pgrow.types import PgType

__all__ = [
    'from_row',
    'from_rows',
    'iter_rows',
    'RowDeserializer',
    'fetch_all',
    'fetch_one',
    'fetch_optional',
    'rows_from_cursor',
    'ColumnValue',
    'RowView',
    'DeserializeOptions',
    'PgType',
    'Int16',
    'Int32',
    'Int64',
    'Float32',
    'Float64',
    'flatten',
    'PgRowError',
    'ValidationError',
    'TypeConversionError',
    'UnsupportedTarget',
    'RowDeserializeError',
    'MissingColumn',
    'NullNotAllowed',
    'TypeMismatch',
    'ArityMismatch',
    'DuplicateColumn',
    'UnsupportedArrayShape',
    'ArrayFormatError',
    'JsonSyntaxError',
    'DocumentMismatch',
    'FieldConflict',
]
