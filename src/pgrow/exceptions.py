"""
Row deserialization exception classes.

Every error raised while turning a row into a typed value derives from
RowDeserializeError and carries positional context: the column name (or
index), the field path leading to it, and the expected/actual kinds where a
type check failed.
"""
from typing import Any


class PgRowError(Exception):
    """Base class for all pgrow errors.
    """


class ValidationError(PgRowError):
    """Error in input validation (row counts, result formats).
    """


class TypeConversionError(PgRowError):
    """Error converting a database value into a Python value.
    """


class UnsupportedTarget(TypeError, PgRowError):
    """A target type hint cannot be compiled into a shape.
    """


def format_path(path: tuple) -> str:
    """Render a field path like ``profile.tags[2]``.
    """
    out = ''
    for segment in path:
        if isinstance(segment, int):
            out += f'[{segment}]'
        elif out:
            out += f'.{segment}'
        else:
            out = str(segment)
    return out


class RowDeserializeError(TypeConversionError):
    """Base class for structured, positional deserialization errors.

    Attributes:
        column: Name of the column involved, if known
        index: Position of the column in the row, if known
        path: Field path from the target root to the failing value
        expected: What the target expected (kind or type name)
        actual: What the row provided (type name or description)
    """

    def __init__(self, message: str, *,
                 column: str | None = None,
                 index: int | None = None,
                 path: tuple = (),
                 expected: Any = None,
                 actual: Any = None) -> None:
        self.message = message
        self.column = column
        self.index = index
        self.path = tuple(path)
        self.expected = expected
        self.actual = actual
        super().__init__(str(self))

    def __str__(self) -> str:
        parts = [self.message]
        if self.column is not None:
            parts.append(f'column={self.column!r}')
        if self.index is not None:
            parts.append(f'index={self.index}')
        if self.path:
            parts.append(f'path={format_path(self.path)}')
        if self.expected is not None:
            parts.append(f'expected={self.expected}')
        if self.actual is not None:
            parts.append(f'actual={self.actual}')
        return ' '.join(parts) if len(parts) == 1 else f'{parts[0]} ({", ".join(parts[1:])})'

    def __reduce__(self):
        kwargs = {'column': self.column, 'index': self.index, 'path': self.path,
                  'expected': self.expected, 'actual': self.actual}
        return _rebuild, (type(self), self.message, kwargs)


def _rebuild(cls, message, kwargs):
    return cls(message, **kwargs)


class MissingColumn(RowDeserializeError):
    """A declared field or tuple position has no column in the row.
    """


class NullNotAllowed(RowDeserializeError):
    """A non-optional target met a SQL NULL.
    """


class TypeMismatch(RowDeserializeError):
    """The column's database type is incompatible with the target kind.
    """


class ArityMismatch(RowDeserializeError):
    """A tuple target does not match the number of columns or array elements.
    """


class DuplicateColumn(RowDeserializeError):
    """Two columns in one row share a name.
    """


class UnsupportedArrayShape(RowDeserializeError):
    """The array is multi-dimensional.
    """


class ArrayFormatError(RowDeserializeError):
    """The binary array payload is malformed.
    """


class JsonSyntaxError(RowDeserializeError):
    """A JSON/JSONB column does not hold valid JSON text.
    """


class DocumentMismatch(RowDeserializeError):
    """A parsed JSON document does not fit the target type.
    """


class FieldConflict(RowDeserializeError):
    """Two flattened fields resolve to the same column.
    """


__all__ = [
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
    'format_path',
]
