"""
PostgreSQL binary array decoding.

An array column is split into ArrayElement cells. An element looks just like
a ColumnValue (name, type tag, raw bytes or None), so the dispatcher can feed
it back through the same shape handling as any column: arrays of options,
scalars and JSON documents need no special cases here.
"""
import logging
from dataclasses import dataclass

from pgrow import wire
from pgrow.exceptions import ArrayFormatError, TypeMismatch, UnsupportedArrayShape
from pgrow.types import element_type, type_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ArrayElement:
    """One element of an array column.

    ``name`` is the array column's name with the element index appended, so
    errors raised while converting the element point at it.
    """
    name: str
    type_tag: int
    raw: bytes | None = None

    @property
    def is_null(self) -> bool:
        return self.raw is None


def decode_array(column, path: tuple = ()) -> list[ArrayElement]:
    """Split a one-dimensional binary array column into its elements.

    Args:
        column: Non-null ColumnValue (or ArrayElement) of an array type
        path: Field path, for error context

    Returns
        Elements in encoded order; NULL elements have ``raw=None``

    Raises
        TypeMismatch: the column is not an array type
        UnsupportedArrayShape: the array has more than one dimension
        ArrayFormatError: the payload is malformed
    """
    expected_element = element_type(column.type_tag)
    if expected_element is None:
        raise TypeMismatch('Column is not an array', column=column.name, path=path,
                           expected='array', actual=type_name(column.type_tag))

    data = column.raw
    try:
        header, offset = wire.read_array_header(data)
    except ValueError as exc:
        raise ArrayFormatError(str(exc), column=column.name, path=path) from exc

    if header.ndim > 1:
        raise UnsupportedArrayShape(f'Arrays with {header.ndim} dimensions are not supported',
                                    column=column.name, path=path,
                                    expected='1 dimension', actual=f'{header.ndim} dimensions')
    if header.ndim == 1 and header.element_oid != expected_element:
        raise ArrayFormatError('Array header element type disagrees with column type',
                               column=column.name, path=path,
                               expected=type_name(expected_element),
                               actual=type_name(header.element_oid))

    count = header.dimensions[0][0] if header.ndim else 0
    try:
        items = list(wire.iter_array_items(data, offset, count))
    except ValueError as exc:
        raise ArrayFormatError(str(exc), column=column.name, path=path) from exc

    if not header.has_null and any(item is None for item in items):
        raise ArrayFormatError('NULL element in array flagged as having no NULLs',
                               column=column.name, path=path)

    logger.debug(f'Decoded {count} elements of {type_name(expected_element)} from {column.name}')
    return [
        ArrayElement(f'{column.name}[{i}]', expected_element, item)
        for i, item in enumerate(items)
    ]


__all__ = ['ArrayElement', 'decode_array']
