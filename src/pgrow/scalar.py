"""
Scalar conversion of a single column into a Python primitive.

Compatibility rules:
- text, varchar, bpchar, name, "char" and unknown columns read as str
- bool reads only from BOOL, and only from the bytes 0x00 / 0x01
- int2/int4/int8 read into integer targets at least as wide as the column;
  a wider column into a narrower target is a mismatch, never a truncation
- float4/float8 read into float targets at least as wide as the column
- bytea reads as bytes, numeric as Decimal
"""
from typing import Any

from pgrow import wire
from pgrow.exceptions import NullNotAllowed, TypeMismatch
from pgrow.options import DeserializeOptions
from pgrow.shapes import Scalar
from pgrow.types import FLOAT_WIDTHS, INT_WIDTHS, Kind, PgType, kind_of
from pgrow.types import type_name


def _mismatch(column: Any, shape: Scalar, path: tuple, reason: str | None = None) -> TypeMismatch:
    message = 'Column type is incompatible with target'
    if reason:
        message = f'{message}: {reason}'
    return TypeMismatch(message, column=column.name, path=path,
                        expected=shape.description, actual=type_name(column.type_tag))


def _convert_str(column: Any, shape: Scalar, options: DeserializeOptions, path: tuple) -> str:
    try:
        value = column.raw.decode('utf-8')
    except UnicodeDecodeError as exc:
        raise _mismatch(column, shape, path, f'invalid UTF-8 ({exc.reason})') from exc
    if column.type_tag == PgType.BPCHAR and options.strip_bpchar:
        value = value.rstrip(' ')
    return value


def _convert_bool(column: Any, shape: Scalar, options: DeserializeOptions, path: tuple) -> bool:
    try:
        return wire.decode_bool(column.raw)
    except ValueError as exc:
        raise _mismatch(column, shape, path, str(exc)) from exc


def _check_width(column: Any, shape: Scalar, widths: dict, widening: bool, path: tuple) -> int:
    width = widths[column.type_tag]
    target = shape.width or 64
    if width > target or (width < target and not widening):
        raise _mismatch(column, shape, path, f'{width}-bit column into {target}-bit target')
    return width


def _convert_int(column: Any, shape: Scalar, options: DeserializeOptions, path: tuple) -> int:
    width = _check_width(column, shape, INT_WIDTHS, options.int_widening, path)
    try:
        return wire.decode_int(column.raw, width)
    except ValueError as exc:
        raise _mismatch(column, shape, path, str(exc)) from exc


def _convert_float(column: Any, shape: Scalar, options: DeserializeOptions, path: tuple) -> float:
    width = _check_width(column, shape, FLOAT_WIDTHS, options.float_widening, path)
    try:
        return wire.decode_float(column.raw, width)
    except ValueError as exc:
        raise _mismatch(column, shape, path, str(exc)) from exc


def _convert_bytes(column: Any, shape: Scalar, options: DeserializeOptions, path: tuple) -> bytes:
    return bytes(column.raw)


def _convert_decimal(column: Any, shape: Scalar, options: DeserializeOptions, path: tuple) -> Any:
    try:
        return wire.decode_numeric(column.raw)
    except ValueError as exc:
        raise _mismatch(column, shape, path, str(exc)) from exc


_CONVERTERS = {
    Kind.STR: _convert_str,
    Kind.BOOL: _convert_bool,
    Kind.INT: _convert_int,
    Kind.FLOAT: _convert_float,
    Kind.BYTES: _convert_bytes,
    Kind.DECIMAL: _convert_decimal,
}


def convert(column: Any, shape: Scalar, options: DeserializeOptions,
            path: tuple = ()) -> Any:
    """Convert one non-null column into the primitive the scalar shape asks for.

    Args:
        column: ColumnValue or ArrayElement
        shape: Target scalar shape
        options: Conversion options
        path: Field path, for error context

    Raises
        NullNotAllowed: the column is NULL
        TypeMismatch: the column type cannot produce the target kind
    """
    if column.raw is None:
        raise NullNotAllowed('NULL in non-optional target', column=column.name, path=path,
                             expected=shape.description, actual='null')
    if kind_of(column.type_tag) is not shape.kind:
        raise _mismatch(column, shape, path)
    return _CONVERTERS[shape.kind](column, shape, options, path)


def convert_dynamic(column: Any, options: DeserializeOptions, path: tuple = ()) -> Any:
    """Convert a scalar column by its own type tag, for ``Any`` targets.

    Returns None for NULL. JSON and arrays are handled by the caller.
    """
    if column.raw is None:
        return None
    kind = kind_of(column.type_tag)
    if kind is None or kind is Kind.JSON:
        raise TypeMismatch('Column type has no scalar conversion', column=column.name,
                           path=path, expected='any', actual=type_name(column.type_tag))
    width = INT_WIDTHS.get(column.type_tag) or FLOAT_WIDTHS.get(column.type_tag)
    return convert(column, Scalar(Any, kind, width), options, path)


__all__ = ['convert', 'convert_dynamic']
