"""
Binary wire-format leaf decoders.

Fixed-width big-endian decoding for integers, floats and booleans, the
NUMERIC digit format, and the framing of one-dimensional arrays. Nothing here
knows about rows, shapes or targets; callers translate the ValueError raised
on malformed input into their own errors.
"""
import decimal
import struct
from collections.abc import Iterator

_int_structs = {
    16: struct.Struct('!h'),
    32: struct.Struct('!i'),
    64: struct.Struct('!q'),
}
_float_structs = {
    32: struct.Struct('!f'),
    64: struct.Struct('!d'),
}
_int32_struct = struct.Struct('!i')
_uint32_struct = struct.Struct('!I')
_array_header_struct = struct.Struct('!iiI')
_dimension_struct = struct.Struct('!ii')
_numeric_header_struct = struct.Struct('!hhHH')

NUMERIC_POS = 0x0000
NUMERIC_NEG = 0x4000
NUMERIC_NAN = 0xC000
NUMERIC_PINF = 0xD000
NUMERIC_NINF = 0xF000
NUMERIC_DIGIT_BASE = 10000


def decode_int(data: bytes, width: int) -> int:
    """Decode a signed big-endian integer of the given bit width.
    """
    packer = _int_structs[width]
    if len(data) != packer.size:
        raise ValueError(f'expected {packer.size} bytes for int{width // 8}, got {len(data)}')
    return packer.unpack(data)[0]


def decode_float(data: bytes, width: int) -> float:
    """Decode an IEEE 754 float of the given bit width.
    """
    packer = _float_structs[width]
    if len(data) != packer.size:
        raise ValueError(f'expected {packer.size} bytes for float{width // 8}, got {len(data)}')
    return packer.unpack(data)[0]


def decode_bool(data: bytes) -> bool:
    if data == b'\x01':
        return True
    if data == b'\x00':
        return False
    raise ValueError(f'invalid boolean payload {data!r}')


def decode_numeric(data: bytes) -> decimal.Decimal:
    """Decode PostgreSQL's binary NUMERIC into a Decimal.

    The payload is ndigits, weight, sign and display scale, followed by
    ndigits base-10000 digits, the first of which has the given weight.
    """
    if len(data) < _numeric_header_struct.size:
        raise ValueError('numeric payload too short')
    ndigits, weight, sign, dscale = _numeric_header_struct.unpack_from(data)
    if sign == NUMERIC_NAN:
        return decimal.Decimal('NaN')
    if sign == NUMERIC_PINF:
        return decimal.Decimal('Infinity')
    if sign == NUMERIC_NINF:
        return decimal.Decimal('-Infinity')
    if sign not in {NUMERIC_POS, NUMERIC_NEG}:
        raise ValueError(f'invalid numeric sign 0x{sign:04x}')
    if len(data) != _numeric_header_struct.size + 2 * ndigits:
        raise ValueError(f'numeric payload length does not match {ndigits} digits')

    digits = struct.unpack_from(f'!{ndigits}H', data, _numeric_header_struct.size)
    if any(d >= NUMERIC_DIGIT_BASE for d in digits):
        raise ValueError('numeric digit out of range')

    value = 0
    for d in digits:
        value = value * NUMERIC_DIGIT_BASE + d
    # the last base-10000 digit has weight (weight - ndigits + 1)
    exponent = weight - ndigits + 1
    ctx = decimal.Context(prec=len(str(value)) + 4 * abs(exponent) + dscale + 1)
    result = ctx.scaleb(decimal.Decimal(value), 4 * exponent)
    result = result.quantize(decimal.Decimal(1).scaleb(-dscale, context=ctx), context=ctx)
    return result.copy_negate() if sign == NUMERIC_NEG else result


class ArrayHeader:
    """Decoded header of a binary array payload.
    """

    __slots__ = ('ndim', 'has_null', 'element_oid', 'dimensions')

    def __init__(self, ndim: int, has_null: bool, element_oid: int,
                 dimensions: list[tuple[int, int]]) -> None:
        self.ndim = ndim
        self.has_null = has_null
        self.element_oid = element_oid
        self.dimensions = dimensions

    def __repr__(self) -> str:
        return (f'ArrayHeader(ndim={self.ndim}, has_null={self.has_null}, '
                f'element_oid={self.element_oid}, dimensions={self.dimensions})')


def read_array_header(data: bytes) -> tuple[ArrayHeader, int]:
    """Parse the array header, returning it with the offset of the first element.
    """
    if len(data) < _array_header_struct.size:
        raise ValueError('array payload too short for header')
    ndim, flags, element_oid = _array_header_struct.unpack_from(data)
    if ndim < 0:
        raise ValueError(f'negative dimension count {ndim}')
    if flags not in {0, 1}:
        raise ValueError(f'invalid array flags {flags}')
    offset = _array_header_struct.size
    dimensions = []
    for _ in range(ndim):
        if len(data) < offset + _dimension_struct.size:
            raise ValueError('array payload truncated in dimensions')
        length, lower = _dimension_struct.unpack_from(data, offset)
        if length < 0:
            raise ValueError(f'negative dimension length {length}')
        dimensions.append((length, lower))
        offset += _dimension_struct.size
    return ArrayHeader(ndim, bool(flags), element_oid, dimensions), offset


def iter_array_items(data: bytes, offset: int, count: int) -> Iterator[bytes | None]:
    """Yield ``count`` length-prefixed items starting at ``offset``.

    A length of -1 marks a NULL element. Any bytes left over after the last
    item are an error.
    """
    for i in range(count):
        if len(data) < offset + _int32_struct.size:
            raise ValueError(f'array payload truncated before element {i}')
        length, = _int32_struct.unpack_from(data, offset)
        offset += _int32_struct.size
        if length == -1:
            yield None
            continue
        if length < 0:
            raise ValueError(f'invalid length {length} for element {i}')
        if len(data) < offset + length:
            raise ValueError(f'array payload truncated inside element {i}')
        yield data[offset:offset + length]
        offset += length
    if offset != len(data):
        raise ValueError(f'{len(data) - offset} trailing bytes after array elements')


__all__ = [
    'decode_int',
    'decode_float',
    'decode_bool',
    'decode_numeric',
    'ArrayHeader',
    'read_array_header',
    'iter_array_items',
]
