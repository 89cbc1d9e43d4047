"""
PostgreSQL type tag lookups.

Type tags are the OIDs PostgreSQL reports for each result column. All the
knowledge about which OID maps to which primitive kind lives here, as pure
lookups over psycopg's static type registry, so it can be shared freely
between threads.
"""
import enum

from psycopg.postgres import types

oid = lambda x: types.get(x).oid


class PgType(enum.IntEnum):
    """OIDs of the built-in types the deserializer understands.
    """
    BOOL = oid('bool')
    BYTEA = oid('bytea')
    CHAR = oid('"char"')
    NAME = oid('name')
    INT8 = oid('int8')
    INT2 = oid('int2')
    INT4 = oid('int4')
    TEXT = oid('text')
    JSON = oid('json')
    FLOAT4 = oid('float4')
    FLOAT8 = oid('float8')
    UNKNOWN = 705  # untyped literals; absent from psycopg's registry
    BPCHAR = oid('bpchar')
    VARCHAR = oid('varchar')
    NUMERIC = oid('numeric')
    JSONB = oid('jsonb')


class Kind(enum.Enum):
    """Primitive kinds a column can be converted into.
    """
    STR = 'str'
    BOOL = 'bool'
    INT = 'int'
    FLOAT = 'float'
    BYTES = 'bytes'
    DECIMAL = 'decimal'
    JSON = 'json'


TEXT_TYPES = frozenset({
    PgType.TEXT,
    PgType.VARCHAR,
    PgType.BPCHAR,
    PgType.NAME,
    PgType.CHAR,
    PgType.UNKNOWN,
})

JSON_TYPES = frozenset({PgType.JSON, PgType.JSONB})

# Bit width of each fixed-width numeric type
INT_WIDTHS = {
    PgType.INT2: 16,
    PgType.INT4: 32,
    PgType.INT8: 64,
}

FLOAT_WIDTHS = {
    PgType.FLOAT4: 32,
    PgType.FLOAT8: 64,
}

_KINDS: dict[int, Kind] = {}
for v in TEXT_TYPES:
    _KINDS[v] = Kind.STR
for v in INT_WIDTHS:
    _KINDS[v] = Kind.INT
for v in FLOAT_WIDTHS:
    _KINDS[v] = Kind.FLOAT
for v in JSON_TYPES:
    _KINDS[v] = Kind.JSON
_KINDS[PgType.BOOL] = Kind.BOOL
_KINDS[PgType.BYTEA] = Kind.BYTES
_KINDS[PgType.NUMERIC] = Kind.DECIMAL


def kind_of(type_tag: int) -> Kind | None:
    """Return the primitive kind for a type tag, or None if unsupported.
    """
    return _KINDS.get(type_tag)


def is_array(type_tag: int) -> bool:
    """Check whether the type tag names an array type.
    """
    info = types.get(type_tag)
    return info is not None and info.array_oid == type_tag and type_tag != 0


def element_type(type_tag: int) -> int | None:
    """Return the element OID of an array type tag, or None.
    """
    info = types.get(type_tag)
    if info is None or info.array_oid != type_tag:
        return None
    return info.oid


def is_json(type_tag: int) -> bool:
    return type_tag in JSON_TYPES


def type_name(type_tag: int | None) -> str:
    """Human readable name for a type tag, e.g. ``int4`` or ``text[]``.
    """
    if type_tag is None:
        return 'null'
    info = types.get(type_tag)
    if info is None:
        return f'oid:{type_tag}'
    if info.array_oid == type_tag and type_tag != info.oid:
        return f'{info.name}[]'
    return info.name


__all__ = [
    'PgType',
    'Kind',
    'TEXT_TYPES',
    'JSON_TYPES',
    'INT_WIDTHS',
    'FLOAT_WIDTHS',
    'kind_of',
    'is_array',
    'element_type',
    'is_json',
    'type_name',
]
