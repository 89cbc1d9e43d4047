"""
Target shapes.

A shape is the deserializer's view of a target type hint: a small tree of
nodes saying what the target expects next (a scalar, an optional, a sequence,
a fixed tuple, a struct with named fields, a newtype wrapper, a map, or
anything). Type hints are compiled into shapes once and cached; the
dispatcher then walks the shape instead of re-inspecting hints per row.

Supported hints:

- ``str``, ``bool``, ``int``, ``float``, ``bytes``, ``decimal.Decimal``
- ``Int16``, ``Int32``, ``Int64``, ``Float32``, ``Float64`` width markers
- ``X | None`` / ``Optional[X]``
- ``list[X]``, ``tuple[X, ...]``, ``tuple[A, B]``, ``NamedTuple`` classes
- ``dict[str, X]``
- ``typing.NewType`` wrappers
- dataclasses and ``TypedDict`` classes
- ``typing.Any`` (decode by the column's own type)
"""
import collections.abc
import dataclasses
import decimal
import logging
import types
import typing
from collections.abc import Callable
from typing import Annotated, Any, get_args, get_origin

from pgrow.cache import Cache
from pgrow.exceptions import UnsupportedTarget
from pgrow.types import Kind

logger = logging.getLogger(__name__)

FLATTEN = 'pgrow.flatten'


@dataclasses.dataclass(frozen=True)
class IntWidth:
    """Annotated marker fixing the bit width of an integer target.

    Also bounds the value when the target is built from a JSON document.
    """
    bits: int

    def __get_pydantic_core_schema__(self, source_type: Any, handler: Any) -> Any:
        schema = handler(source_type)
        if schema.get('type') == 'int':
            bound = 1 << (self.bits - 1)
            schema = {**schema, 'ge': -bound, 'le': bound - 1}
        return schema


@dataclasses.dataclass(frozen=True)
class FloatWidth:
    """Annotated marker fixing the bit width of a float target.
    """
    bits: int


Int16 = Annotated[int, IntWidth(16)]
Int32 = Annotated[int, IntWidth(32)]
Int64 = Annotated[int, IntWidth(64)]
Float32 = Annotated[float, FloatWidth(32)]
Float64 = Annotated[float, FloatWidth(64)]


def flatten(**kwargs: Any) -> Any:
    """Dataclass field marking a nested struct or dict as flattened.

    A flattened struct reads its fields from sibling columns of the parent
    row. A flattened ``dict[str, X]`` collects every column no other field
    binds. Extra keyword arguments are passed to ``dataclasses.field``.
    """
    metadata = dict(kwargs.pop('metadata', None) or {})
    metadata[FLATTEN] = True
    return dataclasses.field(metadata=metadata, **kwargs)


class Shape:
    """Base class of all shape nodes.

    Shapes compare by identity: a compiled hint always maps to the same node,
    so nodes can key the field plan cache.
    """

    __slots__ = ('hint',)

    def __init__(self, hint: Any) -> None:
        self.hint = hint

    @property
    def description(self) -> str:
        return _hint_name(self.hint)

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.description})'


class Scalar(Shape):
    __slots__ = ('kind', 'width')

    def __init__(self, hint: Any, kind: Kind, width: int | None = None) -> None:
        super().__init__(hint)
        self.kind = kind
        self.width = width

    @property
    def description(self) -> str:
        if self.width:
            return f'{self.kind.value}{self.width}'
        return self.kind.value


class Option(Shape):
    __slots__ = ('inner',)

    def __init__(self, hint: Any, inner: Shape) -> None:
        super().__init__(hint)
        self.inner = inner


class Sequence(Shape):
    __slots__ = ('inner', 'factory')

    def __init__(self, hint: Any, inner: Shape, factory: Callable = list) -> None:
        super().__init__(hint)
        self.inner = inner
        self.factory = factory


class Tuple(Shape):
    __slots__ = ('items', 'factory')

    def __init__(self, hint: Any, items: tuple[Shape, ...], factory: Callable) -> None:
        super().__init__(hint)
        self.items = items
        self.factory = factory

    @property
    def arity(self) -> int:
        return len(self.items)


class Newtype(Shape):
    __slots__ = ('name', 'inner', 'factory')

    def __init__(self, hint: Any, name: str, inner: Shape, factory: Callable) -> None:
        super().__init__(hint)
        self.name = name
        self.inner = inner
        self.factory = factory


class Map(Shape):
    __slots__ = ('value',)

    def __init__(self, hint: Any, value: Shape) -> None:
        super().__init__(hint)
        self.value = value


class Dynamic(Shape):
    __slots__ = ()


class StructField:
    """One named field of a struct shape.
    """

    __slots__ = ('name', 'shape', 'flatten', 'required')

    def __init__(self, name: str, shape: Shape, flatten: bool = False,
                 required: bool = True) -> None:
        self.name = name
        self.shape = shape
        self.flatten = flatten
        self.required = required

    def __repr__(self) -> str:
        flag = ', flatten' if self.flatten else ''
        return f'StructField({self.name!r}, {self.shape!r}{flag})'


class Struct(Shape):
    __slots__ = ('name', 'fields', 'factory')

    def __init__(self, hint: Any, name: str, fields: tuple[StructField, ...],
                 factory: Callable[..., Any]) -> None:
        super().__init__(hint)
        self.name = name
        self.fields = fields
        self.factory = factory

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    @property
    def description(self) -> str:
        return self.name


def unwrap_option(shape: Shape) -> Shape:
    """Strip any Option layers from a shape.
    """
    while isinstance(shape, Option):
        shape = shape.inner
    return shape


def _hint_name(hint: Any) -> str:
    if isinstance(hint, type):
        return hint.__name__
    return str(hint).replace('typing.', '')


_SCALARS: dict[Any, Kind] = {
    str: Kind.STR,
    bool: Kind.BOOL,
    int: Kind.INT,
    float: Kind.FLOAT,
    bytes: Kind.BYTES,
    decimal.Decimal: Kind.DECIMAL,
}

_DEFAULT_WIDTHS = {Kind.INT: 64, Kind.FLOAT: 64}

_SEQUENCE_ORIGINS = {list, collections.abc.Sequence, collections.abc.Iterable,
                     collections.abc.MutableSequence}
_MAP_ORIGINS = {dict, collections.abc.Mapping, collections.abc.MutableMapping}


def compile_shape(hint: Any) -> Shape:
    """Compile a type hint into a shape, using the shared shape cache.

    Raises
        UnsupportedTarget: the hint (or something nested in it) has no shape
    """
    def build() -> Shape:
        shape = _Compiler().compile(hint)
        logger.debug(f'Compiled shape for {_hint_name(hint)}: {shape!r}')
        return shape

    return Cache.get_instance().get_or_build('shapes', hint, build, maxsize=512, ttl=3600)


class _Compiler:
    """Single-use hint compiler tracking structs under construction.
    """

    def __init__(self) -> None:
        self._building: set[Any] = set()

    def compile(self, hint: Any) -> Shape:
        if hint is Any or hint is object:
            return Dynamic(hint)

        origin = get_origin(hint)

        if origin is Annotated:
            return self._compile_annotated(hint)

        if isinstance(hint, typing.NewType):
            return Newtype(hint, hint.__name__, self.compile(hint.__supertype__), hint)

        if origin is typing.Union or origin is types.UnionType:
            return self._compile_union(hint)

        if origin is typing.Required or origin is typing.NotRequired:
            return self.compile(get_args(hint)[0])

        if isinstance(hint, type) and hint in _SCALARS:
            kind = _SCALARS[hint]
            return Scalar(hint, kind, _DEFAULT_WIDTHS.get(kind))

        if hint is list or origin in _SEQUENCE_ORIGINS:
            args = get_args(hint)
            inner = self.compile(args[0]) if args else Dynamic(Any)
            return Sequence(hint, inner, list)

        if hint is tuple or origin is tuple:
            return self._compile_tuple(hint)

        if hint is dict or origin in _MAP_ORIGINS:
            args = get_args(hint)
            if args and args[0] is not str:
                raise UnsupportedTarget(f'Map keys must be str, got {_hint_name(args[0])}')
            value = self.compile(args[1]) if args else Dynamic(Any)
            return Map(hint, value)

        if isinstance(hint, type) and origin is None:
            if dataclasses.is_dataclass(hint):
                return self._compile_struct(hint, _dataclass_fields(hint), hint)
            if typing.is_typeddict(hint):
                return self._compile_struct(hint, _typeddict_fields(hint), dict)
            if issubclass(hint, tuple) and hasattr(hint, '_fields'):
                return self._compile_namedtuple(hint)

        raise UnsupportedTarget(f'Cannot deserialize rows into {_hint_name(hint)}')

    def _compile_annotated(self, hint: Any) -> Shape:
        base, *metadata = get_args(hint)
        shape = self.compile(base)
        for meta in metadata:
            if isinstance(meta, IntWidth | FloatWidth):
                expected = Kind.INT if isinstance(meta, IntWidth) else Kind.FLOAT
                if not isinstance(shape, Scalar) or shape.kind is not expected:
                    raise UnsupportedTarget(f'{meta!r} cannot annotate {_hint_name(base)}')
                return Scalar(hint, shape.kind, meta.bits)
        return shape

    def _compile_union(self, hint: Any) -> Shape:
        args = [a for a in get_args(hint) if a is not type(None)]
        if len(args) != 1 or len(args) == len(get_args(hint)):
            raise UnsupportedTarget(f'Only X | None unions are supported, got {_hint_name(hint)}')
        return Option(hint, self.compile(args[0]))

    def _compile_tuple(self, hint: Any) -> Shape:
        args = get_args(hint)
        if not args:
            return Sequence(hint, Dynamic(Any), tuple)
        if len(args) == 2 and args[1] is Ellipsis:
            return Sequence(hint, self.compile(args[0]), tuple)
        if args == ((),):
            return Tuple(hint, (), tuple)
        return Tuple(hint, tuple(self.compile(a) for a in args), tuple)

    def _compile_namedtuple(self, cls: type) -> Shape:
        hints = typing.get_type_hints(cls, include_extras=True)
        items = tuple(self.compile(hints.get(name, Any)) for name in cls._fields)
        return Tuple(cls, items, lambda values: cls(*values))

    def _compile_struct(self, cls: type, fields: list[tuple[str, Any, bool, bool]],
                        factory: Callable[..., Any]) -> Shape:
        if cls in self._building:
            raise UnsupportedTarget(f'Recursive target {cls.__name__} cannot be mapped onto a flat row')
        self._building.add(cls)
        try:
            compiled = tuple(
                StructField(name, self.compile(field_hint), flatten=flat, required=required)
                for name, field_hint, flat, required in fields)
        finally:
            self._building.discard(cls)
        return Struct(cls, cls.__name__, compiled, factory)


def _dataclass_fields(cls: type) -> list[tuple[str, Any, bool, bool]]:
    hints = typing.get_type_hints(cls, include_extras=True)
    out = []
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        required = f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING
        out.append((f.name, hints.get(f.name, Any), bool(f.metadata.get(FLATTEN)), required))
    return out


def _typeddict_fields(cls: type) -> list[tuple[str, Any, bool, bool]]:
    hints = typing.get_type_hints(cls, include_extras=True)
    required_keys = getattr(cls, '__required_keys__', frozenset(hints))
    return [(name, hint, False, name in required_keys) for name, hint in hints.items()]


__all__ = [
    'Shape',
    'Scalar',
    'Option',
    'Sequence',
    'Tuple',
    'Newtype',
    'Map',
    'Dynamic',
    'Struct',
    'StructField',
    'IntWidth',
    'FloatWidth',
    'Int16',
    'Int32',
    'Int64',
    'Float32',
    'Float64',
    'flatten',
    'compile_shape',
    'unwrap_option',
]
