"""
Tests for compiling type hints into shapes.
"""
import datetime
import decimal
import enum
import uuid
from dataclasses import dataclass, field
from typing import Any, NamedTuple, NewType, NotRequired, Optional, TypedDict

import pytest
from pgrow import Float32, Int16, Int32, UnsupportedTarget, flatten
from pgrow.cache import Cache
from pgrow.shapes import Dynamic, Map, Newtype, Option, Scalar, Sequence, Struct
from pgrow.shapes import Tuple, compile_shape, unwrap_option
from pgrow.types import Kind

UserId = NewType('UserId', int)


@dataclass
class Profile:
    bio: str
    age: Int32


@dataclass
class User:
    id: Int32
    name: str
    profile: Profile = flatten()
    nickname: str | None = None
    tags: list[str] = field(default_factory=list)


class Point(NamedTuple):
    x: int
    y: int


class Movie(TypedDict):
    title: str
    year: NotRequired[Int16]


class Color(enum.Enum):
    RED = 1


@dataclass
class Node:
    value: int
    child: 'Node | None'


class TestScalars:

    @pytest.mark.parametrize(('hint', 'kind', 'width'), [
        (str, Kind.STR, None),
        (bool, Kind.BOOL, None),
        (int, Kind.INT, 64),
        (float, Kind.FLOAT, 64),
        (bytes, Kind.BYTES, None),
        (decimal.Decimal, Kind.DECIMAL, None),
        (Int16, Kind.INT, 16),
        (Int32, Kind.INT, 32),
        (Float32, Kind.FLOAT, 32),
    ])
    def test_primitive(self, hint, kind, width):
        shape = compile_shape(hint)
        assert isinstance(shape, Scalar)
        assert shape.kind is kind
        assert shape.width == width

    def test_width_marker_on_wrong_base(self):
        from typing import Annotated

        from pgrow.shapes import IntWidth
        with pytest.raises(UnsupportedTarget):
            compile_shape(Annotated[str, IntWidth(32)])


class TestContainers:

    def test_optional(self):
        for hint in (Optional[int], int | None):
            shape = compile_shape(hint)
            assert isinstance(shape, Option)
            assert isinstance(shape.inner, Scalar)

    def test_unwrap_option(self):
        assert isinstance(unwrap_option(compile_shape(Optional[Profile])), Struct)

    def test_sequence(self):
        shape = compile_shape(list[Optional[Int32]])
        assert isinstance(shape, Sequence)
        assert shape.factory is list
        assert isinstance(shape.inner, Option)

    def test_variadic_tuple_is_a_sequence(self):
        shape = compile_shape(tuple[int, ...])
        assert isinstance(shape, Sequence)
        assert shape.factory is tuple

    def test_fixed_tuple(self):
        shape = compile_shape(tuple[bool, Int32])
        assert isinstance(shape, Tuple)
        assert shape.arity == 2
        assert shape.factory([True, 1]) == (True, 1)

    def test_namedtuple(self):
        shape = compile_shape(Point)
        assert isinstance(shape, Tuple)
        assert shape.factory([1, 2]) == Point(1, 2)

    def test_map(self):
        shape = compile_shape(dict[str, int])
        assert isinstance(shape, Map)
        assert isinstance(shape.value, Scalar)

    def test_map_keys_must_be_str(self):
        with pytest.raises(UnsupportedTarget, match='keys'):
            compile_shape(dict[int, int])

    def test_any(self):
        assert isinstance(compile_shape(Any), Dynamic)
        assert isinstance(compile_shape(list).inner, Dynamic)
        assert isinstance(compile_shape(dict).value, Dynamic)

    def test_newtype(self):
        shape = compile_shape(UserId)
        assert isinstance(shape, Newtype)
        assert shape.name == 'UserId'
        assert isinstance(shape.inner, Scalar)


class TestStructs:

    def test_dataclass_fields(self):
        shape = compile_shape(User)
        assert isinstance(shape, Struct)
        assert shape.field_names == ('id', 'name', 'profile', 'nickname', 'tags')
        by_name = {f.name: f for f in shape.fields}
        assert by_name['profile'].flatten
        assert not by_name['id'].flatten
        assert by_name['id'].required
        assert not by_name['nickname'].required
        assert not by_name['tags'].required
        assert isinstance(by_name['profile'].shape, Struct)

    def test_typeddict(self):
        shape = compile_shape(Movie)
        assert isinstance(shape, Struct)
        assert shape.factory is dict
        by_name = {f.name: f for f in shape.fields}
        assert by_name['title'].required
        assert not by_name['year'].required
        assert by_name['year'].shape.width == 16

    def test_recursive_struct_rejected(self):
        with pytest.raises(UnsupportedTarget, match='Recursive'):
            compile_shape(Node)


@pytest.mark.parametrize('hint', [
    datetime.date,
    datetime.datetime,
    uuid.UUID,
    Color,
    int | str,
    set[int],
])
def test_unsupported_targets(hint):
    with pytest.raises(UnsupportedTarget):
        compile_shape(hint)


def test_unsupported_target_is_a_type_error():
    with pytest.raises(TypeError):
        compile_shape(datetime.date)


def test_compiled_shapes_are_cached():
    first = compile_shape(User)
    assert compile_shape(User) is first
    assert Cache.get_instance().stats()['shapes'] >= 1
    Cache.get_instance().clear_all()
    assert compile_shape(User) is not first


if __name__ == '__main__':
    __import__('pytest').main([__file__])
