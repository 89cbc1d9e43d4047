"""
Tests for binary array decoding.
"""
import struct

import pytest
from pgrow import ArrayFormatError, PgType, TypeMismatch, UnsupportedArrayShape
from pgrow.arrays import ArrayElement, decode_array

from tests.fixtures.values import INT4_ARRAY, TEXT_ARRAY, array, col, empty_array, int4
from tests.fixtures.values import matrix, text


def test_elements_in_encoded_order():
    column = col('nums', INT4_ARRAY, array(PgType.INT4, [int4(1), int4(2), int4(3)]))
    elements = decode_array(column)
    assert [e.raw for e in elements] == [int4(1), int4(2), int4(3)]
    assert all(e.type_tag == PgType.INT4 for e in elements)


def test_null_elements():
    column = col('nums', INT4_ARRAY, array(PgType.INT4, [int4(1), None, int4(3)]))
    elements = decode_array(column)
    assert [e.is_null for e in elements] == [False, True, False]


def test_elements_are_named_after_their_position():
    column = col('tags', TEXT_ARRAY, array(PgType.TEXT, [text('a'), text('b')]))
    assert decode_array(column)[1] == ArrayElement('tags[1]', PgType.TEXT, text('b'))


def test_empty_array():
    assert decode_array(col('nums', INT4_ARRAY, empty_array(PgType.INT4))) == []


def test_multidimensional_array_rejected():
    column = col('grid', INT4_ARRAY, matrix(PgType.INT4, [[int4(1), int4(2)], [int4(3), int4(4)]]))
    with pytest.raises(UnsupportedArrayShape) as exc_info:
        decode_array(column)
    assert exc_info.value.column == 'grid'


def test_truncated_payload():
    column = col('nums', INT4_ARRAY, array(PgType.INT4, [int4(1), int4(2)])[:-1])
    with pytest.raises(ArrayFormatError, match='truncated'):
        decode_array(column)


def test_trailing_bytes():
    column = col('nums', INT4_ARRAY, array(PgType.INT4, [int4(1)]) + b'\xff')
    with pytest.raises(ArrayFormatError, match='trailing'):
        decode_array(column)


def test_element_type_disagrees_with_column():
    column = col('nums', INT4_ARRAY, array(PgType.TEXT, [text('a')]))
    with pytest.raises(ArrayFormatError) as exc_info:
        decode_array(column)
    assert exc_info.value.expected == 'int4'
    assert exc_info.value.actual == 'text'


def test_null_without_has_null_flag():
    column = col('nums', INT4_ARRAY, array(PgType.INT4, [None], has_null=False))
    with pytest.raises(ArrayFormatError, match='NULL'):
        decode_array(column)


def test_negative_dimension_count():
    column = col('nums', INT4_ARRAY, struct.pack('!iiI', -1, 0, PgType.INT4))
    with pytest.raises(ArrayFormatError):
        decode_array(column)


def test_scalar_column_is_not_an_array():
    with pytest.raises(TypeMismatch) as exc_info:
        decode_array(col('n', PgType.INT4, int4(1)))
    assert exc_info.value.expected == 'array'


if __name__ == '__main__':
    __import__('pytest').main([__file__])
