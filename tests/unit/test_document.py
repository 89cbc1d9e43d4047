"""
Tests for JSON / JSONB column decoding.
"""
from dataclasses import dataclass, field
from typing import Any, Optional

import pytest
from pgrow import DocumentMismatch, Int16, JsonSyntaxError, PgType, TypeMismatch
from pgrow.cache import Cache
from pgrow.document import DocumentBuilder, decode_document, parse_document
from pgrow.shapes import compile_shape

from tests.fixtures.values import col, json_text, jsonb, text


@dataclass
class Address:
    city: str
    zip: str | None = None


@dataclass
class Settings:
    theme: str
    font_size: Int16 = 12
    tags: list[str] = field(default_factory=list)


@dataclass
class Wrapper:
    payload: dict[str, Any]


class TestParse:

    def test_json_column(self):
        column = col('doc', PgType.JSON, json_text({'a': [1, 2, None]}))
        assert parse_document(column) == {'a': [1, 2, None]}

    def test_jsonb_version_byte_is_stripped(self):
        assert parse_document(col('doc', PgType.JSONB, jsonb({'a': 1}))) == {'a': 1}

    @pytest.mark.parametrize('payload', [b'', b'\x02{}', b'{}'])
    def test_jsonb_bad_version(self, payload):
        with pytest.raises(JsonSyntaxError, match='JSONB version'):
            parse_document(col('doc', PgType.JSONB, payload))

    def test_malformed_json(self):
        with pytest.raises(JsonSyntaxError, match='Malformed JSON') as exc_info:
            parse_document(col('doc', PgType.JSON, b'{"a": '))
        assert exc_info.value.column == 'doc'

    def test_invalid_utf8(self):
        with pytest.raises(JsonSyntaxError, match='UTF-8'):
            parse_document(col('doc', PgType.JSON, b'"\xff"'))

    def test_scalar_documents(self):
        assert parse_document(col('doc', PgType.JSON, b'42')) == 42
        assert parse_document(col('doc', PgType.JSON, b'null')) is None

    def test_text_column_is_not_a_document(self):
        with pytest.raises(TypeMismatch) as exc_info:
            parse_document(col('doc', PgType.TEXT, text('{}')))
        assert exc_info.value.expected == 'json'


class TestBuild:

    def test_dataclass_from_object(self):
        column = col('settings', PgType.JSONB, jsonb({'theme': 'dark', 'tags': ['a']}))
        assert decode_document(column, compile_shape(Settings)) == Settings('dark', 12, ['a'])

    def test_nested_containers(self):
        column = col('data', PgType.JSON, json_text({'x': [1, 2], 'y': []}))
        assert decode_document(column, compile_shape(dict[str, list[int]])) == {'x': [1, 2], 'y': []}

    def test_any_target_returns_the_tree(self):
        column = col('data', PgType.JSON, json_text([1, 'two', {'three': 3}]))
        assert decode_document(column, compile_shape(Any)) == [1, 'two', {'three': 3}]

    def test_optional_target(self):
        column = col('addr', PgType.JSON, json_text({'city': 'Oslo'}))
        assert decode_document(column, compile_shape(Optional[Address])) == Address('Oslo')

    def test_missing_key_is_a_mismatch(self):
        column = col('addr', PgType.JSON, json_text({'zip': '0150'}))
        with pytest.raises(DocumentMismatch) as exc_info:
            decode_document(column, compile_shape(Address), path=('home',))
        error = exc_info.value
        assert error.column == 'addr'
        assert error.path == ('home',)
        assert 'city' in str(error)

    def test_wrong_json_type_is_a_mismatch(self):
        column = col('n', PgType.JSON, json_text(['not', 'a', 'dict']))
        with pytest.raises(DocumentMismatch):
            decode_document(column, compile_shape(dict[str, int]))

    def test_int_width_bounds_apply_inside_documents(self):
        column = col('settings', PgType.JSON, json_text({'theme': 'x', 'font_size': 70000}))
        with pytest.raises(DocumentMismatch):
            decode_document(column, compile_shape(Settings))


class TestSingleFieldWrap:

    def test_object_without_the_field_key_is_wrapped(self):
        column = col('doc', PgType.JSON, json_text({'k': 'v'}))
        assert decode_document(column, compile_shape(Wrapper)) == Wrapper({'k': 'v'})

    def test_object_with_the_field_key_is_read_normally(self):
        column = col('doc', PgType.JSON, json_text({'payload': {'k': 'v'}}))
        assert decode_document(column, compile_shape(Wrapper)) == Wrapper({'k': 'v'})

    def test_wrap_disabled(self):
        column = col('doc', PgType.JSON, json_text({'k': 'v'}))
        with pytest.raises(DocumentMismatch):
            decode_document(column, compile_shape(Wrapper), single_field_wrap=False)

    def test_multi_field_structs_are_never_wrapped(self):
        column = col('doc', PgType.JSON, json_text({'k': 'v'}))
        with pytest.raises(DocumentMismatch):
            decode_document(column, compile_shape(Address))


def test_type_adapters_are_reused():
    assert DocumentBuilder.adapter(Address) is DocumentBuilder.adapter(Address)


def test_type_adapters_live_in_the_shared_cache():
    first = DocumentBuilder.adapter(Address)
    assert Cache.get_instance().stats()['type_adapters'] == 1
    Cache.get_instance().clear_all()
    assert DocumentBuilder.adapter(Address) is not first


if __name__ == '__main__':
    __import__('pytest').main([__file__])
