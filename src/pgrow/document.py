"""
JSON / JSONB column decoding.

Only the bridge from one column to one JSON document lives here: parse the
column's text into a generic tree, then hand the tree to pydantic to build
the target. The mapping from JSON objects onto dataclasses, TypedDicts and
containers is pydantic's, not ours.
"""
import json
import logging
from typing import Any

import pydantic
from pydantic import TypeAdapter

from pgrow.cache import Cache
from pgrow.exceptions import DocumentMismatch, JsonSyntaxError, TypeMismatch
from pgrow.shapes import Dynamic, Shape, Struct, unwrap_option
from pgrow.types import PgType, is_json, type_name

logger = logging.getLogger(__name__)

JSONB_VERSION = 1


def parse_document(column, path: tuple = ()) -> Any:
    """Parse a JSON/JSONB column into a tree of dicts, lists and scalars.

    Raises
        TypeMismatch: the column is not JSON or JSONB
        JsonSyntaxError: the payload is not valid JSON text
    """
    if not is_json(column.type_tag):
        raise TypeMismatch('Column is not a JSON document', column=column.name, path=path,
                           expected='json', actual=type_name(column.type_tag))
    data = column.raw
    if column.type_tag == PgType.JSONB:
        if not data or data[0] != JSONB_VERSION:
            raise JsonSyntaxError('Invalid JSONB version header', column=column.name, path=path)
        data = data[1:]
    try:
        return json.loads(data.decode('utf-8'))
    except UnicodeDecodeError as exc:
        raise JsonSyntaxError(f'Invalid UTF-8 in JSON text: {exc.reason}',
                              column=column.name, path=path) from exc
    except json.JSONDecodeError as exc:
        raise JsonSyntaxError(f'Malformed JSON: {exc.msg} at position {exc.pos}',
                              column=column.name, path=path) from exc


class DocumentBuilder:
    """Builds typed values from parsed JSON trees through pydantic.

    Type adapters live in the shared "type_adapters" cache, so repeated
    conversions to the same target type skip adapter construction.
    """

    @classmethod
    def adapter(cls, hint: Any) -> TypeAdapter[Any]:
        def build() -> TypeAdapter[Any]:
            logger.debug(f'Created type adapter for {hint!r}')
            return TypeAdapter(hint)

        return Cache.get_instance().get_or_build('type_adapters', hint, build, maxsize=512, ttl=3600)

    @classmethod
    def build(cls, tree: Any, shape: Shape, column, path: tuple = (),
              single_field_wrap: bool = True) -> Any:
        """Construct the shape's target from a parsed JSON tree.

        A struct with exactly one field read from an object that lacks the
        field's key gets the whole object as that field's value.

        Raises
            DocumentMismatch: pydantic rejected the tree for the target
        """
        if isinstance(shape, Dynamic):
            return tree
        target = unwrap_option(shape)
        if (single_field_wrap and isinstance(target, Struct) and len(target.fields) == 1
                and isinstance(tree, dict) and target.fields[0].name not in tree):
            tree = {target.fields[0].name: tree}
        try:
            return cls.adapter(shape.hint).validate_python(tree)
        except pydantic.ValidationError as exc:
            errors = exc.errors(include_url=False)
            first = errors[0] if errors else {}
            where = '.'.join(str(p) for p in first.get('loc', ()))
            detail = first.get('msg', str(exc))
            message = f'JSON document does not fit target: {detail}'
            if where:
                message = f'{message} at {where}'
            raise DocumentMismatch(message, column=column.name, path=path,
                                   expected=shape.description,
                                   actual=type(tree).__name__) from exc


def decode_document(column, shape: Shape, path: tuple = (),
                    single_field_wrap: bool = True) -> Any:
    """Parse a JSON/JSONB column and build the shape's target from it.
    """
    tree = parse_document(column, path)
    return DocumentBuilder.build(tree, shape, column, path, single_field_wrap)


__all__ = ['parse_document', 'decode_document', 'DocumentBuilder']
