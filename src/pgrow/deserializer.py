"""
Row deserialization entry points and the shape dispatcher.

The dispatcher walks a compiled target shape depth first. It works in one of
two contexts:

- row context: the target spans the whole row (a struct, a map, a tuple, or
  the top-level target). Struct fields are resolved through a field plan,
  tuple positions consume columns in order, and map entries are the columns
  themselves.
- column context: the target is read from one designated column (or array
  element). Scalars go to the scalar converter, sequences to the array
  decoder, and JSON documents to the document decoder.

Flattened structs stay in row context: their fields resolve against the same
row lookup as their parent, never against a slice of it.

The first failure aborts the row. Nothing is partially constructed.
"""
import logging
from collections.abc import Iterable, Iterator
from typing import Any, TypeVar

from pgrow import scalar
from pgrow.arrays import decode_array
from pgrow.document import decode_document, parse_document
from pgrow.exceptions import ArityMismatch, NullNotAllowed
from pgrow.mapping import ColumnBinding, FieldPlan, RestBinding, build_plan
from pgrow.options import DeserializeOptions, load_options
from pgrow.row import RowView
from pgrow.shapes import Dynamic, Map, Newtype, Option, Scalar, Sequence, Shape
from pgrow.shapes import Struct, Tuple, compile_shape, unwrap_option
from pgrow.types import is_array, is_json, type_name

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RowDeserializer:
    """Reusable deserializer for one target type.

    The target is compiled once; calling the instance with a row returns the
    constructed value. Instances hold no per-row state and can be shared
    between threads.

    Example:
        >>> read_user = RowDeserializer(User)
        >>> users = [read_user(row) for row in rows]
    """

    def __init__(self, target: Any, options: DeserializeOptions | dict | None = None,
                 **kw: Any) -> None:
        self.target = target
        self.options = load_options(options, **kw)
        self.shape = compile_shape(target)

    def __call__(self, row: RowView | Iterable) -> Any:
        return self.deserialize(row)

    def __repr__(self) -> str:
        return f'RowDeserializer({self.shape!r})'

    def deserialize(self, row: RowView | Iterable) -> Any:
        """Deserialize one row into the target.

        Args:
            row: RowView, or an iterable of ColumnValue to wrap in one

        Returns
            Instance of the target type

        Raises
            RowDeserializeError: a subclass describing the first failure
        """
        if not isinstance(row, RowView):
            row = RowView(row)
        return self._read_row(row, self.shape, ())

    # Row context

    def _read_row(self, row: RowView, shape: Shape, path: tuple) -> Any:
        if isinstance(shape, Struct):
            document = self._document_column(row, shape)
            if document is not None:
                logger.debug(f'Reading {shape.name} from JSON column {document.name}')
                return self._read_column(document, shape, path)
            return self._read_struct(row, build_plan(shape, row, self.options, path), path)
        if isinstance(shape, Map):
            return self._read_map(row, shape, range(len(row)), path)
        if isinstance(shape, Tuple):
            return self._read_tuple(row, shape, 0, path)
        if isinstance(shape, Sequence):
            return self._read_row_sequence(row, shape, path)
        if isinstance(shape, Option):
            if self._row_is_null(row, shape.inner, path):
                return None
            return self._read_row(row, shape.inner, path)
        if isinstance(shape, Newtype):
            return shape.factory(self._read_row(row, shape.inner, path))
        if isinstance(shape, Dynamic):
            return self._read_row_dynamic(row, path)
        return self._read_column(row.get_by_index(0), shape, path)

    def _document_column(self, row: RowView, shape: Struct):
        # A struct can come whole from a lone JSON column not named after a field
        if len(row) != 1:
            return None
        column = row.columns[0]
        if is_json(column.type_tag) and column.name not in shape.field_names:
            return column
        return None

    def _row_footprint(self, row: RowView, shape: Shape, path: tuple) -> list[int]:
        # Indices of the columns a row-context read of ``shape`` consumes
        if isinstance(shape, Option | Newtype):
            return self._row_footprint(row, shape.inner, path)
        if isinstance(shape, Struct):
            if self._document_column(row, shape) is not None:
                return [0]
            return build_plan(shape, row, self.options, path).column_indices()
        if isinstance(shape, Tuple):
            return list(range(min(shape.arity, len(row))))
        if isinstance(shape, Sequence) and len(row):
            tag = row.columns[0].type_tag
            if is_array(tag) or is_json(tag):
                return [0]
        if isinstance(shape, Map | Sequence | Dynamic):
            return list(range(len(row)))
        return [0] if len(row) else []

    def _row_is_null(self, row: RowView, shape: Shape, path: tuple) -> bool:
        """True when the target's columns exist and are all NULL."""
        indices = self._row_footprint(row, shape, path)
        return bool(indices) and all(row.columns[i].is_null for i in indices)

    def _read_struct(self, row: RowView, plan: FieldPlan, path: tuple) -> Any:
        values = {}
        for field, binding in plan.bindings:
            field_path = path + (field.name,)
            if binding is None:
                continue
            if isinstance(binding, ColumnBinding):
                values[field.name] = self._read_column(row.columns[binding.index], field.shape, field_path)
            elif isinstance(binding, FieldPlan):
                values[field.name] = self._read_flattened(row, field.shape, binding, field_path)
            elif isinstance(binding, RestBinding):
                values[field.name] = self._read_map(row, unwrap_option(field.shape), binding.indices, field_path)
        return plan.struct.factory(**values)

    def _read_flattened(self, row: RowView, shape: Shape, plan: FieldPlan, path: tuple) -> Any:
        if isinstance(shape, Option):
            indices = plan.column_indices()
            if indices and all(row.columns[i].is_null for i in indices):
                return None
            return self._read_flattened(row, shape.inner, plan, path)
        return self._read_struct(row, plan, path)

    def _read_map(self, row: RowView, shape: Map, indices: Iterable[int], path: tuple) -> dict:
        out = {}
        for i in indices:
            column = row.columns[i]
            out[column.name] = self._read_column(column, shape.value, path + (column.name,))
        return out

    def _read_tuple(self, row: RowView, shape: Tuple, start: int, path: tuple) -> Any:
        remaining = len(row) - start
        if remaining < shape.arity:
            raise ArityMismatch(f'Tuple of {shape.arity} needs more columns than the row has',
                                index=start, path=path, expected=shape.arity, actual=remaining)
        values = [
            self._read_column(row.columns[start + i], item, path + (i,))
            for i, item in enumerate(shape.items)
        ]
        return shape.factory(values)

    def _read_row_sequence(self, row: RowView, shape: Sequence, path: tuple) -> Any:
        if len(row) and (is_array(row.columns[0].type_tag) or is_json(row.columns[0].type_tag)):
            return self._read_column(row.columns[0], shape, path)
        return shape.factory(
            self._read_column(column, shape.inner, path + (i,))
            for i, column in enumerate(row.columns))

    def _read_row_dynamic(self, row: RowView, path: tuple) -> Any:
        # None for no columns, the lone value for one, a list otherwise
        if not len(row):
            return None
        if len(row) == 1:
            return self._read_dynamic(row.columns[0], path)
        return [self._read_dynamic(column, path + (i,)) for i, column in enumerate(row.columns)]

    # Column context

    def _read_column(self, column: Any, shape: Shape, path: tuple) -> Any:
        if isinstance(shape, Option):
            if column.is_null:
                return None
            return self._read_column(column, shape.inner, path)
        if isinstance(shape, Dynamic):
            return self._read_dynamic(column, path)
        if isinstance(shape, Newtype):
            return shape.factory(self._read_column(column, shape.inner, path))
        if column.is_null:
            raise NullNotAllowed('NULL in non-optional target', column=column.name, path=path,
                                 expected=shape.description, actual='null')
        if isinstance(shape, Scalar):
            return scalar.convert(column, shape, self.options, path)
        if is_json(column.type_tag):
            return decode_document(column, shape, path, self.options.json_single_field_wrap)
        if isinstance(shape, Sequence):
            elements = decode_array(column, path)
            return shape.factory(
                self._read_column(element, shape.inner, path + (i,))
                for i, element in enumerate(elements))
        if isinstance(shape, Tuple):
            elements = decode_array(column, path)
            if len(elements) != shape.arity:
                raise ArityMismatch(f'Tuple of {shape.arity} read from array of {len(elements)}',
                                    column=column.name, path=path,
                                    expected=shape.arity, actual=len(elements))
            return shape.factory([
                self._read_column(element, item, path + (i,))
                for i, (element, item) in enumerate(zip(elements, shape.items))])
        # Struct and Map targets inside one column are JSON only
        return decode_document(column, shape, path, self.options.json_single_field_wrap)

    def _read_dynamic(self, column: Any, path: tuple) -> Any:
        if column.is_null:
            return None
        if is_json(column.type_tag):
            return parse_document(column, path)
        if is_array(column.type_tag):
            return [self._read_dynamic(element, path + (i,))
                    for i, element in enumerate(decode_array(column, path))]
        return scalar.convert_dynamic(column, self.options, path)


def from_row(row: RowView | Iterable, target: type[T] | Any,
             options: DeserializeOptions | dict | None = None, **kw: Any) -> T:
    """Deserialize one row into ``target``.

    Example:
        >>> @dataclass
        ... class User:
        ...     id: Int32
        ...     name: str
        >>> from_row(row, User)
        User(id=42, name='alice')
    """
    return RowDeserializer(target, options, **kw)(row)


def iter_rows(rows: Iterable[RowView], target: type[T] | Any,
              options: DeserializeOptions | dict | None = None, **kw: Any) -> Iterator[T]:
    """Lazily deserialize rows; an error surfaces when its row is reached.
    """
    deserializer = RowDeserializer(target, options, **kw)
    for row in rows:
        yield deserializer(row)


def from_rows(rows: Iterable[RowView], target: type[T] | Any,
              options: DeserializeOptions | dict | None = None, **kw: Any) -> list[T]:
    """Deserialize every row, stopping at the first row that fails.
    """
    return list(iter_rows(rows, target, options, **kw))


def describe_row(row: RowView) -> str:
    """One-line ``name:type`` summary of a row's columns, for log messages.
    """
    return ', '.join(f'{c.name}:{type_name(c.type_tag)}' for c in row)


__all__ = [
    'RowDeserializer',
    'from_row',
    'from_rows',
    'iter_rows',
    'describe_row',
]
