"""
Struct field to column resolution.

A field plan records, for one struct target and one column layout, which
column each field reads. Flattened sub-structs are planned against the very
same name lookup as their parent: their field names must appear verbatim as
sibling columns. Two leaf fields anywhere in one plan claiming the same
column is a FieldConflict, raised while planning, before any value is read.

Plans only depend on the target shape and the column names, so they are
memoized per (shape, names) when plan caching is enabled.
"""
import logging

from pgrow.cache import Cache
from pgrow.exceptions import FieldConflict, MissingColumn, UnsupportedTarget
from pgrow.exceptions import format_path
from pgrow.options import DeserializeOptions
from pgrow.row import RowView
from pgrow.shapes import Map, Struct, StructField, unwrap_option

logger = logging.getLogger(__name__)


class ColumnBinding:
    """Field reads one column."""

    __slots__ = ('index',)

    def __init__(self, index: int) -> None:
        self.index = index

    def __repr__(self) -> str:
        return f'ColumnBinding({self.index})'


class RestBinding:
    """Flattened dict field collecting every column no other field binds."""

    __slots__ = ('indices',)

    def __init__(self) -> None:
        self.indices: tuple[int, ...] = ()

    def __repr__(self) -> str:
        return f'RestBinding({self.indices})'


class FieldPlan:
    """Column bindings for one struct.

    ``bindings`` pairs each field with a ColumnBinding, a nested FieldPlan
    (flattened struct), a RestBinding, or None when an optional field has no
    column and its default applies.
    """

    __slots__ = ('struct', 'bindings')

    def __init__(self, struct: Struct, bindings: tuple) -> None:
        self.struct = struct
        self.bindings = bindings

    def column_indices(self) -> list[int]:
        """All column indices this plan and its nested plans bind."""
        out = []
        for _, binding in self.bindings:
            if isinstance(binding, ColumnBinding):
                out.append(binding.index)
            elif isinstance(binding, FieldPlan):
                out.extend(binding.column_indices())
            elif isinstance(binding, RestBinding):
                out.extend(binding.indices)
        return out

    def __repr__(self) -> str:
        inner = ', '.join(f'{f.name}={b!r}' for f, b in self.bindings)
        return f'FieldPlan({self.struct.name}: {inner})'


def resolve(row: RowView, field_name: str, path: tuple = ()) -> int:
    """Resolve one field name to its column index.

    Raises
        MissingColumn: no column carries the name
    """
    try:
        return row.index_by_name[field_name]
    except KeyError:
        raise MissingColumn('No column for field', column=field_name,
                            path=path or (field_name,)) from None


class _Planner:

    def __init__(self, names: tuple[str, ...]) -> None:
        self.names = names
        self.index_by_name = {name: i for i, name in enumerate(names)}
        self.claimed: dict[str, tuple] = {}
        self.rest: tuple | None = None
        self.rest_binding: RestBinding | None = None

    def claim(self, name: str, path: tuple) -> ColumnBinding:
        if name in self.claimed:
            raise FieldConflict(
                f'Column is bound by both {format_path(self.claimed[name])} and {format_path(path)}',
                column=name, path=path)
        self.claimed[name] = path
        return ColumnBinding(self.index_by_name[name])

    def plan(self, struct: Struct, path: tuple) -> FieldPlan:
        bindings = []
        for field in struct.fields:
            bindings.append((field, self.bind(field, path + (field.name,))))
        return FieldPlan(struct, tuple(bindings))

    def bind(self, field: StructField, path: tuple):
        target = unwrap_option(field.shape)
        if field.flatten:
            if isinstance(target, Struct):
                return self.plan(target, path)
            if isinstance(target, Map):
                if self.rest is not None:
                    raise FieldConflict(
                        f'Only one flattened dict per row; {format_path(self.rest)} already collects the rest',
                        path=path)
                self.rest = path
                self.rest_binding = RestBinding()
                return self.rest_binding
            raise UnsupportedTarget(f'Field {format_path(path)} of type {field.shape.description} cannot be flattened')
        if field.name in self.index_by_name:
            return self.claim(field.name, path)
        if isinstance(target, Struct):
            return self.plan(target, path)
        if not field.required:
            return None
        raise MissingColumn('No column for field', column=field.name, path=path,
                            expected=field.shape.description)

    def finish(self, plan: FieldPlan) -> FieldPlan:
        if self.rest_binding is not None:
            self.rest_binding.indices = tuple(
                i for i, name in enumerate(self.names) if name not in self.claimed)
        return plan


def build_plan(struct: Struct, row: RowView, options: DeserializeOptions,
               path: tuple = ()) -> FieldPlan:
    """Resolve every field of ``struct`` (recursively) against the row's columns.

    Raises
        MissingColumn: a required field has no column
        FieldConflict: two fields bind the same column
    """
    names = row.names
    if not options.cache_plans:
        return _build(struct, names, path)

    return Cache.get_instance().get_or_build(
        'field_plans', (struct, names, path), lambda: _build(struct, names, path),
        maxsize=options.plan_cache_size, ttl=options.plan_cache_ttl)


def _build(struct: Struct, names: tuple[str, ...], path: tuple) -> FieldPlan:
    planner = _Planner(names)
    plan = planner.finish(planner.plan(struct, path))
    logger.debug(f'Planned {struct.name} over {len(names)} columns: {plan!r}')
    return plan


__all__ = [
    'ColumnBinding',
    'RestBinding',
    'FieldPlan',
    'build_plan',
    'resolve',
]
