"""Row and column containers handed to the deserializer."""
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any, Self

from psycopg import pq

from pgrow.exceptions import DuplicateColumn, MissingColumn, ValidationError
from pgrow.types import type_name


@dataclass(frozen=True, slots=True)
class ColumnValue:
    """One decoded cell: column name, PostgreSQL type OID and binary payload.

    ``raw`` is None exactly when the cell is SQL NULL.
    """
    name: str
    type_tag: int
    raw: bytes | None = None

    @property
    def is_null(self) -> bool:
        return self.raw is None

    @property
    def type_name(self) -> str:
        return type_name(self.type_tag)

    def __repr__(self) -> str:
        payload = 'NULL' if self.raw is None else f'{len(self.raw)} bytes'
        return f'ColumnValue({self.name!r}, {self.type_name}, {payload})'


class RowView:
    """Read-only view over one fetched row.

    Columns keep the projection order of the query; ``index_by_name`` is built
    once at construction and every lookup during deserialization goes through
    it, including lookups for flattened nested fields.
    """

    __slots__ = ('columns', 'index_by_name')

    def __init__(self, columns: Iterable[ColumnValue]) -> None:
        self.columns = tuple(columns)
        index_by_name: dict[str, int] = {}
        for i, column in enumerate(self.columns):
            if column.name in index_by_name:
                raise DuplicateColumn(
                    'Row has more than one column with this name',
                    column=column.name,
                    index=i)
            index_by_name[column.name] = i
        self.index_by_name = index_by_name

    @classmethod
    def from_pairs(cls, *pairs: tuple[str, int, bytes | None]) -> Self:
        """Build a row from ``(name, type_tag, raw)`` triples.
        """
        return cls(ColumnValue(name, type_tag, raw) for name, type_tag, raw in pairs)

    @classmethod
    def from_pgresult(cls, pgresult: Any, row_number: int) -> Self:
        """Build a row from a psycopg ``PGresult`` fetched in binary format.

        Args:
            pgresult: Result object, e.g. ``cursor.pgresult``
            row_number: Zero-based row within the result

        Returns
            RowView over the row's raw binary values
        """
        if not 0 <= row_number < pgresult.ntuples:
            raise ValidationError(f'Row {row_number} out of range for result with {pgresult.ntuples} rows')
        columns = []
        for col in range(pgresult.nfields):
            fname = pgresult.fname(col)
            name = fname.decode() if fname is not None else f'?column{col}?'
            if pgresult.fformat(col) != pq.Format.BINARY:
                raise ValidationError(f'Column {name!r} was returned in text format; execute with binary=True')
            columns.append(ColumnValue(name, pgresult.ftype(col), pgresult.get_value(row_number, col)))
        return cls(columns)

    def get_by_name(self, name: str) -> ColumnValue:
        """Get a column by name.
        """
        try:
            return self.columns[self.index_by_name[name]]
        except KeyError:
            raise MissingColumn('Row has no column with this name', column=name) from None

    def get_by_index(self, index: int) -> ColumnValue:
        """Get a column by position.
        """
        if not 0 <= index < len(self.columns):
            raise MissingColumn(f'Row has {len(self.columns)} columns', index=index)
        return self.columns[index]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    def __contains__(self, name: object) -> bool:
        return name in self.index_by_name

    def __len__(self) -> int:
        return len(self.columns)

    def __iter__(self) -> Iterator[ColumnValue]:
        return iter(self.columns)

    def __repr__(self) -> str:
        return f'RowView({list(self.columns)!r})'


__all__ = ['ColumnValue', 'RowView']
