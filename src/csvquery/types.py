"""
Column and command metadata shared by the streamer and the database layer.

The database collaborator is described by two protocols:

- `Database`: executes query text and names type codes
- `ResultCursor`: field descriptors, lazy rows and the command summary

`csvquery.connection.ConnectionWrapper` and `csvquery.cursor.Cursor` are the
PostgreSQL implementations; tests supply in-memory fakes.
"""
import enum
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, NamedTuple, Protocol, Self

__all__ = [
    'FieldDescriptor',
    'ColumnDescriptor',
    'CommandKind',
    'CommandSummary',
    'Database',
    'ResultCursor',
]


class FieldDescriptor(NamedTuple):
    """Name and type code of one result column as reported by the driver.
    """
    name: str
    type_code: Any


@dataclass(frozen=True)
class ColumnDescriptor:
    """Projected result column: display name and resolved type name.
    """
    name: str
    type_name: str
    type_code: Any = None

    @staticmethod
    def get_names(columns: list[Self]) -> list[str]:
        """Get column names from a list of ColumnDescriptor objects.
        """
        return [col.name for col in columns]

    @staticmethod
    def get_type_names(columns: list[Self]) -> list[str]:
        """Get type names from a list of ColumnDescriptor objects.
        """
        return [col.type_name for col in columns]


class CommandKind(enum.Enum):
    SELECT = 'SELECT'
    INSERT = 'INSERT'
    UPDATE = 'UPDATE'
    DELETE = 'DELETE'
    OTHER = 'OTHER'

    @property
    def is_mutation(self) -> bool:
        return self in {CommandKind.INSERT, CommandKind.UPDATE, CommandKind.DELETE}


@dataclass(frozen=True)
class CommandSummary:
    """Statement kind and counts reported once iteration ends.

    `rows_affected` is what the database reports; `row_count` is the number
    of rows actually streamed, which is smaller when the size ceiling stops
    iteration early.
    """
    kind: CommandKind = CommandKind.OTHER
    rows_affected: int = 0
    row_count: int = 0

    @classmethod
    def from_status(cls, statusmessage: str | None, rowcount: int = -1) -> Self:
        """Parse a PostgreSQL command tag such as `INSERT 0 3` or `UPDATE 2`.

        Tags without a trailing count (`CREATE TABLE`) report the driver's
        rowcount when it is known, else 0.
        """
        if not statusmessage:
            return cls(rows_affected=max(rowcount, 0))

        parts = statusmessage.split()
        try:
            kind = CommandKind(parts[0].upper())
        except ValueError:
            kind = CommandKind.OTHER

        if len(parts) > 1 and parts[-1].isdigit():
            rows_affected = int(parts[-1])
        else:
            rows_affected = max(rowcount, 0)

        return cls(kind=kind, rows_affected=rows_affected)


class ResultCursor(Protocol):

    def fields(self) -> list[FieldDescriptor]:
        ...

    def __iter__(self) -> Iterator[tuple]:
        ...

    def summary(self) -> CommandSummary:
        ...

    def close(self) -> None:
        ...


class Database(Protocol):

    def execute(self, query: str | bytes) -> ResultCursor:
        ...

    def resolve_type_name(self, type_code: Any) -> str | None:
        ...

    def close(self) -> None:
        ...
