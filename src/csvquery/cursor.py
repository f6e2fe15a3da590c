"""
PostgreSQL result cursor used by the streamer.

Implements the `ResultCursor` protocol on top of a psycopg DB-API cursor:
field descriptors, lazy chunked row iteration and the command summary.
"""
import logging
import time
from collections.abc import Iterator
from functools import wraps
from typing import Any, Self

import psycopg
from csvquery.exceptions import QueryError
from csvquery.types import CommandSummary, FieldDescriptor

logger = logging.getLogger(__name__)

__all__ = ['Cursor', 'IterChunk']


def _sql_text(operation: str | bytes) -> str:
    if isinstance(operation, bytes):
        return operation.decode('utf-8', errors='replace')
    return operation


def dumpsql(func):
    """Decorator for logging SQL queries and their execution time."""
    @wraps(func)
    def wrapper(self, operation: str | bytes, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{_sql_text(operation)}')
        try:
            result = func(self, operation, *args, **kwargs)
            if hasattr(self.dbapi_cursor, 'statusmessage'):
                logger.debug(f'Query result: {self.dbapi_cursor.statusmessage}')
            return result
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{_sql_text(operation)}')
            raise
        finally:
            elapsed = time.time() - start
            self.connwrapper.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


class Cursor:
    """Result cursor wrapping a psycopg cursor.

    Driver errors raised while executing or fetching are translated into
    `QueryError` carrying the database message.
    """

    def __init__(self, cursor: Any, connection_wrapper: Any, fetch_size: int = 5000) -> None:
        """Initialize cursor wrapper.

        Args:
            cursor: The underlying psycopg cursor
            connection_wrapper: The connection wrapper that created this cursor
            fetch_size: Rows requested from the driver per fetch
        """
        self.dbapi_cursor = cursor
        self.connwrapper = connection_wrapper
        self.fetch_size = fetch_size

    def __getattr__(self, name: str) -> Any:
        """Delegate members to underlying cursor."""
        return getattr(self.dbapi_cursor, name)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def __iter__(self) -> Iterator[tuple]:
        """Return a lazy iterator over the remaining rows."""
        if self.dbapi_cursor.description is None:
            return iter(())
        return IterChunk(self.dbapi_cursor, self.fetch_size)

    @dumpsql
    def execute(self, operation: str | bytes) -> Self:
        """Execute query text verbatim."""
        try:
            self.dbapi_cursor.execute(operation)
        except psycopg.Error as err:
            raise QueryError(str(err)) from err
        return self

    def fields(self) -> list[FieldDescriptor]:
        """Name and type code of each result column, empty for commands."""
        if self.dbapi_cursor.description is None:
            return []
        return [FieldDescriptor(col.name, col.type_code)
                for col in self.dbapi_cursor.description]

    def summary(self) -> CommandSummary:
        """Statement kind and affected row count from the command tag."""
        return CommandSummary.from_status(self.dbapi_cursor.statusmessage,
                                          self.dbapi_cursor.rowcount)

    def close(self) -> None:
        """Close cursor."""
        if not self.dbapi_cursor.closed:
            self.dbapi_cursor.close()


def IterChunk(cursor: Any, size: int = 5000) -> Iterator[tuple]:
    """Iterate through cursor results in chunks.

    Stopping early leaves the remaining rows unfetched; the caller closes
    the cursor.
    """
    while True:
        try:
            chunked = cursor.fetchmany(size)
        except psycopg.Error as err:
            raise QueryError(str(err)) from err
        if not chunked:
            break
        yield from chunked
