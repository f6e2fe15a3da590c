"""
Database connection handling with SQLAlchemy.

This module provides the `Database` implementation used by the server:
1. The `connect()` function opening one connection per request
2. The `ConnectionWrapper` class that executes query text and resolves type names

SQLAlchemy is used for connection management only; statements run on the raw
psycopg connection so that query text reaches the server verbatim and the
command tag stays available.
"""
import logging
from dataclasses import fields
from typing import Any, Self

import sqlalchemy as sa
from csvquery.adapters.type_mapping import TypeNameResolver
from csvquery.cursor import Cursor
from csvquery.exceptions import ConnectionFailure, DbConnectionError
from csvquery.options import ServerOptions
from csvquery.utils.connection_utils import get_engine_for_options

from libb import load_options

logger = logging.getLogger(__name__)

__all__ = ['ConnectionWrapper', 'connect']


class ConnectionWrapper:
    """Wraps a SQLAlchemy connection object to run raw queries and track timing

    The wrapper is a context manager: leaving the block closes the
    connection, which with a non-pooling engine ends the database session.
    """

    def __init__(self, sa_connection: sa.engine.Connection | None = None,
                 options: ServerOptions | None = None) -> None:
        """Initialize a connection wrapper

        Args:
            sa_connection: SQLAlchemy connection object to wrap
            options: The ServerOptions used to create this connection
        """
        self.sa_connection = sa_connection
        self.options = options
        self.dbapi_connection = sa_connection.connection if sa_connection else None
        self.calls = 0
        self.time = 0
        self._resolver = None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()
        logger.debug('Closed connection via context manager')

    @property
    def closed(self) -> bool:
        return self.sa_connection is None or self.sa_connection.closed

    @property
    def type_resolver(self) -> TypeNameResolver:
        """Resolver consulting this connection's psycopg type registry first.
        """
        if self._resolver is None:
            registry = None
            driver_connection = getattr(self.dbapi_connection, 'driver_connection', None)
            if driver_connection is not None:
                registry = driver_connection.adapters.types
            self._resolver = TypeNameResolver(registry)
        return self._resolver

    def cursor(self) -> Cursor:
        """Get a wrapped cursor for this connection
        """
        fetch_size = self.options.fetch_size if self.options else 5000
        return Cursor(self.dbapi_connection.cursor(), self, fetch_size=fetch_size)

    def execute(self, query: str | bytes) -> Cursor:
        """Execute query text and return the cursor positioned before the first row

        The caller owns the returned cursor and must close it.
        """
        cursor = self.cursor()
        try:
            return cursor.execute(query)
        except Exception:
            cursor.close()
            raise

    def resolve_type_name(self, type_code: Any) -> str | None:
        return self.type_resolver.resolve(type_code)

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics

        Args:
            elapsed: Time in seconds that the query took to execute
        """
        self.time += elapsed
        self.calls += 1

    def close(self) -> None:
        """Close the SQLAlchemy connection and log execution statistics
        """
        if self.closed:
            return
        self.sa_connection.close()
        logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s')


@load_options(cls=ServerOptions)
def connect(options: ServerOptions | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> ConnectionWrapper:
    """Open a dedicated database connection

    Args:
        options: Can be:
                - ServerOptions object
                - String path to configuration
                - Dictionary of options
                - Options specified as keyword arguments
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options

    Returns
        ConnectionWrapper for one request

    Raises
        ConnectionFailure: the database could not be reached
    """
    if isinstance(options, ServerOptions):
        for field in fields(options):
            kw.pop(field.name, None)
    else:
        options_func = load_options(cls=ServerOptions)(lambda o, c: o)
        options = options_func(options, config, **kw)

    engine = get_engine_for_options(options)

    try:
        sa_connection = engine.connect()
    except DbConnectionError as err:
        logger.error(f'Could not connect to database: {err}')
        raise ConnectionFailure(str(err)) from err

    return ConnectionWrapper(sa_connection, options)
