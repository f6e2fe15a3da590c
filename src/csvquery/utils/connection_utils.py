"""
SQLAlchemy engine management for the database collaborator.

This module provides:
1. SQLAlchemy URL generation from ServerOptions (psycopg 3 driver)
2. Engine creation through a thread-safe registry
3. Disposal of all engines at interpreter exit

Engines never pool: every request opens its own connection and closing it
closes the underlying PostgreSQL session.
"""
import atexit
import logging
import threading

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

__all__ = [
    'create_url_from_options',
    'create_connect_args',
    'get_engine_for_options',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def create_url_from_options(options) -> sa.URL:
    """Convert ServerOptions to a SQLAlchemy URL using the psycopg driver.

    Args:
        options: ServerOptions object with `database_url`

    Returns
        sqlalchemy.URL: URL for `postgresql+psycopg`
    """
    url = sa.engine.make_url(options.database_url)
    url = url.set(drivername='postgresql+psycopg')
    if options.timeout:
        url = url.update_query_dict({'connect_timeout': str(options.timeout)})
    return url


def create_connect_args(options) -> dict:
    """Extra keyword arguments handed to `psycopg.connect`.
    """
    connect_args = {'application_name': options.appname}
    if options.statement_timeout:
        connect_args['options'] = f'-c statement_timeout={options.statement_timeout * 1000}'
    return connect_args


def get_engine_for_options(options, engine_factory=sa.create_engine, **kwargs) -> Engine:
    """Get or create a SQLAlchemy engine for the given options.

    Args:
        options: ServerOptions object
        engine_factory: Function to create engines (defaults to sqlalchemy.create_engine)
        **kwargs: Additional arguments passed to engine factory

    Returns
        sqlalchemy.engine.Engine: SQLAlchemy engine
    """
    key = f'{options.database_url}_{options.timeout}_{options.statement_timeout}_{options.appname}'

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug('Using existing engine')
            return _engine_registry[key]

        engine_kwargs = {
            'echo': False,
            'poolclass': NullPool,
            'isolation_level': 'AUTOCOMMIT',
            'connect_args': create_connect_args(options),
            }
        engine_kwargs.update(kwargs)

        engine = engine_factory(create_url_from_options(options), **engine_kwargs)

        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {engine.url.render_as_string(hide_password=True)}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry."""
    with _engine_registry_lock:
        for engine in list(_engine_registry.values()):
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)
