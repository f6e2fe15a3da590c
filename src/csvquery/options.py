import logging
import os
from dataclasses import dataclass

import sqlalchemy as sa

from libb import ConfigOptions, scriptname

__all__ = [
    'DEFAULT_MAX_RESPONSE_SIZE',
    'ServerOptions',
    'options_from_env',
]

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESPONSE_SIZE = 1 << 20

SUPPORTED_BACKENDS = ('postgresql', 'postgres')

ENV_PREFIX = 'CSVQUERY_'


@dataclass
class ServerOptions(ConfigOptions):
    """Options

    - database_url: PostgreSQL connection target, e.g. `postgresql://user@host/db`
    - max_response_size: default byte ceiling when the request does not override it
    - timeout: connect timeout in seconds (0 disables)
    - statement_timeout: per-statement timeout in seconds (0 disables)
    - fetch_size: rows pulled from the driver per fetch
    - host/port: listener address for the bundled server
    """
    database_url: str = None
    max_response_size: int = DEFAULT_MAX_RESPONSE_SIZE
    timeout: int = 0
    statement_timeout: int = 0
    fetch_size: int = 5000
    appname: str = None
    host: str = '0.0.0.0'
    port: int = 8090

    def __post_init__(self):
        if not self.database_url:
            raise ValueError('database_url is required')
        try:
            url = sa.engine.make_url(self.database_url)
        except sa.exc.ArgumentError as err:
            raise ValueError(f'invalid database_url: {err}') from err
        if url.get_backend_name() not in SUPPORTED_BACKENDS:
            raise ValueError(f'database_url must be one of: {SUPPORTED_BACKENDS}')
        if self.max_response_size <= 0:
            raise ValueError('max_response_size must be positive')
        if self.fetch_size <= 0:
            raise ValueError('fetch_size must be positive')
        if self.timeout < 0 or self.statement_timeout < 0:
            raise ValueError('timeouts must not be negative')
        self.appname = self.appname or scriptname() or 'csvquery'


def _int_from_env(environ, name: str, default: int) -> int:
    value = environ.get(ENV_PREFIX + name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as err:
        raise ValueError(f'{ENV_PREFIX}{name} must be an integer, got {value!r}') from err


def options_from_env(environ=None) -> ServerOptions:
    """Build options from the process environment.

    `DATABASE_URL` names the connection target; `CSVQUERY_*` variables
    override the remaining defaults. Read once at process start.
    """
    environ = os.environ if environ is None else environ
    options = ServerOptions(
        database_url=environ.get('DATABASE_URL'),
        max_response_size=_int_from_env(environ, 'MAX_RESPONSE_SIZE', DEFAULT_MAX_RESPONSE_SIZE),
        timeout=_int_from_env(environ, 'TIMEOUT', 0),
        statement_timeout=_int_from_env(environ, 'STATEMENT_TIMEOUT', 0),
        fetch_size=_int_from_env(environ, 'FETCH_SIZE', 5000),
        appname=environ.get(ENV_PREFIX + 'APPNAME'),
        host=environ.get(ENV_PREFIX + 'HOST', '0.0.0.0'),
        port=_int_from_env(environ, 'PORT', 8090),
        )
    logger.debug(f'Loaded options from environment (port={options.port}, '
                 f'max_response_size={options.max_response_size})')
    return options
