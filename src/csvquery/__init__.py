"""
Bounded tabular streaming of SQL query results over HTTP.

A query posted to `/query` runs against PostgreSQL and its result set comes
back as CSV, cut off once the encoded size passes a ceiling:

- `create_app(options)`: Flask application serving the endpoint
- `stream_query(cn, sql, max_response_size)`: the streamer on its own
- `connect(options)`: one dedicated database connection
"""
__version__ = '0.1.0'

from csvquery.connection import ConnectionWrapper, connect
from csvquery.exceptions import AdmissionError, ConnectionFailure, EncodingError
from csvquery.exceptions import MethodNotAllowed, QueryError, StreamerError
from csvquery.exceptions import TypeResolutionError, UnreadableBody
from csvquery.exceptions import UnsupportedMediaType
from csvquery.options import DEFAULT_MAX_RESPONSE_SIZE, ServerOptions
from csvquery.options import options_from_env
from csvquery.server import create_app
from csvquery.stream import StreamBuffer, StreamResult, stream_query
from csvquery.types import ColumnDescriptor, CommandKind, CommandSummary

__all__ = [
    'create_app',
    'stream_query',
    'connect',
    'ConnectionWrapper',
    'ServerOptions',
    'options_from_env',
    'DEFAULT_MAX_RESPONSE_SIZE',
    'StreamBuffer',
    'StreamResult',
    'ColumnDescriptor',
    'CommandKind',
    'CommandSummary',
    'StreamerError',
    'AdmissionError',
    'UnreadableBody',
    'MethodNotAllowed',
    'UnsupportedMediaType',
    'ConnectionFailure',
    'QueryError',
    'TypeResolutionError',
    'EncodingError',
]
