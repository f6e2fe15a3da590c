"""
HTTP endpoint for the bounded tabular streamer.

`POST /query` with raw SQL text in the body returns the result set as CSV.
Each request opens its own database connection through the injected
connector and closes it before the response is returned.
"""
import logging
from collections.abc import Callable
from dataclasses import dataclass, fields
from typing import Any

from csvquery.connection import connect
from csvquery.exceptions import MethodNotAllowed, StreamerError, UnreadableBody
from csvquery.exceptions import UnsupportedMediaType
from csvquery.options import ServerOptions, options_from_env
from csvquery.stream import stream_query
from csvquery.types import Database
from flask import Flask, Response, request
from werkzeug.exceptions import ClientDisconnected

from libb import load_options

logger = logging.getLogger(__name__)

__all__ = ['Admission', 'admit_request', 'create_app', 'main']

SQL_MEDIA_TYPE = 'text/sql'
MAX_CONTENT_LENGTH_HEADER = 'Max-Content-Length'

ROUTE_METHODS = ['GET', 'HEAD', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS']


@dataclass
class Admission:
    query: bytes
    max_response_size: int


def parse_max_response_size(value: str | None, default: int) -> int:
    """Resolve the size ceiling from the request header.

    Missing, malformed and non-positive values fall back to `default`.
    """
    if value is None:
        return default
    try:
        size = int(value.strip())
    except ValueError:
        logger.debug(f'Ignoring malformed {MAX_CONTENT_LENGTH_HEADER}: {value!r}')
        return default
    if size <= 0:
        logger.debug(f'Ignoring non-positive {MAX_CONTENT_LENGTH_HEADER}: {size}')
        return default
    return size


def admit_request(req: Any, options: ServerOptions) -> Admission:
    """Validate method and content type, then read the ceiling and query text

    Raises
        MethodNotAllowed: method is not POST
        UnsupportedMediaType: a content type other than text/sql was declared
        UnreadableBody: the body could not be read
    """
    if req.method != 'POST':
        raise MethodNotAllowed(req.method)

    if req.headers.get('Content-Type') and req.mimetype != SQL_MEDIA_TYPE:
        raise UnsupportedMediaType(req.mimetype)

    max_response_size = parse_max_response_size(
        req.headers.get(MAX_CONTENT_LENGTH_HEADER), options.max_response_size)

    try:
        query = req.get_data(cache=False)
    except (ClientDisconnected, OSError) as err:
        raise UnreadableBody(str(err)) from err

    return Admission(query=query, max_response_size=max_response_size)


def error_response(err: StreamerError) -> Response:
    """Terminal response for a failed request.
    """
    return Response(err.body(), status=err.status_code, headers=err.headers(),
                    content_type='text/plain; charset=utf-8')


def create_app(options: ServerOptions | dict[str, Any] | str,
               config: Any | None = None,
               connector: Callable[[ServerOptions], Database] = connect,
               **kw: Any) -> Flask:
    """Build the Flask application

    Args:
        options: ServerOptions object, dictionary, or named configuration
        config: Configuration object (for loading from config files)
        connector: Opens one database connection per request; the returned
            object is used as a context manager
        **kw: Additional keyword arguments to override options

    Returns
        Flask application serving `/query`
    """
    if isinstance(options, ServerOptions):
        for field in fields(options):
            kw.pop(field.name, None)
    else:
        options_func = load_options(cls=ServerOptions)(lambda o, c: o)
        options = options_func(options, config, **kw)

    app = Flask(__name__)
    app.config['CSVQUERY_OPTIONS'] = options

    @app.errorhandler(StreamerError)
    def handle_streamer_error(err: StreamerError) -> Response:
        if err.status_code >= 500:
            logger.error(f'{request.method} {request.path} failed: {type(err).__name__}: {err}')
        else:
            logger.warning(f'{request.method} {request.path} rejected: {type(err).__name__}: {err}')
        return error_response(err)

    def query() -> Response:
        admission = admit_request(request, options)
        with connector(options) as cn:
            result = stream_query(cn, admission.query, admission.max_response_size)
        logger.info(f'{request.method} {request.path} {result.status_code} '
                    f'{result.content_range} ({len(result.body)} bytes)')
        return Response(result.body, status=result.status_code, headers=result.headers)

    app.add_url_rule('/query', 'query', query, methods=ROUTE_METHODS,
                     provide_automatic_options=False)

    return app


def main() -> None:
    """Run the server with options read from the environment.
    """
    logging.basicConfig(level=logging.INFO,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    options = options_from_env()
    app = create_app(options)
    logger.info(f'Server started on port {options.port}')
    app.run(host=options.host, port=options.port, threaded=True)


if __name__ == '__main__':
    main()
