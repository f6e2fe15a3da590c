"""
Streamer exception classes.

Every error carries the HTTP status it maps to. Driver exceptions are
translated into these at the connection and cursor boundary.
"""
import psycopg
import sqlalchemy as sa


class StreamerError(Exception):
    """Base class for all csvquery errors.
    """
    status_code = 500

    def body(self) -> str:
        """Text written to the response body for this error.
        """
        return ''

    def headers(self) -> dict[str, str]:
        return {}


class AdmissionError(StreamerError):
    """Request rejected before any database interaction.
    """
    status_code = 400


class UnreadableBody(AdmissionError):
    """Request body could not be read.
    """
    status_code = 400


class MethodNotAllowed(AdmissionError):
    """Request used a method other than POST.
    """
    status_code = 405

    def headers(self) -> dict[str, str]:
        return {'Allow': 'POST'}


class UnsupportedMediaType(AdmissionError):
    """Request declared a content type other than text/sql.
    """
    status_code = 415


class ConnectionFailure(StreamerError):
    """Error establishing the database connection.
    """


class QueryError(StreamerError):
    """Statement failed at the database.

    The database message is returned verbatim: the query text comes from
    the same trust boundary as the caller.
    """

    def body(self) -> str:
        return str(self)


class TypeResolutionError(StreamerError):
    """Column type code has no known type name.
    """


class EncodingError(StreamerError):
    """Row value could not be converted to text.
    """


DbConnectionError = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    sa.exc.OperationalError,
    sa.exc.InterfaceError,
    ConnectionFailure,
    )
