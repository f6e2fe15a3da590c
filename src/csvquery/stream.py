"""
Bounded tabular streaming.

`stream_query` runs one statement and accumulates its result set as CSV in a
`StreamBuffer`. After every data row the buffer's byte length is compared
with the size ceiling; once it is exceeded no further rows are pulled. The
row that crossed the ceiling is kept, so the body can exceed the ceiling by
at most one record.

Status and range annotations are final once `stream_query` returns, before
any body byte reaches the caller.
"""
import io
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace

from csvquery.encoder import encode_coltypes, encode_row, format_record
from csvquery.encoder import project_columns
from csvquery.types import ColumnDescriptor, CommandSummary, Database

logger = logging.getLogger(__name__)

__all__ = [
    'CSV_MEDIA_TYPE',
    'StreamBuffer',
    'StreamResult',
    'stream_query',
]

CSV_MEDIA_TYPE = 'text/csv'


class StreamBuffer:
    """Accumulates encoded records; `len()` is the exact UTF-8 byte length.

    Each record is encoded and appended in full before `len()` is observed,
    so no bytes are ever pending outside the count.
    """

    def __init__(self, encoding: str = 'utf-8') -> None:
        self.encoding = encoding
        self._buffer = io.BytesIO()
        self.records = 0

    def __len__(self) -> int:
        return self._buffer.tell()

    def write_record(self, fields: Sequence[str]) -> int:
        """Append one record and return the number of bytes written.
        """
        data = format_record(fields).encode(self.encoding)
        self._buffer.write(data)
        self.records += 1
        return len(data)

    def getvalue(self) -> bytes:
        return self._buffer.getvalue()


@dataclass
class StreamResult:
    """Finalized outcome of one query: status, annotations and body.
    """
    columns: list[ColumnDescriptor]
    body: bytes
    current_row: int
    partial: bool
    summary: CommandSummary = field(default_factory=CommandSummary)

    @property
    def status_code(self) -> int:
        return 206 if self.partial else 200

    @property
    def content_type(self) -> str:
        return f'{CSV_MEDIA_TYPE}; coltypes={encode_coltypes(self.columns)}'

    @property
    def content_range(self) -> str:
        total = '*' if self.partial else str(self.current_row)
        return f'rows 0-{self.current_row}/{total}'

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            'Content-Type': self.content_type,
            'Content-Range': self.content_range,
            }
        if self.summary.kind.is_mutation:
            headers['Rows-Affected'] = str(self.summary.rows_affected)
        return headers


def stream_query(cn: Database, query: str | bytes, max_response_size: int) -> StreamResult:
    """Execute `query` and encode its results up to the size ceiling

    Args:
        cn: Database collaborator, owned by the caller
        query: Query text, passed through verbatim
        max_response_size: Byte ceiling checked after each row

    Returns
        StreamResult with the body and final annotations

    Raises
        QueryError: the statement failed at the database
        TypeResolutionError: a column type has no name
        EncodingError: a value could not be converted to text

    The cursor is closed on every exit path.
    """
    cursor = cn.execute(query)
    try:
        columns = project_columns(cursor.fields(), cn.resolve_type_name)

        buffer = StreamBuffer()
        buffer.write_record(ColumnDescriptor.get_names(columns))

        current_row = 0
        partial = False
        for row in cursor:
            buffer.write_record(encode_row(row, columns))
            current_row += 1
            if len(buffer) > max_response_size:
                partial = True
                logger.debug(f'Response size {len(buffer)} exceeds {max_response_size} '
                             f'after {current_row} rows')
                break

        summary = replace(cursor.summary(), row_count=current_row)
    finally:
        cursor.close()

    logger.debug(f'Streamed {current_row} rows ({len(buffer)} bytes), '
                 f'{"partial" if partial else "complete"}')

    return StreamResult(
        columns=columns,
        body=buffer.getvalue(),
        current_row=current_row,
        partial=partial,
        summary=summary,
        )
