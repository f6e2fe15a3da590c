"""
CSV record encoding for result sets.

Records are comma-delimited with `"` quoting and `\\n` terminators. Fields
that contain the delimiter, a quote or a line break are quoted and embedded
quotes doubled.
"""
import csv
import io
import logging
from collections.abc import Callable, Sequence
from typing import Any

from csvquery.adapters.type_conversion import TextConverter
from csvquery.exceptions import EncodingError, TypeResolutionError
from csvquery.types import ColumnDescriptor, FieldDescriptor

logger = logging.getLogger(__name__)

__all__ = [
    'RECORD_DIALECT',
    'format_record',
    'parse_records',
    'project_columns',
    'encode_coltypes',
    'encode_row',
]


class RecordDialect(csv.Dialect):
    delimiter = ','
    quotechar = '"'
    doublequote = True
    skipinitialspace = False
    lineterminator = '\n'
    quoting = csv.QUOTE_MINIMAL
    strict = True


RECORD_DIALECT = RecordDialect


def format_record(fields: Sequence[str]) -> str:
    """Encode one record including its line terminator.

    Older writers only quote the line break characters found in the
    terminator, so a record holding a carriage return is written with every
    field quoted. A record of a single empty field is written as `""`.
    """
    scratch = io.StringIO()
    if any('\r' in field for field in fields):
        writer = csv.writer(scratch, dialect=RECORD_DIALECT, quoting=csv.QUOTE_ALL)
    else:
        writer = csv.writer(scratch, dialect=RECORD_DIALECT)
    writer.writerow(fields)
    return scratch.getvalue()


def parse_records(text: str) -> list[list[str]]:
    """Decode CSV text produced by `format_record`.
    """
    return list(csv.reader(io.StringIO(text, newline=''), dialect=RECORD_DIALECT))


def project_columns(fields: Sequence[FieldDescriptor],
                    resolve_type_name: Callable[[Any], str | None]) -> list[ColumnDescriptor]:
    """Derive column descriptors from the cursor's field descriptors.

    Args:
        fields: Field descriptors in result order
        resolve_type_name: Maps a type code to its name, None when unknown

    Returns
        Column descriptors in the same order

    Raises
        TypeResolutionError: any type code has no name; nothing is returned
    """
    columns = []
    for field in fields:
        type_name = resolve_type_name(field.type_code)
        if not type_name:
            raise TypeResolutionError(
                f'Unknown type code {field.type_code!r} for column {field.name!r}')
        columns.append(ColumnDescriptor(field.name, type_name, field.type_code))
    return columns


def encode_coltypes(columns: Sequence[ColumnDescriptor]) -> str:
    """Type names as a single CSV record without the line terminator.

    Used as the `coltypes` parameter of the response content type.
    """
    return format_record(ColumnDescriptor.get_type_names(columns)).rstrip('\n')


def encode_row(row: Sequence[Any], columns: Sequence[ColumnDescriptor]) -> list[str]:
    """Convert a row's values to CSV fields in column order.

    Raises
        EncodingError: the row does not match the columns or a value could
            not be converted
    """
    if len(row) != len(columns):
        raise EncodingError(f'Row has {len(row)} values for {len(columns)} columns')
    try:
        return TextConverter.convert_row(row, ColumnDescriptor.get_type_names(columns))
    except Exception as err:
        logger.debug(f'Could not convert row to text: {err}')
        raise EncodingError(str(err)) from err
