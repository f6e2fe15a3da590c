"""
Text conversion for result values (Database -> CSV direction only).

Values arrive already loaded by psycopg. Each is rendered in a stable,
locale-independent text form that mirrors PostgreSQL's own output where
Python's default string form differs:

1. NULL becomes an empty field
2. Booleans are `true`/`false`
3. Numbers are plain decimals; float specials are `NaN`, `Infinity`, `-Infinity`
4. Dates and times are ISO 8601 with a space separator
5. Binary values use the `\\x` hex form
6. Arrays use the `{a,b}` literal form, JSON columns use JSON text

Usage:
    fields = [TextConverter.to_text(v, col.type_name) for v, col in zip(row, columns)]
"""
import datetime
import decimal
import json
import logging
import math
import re
from typing import Any

logger = logging.getLogger(__name__)

__all__ = ['TextConverter', 'to_text']

JSON_TYPE_NAMES: set[str] = {'json', 'jsonb'}

_ARRAY_QUOTE_RE = re.compile(r'[{},"\\\s]')


def _float_text(value: float) -> str:
    if math.isnan(value):
        return 'NaN'
    if math.isinf(value):
        return 'Infinity' if value > 0 else '-Infinity'
    return repr(value)


def _decimal_text(value: decimal.Decimal) -> str:
    if value.is_nan():
        return 'NaN'
    if value.is_infinite():
        return 'Infinity' if value > 0 else '-Infinity'
    return format(value, 'f')


def _array_element(value: Any) -> str:
    """Render one array element, quoting it where the literal syntax needs it.
    """
    if value is None:
        return 'NULL'
    if isinstance(value, list | tuple):
        return _array_text(value)
    text = TextConverter.to_text(value)
    if text == '' or text.upper() == 'NULL' or _ARRAY_QUOTE_RE.search(text):
        escaped = text.replace('\\', '\\\\').replace('"', '\\"')
        return f'"{escaped}"'
    return text


def _array_text(value: list | tuple) -> str:
    return '{' + ','.join(_array_element(v) for v in value) + '}'


class TextConverter:
    """Default text form of database values"""

    @staticmethod
    def to_text(value: Any, type_name: str | None = None) -> str:
        """Convert a single value to its CSV field text

        Args:
            value: Value as loaded by the driver
            type_name: Resolved column type name, used to tell JSON
                documents apart from arrays and strings

        Returns
            Field text (empty string for NULL)
        """
        if value is None:
            return ''

        if type_name in JSON_TYPE_NAMES:
            return json.dumps(value, ensure_ascii=False, default=str)

        if isinstance(value, str):
            return value

        if isinstance(value, bool):
            return 'true' if value else 'false'

        if isinstance(value, int):
            return str(value)

        if isinstance(value, float):
            return _float_text(value)

        if isinstance(value, decimal.Decimal):
            return _decimal_text(value)

        if isinstance(value, datetime.datetime):
            return value.isoformat(sep=' ')

        if isinstance(value, datetime.date | datetime.time):
            return value.isoformat()

        if isinstance(value, bytes | bytearray | memoryview):
            return '\\x' + bytes(value).hex()

        if isinstance(value, list | tuple):
            return _array_text(value)

        if isinstance(value, dict):
            return json.dumps(value, ensure_ascii=False, default=str)

        return str(value)

    @staticmethod
    def convert_row(row: Any, type_names: list[str] | None = None) -> list[str]:
        """Convert every value of a row, in column order
        """
        if type_names is None:
            return [TextConverter.to_text(v) for v in row]
        return [TextConverter.to_text(v, t) for v, t in zip(row, type_names)]


to_text = TextConverter.to_text
