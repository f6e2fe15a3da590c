"""
Tests for bounded accumulation and finalization.
"""
import pytest
from csvquery.exceptions import EncodingError, QueryError, TypeResolutionError
from csvquery.stream import StreamBuffer, stream_query
from csvquery.types import CommandKind

PEOPLE = [('id', 23), ('name', 25)]
PEOPLE_ROWS = [(1, 'Alice'), (2, 'Bob'), (3, 'Charlie')]


def test_buffer_length_is_utf8_bytes():
    buffer = StreamBuffer()
    assert len(buffer) == 0

    assert buffer.write_record(['ab', 'c']) == 5
    assert buffer.write_record(['é']) == 3
    assert len(buffer) == 8
    assert buffer.records == 2
    assert buffer.getvalue() == 'ab,c\né\n'.encode()


def test_empty_result(fake_database):
    db = fake_database(fields=PEOPLE, rows=[], statusmessage='SELECT 0')
    result = stream_query(db, 'select id, name from people where false', 1024)

    assert result.status_code == 200
    assert result.body == b'id,name\n'
    assert result.current_row == 0
    assert result.headers == {
        'Content-Type': 'text/csv; coltypes=int4,text',
        'Content-Range': 'rows 0-0/0',
        }


def test_complete_result(fake_database):
    db = fake_database(fields=PEOPLE, rows=PEOPLE_ROWS)
    result = stream_query(db, 'select id, name from people', 1024)

    assert result.status_code == 200
    assert not result.partial
    assert result.body == b'id,name\n1,Alice\n2,Bob\n3,Charlie\n'
    assert result.content_range == 'rows 0-3/3'
    assert 'Rows-Affected' not in result.headers
    assert result.summary.kind is CommandKind.SELECT
    assert result.summary.row_count == 3


def test_output_at_ceiling_is_complete(fake_database):
    db = fake_database(fields=PEOPLE, rows=PEOPLE_ROWS)
    size = len(b'id,name\n1,Alice\n2,Bob\n3,Charlie\n')
    result = stream_query(db, 'select id, name from people', size)

    assert result.status_code == 200
    assert result.content_range == 'rows 0-3/3'


def test_ceiling_stops_iteration(fake_database):
    """Three rows totalling 40 bytes against a 10 byte ceiling"""
    db = fake_database(fields=[('id', 25)],
                       rows=[('x' * 11,), ('y' * 11,), ('z' * 12,)])
    result = stream_query(db, 'select id from t', 10)

    assert 3 + 12 + 12 + 13 == 40
    assert result.status_code == 206
    assert result.partial
    assert result.content_range == 'rows 0-1/*'
    assert result.body == b'id\n' + b'x' * 11 + b'\n'
    assert db.cursors[0].rows_pulled == 1
    assert db.cursors[0].closed


def test_ceiling_keeps_crossing_row(fake_database):
    db = fake_database(fields=PEOPLE, rows=PEOPLE_ROWS)
    ceiling = len(b'id,name\n1,Alice\n') + 1
    result = stream_query(db, 'select id, name from people', ceiling)

    assert result.status_code == 206
    assert result.current_row == 2
    assert result.current_row < len(PEOPLE_ROWS)
    assert result.body == b'id,name\n1,Alice\n2,Bob\n'
    assert result.content_range == 'rows 0-2/*'


def test_row_count_is_rows_streamed(fake_database):
    db = fake_database(fields=PEOPLE, rows=PEOPLE_ROWS, statusmessage='SELECT 3')
    result = stream_query(db, 'select id, name from people', 1)

    assert result.summary.rows_affected == 3
    assert result.summary.row_count == 1
    assert result.current_row == 1


@pytest.mark.parametrize(('status', 'affected'), [
    ('INSERT 0 3', '3'),
    ('UPDATE 2', '2'),
    ('DELETE 0', '0'),
])
def test_mutation_reports_rows_affected(fake_database, status, affected):
    db = fake_database(statusmessage=status)
    result = stream_query(db, 'update people set name = upper(name)', 1024)

    assert result.status_code == 200
    assert result.current_row == 0
    assert result.headers['Rows-Affected'] == affected
    assert result.content_range == 'rows 0-0/0'


def test_other_commands_have_no_rows_affected(fake_database):
    db = fake_database(statusmessage='CREATE TABLE')
    result = stream_query(db, 'create table t (id int)', 1024)

    assert 'Rows-Affected' not in result.headers


def test_query_error_propagates(fake_database):
    db = fake_database(error='relation "nope" does not exist')
    with pytest.raises(QueryError, match='relation "nope" does not exist'):
        stream_query(db, 'select * from nope', 1024)


def test_type_resolution_error_closes_cursor(fake_database):
    db = fake_database(fields=[('id', 23), ('mood', 50001)], rows=[(1, 'happy')])
    with pytest.raises(TypeResolutionError):
        stream_query(db, 'select id, mood from people', 1024)

    assert db.cursors[0].closed
    assert db.cursors[0].rows_pulled == 0


def test_encoding_error_closes_cursor(fake_database):
    class Broken:
        def __str__(self):
            raise ValueError('cannot render')

    db = fake_database(fields=PEOPLE, rows=[(1, 'Alice'), (2, Broken()), (3, 'Charlie')])
    with pytest.raises(EncodingError):
        stream_query(db, 'select id, name from people', 1024)

    assert db.cursors[0].closed
    assert db.cursors[0].rows_pulled == 2


def test_fetch_error_mid_stream(fake_database):
    db = fake_database(fields=PEOPLE, rows=[(1, 'Alice'), QueryError('canceling statement')])
    with pytest.raises(QueryError, match='canceling statement'):
        stream_query(db, 'select id, name from people', 1024)

    assert db.cursors[0].closed


def test_query_passed_verbatim(fake_database):
    db = fake_database(fields=PEOPLE, rows=[])
    query = b"select id, name from people where name = 'O''Brien' -- \xff"
    stream_query(db, query, 1024)

    assert db.queries == [query]
