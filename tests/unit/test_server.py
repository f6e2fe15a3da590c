"""
Tests for the /query endpoint using the Flask test client.
"""
import pytest
from csvquery.exceptions import ConnectionFailure
from csvquery.options import ServerOptions
from csvquery.server import create_app, parse_max_response_size

PEOPLE = [('id', 23), ('name', 25)]
PEOPLE_ROWS = [(1, 'Alice'), (2, 'Bob'), (3, 'Charlie')]


@pytest.fixture
def options():
    return ServerOptions(database_url='postgresql://postgres@localhost:5432/test_db')


@pytest.fixture
def people(fake_database):
    return fake_database(fields=PEOPLE, rows=PEOPLE_ROWS)


def client_for(options, connector):
    app = create_app(options, connector=connector)
    app.testing = True
    return app.test_client()


def test_select(options, people, fake_connector):
    connector = fake_connector(people)
    client = client_for(options, connector)

    response = client.post('/query', data='select id, name from people',
                           content_type='text/sql')

    assert response.status_code == 200
    assert response.data == b'id,name\n1,Alice\n2,Bob\n3,Charlie\n'
    assert response.headers['Content-Type'] == 'text/csv; coltypes=int4,text'
    assert response.headers['Content-Range'] == 'rows 0-3/3'
    assert 'Rows-Affected' not in response.headers
    assert connector.calls == 1
    assert people.closed


def test_content_type_is_optional(options, people, fake_connector):
    client = client_for(options, fake_connector(people))

    response = client.post('/query', data=b'select id, name from people')

    assert response.status_code == 200
    assert people.queries == [b'select id, name from people']


def test_content_type_parameters_ignored(options, people, fake_connector):
    client = client_for(options, fake_connector(people))

    response = client.post('/query', data='select 1', content_type='TEXT/SQL; charset=utf-8')

    assert response.status_code == 200


@pytest.mark.parametrize('method', ['get', 'put', 'patch', 'delete', 'head', 'options'])
def test_wrong_method_is_rejected_without_connecting(options, people, fake_connector, method):
    connector = fake_connector(people)
    client = client_for(options, connector)

    response = getattr(client, method)('/query')

    assert response.status_code == 405
    assert response.headers['Allow'] == 'POST'
    assert connector.calls == 0


def test_unsupported_media_type(options, people, fake_connector):
    connector = fake_connector(people)
    client = client_for(options, connector)

    response = client.post('/query', data='{"sql": "select 1"}',
                           content_type='application/json')

    assert response.status_code == 415
    assert connector.calls == 0


def test_max_content_length_header(options, fake_database, fake_connector):
    db = fake_database(fields=[('id', 25)], rows=[('x' * 11,), ('y' * 11,), ('z' * 12,)])
    client = client_for(options, fake_connector(db))

    response = client.post('/query', data='select id from t',
                           headers={'Max-Content-Length': '10'})

    assert response.status_code == 206
    assert response.headers['Content-Range'] == 'rows 0-1/*'
    assert response.data == b'id\n' + b'x' * 11 + b'\n'
    assert db.closed


@pytest.mark.parametrize('header', ['abc', '', '0', '-5', '1.5'])
def test_invalid_max_content_length_uses_default(options, people, fake_connector, header):
    client = client_for(options, fake_connector(people))

    response = client.post('/query', data='select id, name from people',
                           headers={'Max-Content-Length': header})

    assert response.status_code == 200
    assert response.headers['Content-Range'] == 'rows 0-3/3'


def test_configured_default_ceiling(fake_database, fake_connector):
    options = ServerOptions(database_url='postgresql://localhost/test_db',
                            max_response_size=10)
    db = fake_database(fields=PEOPLE, rows=PEOPLE_ROWS)
    client = client_for(options, fake_connector(db))

    response = client.post('/query', data='select id, name from people')

    assert response.status_code == 206
    assert response.headers['Content-Range'] == 'rows 0-1/*'


def test_mutation_reports_rows_affected(options, fake_database, fake_connector):
    db = fake_database(statusmessage='UPDATE 2')
    client = client_for(options, fake_connector(db))

    response = client.post('/query', data="update people set name = 'x' where id < 3")

    assert response.status_code == 200
    assert response.headers['Rows-Affected'] == '2'
    assert response.headers['Content-Range'] == 'rows 0-0/0'


def test_query_error_returns_message(options, fake_database, fake_connector):
    db = fake_database(error='syntax error at or near "selec"')
    client = client_for(options, fake_connector(db))

    response = client.post('/query', data='selec 1')

    assert response.status_code == 500
    assert response.data == b'syntax error at or near "selec"'
    assert db.closed


def test_type_resolution_error_has_no_body(options, fake_database, fake_connector):
    db = fake_database(fields=[('mood', 50001)], rows=[('happy',)])
    client = client_for(options, fake_connector(db))

    response = client.post('/query', data='select mood from people')

    assert response.status_code == 500
    assert response.data == b''
    assert db.closed


def test_encoding_error_has_no_partial_rows(options, fake_database, fake_connector):
    class Broken:
        def __str__(self):
            raise ValueError('cannot render')

    db = fake_database(fields=PEOPLE, rows=[(1, 'Alice'), (2, Broken())])
    client = client_for(options, fake_connector(db))

    response = client.post('/query', data='select id, name from people')

    assert response.status_code == 500
    assert response.data == b''
    assert db.closed


def test_connection_failure(options):
    def connector(options):
        raise ConnectionFailure('connection refused')

    client = client_for(options, connector)

    response = client.post('/query', data='select 1')

    assert response.status_code == 500
    assert response.data == b''


def test_each_request_gets_its_own_connection(options, people, fake_connector):
    connector = fake_connector(people)
    client = client_for(options, connector)

    client.post('/query', data='select 1')
    client.post('/query', data='select 2')

    assert connector.calls == 2
    assert people.queries == [b'select 1', b'select 2']


@pytest.mark.parametrize(('value', 'expected'), [
    (None, 100),
    ('250', 250),
    (' 250 ', 250),
    ('abc', 100),
    ('0', 100),
    ('-1', 100),
])
def test_parse_max_response_size(value, expected):
    assert parse_max_response_size(value, 100) == expected
