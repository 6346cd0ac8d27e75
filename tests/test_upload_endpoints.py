"""Tests for the upload server API endpoints."""

import pytest
from fastapi.testclient import TestClient

from server import config
from server.dependencies import build_directory_components, set_components
from server.main import app


@pytest.fixture
def components(tmp_path):
    upload_root = tmp_path / 'ReceivedFiles'
    components = build_directory_components(upload_root, upload_root / 'temp')
    set_components(components)
    yield components
    set_components(None)


@pytest.fixture
def client(components):
    """Create FastAPI test client."""
    with TestClient(app) as test_client:
        yield test_client


def upload(client, file_id, chunk_index, data):
    params = {}
    if file_id is not None:
        params['fileId'] = file_id
    if chunk_index is not None:
        params['chunkIndex'] = chunk_index
    return client.post('/api/upload-chunk', params=params, files={'chunk': ('blob', data)})


def test_root_endpoint(client):
    response = client.get('/')
    assert response.status_code == 200
    assert response.json()['status'] == 'running'


def test_health_endpoint(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.json()['status'] == 'healthy'


def test_request_id_header(client):
    response = client.get('/health', headers={'X-Request-ID': 'req-42'})
    assert response.headers['X-Request-ID'] == 'req-42'


def test_upload_merge_fetch_roundtrip(client, components, tmp_path):
    first = upload(client, 'abc123', '1', b'World')
    second = upload(client, 'abc123', '0', b'Hello ')

    assert first.status_code == 200
    assert first.json() == {
        'success': True,
        'fileId': 'abc123',
        'chunkIndex': 1,
        'size': 5,
        'message': 'Chunk 1 uploaded',
    }
    assert second.status_code == 200

    response = client.post('/api/merge', json={'fileId': 'abc123', 'fileName': 'greeting.txt'})

    assert response.status_code == 200
    data = response.json()
    assert data['success'] is True
    assert data['fileName'] == 'greeting.txt'
    assert data['fileId'] == 'abc123'
    assert data['size'] == 11
    assert data['chunkCount'] == 2
    assert data['url'] == f"{config.UPLOAD_PUBLIC_BASE_URL}/ReceivedFiles/greeting.txt"

    assert (tmp_path / 'ReceivedFiles' / 'greeting.txt').read_bytes() == b'Hello World'
    assert not (tmp_path / 'ReceivedFiles' / 'temp' / 'abc123').exists()

    fetched = client.get('/ReceivedFiles/greeting.txt')
    assert fetched.status_code == 200
    assert fetched.content == b'Hello World'
    assert fetched.headers['content-type'].startswith('text/plain')


def test_merge_url_quotes_file_name(client):
    upload(client, 'spaces', '0', b'x')
    response = client.post('/api/merge', json={'fileId': 'spaces', 'fileName': 'my file.txt'})

    assert response.status_code == 200
    assert response.json()['url'].endswith('/ReceivedFiles/my%20file.txt')


def test_upload_missing_file_id(client):
    response = upload(client, None, '0', b'x')
    assert response.status_code == 400
    assert response.json()['code'] == 'MISSING_IDENTIFIER'


@pytest.mark.parametrize('chunk_index', [None, 'abc', '-1'])
def test_upload_missing_or_bad_index(client, chunk_index):
    response = upload(client, 'abc123', chunk_index, b'x')
    assert response.status_code == 400
    assert response.json()['code'] == 'MISSING_INDEX'


def test_upload_unsafe_file_id(client):
    response = upload(client, '..', '0', b'x')
    assert response.status_code == 400
    assert response.json()['code'] == 'INVALID_IDENTIFIER'


def test_upload_without_chunk_part(client):
    response = client.post('/api/upload-chunk', params={'fileId': 'abc', 'chunkIndex': '0'})
    assert response.status_code == 422


def test_upload_while_merging_is_conflict(client, components):
    upload(client, 'busy', '0', b'x')
    components.registry.begin_exclusive('busy')

    response = upload(client, 'busy', '1', b'y')

    assert response.status_code == 409
    assert response.json()['code'] == 'SESSION_BUSY'


@pytest.mark.parametrize('body, code', [
    ({'fileName': 'a.txt'}, 'MISSING_IDENTIFIER'),
    ({'fileId': 'abc'}, 'MISSING_FILE_NAME'),
    ({'fileId': 'abc', 'fileName': '../a.txt'}, 'INVALID_IDENTIFIER'),
])
def test_merge_validation(client, body, code):
    upload(client, 'abc', '0', b'x')
    response = client.post('/api/merge', json=body)

    assert response.status_code == 400
    assert response.json()['code'] == code


def test_merge_unknown_upload(client, tmp_path):
    response = client.post('/api/merge', json={'fileId': 'nope', 'fileName': 'a.txt'})

    assert response.status_code == 404
    assert response.json()['code'] == 'SESSION_NOT_FOUND'
    assert not (tmp_path / 'ReceivedFiles' / 'a.txt').exists()


def test_merge_twice_is_not_found(client):
    upload(client, 'once', '0', b'x')
    assert client.post('/api/merge', json={'fileId': 'once', 'fileName': 'once.txt'}).status_code == 200

    response = client.post('/api/merge', json={'fileId': 'once', 'fileName': 'once.txt'})
    assert response.status_code == 404


def test_merge_with_expected_chunks(client):
    upload(client, 'gap', '0', b'a')
    upload(client, 'gap', '2', b'c')

    response = client.post('/api/merge', json={'fileId': 'gap', 'fileName': 'gap.txt', 'expectedChunks': 3})
    assert response.status_code == 400
    assert response.json()['code'] == 'INCOMPLETE_UPLOAD'

    upload(client, 'gap', '1', b'b')
    response = client.post('/api/merge', json={'fileId': 'gap', 'fileName': 'gap.txt', 'expectedChunks': 3})
    assert response.status_code == 200
    assert client.get('/ReceivedFiles/gap.txt').content == b'abc'


def test_merge_negative_expected_chunks_rejected(client):
    upload(client, 'neg', '0', b'a')
    response = client.post('/api/merge', json={'fileId': 'neg', 'fileName': 'n.txt', 'expectedChunks': -1})
    assert response.status_code == 422


def test_merge_io_failure_is_server_error(client, components, monkeypatch):
    upload(client, 'broken', '0', b'x')

    def explode(*args, **kwargs):
        raise OSError(5, "Input/output error")

    monkeypatch.setattr(components.chunk_store, 'read_chunk_streaming', explode)
    response = client.post('/api/merge', json={'fileId': 'broken', 'fileName': 'b.txt'})

    assert response.status_code == 500
    assert response.json()['code'] == 'MERGE_IO_FAILURE'
    assert components.chunk_store.namespace_exists('broken')


def test_upload_storage_failure_is_server_error(client, components, monkeypatch):
    def explode(*args, **kwargs):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(components.chunk_store, 'write_chunk', explode)
    response = upload(client, 'denied', '0', b'x')

    assert response.status_code == 500
    assert response.json()['code'] == 'STORAGE_FAILURE'


def test_abandon_upload(client, components):
    upload(client, 'drop', '0', b'x')

    response = client.delete('/api/upload/drop')
    assert response.status_code == 200
    assert response.json() == {'success': True, 'fileId': 'drop', 'status': 'abandoned'}
    assert not components.chunk_store.namespace_exists('drop')

    assert client.delete('/api/upload/drop').status_code == 404


def test_fetch_unknown_artifact(client):
    response = client.get('/ReceivedFiles/missing.bin')
    assert response.status_code == 404
    assert response.json()['code'] == 'ARTIFACT_NOT_FOUND'


def test_fetch_does_not_serve_staging_directory(client):
    upload(client, 'secret', '0', b'x')
    assert client.get('/ReceivedFiles/temp').status_code == 404


def test_merge_onto_staging_directory_name_is_rejected(client, components):
    upload(client, 'abc', '0', b'hi')

    response = client.post('/api/merge', json={'fileId': 'abc', 'fileName': 'temp'})

    assert response.status_code == 400
    assert response.json()['code'] == 'INVALID_IDENTIFIER'
    assert components.chunk_store.list_indices('abc') == [0]

    response = client.post('/api/merge', json={'fileId': 'abc', 'fileName': 'temp.txt'})
    assert response.status_code == 200
