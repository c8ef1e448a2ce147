import logging

from fastapi.testclient import TestClient

from registry import services
from registry.main import app


def test_unexpected_fault_hides_internal_detail(client, monkeypatch):
    def _boom(self, student_id):
        raise RuntimeError("db exploded: secret connection string")

    monkeypatch.setattr(services.StudentService, "get", _boom)
    unsafe_client = TestClient(app, raise_server_exceptions=False)
    r = unsafe_client.get('/students/1')
    assert r.status_code == 500
    body = r.json()
    assert body['message'] == 'internal server error'
    assert body['error'] == 'Internal Server Error'
    assert 'secret' not in r.text


def test_unknown_route_uses_error_shape(client):
    r = client.get('/no-such-thing')
    assert r.status_code == 404
    body = r.json()
    assert body['status'] == 404
    assert body['path'] == '/no-such-thing'
    assert 'timestamp' in body


def test_malformed_json_body(client):
    r = client.post('/students', content=b'{"name": "Sam",', headers={'Content-Type': 'application/json'})
    assert r.status_code == 400
    assert 'body' in r.json()['errors']


def test_non_integer_path_id_is_a_validation_error(client):
    r = client.get('/students/abc')
    assert r.status_code == 400
    assert 'student_id' in r.json()['errors']


def test_error_body_carries_request_id(client):
    r = client.get('/students/5', headers={'X-Request-ID': 'req-5'})
    assert r.status_code == 404
    assert r.json()['request_id'] == 'req-5'


def test_unexpected_fault_is_logged_once(client, monkeypatch, caplog):
    def _boom(self, student_id):
        raise RuntimeError("db exploded")

    monkeypatch.setattr(services.StudentService, "get", _boom)
    unsafe_client = TestClient(app, raise_server_exceptions=False)
    with caplog.at_level(logging.ERROR):
        assert unsafe_client.get('/students/1').status_code == 500
    failures = [rec for rec in caplog.records if rec.levelno >= logging.ERROR]
    assert len(failures) == 1
    assert failures[0].getMessage().startswith('request_failed')
    assert failures[0].exc_info is not None
