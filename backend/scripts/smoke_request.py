"""Run a quick round trip against the app.

Uses FastAPI's TestClient to hit `/health`, then creates, reads and
deletes a throwaway student so the whole controller/service/repository
stack is exercised against the configured database.
"""

import sys
import os
import uuid

# Ensure backend folder is on sys.path so `registry` package can be imported
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from fastapi.testclient import TestClient
from registry.main import app


def run():
    client = TestClient(app)
    resp = client.get('/health')
    print('HEALTH:', resp.status_code, resp.json())
    email = f'smoke-{uuid.uuid4().hex[:8]}@mail.com'
    created = client.post('/students', json={'name': 'Smoke Test', 'age': 30, 'email': email})
    print('CREATE:', created.status_code, created.json())
    if created.status_code != 201:
        return 1
    student_id = created.json()['id']
    print('READ:', client.get(f'/students/{student_id}').status_code)
    print('DELETE:', client.delete(f'/students/{student_id}').status_code)
    print('READ AFTER DELETE:', client.get(f'/students/{student_id}').status_code)
    return 0


if __name__ == '__main__':
    sys.exit(run())
