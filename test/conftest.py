"""Shared fixtures: an in-memory app, a logged-in gym and API helpers"""
import pytest
from gymdesk import create_app, db

@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture
def http(app):
    return app.test_client()

def register_gym(http, name='Iron Gym', email='owner@irongym.com', password='secret123'):
    return http.post('/api/gym/register', json={'name': name, 'email': email, 'password': password})

def create_client(http, **fields):
    payload = {'name': 'Juan Pérez', 'email': 'juan@mail.com', 'phone': '1155551234', 'dueDay': 5}
    payload.update(fields)
    response = http.post('/api/clients', json=payload)
    assert response.status_code == 201, response.get_json()
    return response.get_json()

@pytest.fixture
def gym(http):
    response = register_gym(http)
    assert response.status_code == 201
    return response.get_json()

@pytest.fixture
def member(http, gym):
    return create_client(http)

@pytest.fixture
def make_client(http, gym):
    def _make(**fields):
        return create_client(http, **fields)
    return _make
