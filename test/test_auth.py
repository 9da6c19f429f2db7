"""
Test gym registration, login and logout
"""
from gymdesk.models import Gym, ActivityLog
from conftest import register_gym

def test_register_creates_gym_and_session(http):
    response = register_gym(http)
    assert response.status_code == 201
    body = response.get_json()
    assert body['email'] == 'owner@irongym.com'
    assert 'password_hash' not in body

    gym = Gym.query.filter_by(email='owner@irongym.com').first()
    assert gym is not None
    assert gym.password_hash != 'secret123'
    assert gym.check_password('secret123')

    me = http.get('/api/auth/me')
    assert me.status_code == 200
    assert me.get_json()['name'] == 'Iron Gym'

def test_register_rejects_duplicate_email(http):
    register_gym(http)
    response = register_gym(http, email='OWNER@irongym.com')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Ya existe un gym con ese email'
    assert Gym.query.count() == 1

def test_register_requires_all_fields(http):
    response = http.post('/api/gym/register', json={'email': 'a@b.com'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Faltan campos: name, email, password'

def test_login_with_valid_credentials(http):
    register_gym(http)
    http.post('/api/auth/logout')
    assert http.get('/api/auth/me').status_code == 401

    response = http.post('/api/auth/login', json={'email': 'owner@irongym.com', 'password': 'secret123'})
    assert response.status_code == 200
    assert response.get_json()['name'] == 'Iron Gym'
    assert http.get('/api/auth/me').status_code == 200
    assert Gym.query.first().last_login is not None
    assert ActivityLog.query.filter_by(action='login').count() == 1

def test_login_with_wrong_password(http):
    register_gym(http)
    http.post('/api/auth/logout')

    response = http.post('/api/auth/login', json={'email': 'owner@irongym.com', 'password': 'nope-nope'})
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Credenciales inválidas'

def test_login_with_unknown_email(http):
    response = http.post('/api/auth/login', json={'email': 'ghost@irongym.com', 'password': 'secret123'})
    assert response.status_code == 401

def test_login_requires_fields(http):
    assert http.post('/api/auth/login', json={}).status_code == 400

def test_api_requires_session(http):
    for path in ('/api/clients', '/api/dashboard', '/api/auth/me'):
        response = http.get(path)
        assert response.status_code == 401
        assert response.get_json()['error'] == 'No autorizado'
