import pytest

from analytics_api.auth import jwt_handler
from analytics_api.core import config
from analytics_api.models.admin import Admin
from analytics_api.models.user import User
from analytics_api.models.user_event import UserEvent


def _bearer(token: str) -> dict:
    return {'Authorization': f'Bearer {token}'}


def _signup(client, username='alice', email='alice@example.com', password='s3cret-pass'):
    return client.post('/api/auth/signup', json={'username': username, 'email': email, 'password': password})


def test_signup_returns_token_that_verifies_to_same_identity(client) -> None:
    response = _signup(client, email='  Alice@Example.COM ')

    assert response.status_code == 201
    body = response.json()
    assert body['user']['username'] == 'alice'
    assert body['user']['email'] == 'alice@example.com'
    assert body['user']['roles'] == ['user']
    assert 'password_hash' not in body['user']

    principal = jwt_handler.verify_token(body['token'])
    assert principal.username == 'alice'
    assert principal.email == 'alice@example.com'
    assert principal.id == str(body['user']['id'])


@pytest.mark.parametrize(
    ('username', 'email'),
    [
        ('alice', 'someone-else@example.com'),
        ('someone_else', 'ALICE@example.com'),
    ],
)
def test_signup_rejects_duplicate_username_or_email(client, db_session, username: str, email: str) -> None:
    assert _signup(client).status_code == 201

    response = _signup(client, username=username, email=email)

    assert response.status_code == 400
    assert 'already exists' in response.json()['detail']
    assert db_session.query(User).count() == 1


def test_signup_ignores_requested_roles(client) -> None:
    response = client.post(
        '/api/auth/signup',
        json={'username': 'mallory', 'email': 'm@example.com', 'password': 'pw', 'roles': ['admin']},
    )

    assert response.status_code == 201
    assert response.json()['user']['roles'] == ['user']


@pytest.mark.parametrize(
    'payload',
    [
        {},
        {'username': 'al', 'email': 'al@example.com', 'password': 'pw'},
        {'username': 'alice', 'email': 'not-an-email', 'password': 'pw'},
        {'username': 'alice', 'email': 'alice@example.com', 'password': ''},
        {'username': 'alice', 'email': 'alice@example.com', 'password': 'x' * 73},
    ],
)
def test_signup_validation_errors_are_400(client, payload: dict) -> None:
    response = client.post('/api/auth/signup', json=payload)

    assert response.status_code == 400


def test_signup_without_signing_secret_fails_before_writing(client, db_session, monkeypatch) -> None:
    monkeypatch.setattr(config, 'JWT_SECRET_KEY', '')

    response = _signup(client)

    assert response.status_code == 500
    assert db_session.query(User).count() == 0


def test_signup_records_signup_user_event(client, db_session) -> None:
    _signup(client)

    events = db_session.query(UserEvent).all()
    assert [event.event_type for event in events] == ['signup']
    assert events[0].username == 'alice'


def test_signup_succeeds_when_user_event_logging_fails(client, monkeypatch) -> None:
    def broken_session():
        raise RuntimeError('store offline')

    monkeypatch.setattr('analytics_api.database.SessionLocal', broken_session)

    assert _signup(client).status_code == 201


def test_login_returns_token_and_records_event(client, db_session) -> None:
    _signup(client)

    response = client.post('/api/auth/login', json={'email': 'ALICE@example.com', 'password': 's3cret-pass'})

    assert response.status_code == 200
    assert jwt_handler.verify_token(response.json()['token']).username == 'alice'
    event_types = sorted(event.event_type for event in db_session.query(UserEvent).all())
    assert event_types == ['login', 'signup']


@pytest.mark.parametrize(
    'credentials',
    [
        {'email': 'alice@example.com', 'password': 'wrong'},
        {'email': 'nobody@example.com', 'password': 's3cret-pass'},
    ],
)
def test_login_rejects_bad_credentials(client, credentials: dict) -> None:
    _signup(client)

    response = client.post('/api/auth/login', json=credentials)

    assert response.status_code == 401
    assert response.json() == {'detail': 'Invalid email or password'}


def test_login_requires_email_and_password(client) -> None:
    assert client.post('/api/auth/login', json={}).status_code == 400


def test_me_returns_current_user(client) -> None:
    token = _signup(client).json()['token']

    response = client.get('/api/auth/me', headers=_bearer(token))

    assert response.status_code == 200
    assert response.json()['user']['username'] == 'alice'


def test_me_requires_token(client) -> None:
    assert client.get('/api/auth/me').status_code == 401
    assert client.get('/api/auth/me', headers=_bearer('bogus')).status_code == 401


def test_me_rejects_admin_tokens(client, admin_token: str) -> None:
    assert client.get('/api/auth/me', headers=_bearer(admin_token)).status_code == 401


def test_admin_signup_login_and_me(client, db_session) -> None:
    signup = client.post(
        '/api/admin/auth/signup',
        json={'username': 'boss', 'email': 'boss@example.com', 'password': 'admin-pass'},
    )
    assert signup.status_code == 201
    assert signup.json()['admin']['role'] == 'admin'
    assert db_session.query(Admin).count() == 1
    assert db_session.query(User).count() == 0

    login = client.post('/api/admin/auth/login', json={'email': 'boss@example.com', 'password': 'admin-pass'})
    assert login.status_code == 200
    principal = jwt_handler.verify_token(login.json()['token'])
    assert principal.role == 'admin'
    assert principal.subject_type == 'admin'

    me = client.get('/api/admin/auth/me', headers=_bearer(login.json()['token']))
    assert me.status_code == 200
    assert me.json()['admin']['email'] == 'boss@example.com'


def test_admin_namespace_is_separate_from_users(client) -> None:
    _signup(client, username='boss', email='boss@example.com')

    response = client.post(
        '/api/admin/auth/signup',
        json={'username': 'boss', 'email': 'boss@example.com', 'password': 'admin-pass'},
    )

    assert response.status_code == 201
    assert client.post(
        '/api/admin/auth/login', json={'email': 'boss@example.com', 'password': 's3cret-pass'}
    ).status_code == 401


def test_admin_duplicate_signup_is_rejected(client) -> None:
    payload = {'username': 'boss', 'email': 'boss@example.com', 'password': 'admin-pass'}
    client.post('/api/admin/auth/signup', json=payload)

    response = client.post('/api/admin/auth/signup', json=payload)

    assert response.status_code == 400
    assert 'already exists' in response.json()['detail']


def test_admin_signup_can_be_disabled(client, monkeypatch) -> None:
    monkeypatch.setattr(config, 'ADMIN_SIGNUP_ENABLED', False)

    response = client.post(
        '/api/admin/auth/signup',
        json={'username': 'boss', 'email': 'boss@example.com', 'password': 'admin-pass'},
    )

    assert response.status_code == 403


def test_admin_me_rejects_user_tokens(client, user_token: str) -> None:
    assert client.get('/api/admin/auth/me', headers=_bearer(user_token)).status_code == 403


def test_seed_requires_matching_maintenance_token(client, monkeypatch) -> None:
    monkeypatch.setattr(config, 'MAINTENANCE_TOKEN', 'maintenance')

    assert client.post('/api/admin/seed').status_code == 401
    assert client.post('/api/admin/seed', headers={'X-Maintenance-Token': 'wrong'}).status_code == 401


def test_seed_creates_admin_user(client, db_session, monkeypatch) -> None:
    monkeypatch.setattr(config, 'MAINTENANCE_TOKEN', 'maintenance')
    monkeypatch.setattr(config, 'ADMIN_EMAIL', 'Ops@Example.com')
    monkeypatch.setattr(config, 'ADMIN_PASSWORD', 'ops-pass')
    monkeypatch.setattr(config, 'ADMIN_USERNAME', '')

    response = client.post('/api/admin/seed', headers={'X-Maintenance-Token': 'maintenance'})

    assert response.status_code == 200
    assert response.json()['action'] == 'created'
    seeded = db_session.query(User).filter(User.email == 'ops@example.com').one()
    assert seeded.username == 'ops'
    assert seeded.roles == ['admin']

    login = client.post('/api/auth/login', json={'email': 'ops@example.com', 'password': 'ops-pass'})
    assert jwt_handler.verify_token(login.json()['token']).is_admin
