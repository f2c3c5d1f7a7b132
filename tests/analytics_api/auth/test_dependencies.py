import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from analytics_api.auth import jwt_handler
from analytics_api.auth.dependencies import get_current_principal, require_admin, require_admin_auth
from analytics_api.auth.principal import Principal
from analytics_api.core import config


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme='Bearer', credentials=token)


def test_get_current_principal_returns_verified_principal(user_token: str) -> None:
    principal = get_current_principal(_credentials(user_token))

    assert principal.username == 'student'
    assert principal.roles == ['user']


def test_get_current_principal_rejects_missing_credentials() -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_current_principal(None)

    assert exception_info.value.status_code == 401


def test_get_current_principal_rejects_invalid_token() -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_current_principal(_credentials('garbage'))

    assert exception_info.value.status_code == 401


def test_get_current_principal_reports_missing_secret_as_server_error(
    user_token: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(config, 'JWT_SECRET_KEY', '')

    with pytest.raises(HTTPException) as exception_info:
        get_current_principal(_credentials(user_token))

    assert exception_info.value.status_code == 500


def test_require_admin_accepts_admin_token(admin_token: str) -> None:
    principal = require_admin(get_current_principal(_credentials(admin_token)))

    assert principal.is_admin


def test_require_admin_rejects_user_token_with_403(user_token: str) -> None:
    with pytest.raises(HTTPException) as exception_info:
        require_admin(get_current_principal(_credentials(user_token)))

    assert exception_info.value.status_code == 403
    assert exception_info.value.detail == 'Admin role required'


def test_require_admin_without_principal_is_401() -> None:
    with pytest.raises(HTTPException) as exception_info:
        require_admin(None)

    assert exception_info.value.status_code == 401


def test_require_admin_accepts_user_with_admin_in_roles() -> None:
    token = jwt_handler.issue_token(
        Principal(id='5', username='seeded', email='seeded@example.com', roles=['admin'])
    )

    assert require_admin(get_current_principal(_credentials(token))).is_admin


def test_require_admin_auth_combines_both_checks(admin_token: str, user_token: str) -> None:
    assert require_admin_auth(_credentials(admin_token)).subject_type == 'admin'

    with pytest.raises(HTTPException) as forbidden:
        require_admin_auth(_credentials(user_token))
    assert forbidden.value.status_code == 403

    with pytest.raises(HTTPException) as unauthenticated:
        require_admin_auth(None)
    assert unauthenticated.value.status_code == 401
