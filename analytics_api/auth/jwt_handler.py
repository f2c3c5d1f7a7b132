from datetime import datetime, timedelta, timezone

import jwt

from analytics_api.auth.principal import ADMIN_ROLE, Principal
from analytics_api.core import config
from analytics_api.core.timeutils import parse_duration

DEFAULT_TOKEN_LIFETIME = timedelta(days=1)


class TokenError(Exception):
    """The bearer token is missing, malformed, expired or badly signed."""


class TokenConfigurationError(Exception):
    """No signing secret is configured."""


def signing_secret() -> str:
    if not config.JWT_SECRET_KEY:
        raise TokenConfigurationError('JWT not configured')
    return config.JWT_SECRET_KEY


def token_lifetime() -> timedelta:
    return parse_duration(config.TOKEN_EXPIRES_IN, DEFAULT_TOKEN_LIFETIME)


def issue_token(principal: Principal, expires_in: timedelta | None = None) -> str:
    secret = signing_secret()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": principal.id,
        "username": principal.username,
        "email": principal.email,
        "roles": list(principal.roles),
        "iat": now,
        "exp": now + (expires_in or token_lifetime()),
    }
    if principal.subject_type == 'admin':
        payload["role"] = ADMIN_ROLE
        payload["subjectType"] = 'admin'
    return jwt.encode(payload, secret, algorithm=config.JWT_ALGORITHM)


def verify_token(token: str | None) -> Principal:
    if not token:
        raise TokenError('Missing Authorization Bearer token')
    secret = signing_secret()
    try:
        payload = jwt.decode(token, secret, algorithms=[config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise TokenError('Token has expired') from exc
    except jwt.PyJWTError as exc:
        raise TokenError('Invalid token') from exc

    subject = payload.get("sub")
    if not subject:
        raise TokenError('Invalid token subject')

    roles = payload.get("roles")
    if not isinstance(roles, list):
        roles = [payload["role"]] if payload.get("role") else []
    role = payload.get("role") or (ADMIN_ROLE if ADMIN_ROLE in roles else None)

    return Principal(
        id=str(subject),
        username=payload.get("username"),
        email=payload.get("email"),
        roles=[str(item) for item in roles],
        role=role,
        subject_type=payload.get("subjectType") or 'user',
    )
