from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from analytics_api.auth import jwt_handler
from analytics_api.auth.principal import Principal

security = HTTPBearer(auto_error=False)


def _authenticate(credentials: HTTPAuthorizationCredentials | None) -> Principal:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization Bearer token",
        )
    try:
        return jwt_handler.verify_token(credentials.credentials)
    except jwt_handler.TokenConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    except jwt_handler.TokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Principal:
    """Require a valid user or admin token."""
    return _authenticate(credentials)


def require_admin(principal: Principal | None = Depends(get_current_principal)) -> Principal:
    """Require the already-authenticated principal to hold the admin role."""
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    if not principal.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return principal


def require_admin_auth(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Principal:
    """Verify the token and the admin role in one step, for admin-only routers."""
    principal = _authenticate(credentials)
    if not principal.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return principal
