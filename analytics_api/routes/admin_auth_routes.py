import logging
import secrets
from datetime import datetime

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from analytics_api.auth.dependencies import require_admin_auth
from analytics_api.auth.passwords import hash_password, verify_password
from analytics_api.auth.principal import ADMIN_ROLE, Principal
from analytics_api.bootstrap.admin import seed_admin_user
from analytics_api.core import config
from analytics_api.database import get_db
from analytics_api.models.admin import Admin
from analytics_api.routes.auth_routes import (
    INVALID_CREDENTIALS,
    LoginRequest,
    SignupRequest,
    ensure_token_signing_configured,
    issue_token_or_500,
)

router = APIRouter(tags=['admin-auth'])

logger = logging.getLogger(__name__)

DUPLICATE_ADMIN = 'Admin with same email or username already exists'


class AdminResponse(BaseModel):
    id: int
    username: str
    email: str
    created_at: datetime
    role: str = ADMIN_ROLE

    class Config:
        from_attributes = True


class AdminAuthResponse(BaseModel):
    admin: AdminResponse
    token: str


class AdminMeResponse(BaseModel):
    admin: AdminResponse


class SeedResponse(BaseModel):
    ok: bool
    action: str
    email: str
    username: str | None = None
    message: str | None = None


@router.post('/auth/signup', response_model=AdminAuthResponse, status_code=status.HTTP_201_CREATED)
def admin_signup(data: SignupRequest, db: Session = Depends(get_db)):
    if not config.ADMIN_SIGNUP_ENABLED:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Admin signup is disabled')

    ensure_token_signing_configured()

    existing = db.query(Admin).filter(
        or_(Admin.email == data.email, Admin.username == data.username)
    ).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=DUPLICATE_ADMIN,
        )

    admin = Admin(
        username=data.username,
        email=data.email,
        password_hash=hash_password(data.password),
    )
    db.add(admin)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=DUPLICATE_ADMIN,
        ) from exc
    db.refresh(admin)

    token = issue_token_or_500(Principal.for_admin(admin))
    return AdminAuthResponse(admin=AdminResponse.model_validate(admin), token=token)


@router.post('/auth/login', response_model=AdminAuthResponse)
def admin_login(data: LoginRequest, db: Session = Depends(get_db)):
    admin = db.query(Admin).filter(Admin.email == data.email).first()
    if admin is None or not verify_password(data.password, admin.password_hash):
        logger.warning('Admin login failed for %s', data.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    token = issue_token_or_500(Principal.for_admin(admin))
    return AdminAuthResponse(admin=AdminResponse.model_validate(admin), token=token)


@router.get('/auth/me', response_model=AdminMeResponse)
def admin_me(
    principal: Principal = Depends(require_admin_auth),
    db: Session = Depends(get_db),
):
    if principal.subject_type != 'admin' or not principal.id.isdigit():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Unauthorized')

    admin = db.get(Admin, int(principal.id))
    if admin is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Unauthorized')
    return AdminMeResponse(admin=AdminResponse.model_validate(admin))


@router.post('/seed', response_model=SeedResponse)
def seed_admin(
    force: bool = Query(default=False),
    maintenance_token: str | None = Header(default=None, alias='X-Maintenance-Token'),
    db: Session = Depends(get_db),
):
    configured = config.MAINTENANCE_TOKEN or ''
    provided = maintenance_token or ''
    if not configured or not provided or not secrets.compare_digest(configured, provided):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Unauthorized')

    return seed_admin_user(db, force=force)
