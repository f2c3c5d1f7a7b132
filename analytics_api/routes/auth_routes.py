import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from pydantic import BaseModel, field_validator
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from analytics_api.auth import jwt_handler
from analytics_api.auth.dependencies import get_current_principal
from analytics_api.auth.passwords import MAX_PASSWORD_BYTES, hash_password, verify_password
from analytics_api.auth.principal import Principal
from analytics_api.database import get_db
from analytics_api.models.user import User
from analytics_api.services import side_effects

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 64
MAX_EMAIL_LENGTH = 256
INVALID_CREDENTIALS = 'Invalid email or password'
DUPLICATE_USER = 'User with same email or username already exists'


def normalize_email(value: str) -> str:
    normalized = value.strip().lower()
    if not normalized or '@' not in normalized:
        raise ValueError('A valid email is required.')
    if len(normalized) > MAX_EMAIL_LENGTH:
        raise ValueError(f'Email must be {MAX_EMAIL_LENGTH} characters or fewer.')
    return normalized


class SignupRequest(BaseModel):
    username: str
    email: str
    password: str

    @field_validator('username')
    @classmethod
    def validate_username(cls, value: str) -> str:
        normalized = value.strip()
        if not MIN_USERNAME_LENGTH <= len(normalized) <= MAX_USERNAME_LENGTH:
            raise ValueError(
                f'Username must be between {MIN_USERNAME_LENGTH} and {MAX_USERNAME_LENGTH} characters.'
            )
        return normalized

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError('Password is required.')
        if len(value.encode('utf-8')) > MAX_PASSWORD_BYTES:
            raise ValueError(f'Password must be {MAX_PASSWORD_BYTES} bytes or fewer.')
        return value


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError('Email is required.')
        return normalized

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError('Password is required.')
        return value


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    roles: list[str]
    created_at: datetime

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    user: UserResponse
    token: str


class MeResponse(BaseModel):
    user: UserResponse


def ensure_token_signing_configured() -> None:
    try:
        jwt_handler.signing_secret()
    except jwt_handler.TokenConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


def issue_token_or_500(principal: Principal) -> str:
    try:
        return jwt_handler.issue_token(principal)
    except jwt_handler.TokenConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


def client_meta(request: Request) -> dict:
    return {'ua': request.headers.get('user-agent', '')}


@router.post('/signup', response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(
    data: SignupRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    ensure_token_signing_configured()

    existing = db.query(User).filter(
        or_(User.email == data.email, User.username == data.username)
    ).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=DUPLICATE_USER,
        )

    user = User(
        username=data.username,
        email=data.email,
        password_hash=hash_password(data.password),
        roles=['user'],
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=DUPLICATE_USER,
        ) from exc
    db.refresh(user)

    token = issue_token_or_500(Principal.for_user(user))
    background_tasks.add_task(
        side_effects.record_user_event, user.id, user.username, 'signup', client_meta(request)
    )
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.post('/login', response_model=AuthResponse)
def login(
    data: LoginRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    user = db.query(User).filter(User.email == data.email).first()
    if user is None:
        logger.warning('Login failed: user not found for email %s', data.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    if not verify_password(data.password, user.password_hash):
        logger.warning('Login failed: bad password for %s', user.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    token = issue_token_or_500(Principal.for_user(user))
    background_tasks.add_task(
        side_effects.record_user_event, user.id, user.username, 'login', client_meta(request)
    )
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.get('/me', response_model=MeResponse)
def me(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    if principal.subject_type != 'user' or not principal.id.isdigit():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Unauthorized')

    user = db.get(User, int(principal.id))
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Unauthorized')
    return MeResponse(user=UserResponse.model_validate(user))
