"""Ensure a user with the admin role exists for ADMIN_EMAIL / ADMIN_PASSWORD."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from analytics_api import database
from analytics_api.auth.passwords import hash_password
from analytics_api.core import config
from analytics_api.models.user import User

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3


def seed_admin_user(db: Session, force: bool = False) -> dict:
    email = (config.ADMIN_EMAIL or '').strip().lower()
    password = config.ADMIN_PASSWORD or ''
    username = (config.ADMIN_USERNAME or '').strip()

    if not email or not password:
        return {'ok': False, 'action': 'noop', 'email': email, 'username': None,
                'message': 'ADMIN_EMAIL or ADMIN_PASSWORD missing'}

    username = username or email.split('@')[0]
    if len(username) < MIN_USERNAME_LENGTH:
        return {'ok': False, 'action': 'noop', 'email': email, 'username': username,
                'message': 'Derived admin username invalid; set ADMIN_USERNAME'}

    existing = db.query(User).filter(User.email == email).first()
    if existing is None:
        db.add(User(
            username=username,
            email=email,
            password_hash=hash_password(password),
            roles=['admin'],
        ))
        db.commit()
        logger.info('Created admin user %s (username=%s).', email, username)
        return {'ok': True, 'action': 'created', 'email': email, 'username': username}

    changed = False
    roles = list(existing.roles or [])
    if 'admin' not in roles:
        existing.roles = roles + ['admin']
        changed = True

    if force:
        existing.password_hash = hash_password(password)
        changed = True

    if existing.username != username:
        taken = db.query(User).filter(User.username == username, User.id != existing.id).first()
        if taken is None:
            existing.username = username
            changed = True
        else:
            logger.warning('Could not rename admin %s to %s: username in use.', email, username)

    if not changed:
        logger.info('Admin user already up-to-date for %s.', email)
        return {'ok': True, 'action': 'skipped', 'email': email, 'username': existing.username}

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    logger.info('Updated admin user %s%s.', email, ' (password reset)' if force else '')
    return {'ok': True, 'action': 'updated', 'email': email, 'username': existing.username}


def seed_admin_on_connect() -> None:
    db = database.SessionLocal()
    try:
        result = seed_admin_user(db)
    finally:
        db.close()
    if not result['ok']:
        logger.info('Admin seeding did not run: %s', result.get('message'))
