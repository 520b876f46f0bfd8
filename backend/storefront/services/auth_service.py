# Overview: Account creation and password authentication.

"""
Authentication Service

Accounts are created by an administrator (CLI or seed) with bcrypt-hashed
passwords. Every new account starts with the default quotas, an empty
daily usage counter and zero discount points.

Passwords: bcrypt, cost 12, at least MIN_PASSWORD_LENGTH characters.
Login sessions live in session_service.
"""

from __future__ import annotations

import bcrypt
from sqlalchemy import func, or_

from ..extensions import db
from ..models import User
from ..models.auth import ROLES, ROLE_USER
from ..validation import ValidationError, ConflictError
from ..time_utils import utcnow


MIN_PASSWORD_LENGTH = 8


def hash_password(password: str) -> str:
    """Hash password using bcrypt with cost factor 12."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. Malformed hashes verify as False.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(username: str, email: str, password: str, role: str = ROLE_USER) -> User:
    """
    Create new account with default quotas.

    Raises ValidationError for bad input and ConflictError when the
    username or email is already taken.
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()

    if not username:
        raise ValidationError("username is required")
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")

    existing = db.session.query(User).filter(
        or_(User.username == username, func.lower(User.email) == email)
    ).first()
    if existing:
        if existing.username == username:
            raise ConflictError(f"Username '{username}' already exists")
        raise ConflictError(f"Email '{email}' already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(identifier: str, password: str) -> User | None:
    """
    Authenticate by username or email.

    Returns the User on success, None for unknown/inactive accounts or a
    wrong password. Records last_login_at on success.
    """
    identifier = (identifier or "").strip()
    if not identifier or not password:
        return None

    user = db.session.query(User).filter(
        or_(User.username == identifier, func.lower(User.email) == identifier.lower())
    ).first()

    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
