# Overview: Bearer session token issue, validation and revocation.

"""
Session tokens for shoppers and admins.

The client holds a random 64-char hex token; the database only keeps its
SHA-256 digest. A session dies after SESSION_ABSOLUTE_TIMEOUT from issue,
after SESSION_IDLE_TIMEOUT without use, on logout, or when its account is
deactivated.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta

from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)

TOKEN_BYTES = 32


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    """Digest stored in session_tokens.token_hash. No salt: tokens are random."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _find_open(token: str) -> SessionToken | None:
    if not token:
        return None
    return (
        db.session.query(SessionToken)
        .filter_by(token_hash=hash_token(token), is_revoked=False)
        .first()
    )


def _close(record: SessionToken, reason: str) -> None:
    record.is_revoked = True
    record.revoked_at = utcnow()
    record.revoked_reason = reason
    db.session.commit()


def create_session(user_id: int, user_agent: str | None = None, ip_address: str | None = None) -> tuple[SessionToken, str]:
    """
    Open a session for user_id.

    Returns (record, token). The token is only ever available here; callers
    hand it to the client and forget it.
    """
    if db.session.get(User, user_id) is None:
        raise ValueError("User not found")

    token = generate_token()
    issued = utcnow()
    record = SessionToken(
        user_id=user_id,
        token_hash=hash_token(token),
        created_at=issued,
        last_used_at=issued,
        expires_at=issued + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(record)
    db.session.commit()
    return record, token


def validate_session(token: str) -> User | None:
    """
    Resolve a bearer token to its active User, or None.

    Touches last_used_at on success. Idle sessions and sessions of
    deactivated accounts are closed as a side effect.
    """
    record = _find_open(token)
    if record is None:
        return None

    now = utcnow()
    if now >= record.expires_at:
        return None
    if now - record.last_used_at > SESSION_IDLE_TIMEOUT:
        _close(record, "Idle timeout")
        return None

    account = record.user
    if account is None or not account.is_active:
        _close(record, "User account deactivated")
        return None

    record.last_used_at = now
    db.session.commit()
    return account


def revoke_session(token: str, reason: str = "User logout") -> bool:
    record = _find_open(token)
    if record is None:
        return False
    _close(record, reason)
    return True
