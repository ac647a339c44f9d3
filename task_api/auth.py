# task_api/auth.py
"""Password hashing, bearer tokens, and the current-user dependency."""

import base64
import hashlib
import hmac
import logging
import secrets
from datetime import timedelta
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session, col, select

from task_api import config
from task_api.database import get_session
from task_api.errors import Unauthorized
from task_api.models import AuthToken, User, as_utc, utcnow

logger = logging.getLogger(__name__)

_ALGORITHM = "pbkdf2_sha256"

bearer_scheme = HTTPBearer(auto_error=False)


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def hash_password(password: str, iterations: Optional[int] = None) -> str:
    """Return ``algorithm$iterations$salt$digest`` for *password*."""
    iterations = iterations or config.PASSWORD_ITERATIONS
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"{_ALGORITHM}${iterations}${_b64(salt)}${_b64(digest)}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, expected = encoded.split("$")
        rounds = int(iterations)
        salt_bytes = base64.b64decode(salt)
    except ValueError:
        return False
    if algorithm != _ALGORITHM:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt_bytes, rounds)
    return hmac.compare_digest(_b64(digest), expected)


def issue_token(session: Session, user: User) -> AuthToken:
    """Create and persist a new bearer token for *user*."""
    now = utcnow()
    token = AuthToken(
        token=secrets.token_urlsafe(32),
        user_id=user.id,
        issued_at=now,
        expires_at=now + timedelta(hours=config.TOKEN_TTL_HOURS),
    )
    session.add(token)
    session.commit()
    session.refresh(token)
    return token


def revoke_token(session: Session, token: str) -> None:
    record = session.get(AuthToken, token)
    if record is not None:
        session.delete(record)
        session.commit()


def resolve_token(session: Session, token: str) -> Optional[User]:
    """Return the user a token belongs to, or None if unknown or expired.

    Expired tokens are deleted as they are encountered.
    """
    record = session.get(AuthToken, token)
    if record is None:
        return None
    if as_utc(record.expires_at) <= utcnow():
        session.delete(record)
        session.commit()
        return None
    return session.exec(select(User).where(col(User.id) == record.user_id)).first()


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise Unauthorized("No token, authorization denied")
    return credentials.credentials


def get_current_user(
    token: str = Depends(get_bearer_token),
    session: Session = Depends(get_session),
) -> User:
    """Resolve the bearer token on the request to a user or raise Unauthorized."""
    user = resolve_token(session, token)
    if user is None:
        logger.warning("Rejected invalid or expired bearer token")
        raise Unauthorized("Token is not valid")
    return user
