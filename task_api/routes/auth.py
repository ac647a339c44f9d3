# task_api/routes/auth.py
"""Registration, login and session endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from task_api.auth import (
    get_bearer_token,
    get_current_user,
    hash_password,
    issue_token,
    revoke_token,
    verify_password,
)
from task_api.database import get_session
from task_api.errors import FieldError, Unauthorized, ValidationFailure
from task_api.models import User, UserRead
from task_api.validation import validate_login, validate_registration

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _session_body(session: Session, user: User, message: str) -> dict:
    token = issue_token(session, user)
    return {
        "success": True,
        "message": message,
        "token": token.token,
        "user": UserRead.model_validate(user).to_wire(),
    }


@router.post("/register", status_code=201)
def register(payload: Any = Body(default=None), session: Session = Depends(get_session)) -> dict:
    """Create an account and sign it in."""
    username, email, password = validate_registration(payload)

    existing = session.exec(
        select(User).where(or_(col(User.email) == email, col(User.username) == username))
    ).all()
    errors = []
    if any(u.email == email for u in existing):
        errors.append(FieldError("email", "Email is already registered"))
    if any(u.username == username for u in existing):
        errors.append(FieldError("username", "Username is already taken"))
    if errors:
        raise ValidationFailure(errors, "User already exists")

    user = User(username=username, email=email, password_hash=hash_password(password))
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email or username.
        session.rollback()
        raise ValidationFailure(
            [FieldError("email", "Email or username is already registered")],
            "User already exists",
        )
    session.refresh(user)
    logger.info("Registered user %s", user.id)
    return _session_body(session, user, "Registration successful")


@router.post("/login")
def login(payload: Any = Body(default=None), session: Session = Depends(get_session)) -> dict:
    """Exchange email and password for a bearer token."""
    email, password = validate_login(payload)
    user = session.exec(select(User).where(col(User.email) == email)).first()
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Failed login attempt")
        raise Unauthorized("Invalid credentials")
    return _session_body(session, user, "Login successful")


@router.get("/me")
def me(user: User = Depends(get_current_user)) -> dict:
    """Return the signed-in user."""
    return {"success": True, "user": UserRead.model_validate(user).to_wire()}


@router.post("/logout")
def logout(
    token: str = Depends(get_bearer_token),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    """Revoke the bearer token used on this request."""
    revoke_token(session, token)
    logger.info("User %s logged out", user.id)
    return {"success": True, "message": "Logged out"}
