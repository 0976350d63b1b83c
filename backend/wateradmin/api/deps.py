"""API dependencies - the token gate and role checks"""

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from wateradmin.core.context import bind_actor
from wateradmin.core.database import get_db
from wateradmin.core.exceptions import AuthorizationError
from wateradmin.core.roles import UserRole, is_privileged, parse_role
from wateradmin.models.token import AccessToken
from wateradmin.models.user import User
from wateradmin.services.token_service import token_service

# HTTP Bearer token scheme; missing credentials are reported by the gate itself
security = HTTPBearer(auto_error=False)

TOKEN_WARNING_STATE = "token_expiry_warning"


def get_current_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> AccessToken:
    """
    Token gate for every authenticated route.

    Validates the bearer token (rejecting with ``unauthorized``,
    ``invalid_token`` or ``token_expired``), stamps ``last_used_at`` and
    binds the owner as the acting user on the session. When the token is
    close to expiry the warning is left on ``request.state`` for the
    response middleware.

    Returns:
        The validated token
    """
    plaintext = credentials.credentials if credentials else None
    token = token_service.authenticate_request(db, plaintext)

    bind_actor(db, token.user)
    warning = token_service.expiry_warning(token)
    if warning:
        setattr(request.state, TOKEN_WARNING_STATE, warning)
    return token


def clear_expiry_warning(request: Request) -> None:
    """Drop the gate's warning once the token it describes is revoked or replaced"""
    if hasattr(request.state, TOKEN_WARNING_STATE):
        delattr(request.state, TOKEN_WARNING_STATE)


def get_current_user(
    token: AccessToken = Depends(get_current_token)
) -> User:
    """
    Get current authenticated user

    Args:
        token: Token validated by the gate

    Returns:
        Current user
    """
    return token.user


def get_current_staff_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Get current admin or staff user

    Raises:
        AuthorizationError: If user is neither admin nor staff
    """
    if not is_privileged(current_user.role):
        raise AuthorizationError("Staff access required")
    return current_user


def get_current_admin_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Get current admin user (authorization check)

    Raises:
        AuthorizationError: If user is not admin
    """
    if parse_role(current_user.role) is not UserRole.ADMIN:
        raise AuthorizationError("Admin access required")
    return current_user
