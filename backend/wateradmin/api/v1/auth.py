"""Authentication routes"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from wateradmin.core.database import get_db
from wateradmin.core.timeutils import aware_utc, utcnow
from wateradmin.schemas.user import UserLogin, UserSummary, TokenUserSummary, TokenInfo, CurrentUserResponse
from wateradmin.schemas.token import (
    LoginResponse,
    LogoutResponse,
    LogoutAllResponse,
    RefreshResponse,
    TokenStatusResponse,
)
from wateradmin.services.user_service import user_service
from wateradmin.services.token_service import token_service
from wateradmin.api.deps import clear_expiry_warning, get_current_token
from wateradmin.models.token import AccessToken

router = APIRouter()


@router.post("/login", response_model=LoginResponse, status_code=status.HTTP_200_OK)
def login(
    credentials: UserLogin,
    db: Session = Depends(get_db)
):
    """
    Login endpoint - authenticate user and issue an access token

    Args:
        credentials: Email, password and optional remember_me flag
        db: Database session

    Returns:
        Plaintext token (shown once), expiry and user summary
    """
    user = user_service.authenticate_user(db, credentials.email, credentials.password)
    issued = token_service.issue(db, user, remember_me=credentials.remember_me)

    return LoginResponse(
        token=issued.plaintext,
        expires_at=aware_utc(issued.expires_at),
        expires_in_minutes=issued.expires_in_minutes,
        user=UserSummary.model_validate(user),
    )


@router.post("/logout", response_model=LogoutResponse)
def logout(
    request: Request,
    token: AccessToken = Depends(get_current_token),
    db: Session = Depends(get_db)
):
    """Revoke the token used for this request"""
    token_service.revoke(db, token)
    clear_expiry_warning(request)
    return LogoutResponse(logged_out_at=aware_utc(utcnow()))


@router.post("/logout-all", response_model=LogoutAllResponse)
def logout_all(
    request: Request,
    token: AccessToken = Depends(get_current_token),
    db: Session = Depends(get_db)
):
    """Revoke every token of the current user (all devices)"""
    count = token_service.revoke_all(db, token.user)
    clear_expiry_warning(request)
    return LogoutAllResponse(revoked_tokens=count, logged_out_at=aware_utc(utcnow()))


@router.post("/refresh-token", response_model=RefreshResponse)
def refresh_token(
    request: Request,
    token: AccessToken = Depends(get_current_token),
    db: Session = Depends(get_db)
):
    """
    Refresh the current token when it is close to expiry

    Returns:
        Either the unchanged expiry with ``refreshed=false`` or a new token
    """
    result = token_service.refresh(db, token)
    if not result.refreshed:
        return RefreshResponse(
            message="Token still valid, no refresh needed",
            refreshed=False,
            expires_at=aware_utc(result.expires_at),
            expires_in_minutes=result.expires_in_minutes,
        )

    clear_expiry_warning(request)
    return RefreshResponse(
        message="Token refreshed successfully",
        refreshed=True,
        token=result.plaintext,
        expires_at=aware_utc(result.expires_at),
        expires_in_minutes=result.expires_in_minutes,
    )


@router.get("/token-status", response_model=TokenStatusResponse)
def token_status(
    token: AccessToken = Depends(get_current_token)
):
    """Expiry and usage details of the current token"""
    token_state = token_service.status(token)
    return TokenStatusResponse(
        token_name=token_state.token_name,
        created_at=aware_utc(token_state.created_at),
        expires_at=aware_utc(token_state.expires_at),
        expires_in_minutes=token_state.expires_in_minutes,
        is_expiring_soon=token_state.is_expiring_soon,
        last_used_at=aware_utc(token_state.last_used_at),
        user=TokenUserSummary.model_validate(token.user),
    )


@router.get("/me", response_model=CurrentUserResponse)
def get_current_user_info(
    token: AccessToken = Depends(get_current_token)
):
    """
    Get current user information

    Returns:
        User summary and the current token's expiry/last use
    """
    return CurrentUserResponse(
        user=UserSummary.model_validate(token.user),
        token_info=TokenInfo(
            expires_at=aware_utc(token.expires_at),
            last_used_at=aware_utc(token.last_used_at),
        ),
    )
