"""Access token request/response schemas"""

from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

from wateradmin.schemas.user import UserSummary, TokenUserSummary


class LoginResponse(BaseModel):
    """Freshly issued token; the plaintext is never shown again"""
    message: str = "Login successful"
    token: str
    token_type: str = "Bearer"
    expires_at: Optional[datetime]
    expires_in_minutes: Optional[int]
    user: UserSummary


class LogoutResponse(BaseModel):
    message: str = "Logged out successfully"
    logged_out_at: datetime


class LogoutAllResponse(BaseModel):
    message: str = "Logged out from all devices"
    revoked_tokens: int
    logged_out_at: datetime


class RefreshResponse(BaseModel):
    """Either a replacement token or confirmation that the current one is kept"""
    message: str
    refreshed: bool
    token: Optional[str] = None
    expires_at: Optional[datetime] = None
    expires_in_minutes: Optional[int] = None


class TokenStatusResponse(BaseModel):
    token_name: str
    created_at: Optional[datetime]
    expires_at: Optional[datetime]
    expires_in_minutes: Optional[int]
    is_expiring_soon: bool
    last_used_at: Optional[datetime]
    user: TokenUserSummary


class SweepCandidate(BaseModel):
    id: int
    name: str
    user_id: int
    reason: str
    reference_at: Optional[datetime]


class CleanupResponse(BaseModel):
    message: str
    dry_run: bool
    stale_days: Optional[int] = None
    candidates: List[SweepCandidate] = []
    deleted_tokens: int
    cleaned_at: datetime
