"""Pydantic schemas for API validation"""

from wateradmin.schemas.user import UserLogin, UserSummary, TokenUserSummary, TokenInfo, CurrentUserResponse
from wateradmin.schemas.token import (
    LoginResponse,
    LogoutResponse,
    LogoutAllResponse,
    RefreshResponse,
    TokenStatusResponse,
    SweepCandidate,
    CleanupResponse,
)
from wateradmin.schemas.activity import ActivityLogResponse
from wateradmin.schemas.report import YearlyReportCreate, YearlyReportUpdate, YearlyReportResponse
from wateradmin.schemas.response import ErrorResponse

__all__ = [
    "UserLogin", "UserSummary", "TokenUserSummary", "TokenInfo", "CurrentUserResponse",
    "LoginResponse", "LogoutResponse", "LogoutAllResponse", "RefreshResponse",
    "TokenStatusResponse", "SweepCandidate", "CleanupResponse",
    "ActivityLogResponse",
    "YearlyReportCreate", "YearlyReportUpdate", "YearlyReportResponse",
    "ErrorResponse",
]
