"""Database models"""

from wateradmin.models.user import User
from wateradmin.models.token import AccessToken
from wateradmin.models.activity_log import ActivityLog
from wateradmin.models.news import News
from wateradmin.models.report import YearlyReport

__all__ = ["User", "AccessToken", "ActivityLog", "News", "YearlyReport"]
