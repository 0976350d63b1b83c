"""Activity log response schemas."""

from datetime import datetime
from typing import Optional, Dict, Any

from pydantic import BaseModel


class ActivityLogResponse(BaseModel):
    id: int
    user_id: Optional[int]
    user_name: Optional[str] = None
    role: Optional[str]
    action: str
    table_name: Optional[str]
    record_id: Optional[int]
    ip_address: Optional[str]
    location: Optional[str]
    user_agent: Optional[str]
    old_data: Optional[Dict[str, Any]] = None
    new_data: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime]
