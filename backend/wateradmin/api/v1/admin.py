"""Admin routes - token maintenance and activity log review"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from wateradmin.core.database import get_db
from wateradmin.core.exceptions import ResourceNotFoundError, ValidationError
from wateradmin.core.timeutils import aware_utc, utcnow
from wateradmin.schemas.activity import ActivityLogResponse
from wateradmin.schemas.token import CleanupResponse, SweepCandidate
from wateradmin.services.activity_service import ACTIONS, MAX_LIST_LIMIT, activity_service
from wateradmin.services.token_service import token_service
from wateradmin.api.deps import get_current_admin_user
from wateradmin.models.user import User

router = APIRouter()


@router.delete("/cleanup-tokens", response_model=CleanupResponse)
def cleanup_tokens(
    dry_run: bool = Query(False, description="Report candidates without deleting"),
    stale_days: Optional[int] = Query(
        None, ge=1, description="Also remove tokens unused for more than this many days"
    ),
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    """
    Sweep expired (and optionally stale) access tokens (admin only)

    Args:
        dry_run: Only list what would be deleted
        stale_days: Include tokens idle longer than this
        current_user: Current admin user
        db: Database session

    Returns:
        Number of deleted tokens and the candidate list
    """
    result = token_service.sweep(db, stale_days=stale_days, dry_run=dry_run)

    if dry_run:
        message = f"{len(result.candidates)} tokens would be deleted"
    else:
        message = "Expired tokens cleaned up successfully"

    return CleanupResponse(
        message=message,
        dry_run=dry_run,
        stale_days=stale_days,
        candidates=[
            SweepCandidate(
                id=c.id,
                name=c.name,
                user_id=c.user_id,
                reason=c.reason,
                reference_at=aware_utc(c.reference_at),
            )
            for c in result.candidates
        ],
        deleted_tokens=result.deleted,
        cleaned_at=aware_utc(utcnow()),
    )


@router.get("/activity-logs", response_model=List[ActivityLogResponse])
def list_activity_logs(
    action: Optional[str] = None,
    user_id: Optional[int] = None,
    table_name: Optional[str] = None,
    record_id: Optional[int] = None,
    limit: int = Query(100, ge=1, le=MAX_LIST_LIMIT),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    """
    List activity log entries, newest first (admin only)

    Filters combine with AND; ``limit`` is capped.
    """
    if action and action not in ACTIONS:
        raise ValidationError(
            f"Unknown action '{action}'",
            details={"allowed": list(ACTIONS)},
        )

    entries = activity_service.list_entries(
        db,
        action=action,
        user_id=user_id,
        table_name=table_name,
        record_id=record_id,
        limit=limit,
        offset=offset,
    )
    return [ActivityLogResponse(**entry.to_dict()) for entry in entries]


@router.get("/activity-logs/{entry_id}", response_model=ActivityLogResponse)
def get_activity_log(
    entry_id: int,
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    """Single activity log entry (admin only)"""
    entry = activity_service.get_entry(db, entry_id)
    if not entry:
        raise ResourceNotFoundError("Activity log entry")
    return ActivityLogResponse(**entry.to_dict())
