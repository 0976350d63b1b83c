"""Activity log service for privileged session events and entity changes."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import Session

from wateradmin.core.context import Actor, RequestMeta, get_request_meta
from wateradmin.core.metrics import ACTIVITY_WRITE_FAILURES
from wateradmin.core.roles import is_privileged
from wateradmin.models.activity_log import ActivityLog
from wateradmin.services.geolocation import GeoLocator, build_geolocator

logger = logging.getLogger(__name__)

ACTION_LOGIN = "login"
ACTION_LOGOUT = "logout"
ACTION_LOGOUT_ALL = "logout_all"
ACTION_CREATE = "create"
ACTION_UPDATE = "update"
ACTION_DELETE = "delete"

ACTIONS = (
    ACTION_LOGIN,
    ACTION_LOGOUT,
    ACTION_LOGOUT_ALL,
    ACTION_CREATE,
    ACTION_UPDATE,
    ACTION_DELETE,
)

MAX_LIST_LIMIT = 500


@dataclass
class PendingActivity:
    """Entity change captured during a flush, written once the transaction commits."""
    actor: Actor
    action: str
    table_name: str
    record_id: Optional[int]
    request_meta: RequestMeta
    old_data: Optional[Dict[str, Any]] = None
    new_data: Optional[Dict[str, Any]] = None


class ActivityLogService:
    """Persist append-only activity entries; every write is best-effort."""

    def __init__(self, geolocator: Optional[GeoLocator] = None) -> None:
        self.geolocator = geolocator or build_geolocator()

    def record(
        self,
        db: Session,
        *,
        actor: Optional[Actor],
        action: str,
        request_meta: Optional[RequestMeta] = None,
        table_name: Optional[str] = None,
        record_id: Optional[int] = None,
        old_data: Optional[Dict[str, Any]] = None,
        new_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[ActivityLog]:
        """
        Write one entry for a privileged actor.

        Returns the entry, or None when the actor is not audited or the write
        failed. Failures are logged and never raised.
        """
        if actor is None or not is_privileged(actor.role):
            return None

        meta = request_meta or RequestMeta()
        try:
            entry = ActivityLog(
                user_id=actor.id,
                role=actor.role.value,
                action=action,
                table_name=table_name,
                record_id=record_id,
                ip_address=meta.ip_address,
                location=self.geolocator.locate(meta.ip_address),
                user_agent=meta.user_agent,
                old_data=old_data,
                new_data=new_data,
            )
            db.add(entry)
            db.commit()
            db.refresh(entry)
            return entry
        except Exception as exc:
            db.rollback()
            ACTIVITY_WRITE_FAILURES.inc()
            logger.warning(
                "Activity log write failed (action=%s table=%s record=%s): %s",
                action, table_name, record_id, exc,
            )
            return None

    def log_session_event(
        self,
        db: Session,
        user,
        action: str,
        new_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[ActivityLog]:
        """Record login / logout / logout_all for ``user`` using the session's request metadata."""
        return self.record(
            db,
            actor=Actor.from_user(user),
            action=action,
            request_meta=get_request_meta(db),
            new_data=new_data,
        )

    def write_pending(self, bind: Union[Engine, Connection], entries: Iterable[PendingActivity]) -> int:
        """Write observer entries through a dedicated session; returns how many were stored."""
        written = 0
        with Session(bind=bind) as writer:
            for item in entries:
                entry = self.record(
                    writer,
                    actor=item.actor,
                    action=item.action,
                    request_meta=item.request_meta,
                    table_name=item.table_name,
                    record_id=item.record_id,
                    old_data=item.old_data,
                    new_data=item.new_data,
                )
                if entry is not None:
                    written += 1
        return written

    @staticmethod
    def list_entries(
        db: Session,
        *,
        action: Optional[str] = None,
        user_id: Optional[int] = None,
        table_name: Optional[str] = None,
        record_id: Optional[int] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ActivityLog]:
        query = db.query(ActivityLog)
        if action:
            query = query.filter(ActivityLog.action == action)
        if user_id is not None:
            query = query.filter(ActivityLog.user_id == user_id)
        if table_name:
            query = query.filter(ActivityLog.table_name == table_name)
        if record_id is not None:
            query = query.filter(ActivityLog.record_id == record_id)
        limit = max(1, min(limit, MAX_LIST_LIMIT))
        return (
            query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
            .offset(max(0, offset))
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_entry(db: Session, entry_id: int) -> Optional[ActivityLog]:
        return db.query(ActivityLog).filter(ActivityLog.id == entry_id).first()


activity_service = ActivityLogService()
