"""Change observer feeding tracked-entity mutations into the activity log.

Tracked models are listed in ``TRACKED_MODELS`` and wired one by one to
SQLAlchemy mapper events by ``register_change_observers()`` at startup.
Changes are captured while the session flushes and written only after the
surrounding transaction commits, through a separate session, so an audit
failure can never undo or block the change that triggered it. A rollback
discards whatever was captured.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional, Set, Type

from fastapi.encoders import jsonable_encoder
from sqlalchemy import event, inspect
from sqlalchemy.orm import Session, object_session

from wateradmin.core.context import get_actor, get_request_meta
from wateradmin.core.roles import is_privileged
from wateradmin.models.news import News
from wateradmin.models.report import YearlyReport
from wateradmin.models.user import User
from wateradmin.services.activity_service import (
    ACTION_CREATE,
    ACTION_DELETE,
    ACTION_UPDATE,
    PendingActivity,
    activity_service,
)

logger = logging.getLogger(__name__)

PENDING_KEY = "pending_activity"

# Registration table: every audited entity type, reviewed here and nowhere else.
TRACKED_MODELS = (
    User,
    News,
    YearlyReport,
)

_registered: Set[Type] = set()
_session_hooks_installed = False


def _excluded(mapper) -> Iterable[str]:
    return getattr(mapper.class_, "__audit_exclude__", ())


def snapshot(target, loaded_only: bool = False) -> Dict[str, Any]:
    """Column values of ``target`` as JSON-safe data, minus excluded columns."""
    state = inspect(target)
    excluded = set(_excluded(state.mapper))
    data: Dict[str, Any] = {}
    for attr in state.mapper.column_attrs:
        if attr.key in excluded:
            continue
        if loaded_only and attr.key not in state.dict:
            continue
        data[attr.key] = getattr(target, attr.key)
    return jsonable_encoder(data)


def changed_fields(target):
    """Return ``(old, new)`` dicts holding only the columns whose value changed."""
    state = inspect(target)
    excluded = set(_excluded(state.mapper))
    old: Dict[str, Any] = {}
    new: Dict[str, Any] = {}
    for attr in state.mapper.column_attrs:
        if attr.key in excluded:
            continue
        history = state.attrs[attr.key].history
        if not history.has_changes():
            continue
        before = history.deleted[0] if history.deleted else None
        after = history.added[0] if history.added else getattr(target, attr.key)
        if before == after:
            continue
        old[attr.key] = before
        new[attr.key] = after
    return jsonable_encoder(old), jsonable_encoder(new)


def _record_id(target) -> Optional[int]:
    identity = inspect(target).identity
    if identity and len(identity) == 1 and isinstance(identity[0], int):
        return identity[0]
    value = getattr(target, "id", None)
    return value if isinstance(value, int) else None


def _queue(mapper, target, action: str, old_data=None, new_data=None) -> None:
    session = object_session(target)
    if session is None:
        return
    actor = get_actor(session)
    if actor is None or not is_privileged(actor.role):
        return
    session.info.setdefault(PENDING_KEY, []).append(
        PendingActivity(
            actor=actor,
            action=action,
            table_name=mapper.local_table.name,
            record_id=_record_id(target),
            request_meta=get_request_meta(session),
            old_data=old_data,
            new_data=new_data,
        )
    )


def on_create(mapper, connection, target) -> None:
    try:
        _queue(mapper, target, ACTION_CREATE, new_data=snapshot(target, loaded_only=True))
    except Exception as exc:
        logger.warning("Could not capture create of %s: %s", mapper.local_table.name, exc)


def on_update(mapper, connection, target) -> None:
    try:
        old_data, new_data = changed_fields(target)
        if not new_data and not old_data:
            return
        _queue(mapper, target, ACTION_UPDATE, old_data=old_data, new_data=new_data)
    except Exception as exc:
        logger.warning("Could not capture update of %s: %s", mapper.local_table.name, exc)


def on_delete(mapper, connection, target) -> None:
    try:
        _queue(mapper, target, ACTION_DELETE, old_data=snapshot(target))
    except Exception as exc:
        logger.warning("Could not capture delete of %s: %s", mapper.local_table.name, exc)


def _write_after_commit(session: Session) -> None:
    entries = session.info.pop(PENDING_KEY, None)
    if not entries:
        return
    try:
        activity_service.write_pending(session.get_bind(), entries)
    except Exception as exc:
        logger.warning("Dropped %d activity log entries: %s", len(entries), exc)


def _discard_after_rollback(session: Session) -> None:
    session.info.pop(PENDING_KEY, None)


def register_change_observers(models: Iterable[Type] = TRACKED_MODELS) -> None:
    """Attach the observer to each model in ``models``; safe to call more than once."""
    global _session_hooks_installed

    for model in models:
        if model in _registered:
            continue
        # before_update still sees attribute history; before_delete still sees the row.
        event.listen(model, "after_insert", on_create)
        event.listen(model, "before_update", on_update)
        event.listen(model, "before_delete", on_delete)
        _registered.add(model)
        logger.debug("Change observer attached to %s", model.__tablename__)

    if not _session_hooks_installed:
        event.listen(Session, "after_commit", _write_after_commit)
        event.listen(Session, "after_rollback", _discard_after_rollback)
        _session_hooks_installed = True


def tracked_models() -> Set[Type]:
    return set(_registered)
