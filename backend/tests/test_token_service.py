from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from wateradmin.core.exceptions import (
    SweepOperationError,
    TokenExpiredError,
    TokenInvalidError,
    UnauthorizedError,
)
from wateradmin.core.roles import UserRole
from wateradmin.core.timeutils import utcnow
from wateradmin.models.activity_log import ActivityLog
from wateradmin.models.token import AccessToken, FULL_SCOPE
from wateradmin.services import token_service as token_module
from wateradmin.services.token_service import SWEEP_EXPIRED, SWEEP_STALE, token_service

from conftest import token_count


def test_issue_uses_hour_expiry_and_stores_only_digest(db, make_user):
    user = make_user(UserRole.USER)
    before = utcnow()

    issued = token_service.issue(db, user, remember_me=False)

    stored = db.query(AccessToken).one()
    assert stored.scope == FULL_SCOPE
    assert stored.name == "auth-token"
    assert issued.plaintext.startswith(f"{stored.id}|")
    assert issued.plaintext.split("|", 1)[1] not in stored.secret_hash
    assert timedelta(hours=8) - timedelta(seconds=5) <= issued.expires_at - before <= timedelta(hours=8, seconds=5)
    assert 479 <= issued.expires_in_minutes <= 480


def test_issue_remember_me_lasts_days(db, make_user):
    user = make_user(UserRole.USER)
    issued = token_service.issue(db, user, remember_me=True)
    assert issued.expires_at - utcnow() > timedelta(days=29)


def test_issue_logs_login_only_for_privileged_roles(db, make_user):
    staff = make_user(UserRole.STAFF)
    regular = make_user(UserRole.USER)

    token_service.issue(db, staff, remember_me=True)
    token_service.issue(db, regular)

    entries = db.query(ActivityLog).all()
    assert len(entries) == 1
    assert entries[0].action == "login"
    assert entries[0].user_id == staff.id
    assert entries[0].role == "staff"
    assert entries[0].new_data["remember_me"] is True


def test_issued_token_authenticates_and_stamps_last_used(db, make_user):
    user = make_user(UserRole.USER)
    issued = token_service.issue(db, user)

    token = token_service.authenticate_request(db, issued.plaintext)

    assert token.id == issued.token.id
    assert abs((token.last_used_at - utcnow()).total_seconds()) < 5


def test_gate_reasons_are_distinct(db, make_user, make_token):
    user = make_user(UserRole.USER)
    token, plaintext = make_token(user)

    with pytest.raises(UnauthorizedError):
        token_service.authenticate_request(db, None)
    with pytest.raises(TokenInvalidError):
        token_service.authenticate_request(db, f"{token.id}|wrong-secret")
    with pytest.raises(TokenInvalidError):
        token_service.authenticate_request(db, "999|whatever")


def test_malformed_or_oversized_ids_are_invalid_tokens(db, make_user, make_token):
    user = make_user(UserRole.USER)
    make_token(user)

    for plaintext in ("²|secret", "99999999999999999999999|secret", f"{2**31}|secret"):
        with pytest.raises(TokenInvalidError):
            token_service.authenticate_request(db, plaintext)


def test_expired_token_is_deleted_when_presented(db, make_user, make_token):
    user = make_user(UserRole.USER)
    token, plaintext = make_token(user, expires_in=timedelta(minutes=-1))
    token_id = token.id

    with pytest.raises(TokenExpiredError) as exc_info:
        token_service.authenticate_request(db, plaintext)

    assert exc_info.value.error_code == "token_expired"
    assert exc_info.value.details["expired_at"]
    assert token_count(db, id=token_id) == 0


def test_token_without_expiry_never_expires(db, make_user, make_token):
    user = make_user(UserRole.USER)
    token, plaintext = make_token(user, expires_in=None)

    assert token_service.authenticate_request(db, plaintext).id == token.id
    state = token_service.status(token)
    assert state.expires_in_minutes is None
    assert state.is_expiring_soon is False
    assert token_service.expiry_warning(token) is None


def test_status_flags_expiring_soon_inside_window(db, make_user, make_token):
    user = make_user(UserRole.USER)
    token, _ = make_token(user)
    now = utcnow()

    assert token_service.status(token, now=now).is_expiring_soon is False
    late = token.expires_at - timedelta(minutes=30)
    state = token_service.status(token, now=late)
    assert state.is_expiring_soon is True
    assert state.expires_in_minutes == 30


def test_expiry_warning_payload(db, make_user, make_token):
    user = make_user(UserRole.USER)
    token, _ = make_token(user, expires_in=timedelta(minutes=10, seconds=30))

    warning = token_service.expiry_warning(token)

    assert warning["expiring_soon"] is True
    assert warning["expires_in_minutes"] == 10
    assert warning["expires_at"].endswith("+00:00")


def test_refresh_is_a_no_op_while_token_has_time_left(db, make_user, make_token):
    user = make_user(UserRole.USER)
    token, plaintext = make_token(user)

    for _ in range(3):
        result = token_service.refresh(db, token)
        assert result.refreshed is False
        assert result.plaintext is None

    assert token_count(db) == 1
    assert token_service.authenticate_request(db, plaintext).id == token.id


def test_refresh_near_expiry_replaces_token(db, make_user, make_token):
    user = make_user(UserRole.USER)
    token, old_plaintext = make_token(user, expires_in=timedelta(minutes=20))
    old_id = token.id

    result = token_service.refresh(db, token)

    assert result.refreshed is True
    assert 479 <= result.expires_in_minutes <= 480
    assert token_count(db, user_id=user.id) == 1
    assert token_count(db, id=old_id) == 0
    with pytest.raises(TokenInvalidError):
        token_service.authenticate_request(db, old_plaintext)
    fresh = token_service.authenticate_request(db, result.plaintext)
    assert fresh.name == "auth-token-refreshed"


def test_revoke_all_removes_every_token_and_logs_count(db, make_user, make_token):
    admin = make_user(UserRole.ADMIN)
    other = make_user(UserRole.USER)
    plaintexts = [make_token(admin)[1] for _ in range(3)]
    make_token(other)

    revoked = token_service.revoke_all(db, admin)

    assert revoked == 3
    assert token_count(db, user_id=admin.id) == 0
    assert token_count(db, user_id=other.id) == 1
    for plaintext in plaintexts:
        with pytest.raises(TokenInvalidError):
            token_service.authenticate_request(db, plaintext)

    entry = db.query(ActivityLog).filter(ActivityLog.action == "logout_all").one()
    assert entry.new_data == {"revoked_tokens": 3}


def test_revoke_deletes_single_token_and_logs_logout(db, make_user, make_token):
    admin = make_user(UserRole.ADMIN)
    token, _ = make_token(admin)
    make_token(admin)
    token_id = token.id

    token_service.revoke(db, token)

    assert token_count(db, user_id=admin.id) == 1
    entry = db.query(ActivityLog).filter(ActivityLog.action == "logout").one()
    assert entry.new_data == {"token_id": token_id}


def test_sweep_dry_run_then_confirmed_run(db, make_user, make_token):
    user = make_user(UserRole.USER)
    expired_ids = [make_token(user, expires_in=timedelta(minutes=-m))[0].id for m in (1, 60, 600)]
    for _ in range(2):
        make_token(user)

    preview = token_service.sweep_expired(db, dry_run=True)
    assert sorted(c.id for c in preview.candidates) == sorted(expired_ids)
    assert all(c.reason == SWEEP_EXPIRED for c in preview.candidates)
    assert preview.deleted == 0
    assert token_count(db) == 5

    asked = []

    def confirm(candidates):
        asked.append(len(candidates))
        return True

    result = token_service.sweep_expired(db, confirm=confirm)
    assert asked == [3]
    assert result.deleted == 3
    assert token_count(db) == 2


def test_sweep_declined_confirmation_deletes_nothing(db, make_user, make_token):
    user = make_user(UserRole.USER)
    make_token(user, expires_in=timedelta(minutes=-5))

    result = token_service.sweep_expired(db, confirm=lambda candidates: False)

    assert result.cancelled is True
    assert result.deleted == 0
    assert token_count(db) == 1


def test_stale_sweep_falls_back_to_created_at(db, make_user, make_token):
    user = make_user(UserRole.USER)
    never_used_old, _ = make_token(user, expires_in=None, created_ago=timedelta(days=10))
    used_long_ago, _ = make_token(user, created_ago=timedelta(days=20), last_used_ago=timedelta(days=8))
    recently_used, _ = make_token(user, created_ago=timedelta(days=20), last_used_ago=timedelta(days=1))
    fresh, _ = make_token(user, expires_in=None)
    expired_and_stale, _ = make_token(
        user, expires_in=timedelta(days=-1), created_ago=timedelta(days=30)
    )

    preview = token_service.sweep_stale(db, older_than_days=7, dry_run=True)
    reasons = {c.id: c.reason for c in preview.candidates}

    assert reasons == {
        never_used_old.id: SWEEP_STALE,
        used_long_ago.id: SWEEP_STALE,
        expired_and_stale.id: SWEEP_EXPIRED,
    }

    result = token_service.sweep_stale(db, older_than_days=7)
    assert result.deleted == 3
    remaining = {t.id for t in db.query(AccessToken).all()}
    assert remaining == {recently_used.id, fresh.id}


def test_sweep_deletes_in_committed_batches(db, make_user, make_token, monkeypatch):
    monkeypatch.setattr(token_module.settings, "TOKEN_SWEEP_BATCH_SIZE", 2)
    user = make_user(UserRole.USER)
    for _ in range(5):
        make_token(user, expires_in=timedelta(minutes=-1))

    commits = []
    original_commit = db.commit

    def counting_commit():
        commits.append(1)
        original_commit()

    monkeypatch.setattr(db, "commit", counting_commit)
    result = token_service.sweep_expired(db)

    assert result.deleted == 5
    assert len(commits) == 3


def test_sweep_failure_reports_already_deleted(db, make_user, make_token, monkeypatch):
    monkeypatch.setattr(token_module.settings, "TOKEN_SWEEP_BATCH_SIZE", 2)
    user = make_user(UserRole.USER)
    for _ in range(4):
        make_token(user, expires_in=timedelta(minutes=-1))

    calls = {"n": 0}
    original_commit = db.commit

    def failing_second_commit():
        calls["n"] += 1
        if calls["n"] == 2:
            raise OperationalError("DELETE", {}, Exception("database is locked"))
        original_commit()

    monkeypatch.setattr(db, "commit", failing_second_commit)

    with pytest.raises(SweepOperationError) as exc_info:
        token_service.sweep_expired(db)

    assert exc_info.value.deleted == 2
    assert exc_info.value.details == {"deleted_tokens": 2}
    monkeypatch.setattr(db, "commit", original_commit)
    assert token_count(db) == 2
