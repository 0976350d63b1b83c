from datetime import timedelta

from wateradmin.core.context import REQUEST_META_KEY, RequestMeta, bind_actor
from wateradmin.core.roles import UserRole
from wateradmin.models.activity_log import ActivityLog
from wateradmin.models.news import News
from wateradmin.models.report import YearlyReport
from wateradmin.models.user import User
from wateradmin.schemas.report import YearlyReportCreate, YearlyReportUpdate
from wateradmin.services.activity_service import activity_service
from wateradmin.services.change_observer import TRACKED_MODELS, tracked_models
from wateradmin.services.report_service import report_service


def _entries(db, **filters):
    db.expire_all()
    return db.query(ActivityLog).filter_by(**filters).order_by(ActivityLog.id).all()


def _new_report(db, year=2025):
    return report_service.create_report(
        db, YearlyReportCreate(year=year, title=f"Annual report {year}")
    )


def test_registration_table_is_wired():
    assert tracked_models() == set(TRACKED_MODELS)
    assert {User, News, YearlyReport} <= tracked_models()


def test_create_is_logged_with_snapshot(db, make_user):
    admin = make_user(UserRole.ADMIN)
    bind_actor(db, admin)
    db.info[REQUEST_META_KEY] = RequestMeta(ip_address="10.0.0.5", user_agent="pytest-agent")

    report = _new_report(db)

    [entry] = _entries(db, action="create")
    assert entry.table_name == "yearly_reports"
    assert entry.record_id == report.id
    assert entry.user_id == admin.id
    assert entry.role == "admin"
    assert entry.old_data is None
    assert entry.new_data["title"] == "Annual report 2025"
    assert entry.new_data["status"] == "draft"
    assert entry.ip_address == "10.0.0.5"
    assert entry.location == "Local Network (10.0.0.5)"
    assert entry.user_agent == "pytest-agent"


def test_publish_logs_only_the_changed_fields(db, make_user):
    staff = make_user(UserRole.STAFF)
    bind_actor(db, staff)
    report = _new_report(db)

    report_service.publish(db, report.id)

    [entry] = _entries(db, action="update")
    assert set(entry.new_data) == {"status", "published_at"}
    assert entry.new_data["status"] == "published"
    assert entry.new_data["published_at"]
    assert entry.old_data == {"status": "draft", "published_at": None}
    assert entry.role == "staff"


def test_partial_update_delta(db, make_user):
    admin = make_user(UserRole.ADMIN)
    bind_actor(db, admin)
    report = _new_report(db)

    report_service.update_report(db, report.id, YearlyReportUpdate(title="Revised", year=2025))

    [entry] = _entries(db, action="update")
    assert entry.old_data == {"title": "Annual report 2025"}
    assert entry.new_data == {"title": "Revised"}


def test_delete_logs_full_snapshot(db, make_user):
    admin = make_user(UserRole.ADMIN)
    bind_actor(db, admin)
    report = _new_report(db, year=2019)
    report_id = report.id

    report_service.delete_report(db, report_id)

    [entry] = _entries(db, action="delete")
    assert entry.record_id == report_id
    assert entry.new_data is None
    assert entry.old_data["year"] == 2019
    assert entry.old_data["id"] == report_id


def test_regular_user_changes_are_not_logged(db, make_user):
    regular = make_user(UserRole.USER)
    bind_actor(db, regular)

    report = _new_report(db)
    report_service.publish(db, report.id)
    report_service.delete_report(db, report.id)

    assert _entries(db) == []


def test_changes_without_actor_are_not_logged(db, make_user):
    make_user(UserRole.ADMIN)
    _new_report(db)
    assert _entries(db) == []


def test_password_hash_never_reaches_the_log(db, make_user):
    admin = make_user(UserRole.ADMIN)
    bind_actor(db, admin)
    created = make_user(UserRole.USER)

    [create_entry] = _entries(db, action="create")
    assert create_entry.table_name == "users"
    assert "password_hash" not in create_entry.new_data
    assert create_entry.new_data["email"] == created.email

    created.password_hash = "rotated"
    db.commit()
    assert _entries(db, action="update") == []

    created.name = "Renamed"
    created.password_hash = "rotated-again"
    db.commit()
    [update_entry] = _entries(db, action="update")
    assert update_entry.new_data == {"name": "Renamed"}


def test_rollback_discards_captured_changes(db, make_user):
    admin = make_user(UserRole.ADMIN)
    bind_actor(db, admin)

    db.add(YearlyReport(year=2030, title="Never saved", status="draft"))
    db.flush()
    db.rollback()

    assert _entries(db) == []
    _new_report(db)
    assert len(_entries(db, action="create")) == 1


def test_audit_failure_does_not_block_the_change(db, make_user, monkeypatch):
    admin = make_user(UserRole.ADMIN)
    bind_actor(db, admin)

    class BrokenLocator:
        def locate(self, ip_address):
            raise RuntimeError("boom")

    monkeypatch.setattr(activity_service, "geolocator", BrokenLocator())

    report = _new_report(db)

    assert db.query(YearlyReport).filter_by(id=report.id).count() == 1
    assert _entries(db) == []


def test_news_is_tracked(db, make_user):
    admin = make_user(UserRole.ADMIN)
    bind_actor(db, admin)

    article = News(title="Water outage", slug="water-outage", content="Maintenance on Friday")
    db.add(article)
    db.commit()
    article.status = "published"
    db.commit()

    actions = [e.action for e in _entries(db, table_name="news")]
    assert actions == ["create", "update"]


def test_untracked_token_changes_are_not_logged(db, make_user, make_token):
    admin = make_user(UserRole.ADMIN)
    bind_actor(db, admin)

    make_token(admin, expires_in=timedelta(hours=1), last_used_ago=timedelta(minutes=1))

    assert _entries(db) == []
