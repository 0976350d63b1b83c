from datetime import timedelta

from wateradmin.core.context import Actor
from wateradmin.core.roles import UserRole
from wateradmin.services.activity_service import activity_service

from conftest import auth_header, token_count


def test_cleanup_requires_admin(client, make_user, make_token):
    staff = make_user(UserRole.STAFF)
    _, plaintext = make_token(staff)

    response = client.delete("/api/v1/admin/cleanup-tokens", headers=auth_header(plaintext))

    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"


def test_cleanup_dry_run_then_delete(client, db, make_user, make_token):
    admin = make_user(UserRole.ADMIN)
    other = make_user(UserRole.USER)
    _, admin_plaintext = make_token(admin)
    expired_ids = {make_token(other, expires_in=timedelta(hours=-h))[0].id for h in (1, 2, 3)}
    make_token(other)

    preview = client.delete(
        "/api/v1/admin/cleanup-tokens",
        params={"dry_run": "true"},
        headers=auth_header(admin_plaintext),
    )
    assert preview.status_code == 200
    body = preview.json()
    assert body["dry_run"] is True
    assert body["deleted_tokens"] == 0
    assert {c["id"] for c in body["candidates"]} == expired_ids
    assert token_count(db) == 5

    done = client.delete("/api/v1/admin/cleanup-tokens", headers=auth_header(admin_plaintext))
    assert done.status_code == 200
    assert done.json()["deleted_tokens"] == 3
    assert done.json()["cleaned_at"]
    assert token_count(db) == 2


def test_cleanup_with_stale_days(client, db, make_user, make_token):
    admin = make_user(UserRole.ADMIN)
    _, admin_plaintext = make_token(admin)
    idle, _ = make_token(admin, expires_in=None, created_ago=timedelta(days=40))
    idle_id = idle.id

    response = client.delete(
        "/api/v1/admin/cleanup-tokens",
        params={"stale_days": 30},
        headers=auth_header(admin_plaintext),
    )

    assert response.json()["stale_days"] == 30
    assert [c["reason"] for c in response.json()["candidates"]] == ["stale"]
    assert token_count(db, id=idle_id) == 0


def test_cleanup_rejects_non_positive_stale_days(client, make_user, make_token):
    admin = make_user(UserRole.ADMIN)
    _, plaintext = make_token(admin)

    response = client.delete(
        "/api/v1/admin/cleanup-tokens", params={"stale_days": 0}, headers=auth_header(plaintext)
    )

    assert response.status_code == 422


def test_activity_log_listing_and_detail(client, db, make_user, make_token):
    admin = make_user(UserRole.ADMIN)
    staff = make_user(UserRole.STAFF)
    _, plaintext = make_token(admin)
    activity_service.record(db, actor=Actor.from_user(staff), action="login")
    entry = activity_service.record(
        db, actor=Actor.from_user(admin), action="update", table_name="news", record_id=3
    )

    listing = client.get("/api/v1/admin/activity-logs", headers=auth_header(plaintext))
    assert listing.status_code == 200
    assert [e["action"] for e in listing.json()] == ["update", "login"]

    filtered = client.get(
        "/api/v1/admin/activity-logs",
        params={"user_id": staff.id},
        headers=auth_header(plaintext),
    )
    assert [e["user_name"] for e in filtered.json()] == [staff.name]

    detail = client.get(f"/api/v1/admin/activity-logs/{entry.id}", headers=auth_header(plaintext))
    assert detail.json()["table_name"] == "news"
    assert detail.json()["record_id"] == 3


def test_activity_log_errors(client, make_user, make_token):
    admin = make_user(UserRole.ADMIN)
    _, plaintext = make_token(admin)

    unknown_action = client.get(
        "/api/v1/admin/activity-logs", params={"action": "hack"}, headers=auth_header(plaintext)
    )
    missing = client.get("/api/v1/admin/activity-logs/999", headers=auth_header(plaintext))

    assert unknown_action.status_code == 422
    assert unknown_action.json()["code"] == "validation_error"
    assert missing.status_code == 404
    assert missing.json()["code"] == "not_found"
