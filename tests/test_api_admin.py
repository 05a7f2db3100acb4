"""API tests for account administration and the tier table."""

import pytest

from models.user import UserModel

from conftest import PASSWORD, SUPER_ADMIN_EMAIL


def test_student_cannot_list_users(client, login, student):
    response = client.get("/api/admin/users", headers=login("student@example.com"))
    assert response.status_code == 403


def test_admin_lists_users(client, login, admin, student):
    response = client.get("/api/admin/users", headers=login("admin@example.com"))

    assert response.status_code == 200
    emails = {u["email"]: u["enrollment_count"] for u in response.json()["users"]}
    assert emails == {"admin@example.com": 0, "student@example.com": 0}

    response = client.get("/api/admin/users?role=student", headers=login("admin@example.com"))
    assert [u["email"] for u in response.json()["users"]] == ["student@example.com"]


def test_ban_logs_user_out_and_blocks_login(client, login, admin, student):
    student_headers = login("student@example.com")

    response = client.post(
        f"/api/admin/users/{student.user_id}/ban",
        json={"reason": "chargeback"},
        headers=login("admin@example.com"),
    )
    assert response.status_code == 200
    assert response.json()["is_banned"] is True

    assert client.get("/api/auth/me", headers=student_headers).status_code == 401
    response = client.post("/api/auth/login", json={"email": "student@example.com", "password": PASSWORD})
    assert response.status_code == 403
    assert "chargeback" in response.json()["detail"]

    response = client.post(
        f"/api/admin/users/{student.user_id}/unban", headers=login("admin@example.com")
    )
    assert response.status_code == 200
    login("student@example.com")


@pytest.mark.parametrize("actor", ["admin@example.com", SUPER_ADMIN_EMAIL])
def test_super_admin_cannot_be_banned_or_deleted(client, login, admin, super_admin, actor):
    headers = login(actor)

    ban = client.post(f"/api/admin/users/{super_admin.user_id}/ban", json={}, headers=headers)
    delete = client.delete(f"/api/admin/users/{super_admin.user_id}", headers=headers)

    assert ban.status_code == 403
    assert delete.status_code == 403


def test_super_admin_cannot_be_frozen(client, login, super_admin):
    response = client.post(
        f"/api/admin/users/{super_admin.user_id}/freeze",
        json={"freeze": True},
        headers=login(SUPER_ADMIN_EMAIL),
    )
    assert response.status_code == 403


def test_freeze_is_super_only(client, login, admin, super_admin, student):
    response = client.post(
        f"/api/admin/users/{student.user_id}/freeze",
        json={"freeze": True},
        headers=login("admin@example.com"),
    )
    assert response.status_code == 403

    student_headers = login("student@example.com")
    response = client.post(
        f"/api/admin/users/{student.user_id}/freeze",
        json={"freeze": True},
        headers=login(SUPER_ADMIN_EMAIL),
    )
    assert response.status_code == 200
    assert response.json()["is_frozen"] is True
    assert client.get("/api/auth/me", headers=student_headers).status_code == 401


def test_verify_profile_is_super_only(client, login, admin, super_admin, student):
    url = f"/api/admin/users/{student.user_id}/verify-profile"
    assert client.post(url, headers=login("admin@example.com")).status_code == 403

    response = client.post(url, headers=login(SUPER_ADMIN_EMAIL))
    assert response.status_code == 200
    assert response.json()["profile_verified"] is True


def test_admin_edits_user_and_invalidates(client, login, admin, student):
    student_headers = login("student@example.com")

    response = client.put(
        f"/api/admin/users/{student.user_id}",
        json={"email": "moved@example.com"},
        headers=login("admin@example.com"),
    )
    assert response.status_code == 200
    assert response.json()["email"] == "moved@example.com"
    assert client.get("/api/auth/me", headers=student_headers).status_code == 401
    login("moved@example.com")


def test_admin_resets_password(client, login, admin, student):
    student_headers = login("student@example.com")

    response = client.post(
        f"/api/admin/users/{student.user_id}/reset-password",
        json={"password": "temporary1"},
        headers=login("admin@example.com"),
    )
    assert response.status_code == 200
    assert client.get("/api/auth/me", headers=student_headers).status_code == 401
    login("student@example.com", "temporary1")


def test_admin_deletes_student_but_not_admin(client, login, db, admin, student, make_user):
    other_admin = make_user("other-admin@example.com", role="admin")
    headers = login("admin@example.com")

    assert client.delete(f"/api/admin/users/{other_admin.user_id}", headers=headers).status_code == 403
    assert client.delete(f"/api/admin/users/{student.user_id}", headers=headers).status_code == 200

    db.expire_all()
    assert db.query(UserModel).filter_by(user_id=student.user_id).first() is None


def test_delete_unknown_user(client, login, admin):
    response = client.delete("/api/admin/users/missing", headers=login("admin@example.com"))
    assert response.status_code == 404


def test_admin_management_is_super_only(client, login, admin, super_admin):
    admin_headers = login("admin@example.com")
    assert client.get("/api/admin/admins", headers=admin_headers).status_code == 403
    response = client.post(
        "/api/admin/admins",
        json={"name": "Helper", "email": "helper@example.com", "password": PASSWORD},
        headers=admin_headers,
    )
    assert response.status_code == 403


def test_super_admin_manages_admins(client, login, super_admin, admin):
    headers = login(SUPER_ADMIN_EMAIL)

    response = client.post(
        "/api/admin/admins",
        json={"name": "Helper", "email": "helper@example.com", "password": PASSWORD},
        headers=headers,
    )
    assert response.status_code == 201
    helper_id = response.json()["user_id"]
    login("helper@example.com")

    listed = {a["email"] for a in client.get("/api/admin/admins", headers=headers).json()}
    assert listed == {"admin@example.com", "helper@example.com"}

    assert client.delete(f"/api/admin/admins/{helper_id}", headers=headers).status_code == 200
    response = client.post("/api/auth/login", json={"email": "helper@example.com", "password": PASSWORD})
    assert response.status_code == 401


def test_super_admin_flag_in_me(client, login, super_admin):
    me = client.get("/api/auth/me", headers=login(SUPER_ADMIN_EMAIL)).json()
    assert me["user"]["is_super_admin"] is True


def test_student_cannot_claim_super_admin_email(client, login, student):
    headers = login("student@example.com")

    response = client.put(
        "/api/users/me",
        json={"name": "Student", "email": SUPER_ADMIN_EMAIL},
        headers=headers,
    )

    assert response.status_code == 403
    assert client.get("/api/admin/admins", headers=headers).status_code == 403
    response = client.post("/api/auth/login", json={"email": SUPER_ADMIN_EMAIL, "password": PASSWORD})
    assert response.status_code == 401


def test_verify_profile_rejects_admin_target(client, login, admin, super_admin):
    response = client.post(
        f"/api/admin/users/{admin.user_id}/verify-profile", headers=login(SUPER_ADMIN_EMAIL)
    )
    assert response.status_code == 403
