from datetime import datetime

import pytest

pytest.importorskip("httpx")

from backend.app.models import User


ADMIN = {"X-User-Email": "admin@example.com"}


@pytest.fixture()
def people(make_user, sqlite_session):
    admin = make_user("admin@example.com", role="ADMIN")
    older = make_user("older@example.com")
    newer = make_user("newer@example.com")
    admin.created_at = datetime(2026, 1, 1, 9)
    older.created_at = datetime(2026, 1, 31, 11)
    newer.created_at = datetime(2026, 1, 31, 12)
    newer.phone = "+1234567890"
    sqlite_session.commit()
    return {"admin": admin, "older": older, "newer": newer}


@pytest.mark.parametrize(
    "method,path",
    [
        ("get", "/api/v1/users"),
        ("patch", "/api/v1/users"),
        ("patch", "/api/v1/users/phone?userId=someone"),
    ],
)
def test_user_admin_is_admin_only(api_client, people, method, path):
    body = {"phone": "+1"} if path.endswith("someone") else {"name": "X"}
    kwargs = {} if method == "get" else {"json": body}
    resp = getattr(api_client, method)(path, headers={"X-User-Email": "older@example.com"}, **kwargs)
    assert resp.status_code == 403


def test_user_admin_requires_identity(api_client, people):
    assert api_client.get("/api/v1/users").status_code == 401


def test_list_users_newest_first(api_client, people):
    resp = api_client.get("/api/v1/users", headers=ADMIN)
    assert resp.status_code == 200
    payload = resp.json()
    assert [row["email"] for row in payload] == [
        "newer@example.com",
        "older@example.com",
        "admin@example.com",
    ]
    assert payload[0]["phone"] == "+1234567890"
    assert payload[1]["phone"] is None
    assert set(payload[0]) == {"id", "name", "email", "role", "phone", "created_at", "updated_at"}
    assert isinstance(payload[0]["created_at"], str)


def test_update_name_and_role_of_target_user(api_client, people, sqlite_session, fixed_now):
    target = people["older"]
    resp = api_client.patch(
        "/api/v1/users",
        params={"userId": target.id},
        json={"name": "  New Name ", "role": "ADMIN"},
        headers=ADMIN,
    )
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["name"] == "New Name"
    assert payload["role"] == "ADMIN"

    sqlite_session.expire_all()
    stored = sqlite_session.get(User, target.id)
    assert stored.role == "ADMIN"
    assert stored.updated_at == fixed_now.replace(tzinfo=None)


def test_update_without_user_id_edits_the_caller(api_client, people):
    resp = api_client.patch("/api/v1/users", json={"name": "Boss"}, headers=ADMIN)
    assert resp.status_code == 200
    assert resp.json()["id"] == people["admin"].id
    assert resp.json()["name"] == "Boss"


@pytest.mark.parametrize(
    "body,status",
    [
        ({}, 400),
        ({"name": "   "}, 400),
        ({"name": ""}, 422),
        ({"role": "OWNER"}, 422),
    ],
)
def test_update_rejects_bad_bodies(api_client, people, body, status):
    resp = api_client.patch(
        "/api/v1/users", params={"userId": people["older"].id}, json=body, headers=ADMIN
    )
    assert resp.status_code == status


def test_update_unknown_user_is_404(api_client, people):
    resp = api_client.patch("/api/v1/users", params={"userId": "missing"}, json={"name": "X"}, headers=ADMIN)
    assert resp.status_code == 404


def test_set_phone_trims_and_persists(api_client, people, sqlite_session):
    target = people["older"]
    resp = api_client.patch(
        "/api/v1/users/phone",
        params={"userId": target.id},
        json={"phone": " +57 301 435 5609 "},
        headers=ADMIN,
    )
    assert resp.status_code == 200
    assert resp.json()["phone"] == "+57 301 435 5609"

    me = api_client.get("/api/me", headers={"X-User-Email": "older@example.com"}).json()
    assert me["phone"] == "+57 301 435 5609"


def test_set_phone_null_clears_it(api_client, people):
    resp = api_client.patch(
        "/api/v1/users/phone",
        params={"userId": people["newer"].id},
        json={"phone": None},
        headers=ADMIN,
    )
    assert resp.status_code == 200
    assert resp.json()["phone"] is None


def test_set_phone_requires_user_id(api_client, people):
    resp = api_client.patch("/api/v1/users/phone", json={"phone": "+1"}, headers=ADMIN)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Missing required query param: userId"


def test_set_phone_unknown_user_is_404(api_client, people):
    resp = api_client.patch(
        "/api/v1/users/phone", params={"userId": "missing"}, json={"phone": "+1"}, headers=ADMIN
    )
    assert resp.status_code == 404
