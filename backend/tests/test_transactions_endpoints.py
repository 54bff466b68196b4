from datetime import datetime, timezone

import pytest

pytest.importorskip("httpx")

from backend.app.models import Transaction, User


def _utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_unknown_email_is_provisioned_as_user(api_client, sqlite_session):
    resp = api_client.get("/api/me", headers={"X-User-Email": "New-Person@Example.com"})
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["email"] == "new-person@example.com"
    assert payload["role"] == "USER"
    assert sqlite_session.query(User).filter(User.email == "new-person@example.com").first() is not None


def test_unknown_user_id_is_rejected(api_client, sqlite_session):
    resp = api_client.get("/api/me", headers={"X-User-Id": "missing"})
    assert resp.status_code == 401


def test_user_only_sees_own_transactions(api_client, make_user, add_txn):
    alice = make_user("alice@example.com")
    bob = make_user("bob@example.com")
    add_txn(alice, 10, _utc(2026, 1, 1), "INCOME", "Alice pay")
    add_txn(bob, 20, _utc(2026, 1, 2), "EXPENSE", "Bob rent")

    resp = api_client.get("/api/v1/transactions", headers={"X-User-Email": alice.email})
    assert resp.status_code == 200
    assert [row["concept"] for row in resp.json()] == ["Alice pay"]

    resp = api_client.get(
        "/api/v1/transactions",
        params={"user_id": bob.id},
        headers={"X-User-Email": alice.email},
    )
    assert resp.status_code == 403


def test_admin_lists_everything_newest_first(api_client, make_user, add_txn):
    admin = make_user("admin@example.com", role="ADMIN")
    alice = make_user("alice@example.com")
    add_txn(alice, 10, _utc(2026, 1, 1), "INCOME", "older")
    add_txn(admin, 20, _utc(2026, 1, 5), "EXPENSE", "newer")

    resp = api_client.get("/api/v1/transactions", headers={"X-User-Email": admin.email})
    rows = resp.json()
    assert [row["concept"] for row in rows] == ["newer", "older"]
    assert rows[1]["name"] == "alice"

    resp = api_client.get(
        "/api/v1/transactions",
        params={"user_id": alice.id},
        headers={"X-User-Email": admin.email},
    )
    assert [row["concept"] for row in resp.json()] == ["older"]


def test_create_transaction_defaults_date_to_clock(api_client, make_user, sqlite_session):
    alice = make_user("alice@example.com")
    resp = api_client.post(
        "/api/v1/transactions",
        json={"concept": "Groceries", "amount": 12.5, "type": "EXPENSE"},
        headers={"X-User-Email": alice.email},
    )
    assert resp.status_code == 201
    payload = resp.json()
    assert payload["amount"] == 12.5
    assert payload["type"] == "EXPENSE"
    assert payload["user_id"] == alice.id
    assert payload["date"].startswith("2026-03-15T12:00:00")


@pytest.mark.parametrize(
    "body",
    [
        {"concept": "", "amount": 10, "type": "INCOME"},
        {"concept": "Zero", "amount": 0, "type": "INCOME"},
        {"concept": "Negative", "amount": -5, "type": "EXPENSE"},
        {"concept": "Transfer", "amount": 5, "type": "TRANSFER"},
    ],
)
def test_create_transaction_validation(api_client, make_user, body):
    alice = make_user("alice@example.com")
    resp = api_client.post("/api/v1/transactions", json=body, headers={"X-User-Email": alice.email})
    assert resp.status_code == 422


def test_user_cannot_create_for_someone_else(api_client, make_user):
    alice = make_user("alice@example.com")
    bob = make_user("bob@example.com")
    resp = api_client.post(
        "/api/v1/transactions",
        json={"concept": "Sneaky", "amount": 5, "type": "INCOME", "user_id": bob.id},
        headers={"X-User-Email": alice.email},
    )
    assert resp.status_code == 403


def test_admin_creates_for_another_user(api_client, make_user):
    admin = make_user("admin@example.com", role="ADMIN")
    alice = make_user("alice@example.com")
    resp = api_client.post(
        "/api/v1/transactions",
        params={"user_id": alice.id},
        json={"concept": "Bonus", "amount": 500, "type": "INCOME", "date": "2026-02-01T09:00:00Z"},
        headers={"X-User-Email": admin.email},
    )
    assert resp.status_code == 201
    assert resp.json()["user_id"] == alice.id
    assert resp.json()["date"].startswith("2026-02-01T09:00:00")


def test_delete_rules(api_client, make_user, add_txn, sqlite_session):
    admin = make_user("admin@example.com", role="ADMIN")
    alice = make_user("alice@example.com")
    bob = make_user("bob@example.com")
    alice_txn = add_txn(alice, 10, _utc(2026, 1, 1), "INCOME")
    bob_txn = add_txn(bob, 10, _utc(2026, 1, 1), "INCOME")
    alice_id, bob_id = alice_txn.id, bob_txn.id

    resp = api_client.delete(f"/api/v1/transactions/{bob_id}", headers={"X-User-Email": alice.email})
    assert resp.status_code == 403

    resp = api_client.delete(f"/api/v1/transactions/{alice_id}", headers={"X-User-Email": alice.email})
    assert resp.status_code == 204

    resp = api_client.delete(f"/api/v1/transactions/{bob_id}", headers={"X-User-Email": admin.email})
    assert resp.status_code == 204

    resp = api_client.delete("/api/v1/transactions/missing", headers={"X-User-Email": admin.email})
    assert resp.status_code == 404

    sqlite_session.expire_all()
    assert sqlite_session.query(Transaction).count() == 0


def test_created_transactions_feed_reports(api_client, make_user):
    admin = make_user("admin@example.com", role="ADMIN")
    headers = {"X-User-Email": admin.email}
    for concept, amount, txn_type, when in [
        ("Sale", 100, "INCOME", "2026-01-05T10:00:00Z"),
        ("Supplies", 40, "EXPENSE", "2026-01-06T10:00:00Z"),
    ]:
        resp = api_client.post(
            "/api/v1/transactions",
            json={"concept": concept, "amount": amount, "type": txn_type, "date": when},
            headers=headers,
        )
        assert resp.status_code == 201

    resp = api_client.get(
        "/api/v1/reports/financial-movements",
        params={"granularity": "week"},
        headers=headers,
    )
    assert resp.json()["series"] == [{"period": "2026-01-05", "income": 100, "expense": 40, "net": 60}]
