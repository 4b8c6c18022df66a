import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from koloa.app.db.models.models_v1 import User
from koloa.services.auth import hash_pin


def test_create_user(client, admin_headers, db_session):
    res = client.post("/api/users", json={"name": " Bea ", "code": "5678", "role": "user"}, headers=admin_headers)

    assert res.status_code == 201, res.text
    body = res.json()
    assert body["name"] == "Bea"
    assert body["role"] == "user"
    assert body["blocked"] is False
    assert body["orderCount"] == 0
    assert db_session.get(User, body["id"]).pin_hash == hash_pin("5678")


def test_create_user_rejects_bad_or_taken_code(client, admin_headers):
    bad = client.post("/api/users", json={"name": "Bea", "code": "56"}, headers=admin_headers)
    assert bad.status_code == 400
    assert bad.json() == {"error": "Code must be exactly 4 digits"}

    taken = client.post("/api/users", json={"name": "Bea", "code": "0000"}, headers=admin_headers)
    assert taken.status_code == 400
    assert taken.json() == {"error": "A user with that code already exists"}


def test_list_users_with_order_counts(client, admin_headers, staff, make_item, make_order):
    item = make_item()
    make_order(staff, [(item, 1)])
    make_order(staff, [(item, 2)])

    res = client.get("/api/users", headers=admin_headers)

    assert res.status_code == 200
    counts = {u["name"]: u["orderCount"] for u in res.json()}
    assert counts == {"Ana": 2, "Administrador": 0}


def test_unblock_resets_failed_attempts(client, admin_headers, make_user, db_session):
    user = make_user(name="Bea", code="4321", blocked=True, failed_attempts=5)

    res = client.put(f"/api/users/{user.id}", json={"blocked": False}, headers=admin_headers)

    assert res.status_code == 200, res.text
    assert res.json()["blocked"] is False
    assert res.json()["failedAttempts"] == 0
    assert client.post("/api/auth/login", json={"code": "4321"}).status_code == 200


def test_update_user_code_and_role(client, admin_headers, staff, db_session):
    res = client.put(
        f"/api/users/{staff.id}",
        json={"code": "2468", "role": "admin", "name": "Ana Maria"},
        headers=admin_headers,
    )

    assert res.status_code == 200, res.text
    assert res.json()["role"] == "admin"
    assert res.json()["name"] == "Ana Maria"
    db_session.refresh(staff)
    assert staff.pin_hash == hash_pin("2468")


def test_update_unknown_user(client, admin_headers):
    res = client.put("/api/users/999", json={"name": "X"}, headers=admin_headers)

    assert res.status_code == 404
    assert res.json() == {"error": "User not found"}


def test_delete_user(client, admin_headers, make_user, db_session):
    user_id = make_user(name="Bea", code="4321").id

    res = client.delete(f"/api/users/{user_id}", headers=admin_headers)

    assert res.status_code == 200
    db_session.expire_all()
    assert db_session.get(User, user_id) is None


def test_failed_commit_rolls_back_user_writes(client, admin_headers, make_user, db_session, break_commits):
    user_id = make_user(name="Bea", code="4321").id
    rollbacks = break_commits()

    with pytest.raises(OperationalError):
        client.post("/api/users", json={"name": "Caro", "code": "5678", "role": "user"}, headers=admin_headers)
    with pytest.raises(OperationalError):
        client.put(f"/api/users/{user_id}", json={"name": "Beatriz"}, headers=admin_headers)
    with pytest.raises(OperationalError):
        client.delete(f"/api/users/{user_id}", headers=admin_headers)

    assert len(rollbacks) == 3
    db_session.expire_all()
    assert db_session.execute(select(func.count(User.id))).scalar() == 2
    assert db_session.get(User, user_id).name == "Bea"


def test_cannot_delete_yourself(client, admin, admin_headers):
    res = client.delete(f"/api/users/{admin.id}", headers=admin_headers)

    assert res.status_code == 400
    assert res.json() == {"error": "You cannot delete yourself"}


def test_cannot_delete_user_with_orders(client, admin_headers, staff, make_item, make_order):
    make_order(staff, [(make_item(), 1)])

    res = client.delete(f"/api/users/{staff.id}", headers=admin_headers)

    assert res.status_code == 400
    assert res.json() == {"error": "User owns orders and cannot be deleted"}


def test_system_stats(client, admin_headers, staff, make_item, make_order):
    make_item(name="A", stock=0)
    make_item(name="B", stock=2, min_stock=5)
    ok = make_item(name="C", stock=9, min_stock=1)
    make_order(staff, [(ok, 1)])

    res = client.get("/api/users/stats", headers=admin_headers)

    assert res.status_code == 200
    assert res.json() == {
        "users": {"total": 2, "admins": 1, "blocked": 0},
        "products": {"total": 3, "lowStock": 1, "outOfStock": 1},
        "orders": {"total": 1},
    }
