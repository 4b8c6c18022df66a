import pytest

from koloa.app.api.deps import get_policy
from koloa.app.db.models.core_types import Role
from koloa.app.main import app
from koloa.services.policy import ANY, PermissionPolicy

FORBIDDEN = {"error": "You do not have permission to perform this action"}


@pytest.mark.parametrize(
    "role, action, resource, allowed",
    [
        (Role.admin, "delete", "users", True),
        (Role.admin, "read", "export", True),
        (Role.user, "read", "inventory", True),
        (Role.user, "delete", "inventory", True),
        (Role.user, "create", "orders", True),
        (Role.user, "receive", "orders", True),
        (Role.user, "delete", "orders", False),
        (Role.user, "read", "users", False),
        (Role.user, "read", "logs", False),
        (Role.user, "read", "export", False),
    ],
)
def test_default_policy(role, action, resource, allowed):
    assert PermissionPolicy().allows(role, action, resource) is allowed


def test_policy_wildcards():
    policy = PermissionPolicy({Role.user: {(ANY, "read")}})

    assert policy.allows(Role.user, "read", "logs")
    assert not policy.allows(Role.user, "create", "orders")
    assert not policy.allows(Role.admin, "read", "logs")


@pytest.mark.parametrize(
    "method, url",
    [
        ("get", "/api/users"),
        ("get", "/api/users/stats"),
        ("get", "/api/logs"),
        ("get", "/api/logs/stats"),
        ("delete", "/api/logs/cleanup"),
        ("get", "/api/export/inventory"),
        ("get", "/api/export/orders"),
        ("get", "/api/export/inventory-pdf"),
    ],
)
def test_admin_only_routes_forbidden_to_users(client, user_headers, method, url):
    res = getattr(client, method)(url, headers=user_headers)

    assert res.status_code == 403
    assert res.json() == FORBIDDEN


def test_policy_is_injected(client, user_headers):
    app.dependency_overrides[get_policy] = lambda: PermissionPolicy({Role.user: set()})

    res = client.get("/api/inventory", headers=user_headers)

    assert res.status_code == 403
    assert res.json() == FORBIDDEN


def test_health_needs_no_token(client):
    res = client.get("/api/health")

    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


def test_unknown_route_uses_error_body(client):
    res = client.get("/api/nowhere")

    assert res.status_code == 404
    assert res.json() == {"error": "Not Found"}
