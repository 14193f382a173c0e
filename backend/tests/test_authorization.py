"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Staff role is denied admin operations (403)
- Staff role can run the register (catalog reads, cart, single sales, events)
- Admin role can perform privileged operations
"""

import pytest


def _headers(token):
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/admin/users"),
            ("GET", "/api/products"),
            ("GET", "/api/service-catalog"),
            ("POST", "/api/cart"),
            ("GET", "/api/sales"),
            ("GET", "/api/inventory/overview"),
            ("GET", "/api/finance/records"),
            ("GET", "/api/metrics/products"),
            ("GET", "/api/events"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_bad_token(self, client, db_session):
        resp = client.get("/api/products", headers=_headers("not-a-token"))
        assert resp.status_code == 401


# =============================================================================
# STAFF DENIED ADMIN OPERATIONS - 403
# =============================================================================


class TestStaffDeniedAdmin:
    """Staff role cannot reach the back office."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/admin/users"),
            ("POST", "/api/admin/users"),
            ("POST", "/api/products"),
            ("PUT", "/api/products/1"),
            ("DELETE", "/api/products/1"),
            ("POST", "/api/service-catalog"),
            ("DELETE", "/api/service-catalog/1"),
            ("GET", "/api/inventory/overview"),
            ("POST", "/api/inventory/restock"),
            ("POST", "/api/inventory/adjust"),
            ("POST", "/api/inventory/bulk-restock"),
            ("GET", "/api/inventory/restocks/1"),
            ("DELETE", "/api/sales/1"),
            ("DELETE", "/api/sales/transactions/1"),
            ("GET", "/api/finance/records"),
            ("POST", "/api/finance/expenses"),
            ("POST", "/api/finance/income"),
            ("GET", "/api/finance/summary"),
            ("GET", "/api/metrics/products"),
            ("GET", "/api/metrics/services"),
            ("GET", "/api/metrics/export"),
        ],
    )
    def test_admin_only(self, client, staff_headers, method, path):
        resp = getattr(client, method.lower())(path, headers=staff_headers, json={})
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"
        assert resp.json["required_roles"] == ["admin"]


# =============================================================================
# STAFF ALLOWED REGISTER OPERATIONS
# =============================================================================


class TestStaffRegisterAccess:

    def test_browse_catalog(self, client, staff_headers, serum, facial):
        resp = client.get("/api/products", headers=staff_headers)
        assert resp.status_code == 200
        assert resp.json["count"] == 1

        resp = client.get("/api/service-catalog?include_inactive=false", headers=staff_headers)
        assert resp.status_code == 200
        assert [s["name"] for s in resp.json["items"]] == ["Signature Facial"]

    def test_open_cart(self, client, staff_headers):
        resp = client.post("/api/cart", headers=staff_headers)
        assert resp.status_code == 200
        assert resp.json["lines"] == []

    def test_single_sale(self, client, staff_headers, serum):
        resp = client.post("/api/sales", headers=staff_headers, json={"product_id": serum.id, "quantity": 1})
        assert resp.status_code == 201
        assert resp.json["total_cents"] == 4800

    def test_events_feed(self, client, staff_headers):
        resp = client.get("/api/events", headers=staff_headers)
        assert resp.status_code == 200


# =============================================================================
# ADMIN ACCESS
# =============================================================================


class TestAdminAccess:

    def test_list_users(self, client, admin_headers, staff_user):
        resp = client.get("/api/admin/users", headers=admin_headers)
        assert resp.status_code == 200
        assert {u["username"] for u in resp.json["users"]} == {"admin", "staff"}

    def test_create_user(self, client, admin_headers):
        resp = client.post("/api/admin/users", headers=admin_headers, json={
            "username": "esthetician",
            "email": "esti@spa.local",
            "password": "Glow!ing2025",
            "name": "Kim",
        })
        assert resp.status_code == 201
        assert resp.json["user"]["role"] == "staff"

    def test_create_user_weak_password(self, client, admin_headers):
        resp = client.post("/api/admin/users", headers=admin_headers, json={
            "username": "weak",
            "email": "weak@spa.local",
            "password": "password",
        })
        assert resp.status_code == 400

    def test_create_duplicate_user(self, client, admin_headers, staff_user):
        resp = client.post("/api/admin/users", headers=admin_headers, json={
            "username": "staff",
            "email": "other@spa.local",
            "password": "Glow!ing2025",
        })
        assert resp.status_code == 409

    def test_deactivate_revokes_sessions(self, client, login, admin_headers, staff_user):
        staff_token = login("staff")

        resp = client.post(f"/api/admin/users/{staff_user.id}/deactivate", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["sessions_revoked"] == 1

        assert client.get("/api/products", headers=_headers(staff_token)).status_code == 401
        assert login("staff") is None

        resp = client.post(f"/api/admin/users/{staff_user.id}/deactivate", headers=admin_headers)
        assert resp.status_code == 400

        resp = client.post(f"/api/admin/users/{staff_user.id}/reactivate", headers=admin_headers)
        assert resp.status_code == 200
        assert login("staff") is not None

    def test_cannot_deactivate_self(self, client, admin_headers, admin_user):
        resp = client.post(f"/api/admin/users/{admin_user.id}/deactivate", headers=admin_headers)
        assert resp.status_code == 400

    def test_deactivate_unknown_user(self, client, admin_headers):
        resp = client.post("/api/admin/users/9999/deactivate", headers=admin_headers)
        assert resp.status_code == 404
