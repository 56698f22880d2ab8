"""Tests for the admin console"""
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from keyhub.core.security import SecurityUtils

pytestmark = pytest.mark.api


class TestAdminAuth:
    """Login and token checks"""

    def test_login_success(self, client: TestClient, admin_user):
        response = client.post(
            "/admin/login",
            json={"username": "operator", "password": "correct-horse-battery"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["role"] == "admin"
        assert SecurityUtils.verify_token(data["access_token"])["sub"] == "operator"

    def test_login_wrong_password(self, client: TestClient, admin_user):
        response = client.post("/admin/login", json={"username": "operator", "password": "wrong"})

        assert response.status_code == 401
        assert response.json()["message"] == "Incorrect username or password"

    def test_login_unknown_user(self, client: TestClient):
        response = client.post("/admin/login", json={"username": "nobody", "password": "x"})

        assert response.status_code == 401

    def test_me(self, client: TestClient, admin_headers: dict):
        response = client.get("/admin/me", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["username"] == "operator"

    def test_requires_token(self, client: TestClient):
        assert client.get("/admin/keys").status_code == 401

    def test_invalid_token(self, client: TestClient):
        response = client.get("/admin/keys", headers={"Authorization": "Bearer invalid_token"})

        assert response.status_code == 401

    def test_api_key_is_not_an_admin_token(self, client: TestClient, api_headers: dict):
        assert client.get("/admin/keys", headers=api_headers).status_code == 401


class TestAdminKeys:
    """Key management screens"""

    def test_paging(self, client: TestClient, admin_headers: dict, make_key, now):
        for index in range(12):
            make_key(f"K{index:02d}", created_at=now - timedelta(minutes=index))

        first = client.get("/admin/keys", headers=admin_headers).json()
        second = client.get("/admin/keys", params={"page": 2}, headers=admin_headers).json()

        assert first["totalPages"] == 2
        assert first["totalKeys"] == 12
        assert len(first["keys"]) == 10
        assert first["keys"][0]["key"] == "K00"
        assert second["currentPage"] == 2
        assert [key["key"] for key in second["keys"]] == ["K10", "K11"]

    def test_create_generates_key(self, client: TestClient, admin_headers: dict):
        response = client.post(
            "/admin/keys",
            json={"planType": "pro", "durationDays": 7, "username": "ada"},
            headers=admin_headers
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert len(data["key"]) == 36
        assert data["ownerProfile"]["username"] == "ada"
        assert data["expiresAt"] is not None

    def test_create_permanent(self, client: TestClient, admin_headers: dict):
        response = client.post(
            "/admin/keys",
            json={"key": "console-key", "planType": "pro", "isPermanent": True},
            headers=admin_headers
        )

        assert response.status_code == 201
        assert response.json()["data"]["isPermanent"] is True

    def test_toggle(self, client: TestClient, admin_headers: dict, make_key):
        make_key("K1", expires_at=datetime.utcnow() - timedelta(days=1), is_active=False)

        response = client.post("/admin/keys/K1/toggle", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Key activated", "isActive": True}

    def test_delete(self, client: TestClient, admin_headers: dict, make_key, store):
        make_key("K1")

        response = client.delete("/admin/keys/K1", headers=admin_headers)

        assert response.status_code == 200
        assert store.get("K1") is None
        assert client.delete("/admin/keys/K1", headers=admin_headers).status_code == 404

    def test_cleanup(self, client: TestClient, admin_headers: dict, make_key):
        make_key("old", expires_at=datetime.utcnow() - timedelta(hours=1))

        response = client.post("/admin/cleanup", headers=admin_headers)

        assert response.json()["deactivated"] == 1
