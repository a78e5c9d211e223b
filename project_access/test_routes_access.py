"""
project_access/test_routes_access.py

API tests for the project access endpoints.

Tests verify:
1. Every endpoint requires a valid session token
2. Role requirements per endpoint (viewer for members, manager for candidates)
3. Error kinds map to distinct status codes (403/400/422/402/404)
4. Revocation takes effect on the very next request

Run:
    pytest project_access/test_routes_access.py -v
"""

import time

import jwt
import pytest
from fastapi.testclient import TestClient

from project_access import routes_access
from project_access.auth_context import get_db
from project_access.config import ALGORITHM, SECRET_KEY
from project_access.conftest import add_project, add_user
from project_access.directory import DbUserDirectory
from project_access.errors import StorageError
from project_access.grants import find_grant
from project_access.main import app


def generate_test_token(user_id: str, org_id: str = None, expires_in: int = 3600) -> str:
    """Session token as issued by the identity provider."""
    payload = {
        "sub": user_id,
        "iat": int(time.time()),
        "exp": int(time.time()) + expires_in,
    }
    if org_id:
        payload["org_id"] = org_id
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def auth(user_id: str, org_id: str = None) -> dict:
    return {"Authorization": f"Bearer {generate_test_token(user_id, org_id)}"}


@pytest.fixture
def client(conn):
    """Test client bound to the in-memory database."""
    people = (("owner", "Olive"), ("mgr", "Max"), ("ed", "Eve"), ("viewer", "Vic"), ("cand", "Cal"))
    for day, (user_id, first) in enumerate(people, start=1):
        add_user(conn, user_id, organization_id="org1", first_name=first, created_at=f"2024-01-0{day}")
    add_project(conn, "p1", "owner", plan="pro", organization_id="org1")
    # "cand" has no subscription, so their project is on the free plan
    add_project(conn, "free1", "cand")

    app.dependency_overrides[get_db] = lambda: conn
    yield TestClient(app)
    app.dependency_overrides.clear()


def put_member(client, actor, user_id, role, project_id="p1"):
    return client.put(f"/api/projects/{project_id}/members/{user_id}", json={"role": role}, headers=auth(actor))


# ============================================================================
# Authentication
# ============================================================================

class TestAuthentication:

    def test_missing_token(self, client):
        response = client.get("/api/projects/p1/members")
        assert response.status_code in (401, 403)

    def test_invalid_token(self, client):
        response = client.get("/api/projects/p1/members", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    def test_expired_token(self, client):
        token = generate_test_token("owner", expires_in=-60)
        response = client.get("/api/projects/p1/members", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Token expired"

    def test_missing_token_does_not_reveal_project_existence(self, client):
        for project_id in ("p1", "nope"):
            assert client.delete(f"/api/projects/{project_id}/members/ed").status_code in (401, 403)
            response = client.put(f"/api/projects/{project_id}/members/ed", json={"role": "viewer"})
            assert response.status_code in (401, 403)
            assert response.json()["detail"] != "Project not found"

    def test_health_is_public(self, client):
        assert client.get("/health").json()["status"] == "ok"


# ============================================================================
# Grant / revoke
# ============================================================================

class TestGrantEndpoint:

    def test_owner_adds_member(self, client):
        response = put_member(client, "owner", "ed", "Editor")

        assert response.status_code == 200
        body = response.json()
        assert body["user_id"] == "ed"
        assert body["role"] == "editor"
        assert body["granted_by"] == "owner"
        assert body["user"]["name"] == "Eve"

    def test_unknown_project(self, client):
        response = put_member(client, "owner", "ed", "viewer", project_id="nope")
        assert response.status_code == 404
        assert response.json()["detail"] == "Project not found"

    def test_stranger_forbidden(self, client):
        assert put_member(client, "ed", "viewer", "viewer").status_code == 403

    def test_owner_target_is_bad_request(self, client):
        assert put_member(client, "owner", "owner", "viewer").status_code == 400

    def test_unknown_user_is_bad_request(self, client):
        response = put_member(client, "owner", "ghost", "viewer")
        assert response.status_code == 400
        assert response.json()["detail"] == "User not found"

    def test_owner_role_is_unprocessable(self, client):
        assert put_member(client, "owner", "ed", "owner").status_code == 422

    def test_quota_exceeded_prompts_upgrade(self, client):
        for user_id in ("mgr", "ed", "viewer"):
            assert put_member(client, "owner", user_id, "viewer").status_code == 200

        response = put_member(client, "owner", "cand", "viewer")
        assert response.status_code == 402
        assert "upgrade" in response.json()["detail"]

    def test_free_plan_prompts_upgrade(self, client):
        response = put_member(client, "cand", "ed", "viewer", project_id="free1")
        assert response.status_code == 402
        assert "upgrade" in response.json()["detail"]

    def test_manager_cannot_grant_manager(self, client):
        put_member(client, "owner", "mgr", "manager")
        assert put_member(client, "mgr", "ed", "manager").status_code == 403
        assert put_member(client, "mgr", "ed", "editor").status_code == 200


class TestRevokeEndpoint:

    def test_revoke_takes_effect_immediately(self, client):
        put_member(client, "owner", "ed", "editor")
        assert client.get("/api/projects/p1/members", headers=auth("ed")).status_code == 200

        response = client.delete("/api/projects/p1/members/ed", headers=auth("owner"))
        assert response.status_code == 204

        assert client.get("/api/projects/p1/members", headers=auth("ed")).status_code == 403
        assert client.get("/api/projects/accessible", headers=auth("ed")).json()["project_ids"] == []

    def test_revoke_twice_succeeds(self, client):
        put_member(client, "owner", "ed", "editor")
        assert client.delete("/api/projects/p1/members/ed", headers=auth("owner")).status_code == 204
        assert client.delete("/api/projects/p1/members/ed", headers=auth("owner")).status_code == 204

    def test_manager_cannot_remove_manager(self, client):
        put_member(client, "owner", "mgr", "manager")
        put_member(client, "owner", "cand", "manager")
        put_member(client, "owner", "viewer", "viewer")

        assert client.delete("/api/projects/p1/members/viewer", headers=auth("mgr")).status_code == 204
        response = client.delete("/api/projects/p1/members/cand", headers=auth("mgr"))
        assert response.status_code == 403

    def test_owner_cannot_be_removed(self, client):
        response = client.delete("/api/projects/p1/members/owner", headers=auth("owner"))
        assert response.status_code == 400


# ============================================================================
# Read endpoints
# ============================================================================

class TestReadEndpoints:

    def test_members_list(self, client):
        put_member(client, "owner", "mgr", "manager")
        put_member(client, "owner", "viewer", "viewer")

        response = client.get("/api/projects/p1/members", headers=auth("viewer"))

        assert response.status_code == 200
        body = response.json()
        assert body["owner"]["id"] == "owner"
        assert [(m["user_id"], m["role"]) for m in body["members"]] == [("mgr", "manager"), ("viewer", "viewer")]

    def test_members_forbidden_for_stranger(self, client):
        response = client.get("/api/projects/p1/members", headers=auth("cand"))
        assert response.status_code == 403
        assert response.json()["detail"] == "Access denied"

    def test_candidates_require_manager(self, client):
        put_member(client, "owner", "ed", "editor")
        assert client.get("/api/projects/p1/candidates", headers=auth("ed")).status_code == 403

        response = client.get("/api/projects/p1/candidates", headers=auth("owner", org_id="org1"))
        assert response.status_code == 200
        assert [c["id"] for c in response.json()["candidates"]] == ["mgr", "viewer", "cand"]

    def test_role_endpoint(self, client):
        put_member(client, "owner", "ed", "editor")

        body = client.get("/api/projects/p1/role", headers=auth("ed")).json()
        assert body == {
            "project_id": "p1",
            "role": "editor",
            "can_view": True,
            "can_edit": True,
            "can_manage_members": False,
            "can_delete_project": False,
        }
        assert client.get("/api/projects/p1/role", headers=auth("owner")).json()["can_delete_project"] is True

    def test_usage_endpoint(self, client):
        put_member(client, "owner", "ed", "editor")
        body = client.get("/api/projects/p1/usage", headers=auth("owner")).json()
        assert body == {"plan": "pro", "current": 1, "limit": 3, "allowed": True}

    def test_shared_and_accessible_projects(self, client):
        put_member(client, "owner", "ed", "viewer")

        assert client.get("/api/projects/shared", headers=auth("ed")).json()["project_ids"] == ["p1"]
        assert client.get("/api/projects/shared", headers=auth("owner")).json()["project_ids"] == []
        assert client.get("/api/projects/accessible", headers=auth("ed")).json()["project_ids"] == ["p1"]
        assert client.get("/api/projects/accessible", headers=auth("cand")).json()["project_ids"] == ["free1"]


# ============================================================================
# Storage errors
# ============================================================================

class DirectoryFailingAfterGrant(DbUserDirectory):
    """User lookups fail once the user holds a grant on p1."""

    def get_user(self, user_id):
        if find_grant(self.conn, "p1", user_id) is not None:
            raise StorageError("Failed to load users", operation="get_user")
        return super().get_user(user_id)


class TestStorageErrors:

    def test_members_directory_failure_is_unavailable(self, client, conn):
        conn.execute("DROP TABLE users")
        conn.commit()

        response = client.get("/api/projects/p1/members", headers=auth("owner"))
        assert response.status_code == 503

    def test_candidates_directory_failure_is_unavailable(self, client, conn):
        conn.execute("DROP TABLE users")
        conn.commit()

        response = client.get("/api/projects/p1/candidates", headers=auth("owner", org_id="org1"))
        assert response.status_code == 503

    def test_grant_directory_failure_writes_nothing(self, client, conn):
        conn.execute("DROP TABLE users")
        conn.commit()

        response = put_member(client, "owner", "ed", "viewer")
        assert response.status_code == 503
        assert find_grant(conn, "p1", "ed") is None

    def test_committed_grant_is_reported_as_success(self, client, conn, monkeypatch):
        monkeypatch.setattr(routes_access, "DbUserDirectory", DirectoryFailingAfterGrant)

        response = put_member(client, "owner", "ed", "editor")

        assert response.status_code == 200
        assert response.json()["user"]["name"] == "Eve"
        assert find_grant(conn, "p1", "ed").role.value == "editor"
