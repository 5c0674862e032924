"""Route tests for /v1/admin (super-admin tooling)."""

from fastapi.testclient import TestClient

from crm_api.adapters.store.in_memory import InMemoryDataStore


def test_regular_user_is_forbidden(client: TestClient, auth_headers) -> None:
    response = client.get("/v1/admin/stats", headers=auth_headers("alice"))

    assert response.status_code == 403
    assert response.json()["error"] == "Unauthorized: Super admin access required"


def test_anonymous_is_unauthorized(client: TestClient) -> None:
    assert client.get("/v1/admin/stats").status_code == 401


def test_system_stats(client: TestClient, auth_headers, store: InMemoryDataStore) -> None:
    store.seed("contacts", {"organization_id": "org-b", "first_name": "x"})

    response = client.get("/v1/admin/stats", headers=auth_headers("admin"))

    assert response.status_code == 200
    stats = response.json()["data"]
    assert stats["organizations"] == 2
    assert stats["users"] == 4
    assert stats["super_admins"] == 1
    assert stats["contacts"] == 1


def test_list_organizations_paginates(client: TestClient, auth_headers) -> None:
    response = client.get(
        "/v1/admin/organizations", params={"limit": 1}, headers=auth_headers("admin")
    )

    body = response.json()
    assert len(body["data"]) == 1
    assert body["pagination"] == {"page": 1, "limit": 1, "total": 2, "totalPages": 2}


def test_search_organizations(client: TestClient, auth_headers) -> None:
    response = client.get(
        "/v1/admin/organizations/search", params={"q": "borea"}, headers=auth_headers("admin")
    )

    assert response.status_code == 200
    assert [org["id"] for org in response.json()["data"]] == ["org-b"]


def test_search_requires_query(client: TestClient, auth_headers) -> None:
    response = client.get("/v1/admin/organizations/search", headers=auth_headers("admin"))

    assert response.status_code == 400
    assert response.json()["error"].startswith("Query parameter validation error: q:")


def test_organization_detail_includes_counts(
    client: TestClient, auth_headers, store: InMemoryDataStore
) -> None:
    store.seed("properties", {"organization_id": "org-a", "name": "HQ"})

    response = client.get("/v1/admin/organizations/org-a", headers=auth_headers("admin"))

    data = response.json()["data"]
    assert data["name"] == "Acme Realty"
    assert data["stats"] == {
        "contacts": 0,
        "properties": 1,
        "activities": 0,
        "gbp_profiles": 0,
        "users": 2,
    }


def test_unknown_organization_is_404(client: TestClient, auth_headers) -> None:
    response = client.get("/v1/admin/organizations/nope", headers=auth_headers("admin"))

    assert response.status_code == 404


def test_list_users(client: TestClient, auth_headers) -> None:
    response = client.get("/v1/admin/users", headers=auth_headers("admin"))

    assert response.json()["pagination"]["total"] == 4


def test_grant_and_revoke_super_admin(
    client: TestClient, auth_headers, store: InMemoryDataStore
) -> None:
    granted = client.post("/v1/admin/users/user-bob/super-admin", headers=auth_headers("admin"))
    assert granted.status_code == 200
    assert store.get_user_row("user-bob")["is_super_admin"] is True

    # Bob can now reach admin routes
    assert client.get("/v1/admin/stats", headers=auth_headers("bob")).status_code == 200

    revoked = client.delete("/v1/admin/users/user-bob/super-admin", headers=auth_headers("admin"))
    assert revoked.status_code == 200
    assert store.get_user_row("user-bob")["is_super_admin"] is False


def test_cannot_revoke_yourself(client: TestClient, auth_headers, store: InMemoryDataStore) -> None:
    response = client.delete("/v1/admin/users/user-admin/super-admin", headers=auth_headers("admin"))

    assert response.status_code == 400
    assert response.json()["error"] == "Cannot revoke your own super admin access"
    assert store.get_user_row("user-admin")["is_super_admin"] is True


def test_admin_tier_limits_per_user(client: TestClient, auth_headers) -> None:
    for n in range(30):
        headers = auth_headers("admin", **{"X-Real-IP": f"10.2.0.{n}"})
        assert client.get("/v1/admin/stats", headers=headers).status_code == 200

    response = client.get(
        "/v1/admin/stats", headers=auth_headers("admin", **{"X-Real-IP": "10.2.1.1"})
    )

    assert response.status_code == 429
    assert response.json()["error"] == "User rate limit exceeded"
