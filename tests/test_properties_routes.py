"""Route tests for /v1/properties."""

from datetime import datetime

from fastapi.testclient import TestClient

ADDRESS = {
    "address_line_1": "1 Market St",
    "locality": "San Francisco",
    "administrative_area": "CA",
    "postal_code": "94105",
}


def test_create_and_fetch_property(client: TestClient, auth_headers) -> None:
    response = client.post(
        "/v1/properties",
        json={"name": "HQ", "property_type": "office", "square_feet": 12000, **ADDRESS},
        headers=auth_headers(),
    )

    assert response.status_code == 201
    prop = response.json()["data"]
    assert prop["organization_id"] == "org-a"

    fetched = client.get(f"/v1/properties/{prop['id']}", headers=auth_headers())
    assert fetched.json()["data"]["square_feet"] == 12000


def test_address_is_required(client: TestClient, auth_headers) -> None:
    response = client.post("/v1/properties", json={"name": "Nowhere"}, headers=auth_headers())

    assert response.status_code == 400
    paths = {e["path"] for e in response.json()["details"]["errors"]}
    assert paths == {"address_line_1", "locality", "administrative_area", "postal_code"}


def test_numeric_bounds(client: TestClient, auth_headers) -> None:
    response = client.post(
        "/v1/properties",
        json={
            **ADDRESS,
            "latitude": 91,
            "square_feet": 0,
            "year_built": datetime.now().year + 6,
        },
        headers=auth_headers(),
    )

    assert response.status_code == 400
    paths = {e["path"] for e in response.json()["details"]["errors"]}
    assert paths == {"latitude", "square_feet", "year_built"}


def test_list_filters_by_type(client: TestClient, auth_headers) -> None:
    client.post("/v1/properties", json={"property_type": "land", **ADDRESS}, headers=auth_headers())
    client.post("/v1/properties", json={"property_type": "retail", **ADDRESS}, headers=auth_headers())

    response = client.get(
        "/v1/properties", params={"property_type": "land"}, headers=auth_headers()
    )

    data = response.json()["data"]
    assert [row["property_type"] for row in data] == ["land"]
    assert response.json()["pagination"]["total"] == 1


def test_update_and_delete_are_tenant_scoped(client: TestClient, auth_headers) -> None:
    prop = client.post("/v1/properties", json=ADDRESS, headers=auth_headers()).json()["data"]
    url = f"/v1/properties/{prop['id']}"

    assert client.patch(url, json={"name": "x"}, headers=auth_headers("bob")).status_code == 404
    assert client.delete(url, headers=auth_headers("bob")).status_code == 404

    updated = client.patch(url, json={"current_value": 250000}, headers=auth_headers())
    assert updated.json()["data"]["current_value"] == 250000
    assert client.delete(url, headers=auth_headers()).status_code == 200
    assert client.get(url, headers=auth_headers()).json()["error"] == "Property not found"


def test_malformed_id_is_rejected(client: TestClient, auth_headers) -> None:
    response = client.get("/v1/properties/123", headers=auth_headers())

    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


def test_malformed_owner_contact_id_is_rejected(client: TestClient, auth_headers) -> None:
    response = client.post(
        "/v1/properties",
        json={"name": "Loft", "owner_contact_id": "bob", **ADDRESS},
        headers=auth_headers(),
    )

    assert response.status_code == 400
    errors = response.json()["details"]["errors"]
    assert errors == [{"path": "owner_contact_id", "message": "Value error, must be a valid UUID"}]
