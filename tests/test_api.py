import base64
from pathlib import Path

import pytest

from qrlinks.errors import StorageUnavailable
from qrlinks.qr_utils import QrStorage, generate_qr_png

BASE_URL = "http://short.test"


async def create_link(client, user, url="https://example.com/page"):
    response = await client.post("/api/links", json={"original_url": url}, headers=user["headers"])
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_health(async_client):
    response = await async_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_create_link(async_client, alice):
    link = await create_link(async_client, alice)
    assert link["original_url"] == "https://example.com/page"
    assert 1 <= len(link["shortened_code"]) <= 20
    assert link["complete_shortened_url"] == f"{BASE_URL}/r/{link['shortened_code']}"
    assert link["user_id"] == alice["user_id"]
    assert link["clicks"] == 0
    assert Path(link["qr_code_path"]).exists()


@pytest.mark.asyncio
async def test_create_link_ignores_client_user_id(async_client, alice, bob):
    response = await async_client.post(
        "/api/links",
        json={"original_url": "https://example.com", "user_id": bob["user_id"]},
        headers=alice["headers"],
    )
    assert response.status_code == 201
    assert response.json()["user_id"] == alice["user_id"]


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{}, {"original_url": ""}, {"original_url": "   "}, {"original_url": "x" * 2049}])
async def test_create_link_invalid(async_client, alice, body):
    response = await async_client.post("/api/links", json=body, headers=alice["headers"])
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_links_require_token(async_client):
    response = await async_client.get("/api/links")
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"

    response = await async_client.post("/api/links", json={"original_url": "https://example.com"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_invalid_token(async_client):
    response = await async_client.get("/api/links", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_only_own_links(async_client, alice, bob):
    first = await create_link(async_client, alice, "https://example.com/1")
    second = await create_link(async_client, alice, "https://example.com/2")
    await create_link(async_client, bob, "https://example.com/bob")

    response = await async_client.get("/api/links", headers=alice["headers"])
    assert response.status_code == 200
    assert [l["shortened_code"] for l in response.json()] == [first["shortened_code"], second["shortened_code"]]


@pytest.mark.asyncio
async def test_list_empty(async_client, alice):
    response = await async_client.get("/api/links", headers=alice["headers"])
    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_get_link_with_qr(async_client, alice):
    link = await create_link(async_client, alice)
    response = await async_client.get(f"/api/links/{link['shortened_code']}", headers=alice["headers"])
    assert response.status_code == 200
    body = response.json()
    assert body["original_url"] == link["original_url"]
    assert base64.b64decode(body["qr_code_base64"])[:4] == b"\x89PNG"


@pytest.mark.asyncio
async def test_get_link_not_found(async_client, alice):
    response = await async_client.get("/api/links/nonexistent", headers=alice["headers"])
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
async def test_not_owner_is_forbidden(async_client, alice, bob, method):
    link = await create_link(async_client, alice)
    kwargs = {"json": {"original_url": "https://evil.example"}} if method == "PUT" else {}
    response = await async_client.request(
        method, f"/api/links/{link['shortened_code']}", headers=bob["headers"], **kwargs
    )
    assert response.status_code == 403

    # still intact
    response = await async_client.get(f"/api/links/{link['shortened_code']}", headers=alice["headers"])
    assert response.json()["original_url"] == "https://example.com/page"


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
async def test_missing_link_is_not_found_before_forbidden(async_client, bob, method):
    kwargs = {"json": {"original_url": "https://example.com"}} if method == "PUT" else {}
    response = await async_client.request(method, "/api/links/nonexistent", headers=bob["headers"], **kwargs)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_link(async_client, alice):
    link = await create_link(async_client, alice, "https://example.com/old")
    response = await async_client.put(
        f"/api/links/{link['shortened_code']}",
        json={"original_url": "https://example.com/new"},
        headers=alice["headers"],
    )
    assert response.status_code == 200
    updated = response.json()
    assert updated["shortened_code"] == link["shortened_code"]
    assert updated["complete_shortened_url"] == link["complete_shortened_url"]
    assert updated["original_url"] == "https://example.com/new"
    assert updated["qr_code_path"] != link["qr_code_path"]
    assert Path(updated["qr_code_path"]).read_bytes() == generate_qr_png("https://example.com/new")
    assert not Path(link["qr_code_path"]).exists()


@pytest.mark.asyncio
async def test_update_sets_expiry(async_client, alice):
    link = await create_link(async_client, alice)
    response = await async_client.put(
        f"/api/links/{link['shortened_code']}",
        json={"original_url": "https://example.com/page", "expires_at": "2030-01-01T00:00:00Z"},
        headers=alice["headers"],
    )
    assert response.status_code == 200
    assert response.json()["expires_at"].startswith("2030-01-01")


@pytest.mark.asyncio
async def test_delete_link(async_client, alice):
    link = await create_link(async_client, alice)
    code = link["shortened_code"]

    response = await async_client.delete(f"/api/links/{code}", headers=alice["headers"])
    assert response.status_code == 204
    assert not Path(link["qr_code_path"]).exists()

    response = await async_client.delete(f"/api/links/{code}", headers=alice["headers"])
    assert response.status_code == 404
    response = await async_client.get(f"/r/{code}", follow_redirects=False)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_not_owner_is_forbidden_before_qr_is_read(async_client, alice, bob, mocker):
    link = await create_link(async_client, alice)
    read = mocker.patch.object(QrStorage, "read_base64", side_effect=StorageUnavailable())

    response = await async_client.get(f"/api/links/{link['shortened_code']}", headers=bob["headers"])
    assert response.status_code == 403
    read.assert_not_called()
