"""HTTP-level tests for error mapping (no database needed)."""

from httpx import AsyncClient


async def test_health(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


async def test_protected_route_without_token(client: AsyncClient) -> None:
    resp = await client.get("/api/v1/deals")
    assert resp.status_code == 401


async def test_validation_error_maps_to_400(client: AsyncClient) -> None:
    resp = await client.post("/api/v1/auth/refresh", json={})
    body = resp.json()
    assert resp.status_code == 400
    assert body["code"] == 9003
    assert "refresh_token" in body["message"]
    assert body["data"] is None


async def test_bad_refresh_token_uses_app_error_envelope(client: AsyncClient) -> None:
    resp = await client.post("/api/v1/auth/refresh", json={"refresh_token": "garbage"})
    body = resp.json()
    assert resp.status_code == 401
    assert body["code"] == 1005
