import pytest


@pytest.mark.asyncio
async def test_healthcheck(client):
    response = await client.get("/api/v1/healthcheck")

    assert response.status_code == 200
    assert response.json()["message"] == "Health check passed"
    assert response.json()["success"] is True


@pytest.mark.asyncio
async def test_root_reports_service(client):
    response = await client.get("/")

    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client):
    response = await client.get("/api/v1/nowhere")

    body = response.json()
    assert response.status_code == 404
    assert body["message"] == "Route /api/v1/nowhere not found"
    assert body["statusText"] == "Not Found"
    assert body["data"] is None
