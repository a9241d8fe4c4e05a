"""Test suite for the administrative endpoints."""

import pytest


@pytest.mark.asyncio
@pytest.mark.parametrize("method,path,body", [
    ("GET", "/api/admin/rate-limit", None),
    ("POST", "/api/admin/rate-limit", {"rateLimit": 10}),
    ("GET", "/api/admin/stats", None),
    ("POST", "/api/admin/clear-data", {"dataType": "all"}),
    ("POST", "/api/admin/broadcast", {"message": "hello"}),
])
async def test_admin_requires_token(client, method, path, body):
    response = await client.request(method, path, json=body)
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized access"}

    response = await client.request(
        method, path, json=body, headers={"Authorization": "Bearer wrong"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_admin_disabled_without_configured_token(client, settings):
    settings.admin_token = ""
    response = await client.get(
        "/api/admin/rate-limit", headers={"Authorization": "Bearer "}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_get_and_set_rate_limit(client, admin_headers, rate_limiter):
    response = await client.get("/api/admin/rate-limit", headers=admin_headers)
    assert response.json() == {"rateLimit": 100}

    response = await client.post(
        "/api/admin/rate-limit", json={"rateLimit": 7}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "newRateLimit": 7}
    assert rate_limiter.limit == 7


@pytest.mark.asyncio
@pytest.mark.parametrize("value", [0, 1001, "ten"])
async def test_set_rate_limit_out_of_range(client, admin_headers, rate_limiter, value):
    response = await client.post(
        "/api/admin/rate-limit", json={"rateLimit": value}, headers=admin_headers
    )
    assert response.status_code == 400
    assert rate_limiter.limit == 100


@pytest.mark.asyncio
async def test_new_limit_applies_immediately(client, admin_headers):
    await client.post("/api/chats", json={"id": "c", "name": "c"})
    turn = {"chatId": "c", "messages": [{"role": "user", "content": "hi"}]}

    assert (await client.post("/api/chat", json=turn)).status_code == 200
    assert (await client.post("/api/chat", json=turn)).status_code == 200

    await client.post("/api/admin/rate-limit", json={"rateLimit": 2}, headers=admin_headers)
    assert (await client.post("/api/chat", json=turn)).status_code == 429


@pytest.mark.asyncio
async def test_stats(client, admin_headers):
    for chat_id in ("a", "b"):
        await client.post("/api/chats", json={"id": chat_id, "name": chat_id})
    await client.post(
        "/api/chat",
        json={"chatId": "a", "messages": [{"role": "user", "content": "hi"}]},
    )

    response = await client.get("/api/admin/stats", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {
        "totalChats": 2,
        "totalMessages": 2,
        "currentRateLimit": 100,
        "activeUsers": 1,
    }


@pytest.mark.asyncio
async def test_clear_chats(client, admin_headers, rate_limiter):
    await client.post("/api/chats", json={"id": "a", "name": "a"})
    await client.post(
        "/api/chat",
        json={"chatId": "a", "messages": [{"role": "user", "content": "hi"}]},
    )

    response = await client.post(
        "/api/admin/clear-data", json={"dataType": "chats"}, headers=admin_headers
    )
    assert response.json() == {"success": True, "message": "Successfully cleared chats"}
    assert (await client.get("/api/chats")).json() == []
    assert (await client.get("/api/chats/a/messages")).json() == []
    assert rate_limiter.entries


@pytest.mark.asyncio
async def test_clear_all_resets_limiter(client, admin_headers, rate_limiter):
    await client.post("/api/chats", json={"id": "a", "name": "a"})
    await client.post(
        "/api/chat",
        json={"chatId": "a", "messages": [{"role": "user", "content": "hi"}]},
    )

    response = await client.post(
        "/api/admin/clear-data", json={"dataType": "all"}, headers=admin_headers
    )
    assert response.json()["message"] == "Successfully cleared all data"
    assert rate_limiter.entries == {}


@pytest.mark.asyncio
async def test_clear_data_rejects_unknown_type(client, admin_headers):
    response = await client.post(
        "/api/admin/clear-data", json={"dataType": "users"}, headers=admin_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_broadcast_is_a_noop(client, admin_headers):
    response = await client.post(
        "/api/admin/broadcast",
        json={"message": "Maintenance at noon", "type": "info"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Broadcast sent", "recipients": 0}
