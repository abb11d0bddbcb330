"""
HTTP surface: /resources routes, error mapping and the SSE stream
"""
import json

import pytest

from app.core.broadcast import EVENT_UPDATE, get_broadcaster
from app.main import app
from conftest import RecordingBroadcaster


async def _create(client, type_id, quantity):
    r = await client.post("/resources", json={"resourceTypeId": type_id, "quantity": quantity})
    assert r.status_code == 201, r.text
    return r.json()["resource"]


@pytest.mark.asyncio
async def test_root(client):
    r = await client.get("/")
    assert r.status_code == 200
    assert r.json()["service"] == "resource-monitor"


@pytest.mark.asyncio
async def test_list_starts_empty(client):
    r = await client.get("/resources")
    assert r.status_code == 200
    assert r.json()["resources"] == []


@pytest.mark.asyncio
async def test_create_and_get(client, type_ids):
    resource = await _create(client, type_ids["Main Oxygen Tank"], 15000)

    assert resource["resourceTypeId"] == type_ids["Main Oxygen Tank"]
    assert resource["resourceData"]["category"] == "oxygen"
    assert resource["minimumLevel"] == 3000
    assert resource["criticalLevel"] == 5000
    assert resource["status"] == "normal"

    r = await client.get(f"/resources/{resource['id']}")
    assert r.status_code == 200
    assert r.json()["resource"] == resource


@pytest.mark.asyncio
async def test_create_errors(client, type_ids):
    food = type_ids["Food Rations"]
    await _create(client, food, 800)

    r = await client.post("/resources", json={"resourceTypeId": food, "quantity": 5})
    assert r.status_code == 409
    assert r.json()["error"] == "RESOURCE_ALREADY_EXISTS"

    r = await client.post("/resources", json={"quantity": 5})
    assert r.status_code == 400
    assert r.json()["error"] == "MISSING_FIELD"

    r = await client.post("/resources", json={"resourceTypeId": type_ids["Potable Water Reservoir"], "quantity": -1})
    assert r.status_code == 400
    assert r.json()["error"] == "INVALID_QUANTITY"

    r = await client.post("/resources", json={"resourceTypeId": 999, "quantity": 5})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_get_missing_resource(client):
    r = await client.get("/resources/4242")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_update_quantity_broadcasts(client, broadcaster, type_ids):
    oxygen = type_ids["Main Oxygen Tank"]
    resource = await _create(client, oxygen, 15000)

    r = await client.put(f"/resources/{resource['id']}/update-quantity", json={"quantity": 4000})

    assert r.status_code == 200
    assert r.json()["resource"]["quantity"] == 4000
    assert r.json()["resource"]["status"] == "critical"

    assert len(broadcaster.events) == 1
    event_name, data = broadcaster.events[0]
    assert event_name == EVENT_UPDATE
    assert [res["quantity"] for res in data["resources"]] == [4000]

    r = await client.get(f"/resources/{oxygen}/history", params={"limit": 1})
    assert r.json()["count"] == 1
    assert r.json()["history"][0]["stock"] == 4000
    assert r.json()["history"][0]["changeType"] == "decrease"


@pytest.mark.asyncio
async def test_update_quantity_errors(client, broadcaster, type_ids):
    resource = await _create(client, type_ids["Food Rations"], 800)

    r = await client.put(f"/resources/{resource['id']}/update-quantity", json={"quantity": -3})
    assert r.status_code == 400
    r = await client.put(f"/resources/{resource['id']}/update-quantity", json={})
    assert r.status_code == 400
    r = await client.put("/resources/999/update-quantity", json={"quantity": 3})
    assert r.status_code == 404
    assert r.json()["error"] == "RESOURCE_NOT_FOUND"

    assert broadcaster.events == []


@pytest.mark.asyncio
async def test_malformed_quantity_is_invalid_input(client, broadcaster, type_ids):
    resource = await _create(client, type_ids["Potable Water Reservoir"], 5000)

    for bad in ("abc", 12.5):
        r = await client.put(f"/resources/{resource['id']}/update-quantity", json={"quantity": bad})
        assert r.status_code == 400
        assert r.json()["error"] == "INVALID_INPUT"
        assert "quantity" in r.json()["detail"]

    r = await client.post("/resources", json={"resourceTypeId": "oxygen", "quantity": 10})
    assert r.status_code == 400
    assert r.json()["error"] == "INVALID_INPUT"

    assert broadcaster.events == []


@pytest.mark.asyncio
async def test_update_survives_failed_relisting(client, broadcaster, type_ids, monkeypatch):
    from sqlalchemy.exc import OperationalError

    from app.db import resource_ops

    resource = await _create(client, type_ids["Spare Parts Inventory"], 120)

    async def broken_list_all(db):
        raise OperationalError("SELECT resources", {}, Exception("connection reset"))

    monkeypatch.setattr(resource_ops, "list_all", broken_list_all)
    r = await client.put(f"/resources/{resource['id']}/update-quantity", json={"quantity": 30})

    assert r.status_code == 200
    assert r.json()["resource"]["quantity"] == 30
    assert r.json()["resource"]["status"] == "low"
    assert broadcaster.events == []

    monkeypatch.undo()
    r = await client.get(f"/resources/{resource['id']}")
    assert r.json()["resource"]["quantity"] == 30


@pytest.mark.asyncio
async def test_category_and_alerts(client, type_ids):
    await _create(client, type_ids["Main Oxygen Tank"], 4500)
    await _create(client, type_ids["Food Rations"], 800)

    r = await client.get("/resources/category/oxygen")
    assert r.status_code == 200
    assert len(r.json()["resources"]) == 1

    r = await client.get("/resources/category/fuel")
    assert r.status_code == 400
    assert r.json()["error"] == "INVALID_CATEGORY"

    r = await client.get("/resources/alerts")
    assert r.status_code == 200
    assert r.json()["count"] == 1
    assert r.json()["resources"][0]["resourceData"]["name"] == "Main Oxygen Tank"


@pytest.mark.asyncio
async def test_catalog(client):
    r = await client.get("/resources/data")
    assert r.status_code == 200
    assert r.json()["count"] == 5
    assert {"id", "name", "category"} <= set(r.json()["data"][0])


@pytest.mark.asyncio
async def test_history_and_stats(client, type_ids):
    water = type_ids["Potable Water Reservoir"]
    resource = await _create(client, water, 1000)
    await client.put(f"/resources/{resource['id']}/update-quantity", json={"quantity": 1200})

    r = await client.get("/resources/history/recent")
    assert r.status_code == 200
    assert r.json()["count"] == 1
    assert r.json()["timeRange"] == "60 minutes"

    r = await client.get(f"/resources/{water}/stats")
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["resourceData"]["name"] == "Potable Water Reservoir"
    assert data["stats"]["totalRecords"] == 1
    assert data["stats"]["current"] == 1200
    assert data["stats"]["trend"] == "stable"

    assert (await client.get("/resources/999/stats")).status_code == 404
    assert (await client.get("/resources/999/history")).status_code == 404


@pytest.mark.asyncio
async def test_stream_sends_initial_state_then_updates(client, type_ids):
    await _create(client, type_ids["Food Rations"], 800)
    update = {"resources": [], "count": 0, "timestamp": "2026-10-17T12:00:00+00:00"}
    app.dependency_overrides[get_broadcaster] = lambda: RecordingBroadcaster(queued=[(EVENT_UPDATE, update)])

    r = await client.get("/resources/stream")

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/event-stream")
    events = [block for block in r.text.split("\n\n") if block.startswith("event:")]
    names = [block.splitlines()[0].removeprefix("event: ") for block in events]
    assert names == ["welcome", "resources:initial", "resources:update"]

    initial = json.loads(events[1].splitlines()[1].removeprefix("data: "))
    assert initial["count"] == 1
    assert initial["resources"][0]["resourceData"]["name"] == "Food Rations"


class _DownRedis:
    async def ping(self):
        raise ConnectionError("redis down")


@pytest.mark.asyncio
async def test_health_reports_degraded_dependency(client, monkeypatch):
    from app.api import health

    monkeypatch.setattr(health, "get_redis", lambda: _DownRedis())
    r = await client.get("/health")

    assert r.status_code == 503
    body = r.json()
    assert body["status"] == "degraded"
    assert body["dependencies"]["database"] == "ok"
    assert body["dependencies"]["redis"].startswith("error")
