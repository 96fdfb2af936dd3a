import re

SODO_ACCIDENT = {
    "origin": "SoDo",
    "targets": ["SoDo", "Downtown"],
    "category": "accident",
    "impactScore": 0.87,
    "urgency": "urgent",
    "requestedActions": ["Reroute freight"],
}


def test_health_counts_relays(client):
    assert client.get("/health").json() == {"ok": True, "relays": 0}
    client.post("/relay", json=SODO_ACCIDENT)
    assert client.get("/health").json() == {"ok": True, "relays": 1}


def test_create_relay_fills_defaults(client):
    resp = client.post("/relay", json={"origin": "Ballard"})
    assert resp.status_code == 201
    packet = resp.json()
    assert re.fullmatch(r"relay_[A-Za-z0-9_-]{6}", packet["id"])
    assert packet["targets"] == []
    assert packet["category"] == "general"
    assert packet["impactScore"] == 0.0
    assert packet["urgency"] == "normal"
    assert packet["window"] == "now"
    assert packet["requestedActions"] == []
    assert packet["status"] == "detected"
    assert packet["createdAt"] == packet["updatedAt"]
    assert packet["createdAt"].endswith("Z")
    assert "notes" not in packet


def test_create_requires_origin(client):
    assert client.post("/relay", json={"category": "accident"}).status_code == 422


def test_post_same_id_replaces(client):
    client.post("/relay", json={**SODO_ACCIDENT, "id": "fire-1", "notes": "first"})
    client.post("/relay", json={**SODO_ACCIDENT, "id": "fire-1", "notes": "second"})
    relays = client.get("/relay").json()
    assert [r["notes"] for r in relays] == ["second"]


def test_patch_updates_status_and_keeps_notes(client):
    created = client.post("/relay", json={**SODO_ACCIDENT, "notes": "crash"}).json()
    resp = client.patch(f"/relay/{created['id']}", json={"status": "acknowledged"})
    assert resp.status_code == 200
    updated = resp.json()
    assert updated["status"] == "acknowledged"
    assert updated["notes"] == "crash"
    assert updated["createdAt"] == created["createdAt"]



def test_noaa_alert_ids_are_addressable(client):
    relay_id = "noaa-urn:oid:2.49.0.1.840.0.abc.001.1"
    client.post("/relay", json={**SODO_ACCIDENT, "id": relay_id})
    resp = client.patch(f"/relay/{relay_id}", json={"status": "resolved"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "resolved"
    assert client.delete(f"/relay/{relay_id}").status_code == 204

def test_patch_unknown_is_not_found(client):
    resp = client.patch("/relay/nope", json={"status": "resolved"})
    assert resp.status_code == 404
    assert resp.json() == {"error": "not_found"}


def test_patch_rejects_unknown_status(client):
    created = client.post("/relay", json=SODO_ACCIDENT).json()
    assert client.patch(f"/relay/{created['id']}", json={"status": "done"}).status_code == 422


def test_delete(client):
    created = client.post("/relay", json=SODO_ACCIDENT).json()
    assert client.delete(f"/relay/{created['id']}").status_code == 204
    assert client.get("/relay").json() == []
    resp = client.delete(f"/relay/{created['id']}")
    assert resp.status_code == 404
    assert resp.json() == {"error": "not_found"}


def test_seed_installs_demo_packet(client):
    assert client.post("/seed").json() == {"ok": True, "count": 1}
    relays = client.get("/relay").json()
    assert len(relays) == 1
    demo = relays[0]
    assert demo["id"] == "relay_sodo_demo"
    assert demo["status"] == "queued"
    assert demo["urgency"] == "urgent"
    assert demo["impactScore"] == 0.87


def test_websocket_snapshot_then_events(client):
    client.post("/relay", json={**SODO_ACCIDENT, "id": "existing"})
    with client.websocket_connect("/ws") as ws:
        snapshot = ws.receive_json()
        assert snapshot["type"] == "snapshot"
        assert [p["id"] for p in snapshot["data"]] == ["existing"]

        client.post("/relay", json={**SODO_ACCIDENT, "id": "new-one"})
        created = ws.receive_json()
        assert created["type"] == "relay.created"
        assert created["data"]["id"] == "new-one"

        client.patch("/relay/new-one", json={"status": "in_action"})
        updated = ws.receive_json()
        assert updated["type"] == "relay.updated"
        assert updated["data"]["status"] == "in_action"

        client.delete("/relay/existing")
        deleted = ws.receive_json()
        assert deleted == {"type": "relay.deleted", "data": snapshot["data"][0]}

        client.post("/seed")
        seeded = ws.receive_json()
        assert seeded["type"] == "relay.snapshot"
        assert {p["id"] for p in seeded["data"]} == {"new-one", "relay_sodo_demo"}


def test_dashboard_endpoint(client):
    client.post("/seed")
    tiles = {t["id"]: t for t in client.get("/dashboard").json()}
    assert tiles["SoDo"]["status"] == "critical"
    assert tiles["Ballard"]["status"] == "critical"
    assert tiles["CapitolHill"]["status"] == "normal"
    assert tiles["SoDo"]["relays"][0]["headline"] == "accident"
