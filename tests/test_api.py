"""HTTP API tests through FastAPI's TestClient."""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from rpg_chargen.api.app import create_app

from helpers import card


ORIGINS = {
    "id": "origins",
    "name": "Origins",
    "rows": [
        {"id": "o1", "description": card("Born Poor", [
            {"changes": [{"type": "money", "amount": 5}], "next": "youth"},
        ])},
    ],
}
YOUTH = {
    "id": "youth",
    "name": "Youth",
    "rows": [{"id": "y1", "description": card("Apprentice")}],
}


@pytest.fixture
def client(data_dir) -> TestClient:
    return TestClient(create_app(data_dir))


@pytest.fixture
def char_id(client) -> str:
    client.put("/api/tables/origins", json=ORIGINS)
    client.put("/api/tables/youth", json=YOUTH)
    resp = client.post("/api/characters", json={"name": "Aldric", "props": {"Inventory_Money": 1}})
    return resp.json()["id"]


# ── basics ──────────────────────────────────────────────────


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_create_and_get_character(client):
    resp = client.post("/api/characters", json={"name": "Aldric"})
    assert resp.status_code == 201
    assert resp.json()["id"] == "aldric"
    data = client.get("/api/characters/aldric").json()
    assert data["name"] == "Aldric"
    assert data["chargen"]["run"] is None
    assert client.get("/api/characters").json() == [{"id": "aldric", "name": "Aldric"}]


def test_missing_character_404(client):
    assert client.get("/api/characters/nobody").status_code == 404
    assert client.get("/api/characters/nobody/chargen").status_code == 404
    assert client.post("/api/characters/nobody/chargen/reroll").status_code == 404


def test_update_character_props(client):
    client.post("/api/characters", json={"name": "Aldric", "props": {"A": 1}})
    resp = client.patch("/api/characters/aldric", json={"props": {"B": 2}})
    assert resp.json() == {"A": 1, "B": 2}


def test_tables_put_and_get(client):
    resp = client.put("/api/tables/origins", json={**ORIGINS, "id": "ignored"})
    assert resp.status_code == 200
    assert resp.json()["id"] == "origins"
    assert client.get("/api/tables/origins").json()["rows"][0]["id"] == "o1"
    assert client.get("/api/tables").json() == [{"id": "origins", "name": "Origins"}]
    assert client.get("/api/tables/nope").status_code == 404


def test_table_ref_differing_only_in_case_conflicts(client):
    client.put("/api/tables/Origins", json=ORIGINS)
    resp = client.put("/api/tables/origins", json=ORIGINS)
    assert resp.status_code == 409
    assert client.get("/api/tables/Origins").json()["id"] == "Origins"
    assert client.get("/api/tables/origins").status_code == 404


def test_settings_round_trip(client):
    resp = client.patch("/api/settings", json={"default_setup": {"table_ref": "origins"}})
    assert resp.status_code == 200
    assert client.get("/api/settings").json()["default_setup"]["table_ref"] == "origins"


def test_settings_invalid_setup_422(client):
    resp = client.patch("/api/settings", json={"default_setup": {"choices_per_draw": 0}})
    assert resp.status_code == 422


# ── chargen flow ────────────────────────────────────────────


def test_full_flow(client, char_id):
    base = f"/api/characters/{char_id}/chargen"
    state = client.post(f"{base}/start", json={"table_ref": "origins", "choices_per_draw": 2}).json()
    assert state["run"]["status"] == "awaiting_choice"
    assert [c["choice"]["title"] for c in state["run"]["offered_cards"]] == ["Born Poor"]

    state = client.post(f"{base}/choose/0").json()
    assert state["run"]["current_table_ref"] == "youth"
    assert state["run"]["biography_log"] == ["Chose: Born Poor", "Received 5 silver"]
    assert client.get(f"/api/characters/{char_id}").json()["props"]["Inventory_Money"] == 6

    state = client.post(f"{base}/choose/0").json()
    assert state["run"]["status"] == "finished"
    assert client.get(base).json() == state

    messages = client.get(f"/api/characters/{char_id}/messages").json()
    assert [m["type"] for m in messages] == ["info", "summary"]
    assert "Character Generation Finished" in messages[1]["content"]


def test_reroll_reset_clear(client, char_id):
    base = f"/api/characters/{char_id}/chargen"
    client.post(f"{base}/start", json={"table_ref": "origins", "max_rolls": 3})
    assert client.post(f"{base}/reroll").json()["run"]["remaining_global_rolls"] == 3

    client.post(f"{base}/choose/0")
    state = client.post(f"{base}/reset").json()
    assert state["run"]["current_table_ref"] == "origins"
    assert state["run"]["history"] == []

    state = client.post(f"{base}/clear").json()
    assert state["run"] is None
    assert state["setup"]["table_ref"] == ""


def test_finish_endpoint(client, char_id):
    base = f"/api/characters/{char_id}/chargen"
    client.post(f"{base}/start", json={"table_ref": "origins"})
    assert client.post(f"{base}/finish").json()["run"]["status"] == "finished"


def test_start_unknown_table_404(client, char_id):
    resp = client.post(f"/api/characters/{char_id}/chargen/start", json={"table_ref": "nowhere"})
    assert resp.status_code == 404
    assert resp.json()["detail"] == "RollTable not found: nowhere"
    messages = client.get(f"/api/characters/{char_id}/messages").json()
    assert messages[-1]["type"] == "error"


def test_start_broken_table_422(client, char_id):
    client.put("/api/tables/broken", json={"id": "broken", "name": "Broken", "rows": [
        {"id": "b1", "description": json.dumps({"choice": {"title": "No rewards"}})},
    ]})
    resp = client.post(f"/api/characters/{char_id}/chargen/start", json={"table_ref": "broken"})
    assert resp.status_code == 422
    assert "Missing rewards[]" in resp.json()["detail"]


def test_start_invalid_setup_422(client, char_id):
    resp = client.post(
        f"/api/characters/{char_id}/chargen/start",
        json={"table_ref": "origins", "max_rolls": 0},
    )
    assert resp.status_code == 422


def test_http_table_host_down_502(client, char_id):
    client.patch("/api/settings", json={"table_provider": {"kind": "http", "base_url": "http://tables"}})
    mock_get = AsyncMock(side_effect=httpx.ConnectError("refused"))
    with patch("httpx.AsyncClient.get", mock_get):
        resp = client.post(f"/api/characters/{char_id}/chargen/start", json={"table_ref": "origins"})
    assert resp.status_code == 502
