"""Tests for API endpoints."""

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import AsyncClient, ASGITransport
from starlette.websockets import WebSocketDisconnect

from api.main import app
from api.session import get_registry


@pytest_asyncio.fixture
async def client():
    """Create test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def _new_table(client, stacked_shoe=None, cards=None) -> dict[str, str]:
    response = await client.post("/api/table/new")
    token = response.json()["session_id"]
    if cards is not None:
        get_registry().get(token).engine.shoe = stacked_shoe(cards)
    return {"X-Session-ID": token}


@pytest.mark.asyncio
async def test_health_check(client):
    """Test health check endpoint."""
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_new_table(client):
    response = await client.post("/api/table/new")
    assert response.status_code == 200
    assert "session_id" in response.json()


@pytest.mark.asyncio
async def test_table_state(client):
    headers = await _new_table(client)

    response = await client.get("/api/table/state", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "init"
    assert data["round"] == 0
    assert [p["id"] for p in data["participants"]] == ["player-1", "dealer"]


@pytest.mark.asyncio
async def test_unknown_session(client):
    response = await client.get("/api/table/state", headers={"X-Session-ID": "forged"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_missing_session_header(client):
    response = await client.get("/api/table/state")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_start_and_hit(client, stacked_shoe):
    headers = await _new_table(client, stacked_shoe, ["10H", "KC", "2S", "7D", "5C"])

    response = await client.post("/api/table/start", headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "in-progress"
    assert data["pot"] == 10
    assert data["current_participant_id"] == "player-1"

    response = await client.post(
        "/api/table/hit",
        json={"participant_id": "player-1"},
        headers=headers,
    )
    assert response.status_code == 200
    player = response.json()["participants"][0]
    assert [c["rank"] for c in player["hand"]] == ["10", "2", "5"]
    assert player["value"]["best"] == 17
    assert player["display"] == "10♥ 2♠ 5♣ (17)"


@pytest.mark.asyncio
async def test_start_twice_conflicts(client, stacked_shoe):
    headers = await _new_table(client, stacked_shoe, ["10H", "KC", "9S", "7D"])
    await client.post("/api/table/start", headers=headers)
    response = await client.post("/api/table/start", headers=headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_wrong_turn_conflicts(client, stacked_shoe):
    headers = await _new_table(client, stacked_shoe, ["10H", "KC", "9S", "7D"])
    await client.post("/api/table/start", headers=headers)

    response = await client.post(
        "/api/table/stand",
        json={"participant_id": "dealer"},
        headers=headers,
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot stand now"


@pytest.mark.asyncio
async def test_bet_and_double(client, stacked_shoe):
    headers = await _new_table(client, stacked_shoe, ["5H", "KC", "6S", "8D", "9S"])
    await client.post("/api/table/start", headers=headers)

    response = await client.post(
        "/api/table/bet",
        json={"participant_id": "player-1", "amount": 20},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["pot"] == 30

    response = await client.post(
        "/api/table/double",
        json={"participant_id": "player-1"},
        headers=headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["pot"] == 50
    assert data["participants"][0]["finished"] is True


@pytest.mark.asyncio
async def test_invalid_bet_amount(client, stacked_shoe):
    headers = await _new_table(client, stacked_shoe, ["10H", "KC", "9S", "7D"])
    await client.post("/api/table/start", headers=headers)
    response = await client.post(
        "/api/table/bet",
        json={"participant_id": "player-1", "amount": 0},
        headers=headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unaffordable_bet_conflicts(client, stacked_shoe):
    headers = await _new_table(client, stacked_shoe, ["10H", "KC", "9S", "7D"])
    await client.post("/api/table/start", headers=headers)
    response = await client.post(
        "/api/table/bet",
        json={"participant_id": "player-1", "amount": 5000},
        headers=headers,
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_participants(client, stacked_shoe):
    headers = await _new_table(client, stacked_shoe, ["10H", "KC", "9S", "7D", "5C", "6D"])

    response = await client.post(
        "/api/table/participants",
        json={"name": "Bot", "is_automated": True, "strategy": "conservative", "bank": 50},
        headers=headers,
    )
    assert response.status_code == 201
    bot = response.json()
    assert bot["name"] == "Bot"
    assert bot["bank"] == 50

    state = (await client.get("/api/table/state", headers=headers)).json()
    assert [p["id"] for p in state["participants"]][-2:] == [bot["id"], "dealer"]

    response = await client.delete(f"/api/table/participants/{bot['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json() == {"removed": True}


@pytest.mark.asyncio
async def test_participants_refused_mid_round(client, stacked_shoe):
    headers = await _new_table(client, stacked_shoe, ["10H", "KC", "9S", "7D"])
    await client.post("/api/table/start", headers=headers)

    response = await client.post("/api/table/participants", json={"name": "Late"}, headers=headers)
    assert response.status_code == 409

    response = await client.delete("/api/table/participants/player-1", headers=headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_sit_out_and_back(client, stacked_shoe):
    headers = await _new_table(client, stacked_shoe, ["10H", "KC", "9S", "7D"])

    response = await client.put(
        "/api/table/participants/player-1/seat",
        json={"sitting_out": True},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "sitting-out"

    response = await client.post("/api/table/start", headers=headers)
    assert response.status_code == 409

    response = await client.put(
        "/api/table/participants/player-1/seat",
        json={"sitting_out": False},
        headers=headers,
    )
    assert response.json()["sitting_out"] is False
    assert response.json()["status"] == "waiting"

    response = await client.post("/api/table/start", headers=headers)
    assert response.status_code == 200
    response = await client.put(
        "/api/table/participants/player-1/seat",
        json={"sitting_out": True},
        headers=headers,
    )
    assert response.status_code == 409

    response = await client.put(
        "/api/table/participants/nobody/seat",
        json={"sitting_out": True},
        headers=headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_remove_unknown_and_dealer(client):
    headers = await _new_table(client)
    response = await client.delete("/api/table/participants/nobody", headers=headers)
    assert response.status_code == 404
    response = await client.delete("/api/table/participants/dealer", headers=headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_bad_strategy_rejected(client):
    headers = await _new_table(client)
    response = await client.post(
        "/api/table/participants",
        json={"name": "Bot", "is_automated": True, "strategy": "cheating"},
        headers=headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_activity_log(client, stacked_shoe):
    headers = await _new_table(client, stacked_shoe, ["10H", "KC", "9S", "7D"])
    await client.post("/api/table/start", headers=headers)

    response = await client.get("/api/table/log", headers=headers)

    assert response.status_code == 200
    messages = [e["message"] for e in response.json()["entries"]]
    assert "Player 1 places ante of $10" in messages
    assert "Round 1 started" in messages


class TestWebSocket:
    """Tests for the table WebSocket."""

    def test_unknown_session_closed(self):
        with TestClient(app) as client:
            with pytest.raises(WebSocketDisconnect):
                with client.websocket_connect("/ws/table/forged") as ws:
                    ws.receive_json()

    def test_start_streams_events(self, stacked_shoe):
        with TestClient(app) as client:
            token = client.post("/api/table/new").json()["session_id"]
            get_registry().get(token).engine.shoe = stacked_shoe(["10H", "KC", "9S", "7D"])

            with client.websocket_connect(f"/ws/table/{token}") as ws:
                first = ws.receive_json()
                assert first["type"] == "state_update"
                assert first["state"]["status"] == "init"

                ws.send_json({"action": "start"})
                seen = []
                while "turn-change" not in seen:
                    message = ws.receive_json()
                    assert message["type"] == "event"
                    seen.append(message["event_type"])
                assert seen[0] == "deck-update"
                assert "state-change" in seen

    def test_rejected_action_reports_error(self, stacked_shoe):
        with TestClient(app) as client:
            token = client.post("/api/table/new").json()["session_id"]
            get_registry().get(token).engine.shoe = stacked_shoe(["10H", "KC", "9S", "7D"])

            with client.websocket_connect(f"/ws/table/{token}") as ws:
                ws.receive_json()
                ws.send_json({"action": "hit", "participant_id": "player-1"})
                message = ws.receive_json()
                assert message == {"type": "error", "message": "Cannot hit now"}

                ws.send_json({"action": "fold"})
                assert ws.receive_json()["message"] == "Unknown action: fold"

                ws.send_text("not json")
                assert ws.receive_json()["message"] == "Malformed JSON"

    def test_malformed_fields_keep_connection(self, stacked_shoe):
        with TestClient(app) as client:
            token = client.post("/api/table/new").json()["session_id"]
            get_registry().get(token).engine.shoe = stacked_shoe(["10H", "KC", "9S", "7D"])

            with client.websocket_connect(f"/ws/table/{token}") as ws:
                ws.receive_json()
                ws.send_json({"action": "start"})
                while ws.receive_json().get("event_type") != "turn-change":
                    pass

                ws.send_json({"action": "hit", "participant_id": ["player-1"]})
                message = ws.receive_json()
                while message["type"] == "event":
                    message = ws.receive_json()
                assert message == {"type": "error", "message": "participant_id must be a string"}

                ws.send_json({"action": ["hit"], "participant_id": "player-1"})
                message = ws.receive_json()
                while message["type"] == "event":
                    message = ws.receive_json()
                assert message["type"] == "error"

                ws.send_json({"action": "get_state"})
                message = ws.receive_json()
                while message["type"] == "event":
                    message = ws.receive_json()
                assert message["type"] == "state_update"
                assert message["state"]["status"] == "in-progress"
