"""WebSocket connection management with round engine integration."""

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from api.schemas import event_message, table_state_response
from api.session import TableSession, get_registry
from cardtable.game import GameEvent

logger = logging.getLogger(__name__)

router = APIRouter()


class ConnectionManager:
    """Manage WebSocket connections and their event queues."""

    def __init__(self) -> None:
        self._connections: dict[str, WebSocket] = {}
        self._event_queues: dict[str, asyncio.Queue] = {}

    async def connect(self, websocket: WebSocket, connection_id: str) -> None:
        """Accept and register a new connection."""
        await websocket.accept()
        self._connections[connection_id] = websocket
        self._event_queues[connection_id] = asyncio.Queue()

    def disconnect(self, connection_id: str) -> None:
        """Remove a connection."""
        self._connections.pop(connection_id, None)
        self._event_queues.pop(connection_id, None)

    def queue_event(self, connection_id: str, event: GameEvent) -> None:
        """Queue an event for async delivery."""
        queue = self._event_queues.get(connection_id)
        if queue is not None:
            queue.put_nowait(event)

    async def get_event(self, connection_id: str) -> GameEvent | None:
        """Wait for the next queued event."""
        queue = self._event_queues.get(connection_id)
        if queue is None:
            return None
        return await queue.get()

    async def send_message(self, connection_id: str, message: dict[str, Any]) -> None:
        """Send a message to a specific connection."""
        websocket = self._connections.get(connection_id)
        if websocket is None:
            return
        try:
            await websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError) as exc:
            logger.debug("Dropping message for %s: %s", connection_id, exc)

    @property
    def active_connections(self) -> int:
        """Return number of active connections."""
        return len(self._connections)


# Global connection manager
manager = ConnectionManager()


def _state_message(table: TableSession) -> dict[str, Any]:
    return {
        "type": "state_update",
        "state": table_state_response(table.engine).model_dump(),
    }


def _dispatch(table: TableSession, message: dict[str, Any]) -> str | None:
    """
    Apply one client message to the engine.

    Returns:
        An error text, or None on success
    """
    engine = table.engine
    action = message.get("action")
    if action == "start":
        return None if engine.start() else "Cannot start a round now"

    participant_id = message.get("participant_id", "")
    if not isinstance(participant_id, str):
        return "participant_id must be a string"

    if action == "bet":
        amount = message.get("amount")
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 1:
            return "Bet amount must be a positive integer"
        return None if engine.place_bet(participant_id, amount) else "Invalid bet"

    actions = {
        "hit": engine.hit,
        "stand": engine.stand,
        "double": engine.double_down,
    }
    action_fn = actions.get(action) if isinstance(action, str) else None
    if action_fn is None:
        return f"Unknown action: {action}"
    return None if action_fn(participant_id) else f"Cannot {action} now"


@router.websocket("/table/{session_id}")
async def table_websocket(websocket: WebSocket, session_id: str) -> None:
    """
    WebSocket endpoint for real-time table updates.

    Messages from client:
    - {"action": "start"}
    - {"action": "hit"|"stand"|"double", "participant_id": "..."}
    - {"action": "bet", "participant_id": "...", "amount": 25}
    - {"action": "get_state"}

    Messages to client:
    - {"type": "state_update", "state": {...}}
    - {"type": "event", "event_type": "...", "data": {...}, "timestamp": "..."}
    - {"type": "error", "message": "..."}
    """
    table = get_registry().get(session_id)
    if table is None:
        await websocket.close(code=4404)
        return

    connection_id = f"{table.session_id}:{id(websocket)}"
    await manager.connect(websocket, connection_id)

    def forward(event: GameEvent) -> None:
        manager.queue_event(connection_id, event)

    table.engine.channel.subscribe(forward)
    await manager.send_message(connection_id, _state_message(table))

    async def process_events() -> None:
        """Send queued events to the client."""
        while True:
            event = await manager.get_event(connection_id)
            if event is None:
                return
            await manager.send_message(connection_id, event_message(event))

    # Start event processor
    event_task = asyncio.create_task(process_events())

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await manager.send_message(connection_id, {
                    "type": "error",
                    "message": "Malformed JSON",
                })
                continue
            if not isinstance(message, dict):
                await manager.send_message(connection_id, {
                    "type": "error",
                    "message": "Expected a JSON object",
                })
                continue

            if message.get("action") == "get_state":
                await manager.send_message(connection_id, _state_message(table))
                continue

            error = _dispatch(table, message)
            if error is not None:
                await manager.send_message(connection_id, {
                    "type": "error",
                    "message": error,
                })

    except WebSocketDisconnect:
        logger.debug("Client %s disconnected", connection_id)
    finally:
        table.engine.channel.unsubscribe(forward)
        event_task.cancel()
        try:
            await event_task
        except asyncio.CancelledError:
            pass
        manager.disconnect(connection_id)
