"""Table API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException

from api.schemas import (
    ActionRequest,
    ActivityLogEntry,
    ActivityLogResponse,
    AddParticipantRequest,
    BetRequest,
    ParticipantResponse,
    SeatRequest,
    TableStateResponse,
    participant_response,
    table_state_response,
)
from api.session import TableSession, get_registry
from cardtable.game import RoundEngine
from cardtable.strategy import StrategyKind

logger = logging.getLogger(__name__)

router = APIRouter()


def get_table(
    session_id: Annotated[str, Header(alias="X-Session-ID")],
) -> TableSession:
    """Resolve the X-Session-ID header to a live table."""
    session = get_registry().get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


Table = Annotated[TableSession, Depends(get_table)]


def _require(ok: bool, detail: str) -> None:
    if not ok:
        raise HTTPException(status_code=409, detail=detail)


@router.post("/new")
async def new_table() -> dict[str, str]:
    """Open a new table session."""
    token, _ = get_registry().create()
    return {"session_id": token}


@router.get("/state")
async def get_state(table: Table) -> TableStateResponse:
    """Get current table state."""
    return table_state_response(table.engine)


@router.post("/start")
async def start_round(table: Table) -> TableStateResponse:
    """Deal a new round."""
    _require(table.engine.start(), "Cannot start a round now")
    return table_state_response(table.engine)


def _act(engine: RoundEngine, action: str, participant_id: str) -> TableStateResponse:
    actions = {
        "hit": engine.hit,
        "stand": engine.stand,
        "double": engine.double_down,
    }
    _require(actions[action](participant_id), f"Cannot {action} now")
    return table_state_response(engine)


@router.post("/hit")
async def hit(request: ActionRequest, table: Table) -> TableStateResponse:
    return _act(table.engine, "hit", request.participant_id)


@router.post("/stand")
async def stand(request: ActionRequest, table: Table) -> TableStateResponse:
    return _act(table.engine, "stand", request.participant_id)


@router.post("/double")
async def double_down(request: ActionRequest, table: Table) -> TableStateResponse:
    return _act(table.engine, "double", request.participant_id)


@router.post("/bet")
async def place_bet(request: BetRequest, table: Table) -> TableStateResponse:
    """Add to a participant's wager during the round."""
    _require(
        table.engine.place_bet(request.participant_id, request.amount),
        "Invalid bet",
    )
    return table_state_response(table.engine)


@router.post("/participants", status_code=201)
async def add_participant(request: AddParticipantRequest, table: Table) -> ParticipantResponse:
    """Seat a participant between rounds."""
    strategy = StrategyKind(request.strategy) if request.strategy else None
    participant = table.engine.add_participant(
        request.name,
        is_automated=request.is_automated,
        bank=request.bank,
        strategy=strategy,
    )
    if participant is None:
        raise HTTPException(status_code=409, detail="Cannot add participants during a round")
    table.engine.save_participants()
    return participant_response(participant)


@router.delete("/participants/{participant_id}")
async def remove_participant(participant_id: str, table: Table) -> dict[str, bool]:
    """Remove a participant between rounds."""
    if table.engine.get_participant(participant_id) is None:
        raise HTTPException(status_code=404, detail="Participant not found")
    _require(table.engine.remove_participant(participant_id), "Cannot remove participant now")
    table.engine.save_participants()
    return {"removed": True}


@router.put("/participants/{participant_id}/seat")
async def set_seat(participant_id: str, request: SeatRequest, table: Table) -> ParticipantResponse:
    """Sit a player out of coming rounds, or deal them back in."""
    participant = table.engine.get_participant(participant_id)
    if participant is None:
        raise HTTPException(status_code=404, detail="Participant not found")
    _require(
        table.engine.set_sitting_out(participant_id, request.sitting_out),
        "Cannot change seat now",
    )
    table.engine.save_participants()
    return participant_response(participant)


@router.get("/log")
async def get_log(table: Table) -> ActivityLogResponse:
    """Persisted activity log, oldest first."""
    store = table.engine.store
    entries = store.activity_log() if store is not None else []
    return ActivityLogResponse(entries=[ActivityLogEntry(**e) for e in entries])
