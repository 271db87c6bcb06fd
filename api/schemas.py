"""Pydantic schemas for API requests and responses."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from cardtable.cards import Card
from cardtable.game import GameEvent, RoundEngine
from cardtable.hand import evaluate, format_hand
from cardtable.participant import Participant

StrategyName = Literal["basic-dealer", "soft-17", "conservative", "aggressive", "basic"]


# Requests
class ActionRequest(BaseModel):
    """Hit, stand or double for one participant."""

    participant_id: str


class BetRequest(BaseModel):
    """Request to place a bet."""

    participant_id: str
    amount: int = Field(..., ge=1, description="Bet amount")


class SeatRequest(BaseModel):
    """Request to sit a player out of coming rounds, or back in."""

    sitting_out: bool = True


class AddParticipantRequest(BaseModel):
    """Request to seat a participant between rounds."""

    name: str = Field(..., min_length=1, max_length=40)
    is_automated: bool = False
    bank: int | None = Field(default=None, ge=0)
    strategy: StrategyName | None = None


# Responses
class CardResponse(BaseModel):
    """Card representation."""

    rank: str
    suit: str
    value: int


class HandValueResponse(BaseModel):
    """Dual hand total."""

    ace_as_one: int
    ace_as_eleven: int
    best: int
    is_soft: bool
    is_blackjack: bool
    is_busted: bool


class StatsResponse(BaseModel):
    """Cumulative participant statistics."""

    rounds_played: int
    wins: int
    losses: int
    pushes: int
    busts: int
    blackjacks: int
    total_winnings: int
    win_loss_ratio: float


class ParticipantResponse(BaseModel):
    """Participant with hand and wagers."""

    id: str
    name: str
    is_automated: bool
    bank: int
    hand: list[CardResponse]
    value: HandValueResponse
    display: str
    current_bet: int
    total_bet: int
    turn_active: bool
    finished: bool
    last_action: str
    status: str
    sitting_out: bool
    stats: StatsResponse


class TableStateResponse(BaseModel):
    """Current table state."""

    status: str
    outcome: str
    round: int
    pot: int
    ante: int
    cards_remaining: int
    current_participant_id: str | None
    participants: list[ParticipantResponse]
    winners: list[str]
    losers: list[str]


class ActivityLogEntry(BaseModel):
    """One activity-log line."""

    timestamp: int
    message: str
    participant_id: str | None = None


class ActivityLogResponse(BaseModel):
    """Persisted activity log, oldest first."""

    entries: list[ActivityLogEntry]


def card_response(card: Card) -> CardResponse:
    return CardResponse(rank=str(card.rank), suit=str(card.suit), value=card.value)


def participant_response(participant: Participant) -> ParticipantResponse:
    """Convert a Participant to ParticipantResponse."""
    value = evaluate(participant.hand)
    return ParticipantResponse(
        id=participant.id,
        name=participant.name,
        is_automated=participant.is_automated,
        bank=participant.bank,
        hand=[card_response(c) for c in participant.hand],
        value=HandValueResponse(
            ace_as_one=value.ace_as_one,
            ace_as_eleven=value.ace_as_eleven,
            best=value.best,
            is_soft=value.is_soft,
            is_blackjack=value.is_blackjack,
            is_busted=value.is_busted,
        ),
        display=format_hand(participant.hand),
        current_bet=participant.current_bet,
        total_bet=participant.total_bet,
        turn_active=participant.turn_active,
        finished=participant.finished,
        last_action=participant.last_action.value,
        status=participant.status.value,
        sitting_out=participant.sitting_out,
        stats=StatsResponse(**participant.stats.to_dict()),
    )


def table_state_response(engine: RoundEngine) -> TableStateResponse:
    """Convert engine state to a response."""
    current = engine.current_participant
    return TableStateResponse(
        status=engine.status.value,
        outcome=engine.outcome.value,
        round=engine.round,
        pot=engine.pot,
        ante=engine.ante,
        cards_remaining=engine.shoe.remaining_count,
        current_participant_id=current.id if current is not None else None,
        participants=[participant_response(p) for p in engine.participants],
        winners=[p.id for p in engine.winners],
        losers=[p.id for p in engine.losers],
    )


def _plain(value: Any) -> Any:
    """Make event payload values JSON-friendly."""
    if isinstance(value, Participant):
        return value.id
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if hasattr(value, "value") and not isinstance(value, (int, float, str, bool)):
        return value.value
    return value


def event_message(event: GameEvent) -> dict[str, Any]:
    """Convert a game event to a WebSocket message."""
    return {
        "type": "event",
        "event_type": event.event_type.value,
        "data": {key: _plain(value) for key, value in event.data.items()},
        "timestamp": event.timestamp.isoformat(),
    }
