"""Round engine, turn order, ledger and event channel."""

from cardtable.game.events import EventChannel, EventType, GameEvent
from cardtable.game.state import GameStatus
from cardtable.game.scheduler import AsyncioScheduler, ManualScheduler, Scheduler
from cardtable.game.turns import TurnDirector
from cardtable.game.ledger import Ledger
from cardtable.game.engine import RoundEngine

__all__ = [
    "EventChannel",
    "EventType",
    "GameEvent",
    "GameStatus",
    "AsyncioScheduler",
    "ManualScheduler",
    "Scheduler",
    "TurnDirector",
    "Ledger",
    "RoundEngine",
]
