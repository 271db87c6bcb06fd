"""Agent that plays automated participants' turns."""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cardtable.game.events import EventChannel, EventType, GameEvent
from cardtable.game.scheduler import ScheduledTask, Scheduler
from cardtable.participant import PlayerAction
from cardtable.strategy.automated import Decision, StrategyKind, decide

if TYPE_CHECKING:
    from cardtable.game.engine import RoundEngine

logger = logging.getLogger(__name__)

DEFAULT_DELAY = 0.5


@dataclass(frozen=True)
class TurnToken:
    """Identifies the round and seat a deferred decision was made for."""

    round: int
    participant_id: str


class AutomatedAgent:
    """
    Plays automated participants when their turn starts.

    Listens for turn-change events and schedules each decision after a
    delay. Every deferred callback carries a TurnToken and re-checks it
    before touching the engine, because the round may have moved on.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        delay: float = DEFAULT_DELAY,
        default_strategy: StrategyKind = StrategyKind.BASIC_DEALER,
    ) -> None:
        """
        Initialize the agent.

        Args:
            scheduler: Deferred-call service
            delay: Seconds between an automated turn starting and each move
            default_strategy: Strategy for participants without their own
        """
        self._scheduler = scheduler
        self._delay = max(0.0, delay)
        self._default = default_strategy
        self._strategies: dict[str, StrategyKind] = {}
        self._engine: "RoundEngine | None" = None
        self._channel: EventChannel | None = None
        self._pending: list[ScheduledTask] = []

    @property
    def delay(self) -> float:
        return self._delay

    def set_delay(self, delay: float) -> None:
        self._delay = max(0.0, delay)

    @property
    def attached(self) -> bool:
        return self._engine is not None

    def attach(self, engine: "RoundEngine") -> None:
        """Start playing automated turns for an engine."""
        if self._engine is not None:
            self.detach()
        self._engine = engine
        self._channel = engine.channel
        self._channel.subscribe(self._on_turn_change, EventType.TURN_CHANGE)

    def detach(self) -> None:
        """Stop acting; pending decisions are cancelled. Safe at any time."""
        if self._channel is not None:
            self._channel.unsubscribe(self._on_turn_change, EventType.TURN_CHANGE)
        self.cancel_pending()
        self._engine = None
        self._channel = None

    def cancel_pending(self) -> None:
        for task in self._pending:
            task.cancel()
        self._pending.clear()

    def set_strategy(self, participant_id: str, kind: StrategyKind) -> None:
        self._strategies[participant_id] = kind

    def get_strategy(self, participant_id: str) -> StrategyKind:
        return self._strategies.get(participant_id, self._default)

    def forget(self, participant_id: str) -> None:
        self._strategies.pop(participant_id, None)

    def _on_turn_change(self, event: GameEvent) -> None:
        participant = event.data["participant"]
        if event.data["action"] != PlayerAction.START_TURN or not participant.is_automated:
            return
        if self._engine is None:
            return
        self._schedule(TurnToken(self._engine.round, participant.id))

    def _schedule(self, token: TurnToken) -> None:
        self._pending = [task for task in self._pending if task.pending]
        task = self._scheduler.call_later(self._delay, lambda: self._play_turn(token))
        self._pending.append(task)

    def _is_current(self, token: TurnToken) -> bool:
        engine = self._engine
        if engine is None or not engine.in_progress or engine.round != token.round:
            return False
        participant = engine.get_participant(token.participant_id)
        return participant is not None and participant.turn_active and not participant.finished

    def _play_turn(self, token: TurnToken) -> None:
        engine = self._engine
        if engine is None or not self._is_current(token):
            logger.debug("Dropping stale automated turn %s", token)
            return
        participant = engine.get_participant(token.participant_id)
        if participant is None:
            return

        dealer = engine.dealer
        up_card = None
        if dealer is not None and dealer.up_card is not None:
            up_card = dealer.up_card.value

        decision = decide(self.get_strategy(participant.id), participant.hand, up_card)
        logger.debug("%s decides %s", participant.name, decision)

        if decision == Decision.DOUBLE:
            if engine.double_down(participant.id):
                return
            decision = Decision.HIT

        if decision == Decision.STAND:
            engine.stand(participant.id)
            return

        if not engine.hit(participant.id):
            # Shoe exhausted: stand rather than stall the table
            engine.stand(participant.id)
            return

        if self._is_current(token):
            self._schedule(token)

    def trigger_play(self, participant_id: str) -> None:
        """Make an automated participant act now (ignores the delay)."""
        if self._engine is None:
            return
        participant = self._engine.get_participant(participant_id)
        if participant is not None and participant.is_automated:
            self._play_turn(TurnToken(self._engine.round, participant_id))
