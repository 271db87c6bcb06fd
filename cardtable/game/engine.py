"""Blackjack round engine with a lifecycle state machine."""

import logging
from random import Random
from typing import Any, Iterable
from uuid import uuid4

from transitions import Machine

from cardtable.cards import Card, Shoe
from cardtable.hand import HandValue, evaluate
from cardtable.game.events import EventChannel, EventType, GameEvent
from cardtable.game.ledger import DEFAULT_ANTE, Ledger
from cardtable.game.scheduler import ManualScheduler, Scheduler
from cardtable.game.state import GameStatus
from cardtable.game.turns import TurnDirector
from cardtable.participant import (
    DEALER_ID,
    Participant,
    ParticipantStatus,
    PlayerAction,
)
from cardtable.persistence import ParticipantStore
from cardtable.strategy.agent import DEFAULT_DELAY, AutomatedAgent
from cardtable.strategy.automated import StrategyKind

logger = logging.getLogger(__name__)

DEFAULT_BANK = 1000
BLACKJACK_MULTIPLIER = 2.5
WIN_MULTIPLIER = 2


class RoundEngine:
    """
    Blackjack round engine.

    Orchestrates deal → turn loop → settlement. All actions are
    synchronous and return False (or None) when rejected; observers learn
    about every transition through the event channel.
    """

    # State machine states
    STATES = ["init", "in_progress", "game_over"]

    # State machine transitions
    TRANSITIONS = [
        {"trigger": "begin_round", "source": ["init", "game_over"], "dest": "in_progress"},
        {"trigger": "end_round", "source": "in_progress", "dest": "game_over"},
    ]

    def __init__(
        self,
        channel: EventChannel | None = None,
        player_names: list[str] | None = None,
        ante: int = DEFAULT_ANTE,
        starting_bank: int = DEFAULT_BANK,
        shoe: Shoe | None = None,
        rng: Random | None = None,
        scheduler: Scheduler | None = None,
        automation_delay: float = DEFAULT_DELAY,
        store: ParticipantStore | None = None,
        auto_play: bool = True,
    ) -> None:
        """
        Initialize a table.

        Args:
            channel: Event channel (a private one is created if omitted)
            player_names: Seated human players, dealer excluded
            ante: Per-round minimum wager
            starting_bank: Bank for players created by the engine
            shoe: Card source (a fresh shuffled shoe if omitted)
            rng: Random number generator for the default shoe
            scheduler: Deferred-call service for automated turns
            automation_delay: Seconds before each automated move
            store: Persistence collaborator for participants and the log
            auto_play: Attach the automated agent to this engine
        """
        self.channel = channel or EventChannel()
        self.shoe = shoe or Shoe(rng=rng)
        self.store = store
        self.scheduler = scheduler or ManualScheduler()

        self._participants: dict[str, Participant] = {}
        self.turns = TurnDirector(self.channel, self._participants)
        self.ledger = Ledger(self.channel, self._participants, ante=ante)

        self._starting_bank = starting_bank
        self._round = 0
        self._outcome = GameStatus.INIT
        self._winners: list[Participant] = []
        self._losers: list[Participant] = []
        self._settling = False

        # Initialize state machine
        self.machine = Machine(
            model=self,
            states=self.STATES,
            transitions=self.TRANSITIONS,
            initial="init",
            auto_transitions=False,
            model_attribute="_machine_state",
        )

        names = player_names if player_names is not None else ["Player 1"]
        for i, name in enumerate(names, start=1):
            self.turns.register(Participant(id=f"player-{i}", name=name, bank=starting_bank))
        self.turns.register(self._new_dealer())

        self.agent = AutomatedAgent(self.scheduler, delay=automation_delay)
        if auto_play:
            self.agent.attach(self)

        if self.store is not None:
            self.channel.subscribe(self._persist_log, EventType.ACTIVITY_LOG)

    @staticmethod
    def _new_dealer() -> Participant:
        return Participant(id=DEALER_ID, name="Dealer", is_automated=True, bank=0)

    # Accessors

    @property
    def status(self) -> GameStatus:
        """Current lifecycle state."""
        return GameStatus[self._machine_state.upper()]  # type: ignore

    @property
    def outcome(self) -> GameStatus:
        """Display label for the current phase or the last round's result."""
        return self._outcome

    @property
    def in_progress(self) -> bool:
        return self.status == GameStatus.IN_PROGRESS

    def is_game_over(self) -> bool:
        return not self.in_progress

    @property
    def round(self) -> int:
        return self._round

    @property
    def pot(self) -> int:
        return self.ledger.pot

    @property
    def ante(self) -> int:
        return self.ledger.ante

    def set_ante(self, amount: int) -> None:
        """Set the ante; applies from the next round."""
        self.ledger.set_ante(amount)

    @property
    def participants(self) -> list[Participant]:
        """All participants in turn order (dealer last)."""
        return self.turns.participants

    def get_participant(self, participant_id: str) -> Participant | None:
        return self.turns.get(participant_id)

    @property
    def dealer(self) -> Participant | None:
        return self.turns.get(DEALER_ID)

    @property
    def current_participant(self) -> Participant | None:
        return self.turns.active

    @property
    def winners(self) -> list[Participant]:
        return list(self._winners)

    @property
    def losers(self) -> list[Participant]:
        return list(self._losers)

    def hand_value(self, participant_id: str) -> HandValue | None:
        participant = self.get_participant(participant_id)
        if participant is None:
            return None
        return evaluate(participant.hand)

    def set_strategy(self, participant_id: str, kind: StrategyKind) -> None:
        self.agent.set_strategy(participant_id, kind)

    # Roster

    def add_participant(
        self,
        name: str,
        is_automated: bool = False,
        bank: int | None = None,
        strategy: StrategyKind | None = None,
        participant_id: str | None = None,
    ) -> Participant | None:
        """
        Seat a new participant ahead of the dealer.

        Membership is fixed while a round is in progress.

        Returns:
            The new participant, or None if the seat was refused
        """
        if self.in_progress:
            logger.debug("Cannot add %s during a round", name)
            return None

        pid = participant_id or f"player-{uuid4().hex[:8]}"
        if pid in self._participants:
            return None

        participant = Participant(
            id=pid,
            name=name,
            is_automated=is_automated,
            bank=self._starting_bank if bank is None else bank,
        )
        self.turns.register(participant, before=DEALER_ID)
        if strategy is not None:
            self.agent.set_strategy(pid, strategy)
        self.channel.log(f"{name} joined the table", pid)
        return participant

    def remove_participant(self, participant_id: str) -> bool:
        """Remove a participant between rounds. The dealer stays."""
        if self.in_progress or participant_id == DEALER_ID:
            return False
        participant = self.get_participant(participant_id)
        if participant is None:
            return False
        self.turns.remove(participant_id)
        self.agent.forget(participant_id)
        self.channel.log(f"{participant.name} left the table", participant_id)
        return True

    def set_sitting_out(self, participant_id: str, sitting_out: bool = True) -> bool:
        """
        Sit a player out of the coming rounds, or bring them back in.

        A seat sitting out pays no ante, is dealt no cards and never gets a
        turn, but keeps its bank and stats. Refused during a round and for
        the dealer.

        Returns:
            True if the seat was updated
        """
        if self.in_progress or participant_id == DEALER_ID:
            return False
        participant = self.get_participant(participant_id)
        if participant is None:
            return False
        participant.sitting_out = sitting_out
        # Players coming back wait for the next deal
        participant.status = (
            ParticipantStatus.SITTING_OUT if sitting_out else ParticipantStatus.WAITING
        )
        self._updated(participant, "status")
        if sitting_out:
            self.channel.log(f"{participant.name} sits out", participant_id)
        else:
            self.channel.log(f"{participant.name} is back in the game", participant_id)
        return True

    def set_active_players(self, participant_ids: Iterable[str]) -> bool:
        """Deal in exactly these players; every other player sits out."""
        if self.in_progress:
            return False
        active = set(participant_ids)
        for participant in self.participants:
            if participant.is_dealer:
                continue
            wanted_out = participant.id not in active
            if participant.sitting_out != wanted_out:
                self.set_sitting_out(participant.id, wanted_out)
        return True

    # Round lifecycle

    def start(self) -> bool:
        """
        Start a new round: antes, deal, first turn.

        Returns:
            True if the round started
        """
        if self.in_progress:
            logger.debug("Round %d already in progress", self._round)
            return False
        if self.dealer is None or not any(
            not p.is_dealer and not p.sitting_out for p in self.participants
        ):
            logger.debug("Cannot start a round without a dealer and a seated player")
            return False

        self.agent.cancel_pending()
        self._round += 1
        self._winners = []
        self._losers = []

        self.shoe.reset()
        self.channel.emit_new(
            EventType.DECK_UPDATE,
            remaining=self.shoe.remaining_count,
            action="reset",
        )

        self.turns.reset_for_round()
        for participant in self.participants:
            participant.reset_for_round()

        self._outcome = GameStatus.BETTING
        self.ledger.reset()
        self.ledger.collect_antes()

        self.begin_round()  # Trigger state transition

        self._outcome = GameStatus.DEALING
        self._deal_initial_cards()

        self.channel.emit_new(
            EventType.STATE_CHANGE,
            status=self.status,
            round=self._round,
            pot=self.ledger.pot,
        )
        self.channel.log(f"Round {self._round} started")

        self._outcome = GameStatus.NEXT_TURN
        first = self.turns.current
        if first is not None and self.turns.is_eligible(first):
            self.turns.start_turn()
        else:
            self.advance_turn()
        return True

    def _deal_initial_cards(self) -> None:
        """Deal two cards to every seated participant in turn order."""
        for _ in range(2):
            for participant in self.participants:
                if participant.sitting_out:
                    continue
                card = self.shoe.draw()
                if card is None:
                    self._shoe_exhausted()
                    continue
                participant.add_card(card)

        for participant in self.participants:
            if participant.sitting_out:
                continue
            value = evaluate(participant.hand)
            participant.score = value.best
            if value.is_blackjack:
                participant.record_blackjack()
                self.channel.log(f"{participant.name} has Blackjack!", participant.id)
            self._updated(participant, "hand")

        self.channel.emit_new(
            EventType.DECK_UPDATE,
            remaining=self.shoe.remaining_count,
            action="draw",
        )

    def _shoe_exhausted(self) -> None:
        logger.warning("Shoe exhausted in round %d", self._round)
        self.channel.log("Deck is empty!")

    def _updated(self, participant: Participant, *changes: str) -> None:
        self.channel.emit_new(
            EventType.PARTICIPANT_UPDATE,
            participant=participant,
            changes=list(changes),
        )

    def _draw_for(self, participant: Participant) -> Card | None:
        card = self.shoe.draw()
        if card is None:
            self._shoe_exhausted()
            return None
        participant.add_card(card)
        participant.score = evaluate(participant.hand).best
        self._updated(participant, "hand")
        self.channel.emit_new(
            EventType.DECK_UPDATE,
            remaining=self.shoe.remaining_count,
            action="draw",
        )
        return card

    def _guard(self, participant_id: str, action: str) -> Participant | None:
        """Return the participant if it may act now, else None."""
        if not self.in_progress:
            logger.debug("Rejected %s by %s: no round in progress", action, participant_id)
            return None
        participant = self.get_participant(participant_id)
        if participant is None:
            logger.debug("Rejected %s: unknown participant %s", action, participant_id)
            return None
        if participant.finished:
            logger.debug("Rejected %s: %s already finished", action, participant.name)
            return None
        if not participant.turn_active:
            logger.debug("Rejected %s: not %s's turn", action, participant.name)
            return None
        return participant

    def _bust(self, participant: Participant, value: HandValue) -> None:
        participant.record_bust()
        self.channel.log(f"{participant.name} busts with {value.best}!", participant.id)
        self._updated(participant, "status")

    # Player actions

    def hit(self, participant_id: str) -> bool:
        """Draw one card for the participant holding the turn."""
        participant = self._guard(participant_id, "hit")
        if participant is None:
            return False

        card = self._draw_for(participant)
        if card is None:
            return False
        participant.last_action = PlayerAction.HIT

        value = evaluate(participant.hand)
        self.channel.log(f"{participant.name} hits and draws {card}", participant.id)

        if value.is_busted:
            self._bust(participant, value)
            self.advance_turn()
        elif value.best == 21:
            self.stand(participant_id)
        return True

    def stand(self, participant_id: str) -> bool:
        """Keep the current hand and pass the turn."""
        participant = self._guard(participant_id, "stand")
        if participant is None:
            return False

        participant.last_action = PlayerAction.STAND
        participant.finished = True
        value = evaluate(participant.hand)
        self.channel.log(f"{participant.name} stands with {value.best}", participant.id)
        self._updated(participant, "status")

        self.advance_turn()
        return True

    def double_down(self, participant_id: str) -> bool:
        """Double the wager, draw exactly one card, then stand."""
        participant = self._guard(participant_id, "double")
        if participant is None:
            return False

        if participant.hand_size != 2:
            logger.debug("Rejected double: %s holds %d cards", participant.name, participant.hand_size)
            return False

        if not self.ledger.double_bet(participant_id):
            self.channel.log(f"{participant.name} cannot afford to double down", participant.id)
            return False

        participant.last_action = PlayerAction.DOUBLE_DOWN
        card = self._draw_for(participant)
        if card is not None:
            value = evaluate(participant.hand)
            self.channel.log(
                f"{participant.name} doubles down and draws {card}",
                participant.id,
            )
            if value.is_busted:
                self._bust(participant, value)

        # Must stand after double down
        participant.finished = True
        self.advance_turn()
        return True

    def place_bet(self, participant_id: str, amount: int) -> bool:
        """Add a wager during the round."""
        if not self.in_progress:
            return False
        participant = self.get_participant(participant_id)
        if participant is None or participant.finished or participant.is_dealer:
            return False
        return self.ledger.place_bet(participant_id, amount)

    # Turn flow

    def advance_turn(self) -> None:
        """Pass the turn on, or settle once nobody is left to act."""
        if not self.in_progress:
            return
        next_participant = self.turns.advance_to_next_active()
        if next_participant is None or self.turns.all_finished():
            self.turns.end_turn()
            self._settle()

    # Settlement

    def _settle(self) -> None:
        """Compare every player against the dealer and pay out. Runs once per round."""
        if not self.in_progress or self._settling:
            return
        self._settling = True
        try:
            dealer = self.dealer
            dealer_value = evaluate(dealer.hand if dealer is not None else [])

            for participant in self.participants:
                if participant.is_dealer or participant.sitting_out:
                    continue
                self._settle_participant(participant, dealer_value)

            if dealer is not None:
                if any(not p.is_dealer for p in self._losers):
                    self._winners.append(dealer)
                if any(not p.is_dealer for p in self._winners):
                    self._losers.append(dealer)

            if any(not p.is_dealer for p in self._winners):
                self._outcome = GameStatus.HUMAN_WINS
            elif self._losers:
                self._outcome = GameStatus.DEALER_WINS
            else:
                self._outcome = GameStatus.PUSH

            self.end_round()  # Trigger state transition
            self.save_participants()

            self.channel.emit_new(
                EventType.GAME_OVER,
                winners=self.winners,
                losers=self.losers,
                reason=self._game_over_reason(),
            )
            self.channel.emit_new(
                EventType.STATE_CHANGE,
                status=self.status,
                round=self._round,
                pot=self.ledger.pot,
            )
        finally:
            self._settling = False

    def _settle_participant(self, participant: Participant, dealer_value: HandValue) -> None:
        value = evaluate(participant.hand)
        name = participant.name

        if value.is_busted:
            self._lose(participant, f"{name} loses (busted)")
        elif dealer_value.is_blackjack and not value.is_blackjack:
            self._lose(participant, f"{name} loses to dealer's Blackjack")
        elif value.is_blackjack and not dealer_value.is_blackjack:
            winnings = int(participant.total_bet * BLACKJACK_MULTIPLIER)
            self._win(participant, winnings, f"{name} wins with Blackjack! (${winnings})")
        elif dealer_value.is_busted:
            winnings = participant.total_bet * WIN_MULTIPLIER
            self._win(participant, winnings, f"{name} wins! Dealer busted (${winnings})")
        elif value.best > dealer_value.best:
            winnings = participant.total_bet * WIN_MULTIPLIER
            self._win(
                participant,
                winnings,
                f"{name} wins with {value.best} vs {dealer_value.best}! (${winnings})",
            )
        elif value.best < dealer_value.best:
            self._lose(participant, f"{name} loses with {value.best} vs {dealer_value.best}")
        else:
            participant.record_push()
            self.ledger.return_bets([participant.id])
            self.channel.log(f"{name} pushes with {value.best}", participant.id)

        participant.finished = True

    def _win(self, participant: Participant, winnings: int, message: str) -> None:
        participant.record_win()
        self.ledger.pay_out(participant.id, winnings)
        self._winners.append(participant)
        self.channel.log(message, participant.id)

    def _lose(self, participant: Participant, message: str) -> None:
        participant.record_loss()
        self._losers.append(participant)
        self._updated(participant, "status", "stats")
        self.channel.log(message, participant.id)

    def _game_over_reason(self) -> str:
        player_winners = [p.name for p in self._winners if not p.is_dealer]
        if player_winners:
            return f"{', '.join(player_winners)} wins!"
        if self._losers:
            return "Dealer wins!"
        return "Push - bets returned"

    # Persistence

    def snapshot(self) -> dict[str, Any]:
        """Roster snapshot: participants (without hands) and the ante."""
        return {
            "participants": [p.to_dict() for p in self.participants],
            "ante": self.ledger.ante,
        }

    def save_participants(self) -> bool:
        if self.store is None:
            return False
        return self.store.save_participants(self.snapshot())

    def load_participants(self) -> bool:
        """
        Replace the roster with the saved one (between rounds only).

        Returns:
            True if a saved roster was applied
        """
        if self.store is None or self.in_progress:
            return False
        data = self.store.load_participants()
        if data is None:
            return False

        try:
            restored = [Participant.from_dict(item) for item in data["participants"]]
        except (KeyError, TypeError) as exc:
            logger.warning("Ignoring malformed participant snapshot: %s", exc)
            return False

        self.turns.clear()
        dealer = None
        for participant in restored:
            if participant.is_dealer:
                dealer = participant
                continue
            if self.get_participant(participant.id) is None:
                self.turns.register(participant)
        self.turns.register(dealer or self._new_dealer())
        self.ledger.set_ante(data.get("ante", self.ledger.ante))
        self.channel.log(f"Restored {len(self.participants) - 1} players")
        return True

    def _persist_log(self, event: GameEvent) -> None:
        if self.store is not None:
            self.store.append_log(event.data["message"], event.data.get("participant_id"))

    def __repr__(self) -> str:
        return f"RoundEngine(round={self._round}, status={self.status.value}, pot={self.pot})"
