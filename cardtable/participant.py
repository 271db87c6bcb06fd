"""Participants at the table: humans, NPCs and the dealer."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from cardtable.cards import Card

DEALER_ID = "dealer"


class ParticipantStatus(Enum):
    """Standing of a participant within the current round."""

    OK = "ok"
    BUSTED = "busted"
    WINNER = "winner"
    LOSER = "loser"
    BLACKJACK = "blackjack"
    WAITING = "waiting"
    SITTING_OUT = "sitting-out"

    def __str__(self) -> str:
        return self.value


class PlayerAction(Enum):
    """Last action a participant took."""

    NONE = "none"
    HIT = "hit"
    STAND = "stand"
    BET = "bet"
    ANTE = "ante"
    START_TURN = "start-turn"
    END_TURN = "end-turn"
    FINISH = "finish"
    DOUBLE_DOWN = "double-down"

    def __str__(self) -> str:
        return self.value


@dataclass
class ParticipantStats:
    """Cumulative statistics, kept across rounds."""

    rounds_played: int = 0
    wins: int = 0
    losses: int = 0
    pushes: int = 0
    busts: int = 0
    blackjacks: int = 0
    total_winnings: int = 0
    win_loss_ratio: float = 0.0

    def update_ratio(self) -> None:
        """Recompute wins/losses (equal to wins while there are no losses)."""
        if self.losses == 0:
            self.win_loss_ratio = float(self.wins)
        else:
            self.win_loss_ratio = self.wins / self.losses

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ParticipantStats":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass(eq=False)
class Participant:
    """
    A human or automated actor with a hand, a bank and a wager.

    Betting methods validate and return False without mutating anything
    when the move is not affordable.
    """

    id: str
    name: str
    is_automated: bool = False
    bank: int = 1000
    current_bet: int = 0
    total_bet: int = 0
    turn_active: bool = False
    finished: bool = False
    last_action: PlayerAction = PlayerAction.NONE
    status: ParticipantStatus = ParticipantStatus.OK
    score: int = 0
    sitting_out: bool = False
    stats: ParticipantStats = field(default_factory=ParticipantStats)
    _hand: list[Card] = field(default_factory=list, repr=False)

    @property
    def is_dealer(self) -> bool:
        return self.id == DEALER_ID

    # Hand

    def add_card(self, card: Card) -> None:
        """Add a card to the hand."""
        self._hand.append(card)

    def clear_hand(self) -> None:
        """Remove all cards from the hand."""
        self._hand.clear()

    @property
    def hand(self) -> list[Card]:
        """Return a copy of the hand."""
        return list(self._hand)

    @property
    def hand_size(self) -> int:
        return len(self._hand)

    @property
    def up_card(self) -> Card | None:
        """The first card dealt, visible to the table."""
        return self._hand[0] if self._hand else None

    # Betting

    def place_bet(self, amount: int) -> bool:
        """
        Wager an amount on the current hand.

        Args:
            amount: Amount to move from the bank to the wager

        Returns:
            True if the bet was placed
        """
        if amount <= 0 or amount > self.bank:
            return False
        self.bank -= amount
        self.current_bet = amount
        self.total_bet += amount
        self.last_action = PlayerAction.BET
        return True

    def place_ante(self, amount: int) -> bool:
        """Pay the ante; counts toward total_bet but not the active wager."""
        if amount <= 0 or amount > self.bank:
            return False
        self.bank -= amount
        self.total_bet += amount
        self.last_action = PlayerAction.ANTE
        return True

    def double_bet(self) -> bool:
        """Match the active wager once more from the bank."""
        if self.current_bet <= 0 or self.bank < self.current_bet:
            return False
        self.bank -= self.current_bet
        self.total_bet += self.current_bet
        self.current_bet *= 2
        return True

    def clear_bets(self) -> None:
        """Forget the round's wagers (no refund)."""
        self.current_bet = 0
        self.total_bet = 0

    def receive_winnings(self, amount: int) -> None:
        """Credit the bank; callers are responsible for the amount."""
        self.bank += amount
        self.stats.total_winnings += amount

    # Statistics

    def record_win(self) -> None:
        self.stats.wins += 1
        self.stats.rounds_played += 1
        self.stats.update_ratio()
        self.status = ParticipantStatus.WINNER

    def record_loss(self) -> None:
        self.stats.losses += 1
        self.stats.rounds_played += 1
        self.stats.update_ratio()
        self.status = ParticipantStatus.LOSER

    def record_push(self) -> None:
        """Count the round without touching wins, losses or status."""
        self.stats.pushes += 1
        self.stats.rounds_played += 1

    def record_bust(self) -> None:
        self.stats.busts += 1
        self.status = ParticipantStatus.BUSTED
        self.finished = True

    def record_blackjack(self) -> None:
        self.stats.blackjacks += 1
        self.status = ParticipantStatus.BLACKJACK

    # Lifecycle

    def reset_for_round(self) -> None:
        """Clear hand, wagers and flags; bank and stats are kept."""
        self.clear_hand()
        self.clear_bets()
        self.turn_active = False
        self.finished = self.sitting_out
        self.last_action = PlayerAction.NONE
        self.status = ParticipantStatus.SITTING_OUT if self.sitting_out else ParticipantStatus.OK
        self.score = 0

    def reset(self) -> None:
        """Start over with fresh statistics."""
        self.reset_for_round()
        self.stats = ParticipantStats()

    # Serialization

    def to_dict(self) -> dict[str, Any]:
        """
        Snapshot for persistence.

        The hand and in-round wagers are deliberately left out: a restored
        participant always starts the next round empty-handed.
        """
        return {
            "id": self.id,
            "name": self.name,
            "is_automated": self.is_automated,
            "bank": self.bank,
            "sitting_out": self.sitting_out,
            "stats": self.stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Participant":
        return cls(
            id=data["id"],
            name=data["name"],
            is_automated=data.get("is_automated", False),
            bank=data.get("bank", 0),
            sitting_out=data.get("sitting_out", False),
            stats=ParticipantStats.from_dict(data.get("stats", {})),
        )

    def describe(self) -> dict[str, Any]:
        """Full in-round view for observers (includes hand and wagers)."""
        return {
            **self.to_dict(),
            "hand": [card.to_dict() for card in self._hand],
            "current_bet": self.current_bet,
            "total_bet": self.total_bet,
            "turn_active": self.turn_active,
            "finished": self.finished,
            "last_action": self.last_action.value,
            "status": self.status.value,
            "score": self.score,
        }

    def __str__(self) -> str:
        return self.name
