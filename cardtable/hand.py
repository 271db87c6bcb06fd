"""Hand evaluation for blackjack."""

from dataclasses import dataclass
from typing import Iterable

from cardtable.cards import Card


@dataclass(frozen=True, slots=True)
class HandValue:
    """
    Dual (hard/soft) total of a hand.

    Always computed fresh from a hand snapshot; hands change on every draw.
    """

    ace_as_one: int
    ace_as_eleven: int
    best: int
    is_blackjack: bool
    is_busted: bool

    @property
    def is_soft(self) -> bool:
        """
        Check if an Ace is still counted as 11 in the best total.

        A hard hand has best equal to the all-Aces-as-one total.
        """
        return self.best != self.ace_as_one

    @property
    def is_hard(self) -> bool:
        return not self.is_soft

    def __str__(self) -> str:
        if self.is_blackjack:
            return "BLACKJACK"
        if self.is_busted:
            return f"BUST ({self.best})"
        if self.is_soft:
            return f"soft {self.best}"
        return str(self.best)


def evaluate(cards: Iterable[Card]) -> HandValue:
    """
    Calculate the value of a hand with Ace flexibility.

    Every Ace starts at 11; while the total exceeds 21 and an Ace is left
    to downgrade, one Ace is re-counted as 1.
    """
    hand = list(cards)
    total = 0
    aces = 0

    for card in hand:
        if card.is_ace:
            aces += 1
        total += card.value

    ace_as_eleven = total

    # Reduce aces from 11 to 1 as needed
    while total > 21 and aces > 0:
        total -= 10
        aces -= 1

    ace_as_one = sum(1 if card.is_ace else card.value for card in hand)

    return HandValue(
        ace_as_one=ace_as_one,
        ace_as_eleven=ace_as_eleven,
        best=total,
        is_blackjack=len(hand) == 2 and total == 21,
        is_busted=total > 21,
    )


def format_hand(cards: Iterable[Card]) -> str:
    """Render cards followed by their value, e.g. 'A♠ K♥ (BLACKJACK)'."""
    hand = list(cards)
    if not hand:
        return ""
    cards_str = " ".join(str(card) for card in hand)
    return f"{cards_str} ({evaluate(hand)})"
