"""Decision strategies for automated participants."""

from enum import Enum
from typing import Callable, Sequence

from cardtable.cards import Card
from cardtable.hand import HandValue, evaluate


class Decision(Enum):
    """Moves an automated participant can make."""

    HIT = "hit"
    STAND = "stand"
    DOUBLE = "double"

    def __str__(self) -> str:
        return self.value


class StrategyKind(Enum):
    """The closed set of automated strategies."""

    BASIC_DEALER = "basic-dealer"  # hit 16 or less
    SOFT_17 = "soft-17"  # dealer hits soft 17
    CONSERVATIVE = "conservative"  # stand on 15+
    AGGRESSIVE = "aggressive"  # hit until 18+
    BASIC = "basic"  # simplified basic strategy vs dealer up card

    def __str__(self) -> str:
        return self.value


# Assumed dealer up card when none is visible
DEFAULT_DEALER_UP_CARD = 10


def _basic_dealer(value: HandValue, hand_size: int, dealer_up_card: int) -> Decision:
    return Decision.HIT if value.best <= 16 else Decision.STAND


def _soft_17(value: HandValue, hand_size: int, dealer_up_card: int) -> Decision:
    if value.best == 17 and value.ace_as_one != value.ace_as_eleven:
        return Decision.HIT
    return _basic_dealer(value, hand_size, dealer_up_card)


def _conservative(value: HandValue, hand_size: int, dealer_up_card: int) -> Decision:
    return Decision.HIT if value.best <= 14 else Decision.STAND


def _aggressive(value: HandValue, hand_size: int, dealer_up_card: int) -> Decision:
    return Decision.HIT if value.best <= 17 else Decision.STAND


def _basic(value: HandValue, hand_size: int, dealer_up_card: int) -> Decision:
    total = value.best

    if value.is_hard:
        if total >= 17:
            return Decision.STAND
        if total >= 13 and dealer_up_card <= 6:
            return Decision.STAND
        if total == 12 and 4 <= dealer_up_card <= 6:
            return Decision.STAND
        if total == 11 and hand_size == 2:
            return Decision.DOUBLE
        if total == 10 and dealer_up_card <= 9 and hand_size == 2:
            return Decision.DOUBLE
        return Decision.HIT

    # Soft hands
    if total >= 19:
        return Decision.STAND
    if total == 18:
        return Decision.HIT if dealer_up_card >= 9 else Decision.STAND
    return Decision.HIT


_RULES: dict[StrategyKind, Callable[[HandValue, int, int], Decision]] = {
    StrategyKind.BASIC_DEALER: _basic_dealer,
    StrategyKind.SOFT_17: _soft_17,
    StrategyKind.CONSERVATIVE: _conservative,
    StrategyKind.AGGRESSIVE: _aggressive,
    StrategyKind.BASIC: _basic,
}


def decide(
    kind: StrategyKind,
    hand: Sequence[Card],
    dealer_up_card: int | None = None,
) -> Decision:
    """
    Choose a move for an automated participant.

    Args:
        kind: Which strategy to apply
        hand: The participant's cards
        dealer_up_card: Value of the dealer's visible card (2-11, Ace=11)

    Returns:
        The decision; busted or blackjack hands always stand
    """
    value = evaluate(hand)
    if value.is_busted or value.is_blackjack or value.best >= 21:
        return Decision.STAND
    up = dealer_up_card if dealer_up_card is not None else DEFAULT_DEALER_UP_CARD
    return _RULES[kind](value, len(hand), up)
