"""Blackjack round engine - UI-agnostic."""

from cardtable.cards import Card, Shoe, Rank, Suit
from cardtable.hand import HandValue, evaluate
from cardtable.participant import Participant, ParticipantStatus, PlayerAction
from cardtable.game import EventChannel, EventType, GameStatus, RoundEngine

__all__ = [
    "Card",
    "Shoe",
    "Rank",
    "Suit",
    "HandValue",
    "evaluate",
    "Participant",
    "ParticipantStatus",
    "PlayerAction",
    "EventChannel",
    "EventType",
    "GameStatus",
    "RoundEngine",
]
