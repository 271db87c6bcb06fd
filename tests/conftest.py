"""Pytest fixtures for card table tests."""

import pytest
from random import Random

from cardtable.cards import Card, Shoe
from cardtable.game import EventChannel, ManualScheduler, RoundEngine
from cardtable.persistence import InMemoryKeyValueStore, ParticipantStore


class StackedShoe(Shoe):
    """
    Shoe that deals a fixed sequence on every reset.

    Cards are given in deal order; the first card listed is drawn first.
    """

    def __init__(self, cards: list[str]) -> None:
        self._stack = [Card.from_string(c) for c in cards]
        super().__init__(rng=Random(0))

    def reset(self) -> None:
        # draw() pops from the end
        self._cards = list(reversed(self._stack))


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return Random(42)


@pytest.fixture
def shoe(rng):
    """A shuffled single-deck shoe."""
    return Shoe(rng=rng)


@pytest.fixture
def channel():
    """A fresh event channel."""
    return EventChannel()


@pytest.fixture
def scheduler():
    """Virtual-clock scheduler."""
    return ManualScheduler()


@pytest.fixture
def store():
    """In-memory participant store."""
    return ParticipantStore(InMemoryKeyValueStore())


@pytest.fixture
def make_engine(channel, scheduler):
    """
    Factory for an engine with a stacked shoe.

    Seats are "player-1".."player-N" followed by the dealer; deal order is
    two passes over the seats.
    """

    def _make(cards: list[str], bank: int = 100, players: list[str] | None = None, **kwargs):
        return RoundEngine(
            channel=channel,
            player_names=players or ["Alice"],
            starting_bank=bank,
            shoe=StackedShoe(cards),
            scheduler=scheduler,
            **kwargs,
        )

    return _make


@pytest.fixture
def engine(channel, scheduler, rng):
    """An engine with one player, a random shoe and manual scheduling."""
    return RoundEngine(channel=channel, scheduler=scheduler, rng=rng)


@pytest.fixture
def stacked_shoe():
    """The StackedShoe class, for tests that build their own engines."""
    return StackedShoe
