"""Game status enumeration."""

from enum import Enum


class GameStatus(Enum):
    """
    Round lifecycle and its display labels.

    Flow: INIT → IN_PROGRESS → GAME_OVER → IN_PROGRESS ...

    BETTING, DEALING, NEXT_TURN, HUMAN_WINS, DEALER_WINS and PUSH are
    labels layered on top for observers; they never gate engine logic.
    """

    INIT = "init"
    IN_PROGRESS = "in-progress"
    GAME_OVER = "game-over"

    # Display labels
    BETTING = "betting"
    DEALING = "dealing"
    NEXT_TURN = "next-turn"
    HUMAN_WINS = "human-wins"
    DEALER_WINS = "dealer-wins"
    PUSH = "push"

    def __str__(self) -> str:
        return self.name.replace("_", " ").title()
