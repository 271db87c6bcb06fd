"""Automated participant strategies."""

from cardtable.strategy.automated import Decision, StrategyKind, decide
from cardtable.strategy.agent import AutomatedAgent, TurnToken

__all__ = [
    "Decision",
    "StrategyKind",
    "decide",
    "AutomatedAgent",
    "TurnToken",
]
