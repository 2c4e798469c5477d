"""
Core game logic for Hanabi.

This module provides the cards, board, actions and game state machine,
together with the belief model and elimination engine every agent uses to
track what each card could be.
"""

from core.cards import Card, ALL_CARDS, COLORS, DECK_SIZE, new_deck
from core.actions import Action, ActionType, Clue, TurnRecord, ALL_CLUES
from core.board import BoardState
from core.game_state import GameOptions, GameState
from core.belief import BeliefModel
from core.elimination import EliminationGroup, eliminate, find_elimination_groups
from core.errors import HanabiError, IllegalAction, InconsistentBelief

__all__ = [
    "Card",
    "ALL_CARDS",
    "COLORS",
    "DECK_SIZE",
    "new_deck",
    "Action",
    "ActionType",
    "Clue",
    "TurnRecord",
    "ALL_CLUES",
    "BoardState",
    "GameOptions",
    "GameState",
    "BeliefModel",
    "EliminationGroup",
    "eliminate",
    "find_elimination_groups",
    "HanabiError",
    "IllegalAction",
    "InconsistentBelief",
]
