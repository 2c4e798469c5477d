"""
Referential sieve conventions.

This package turns public actions into shared meaning (interpretation),
keeps the per-agent convention state that meaning builds up (knowledge,
notes, queued clues, chops) and chooses conventional moves (rules).
"""

from conventions.categories import Category, DiscardKind, MoveDescription, StallKind
from conventions.notes import HandLock, LockStatus, Note
from conventions.queued_clue import ClueStatus, Determined, QueuedClue, Undetermined
from conventions.discard_safety import DiscardSafety
from conventions.knowledge import PlayerKnowledge
from conventions.interpretation import ClueInterpreter, color_clue_target, rank_clue_target
from conventions.rules import Candidate, ConventionRuleEngine

__all__ = [
    "Category",
    "DiscardKind",
    "MoveDescription",
    "StallKind",
    "HandLock",
    "LockStatus",
    "Note",
    "ClueStatus",
    "Determined",
    "QueuedClue",
    "Undetermined",
    "DiscardSafety",
    "PlayerKnowledge",
    "ClueInterpreter",
    "color_clue_target",
    "rank_clue_target",
    "Candidate",
    "ConventionRuleEngine",
]
