"""
Exception types for the Hanabi engine.

Convention violations (misplays, broken queued clues) are modeled as move
categories and never raised. Only genuine engine faults and illegal moves
surface as exceptions.
"""

from __future__ import annotations

from typing import Optional


class HanabiError(Exception):
    """Base class for all engine errors."""


class IllegalAction(HanabiError, ValueError):
    """Raised by the game state machine when an action breaks the rules."""


class InconsistentBelief(HanabiError):
    """
    A belief model derived an impossible state.

    Raised when a card that still exists would be left with no candidate
    identities, or when a set of cards needs more copies of some identities
    than remain in the game. This indicates a modeling defect, not an in-game
    event, and is fatal to the trial.

    Attributes:
        card_id: Offending card, if a single card is at fault
        dump: Optional rendering of the knowledge state for diagnosis
    """

    def __init__(self, message: str, card_id: Optional[int] = None, dump: Optional[str] = None):
        super().__init__(message)
        self.card_id = card_id
        self.dump = dump

    def __str__(self) -> str:
        message = super().__str__()
        if self.dump:
            return f"{message}\n{self.dump}"
        return message
