"""
Actions and public turn records.

An Action is what a player chooses; a TurnRecord is what everybody sees
after the game state machine applies it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from core.cards import COLORS, VALUES, Card


class ActionType(Enum):
    PLAY = "play"
    DISCARD = "discard"
    CLUE = "clue"


@dataclass(frozen=True)
class Clue:
    """
    A clue: exactly one of color or value is set.

    Attributes:
        color: Color letter for a color clue
        value: Rank for a rank clue
    """
    color: Optional[str] = None
    value: Optional[int] = None

    def __post_init__(self):
        if (self.color is None) == (self.value is None):
            raise ValueError("A clue names exactly one color or one value")
        if self.color is not None and self.color not in COLORS:
            raise ValueError(f"Unknown clue color: {self.color!r}")
        if self.value is not None and self.value not in VALUES:
            raise ValueError(f"Unknown clue value: {self.value!r}")

    @property
    def is_color(self) -> bool:
        return self.color is not None

    def matches(self, card: Card) -> bool:
        if self.is_color:
            return card.color == self.color
        return card.value == self.value

    def __str__(self) -> str:
        return self.color if self.is_color else str(self.value)


ALL_CLUES = tuple(Clue(color=color) for color in COLORS) + tuple(Clue(value=value) for value in VALUES)


@dataclass(frozen=True)
class Action:
    """
    A player's choice for one turn.

    Slots index the acting player's hand with 0 as the newest card.

    Attributes:
        type: PLAY, DISCARD or CLUE
        slot: Hand index for plays and discards
        target: Receiving player for clues
        clue: Clue to give, for clues
    """
    type: ActionType
    slot: Optional[int] = None
    target: Optional[int] = None
    clue: Optional[Clue] = None

    @classmethod
    def play(cls, slot: int) -> "Action":
        return cls(ActionType.PLAY, slot=slot)

    @classmethod
    def discard(cls, slot: int) -> "Action":
        return cls(ActionType.DISCARD, slot=slot)

    @classmethod
    def give_clue(cls, target: int, clue: Clue) -> "Action":
        return cls(ActionType.CLUE, target=target, clue=clue)

    def __str__(self) -> str:
        if self.type == ActionType.CLUE:
            return f"clue {self.clue} to player {self.target}"
        return f"{self.type.value} slot {self.slot + 1}"


@dataclass(frozen=True)
class TurnRecord:
    """
    Public outcome of one turn.

    Attributes:
        player: Acting player
        action: The action taken
        card_id: Card played or discarded (None for clues)
        card: Identity revealed by a play or discard
        success: Whether a play succeeded (None for other actions)
        touched: Card ids touched by a clue, in hand order
        turn: Turn number at which the action was taken
    """
    player: int
    action: Action
    card_id: Optional[int] = None
    card: Optional[Card] = None
    success: Optional[bool] = None
    touched: tuple[int, ...] = field(default_factory=tuple)
    turn: int = 0

    @property
    def is_clue(self) -> bool:
        return self.action.type == ActionType.CLUE

    @property
    def is_play(self) -> bool:
        return self.action.type == ActionType.PLAY

    @property
    def is_discard(self) -> bool:
        return self.action.type == ActionType.DISCARD

    def __str__(self) -> str:
        if self.is_clue:
            return f"player {self.player} clues {self.action.clue} to player {self.action.target} touching {list(self.touched)}"
        if self.is_play:
            outcome = "plays" if self.success else "bombs"
            return f"player {self.player} {outcome} {self.card} (card {self.card_id})"
        return f"player {self.player} discards {self.card} (card {self.card_id})"
