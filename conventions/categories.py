"""
Move categories and move descriptions.

Every observed action falls into exactly one Category. A MoveDescription
carries the category together with the cards it affects, and is the only
thing update logic needs to apply the move's meaning.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.actions import TurnRecord


class Category(Enum):
    UNCONVENTIONAL = "unconventional"
    REFERENTIAL_PLAY = "referential_play"
    REFERENTIAL_DISCARD = "referential_discard"
    GOOD_TOUCH_RANK = "good_touch_rank"
    FIX_CLUE = "fix_clue"
    TRASH_FILL_IN = "trash_fill_in"
    PLAY_FILL_IN = "play_fill_in"
    STALL = "stall"
    LOCKING_CLUE = "locking_clue"
    DISCARD_CHOP = "discard_chop"
    BOMB = "bomb"
    EXPECTED_PLAY = "expected_play"
    UNLOCK = "unlock"


class StallKind(Enum):
    EIGHT_CLUE = "eight_clue"
    LOCKED_HAND = "locked_hand"
    LOADED_RANK = "loaded_rank"


class DiscardKind(Enum):
    EXPECTED = "expected"      # known trash or permitted card
    DEFAULT = "default"        # unpermitted chop of an unloaded hand
    SACRIFICE = "sacrifice"    # any card from a locked hand


CLUE_CATEGORIES = frozenset({
    Category.REFERENTIAL_PLAY,
    Category.REFERENTIAL_DISCARD,
    Category.GOOD_TOUCH_RANK,
    Category.FIX_CLUE,
    Category.TRASH_FILL_IN,
    Category.PLAY_FILL_IN,
    Category.STALL,
    Category.LOCKING_CLUE,
    Category.UNLOCK,
})


@dataclass(frozen=True)
class MoveDescription:
    """
    Interpretation of one action under the convention.

    Attributes:
        record: The action (outcome fields are empty for hypothetical moves)
        category: Move category
        target: Card instructed to play, or given permission to discard
        gave_ptd: Card that receives permission to discard as a side effect
        new_known_plays: Cards newly known playable from public information
        new_known_trash: Cards newly known trash from public information
        stall_kind: Kind of stall for STALL
        discard_kind: Kind of discard for DISCARD_CHOP
        unlock_ptd: Card that gets permission once an UNLOCK resolves
    """
    record: TurnRecord
    category: Category
    target: Optional[int] = None
    gave_ptd: Optional[int] = None
    new_known_plays: tuple[int, ...] = ()
    new_known_trash: tuple[int, ...] = ()
    stall_kind: Optional[StallKind] = None
    discard_kind: Optional[DiscardKind] = None
    unlock_ptd: Optional[int] = None

    @property
    def is_conventional(self) -> bool:
        return self.category not in (Category.UNCONVENTIONAL, Category.BOMB)

    @property
    def new_plays(self) -> int:
        """Plays this move creates for the receiver."""
        count = len(self.new_known_plays)
        if (
            self.category in (Category.REFERENTIAL_PLAY, Category.UNLOCK)
            and self.target not in self.new_known_plays
        ):
            count += 1
        return count

    def __str__(self) -> str:
        parts = [self.category.value]
        if self.stall_kind is not None:
            parts.append(self.stall_kind.value)
        if self.discard_kind is not None:
            parts.append(self.discard_kind.value)
        if self.target is not None:
            parts.append(f"target {self.target}")
        if self.gave_ptd is not None:
            parts.append(f"ptd {self.gave_ptd}")
        if self.new_known_plays:
            parts.append(f"plays {list(self.new_known_plays)}")
        if self.new_known_trash:
            parts.append(f"trash {list(self.new_known_trash)}")
        return " ".join(parts)
