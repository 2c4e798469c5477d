"""
Per-card convention notes and per-hand lock state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from core.elimination import EliminationGroup


@dataclass
class Note:
    """
    What the convention says about one card.

    Attributes:
        clued: Touched by at least one clue
        play: Instructed to play, or publicly known playable
        trash: Publicly known trash
        ptd: Has been given permission to discard
        lock: Protected by a locking clue
        queued_play: Card ids that must resolve before this play is due
        elimination: Elimination group this card belongs to, if any
    """
    clued: bool = False
    play: bool = False
    trash: bool = False
    ptd: bool = False
    lock: bool = False
    queued_play: frozenset[int] = field(default_factory=frozenset)
    elimination: Optional[EliminationGroup] = None

    def is_action(self) -> bool:
        """The holder has something to do with this card."""
        return (self.play and not self.trash) or self.trash or self.ptd

    def unclued(self) -> bool:
        """Previously unclued: no clue, play or trash information yet."""
        return not self.clued and not self.play and not self.trash

    def playable(self) -> bool:
        """Noted play that has not since turned into trash."""
        return self.play and not self.trash

    def is_due(self) -> bool:
        return self.playable() and not self.queued_play

    def describe(self) -> str:
        flags = []
        if self.trash:
            flags.append("kt")
        elif self.play:
            flags.append("play")
            if self.queued_play:
                flags.append("after " + ",".join(str(card_id) for card_id in sorted(self.queued_play)))
        elif self.clued:
            flags.append("clued")
        if self.ptd:
            flags.append("ptd")
        if self.lock:
            flags.append("lock")
        if self.elimination is not None:
            flags.append(f"elim {self.elimination}")
        return " ".join(flags)


class LockStatus(Enum):
    UNLOCKED = "unlocked"
    LOCKED = "locked"
    PENDING_UNLOCK = "pending_unlock"


@dataclass
class HandLock:
    """
    Lock sub-state of one hand.

    Attributes:
        status: Current lock status
        locked_card: Chop at the time the hand was locked
        unlock_target: Card promised to play by an unlock clue
        unlock_ptd: Card that receives permission once the unlock resolves
    """
    status: LockStatus = LockStatus.UNLOCKED
    locked_card: Optional[int] = None
    unlock_target: Optional[int] = None
    unlock_ptd: Optional[int] = None

    def lock(self, chop: Optional[int]) -> None:
        self.status = LockStatus.LOCKED
        self.locked_card = chop
        self.unlock_target = None
        self.unlock_ptd = None

    def promise_unlock(self, target: int, ptd: Optional[int]) -> None:
        self.status = LockStatus.PENDING_UNLOCK
        self.unlock_target = target
        self.unlock_ptd = ptd

    def release(self) -> None:
        self.status = LockStatus.UNLOCKED
        self.locked_card = None
        self.unlock_target = None
        self.unlock_ptd = None

    def describe(self) -> str:
        if self.status == LockStatus.UNLOCKED:
            return "unlocked"
        if self.status == LockStatus.LOCKED:
            return f"locked on {self.locked_card}"
        return f"pending unlock via {self.unlock_target}"
