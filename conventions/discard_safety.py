"""
Chop tracking and safe discard selection.

Under the sieve convention the chop is the newest previously-unclued card
that has neither permission to discard nor a queued play, and is not
protected by a lock. Chops are cached per hand and refreshed only for the
hands an event touched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from conventions.knowledge import PlayerKnowledge


class DiscardSafety:
    """
    Per-hand chop cache for one observer.

    Attributes:
        knowledge: Knowledge the chops are derived from
    """

    def __init__(self, knowledge: "PlayerKnowledge"):
        self.knowledge = knowledge
        self._chops: dict[int, Optional[int]] = {}

    def find_chop(self, player: int) -> Optional[int]:
        for card_id in self.knowledge.hands[player]:
            note = self.knowledge.notes[card_id]
            if note.unclued() and not note.ptd and not note.queued_play and not note.lock:
                return card_id
        return None

    def refresh(self, players: Optional[Iterable[int]] = None) -> None:
        """Recompute chops for the given players (default: everyone)."""
        if players is None:
            players = range(self.knowledge.num_players)
        for player in players:
            self._chops[player] = self.find_chop(player)

    def chop(self, player: int) -> Optional[int]:
        if player not in self._chops:
            self._chops[player] = self.find_chop(player)
        return self._chops[player]

    def chop_if_unloaded(self, player: int) -> Optional[int]:
        """Chop of a hand with nothing else to do, else None."""
        if self.knowledge.is_loaded(player) or self.knowledge.is_locked(player):
            return None
        return self.chop(player)

    def safe_discard(self, player: int) -> Optional[int]:
        """
        Card id the player should discard, if any.

        Preference: known trash, then a permitted card, then the chop.
        Returns None for a locked hand.
        """
        if self.knowledge.is_locked(player):
            return None
        hand = self.knowledge.hands[player]
        notes = self.knowledge.notes
        for card_id in hand:
            if notes[card_id].trash:
                return card_id
        for card_id in hand:
            if notes[card_id].ptd and not notes[card_id].playable():
                return card_id
        return self.chop(player)

    def safe_discard_slot(self, player: int) -> Optional[int]:
        """0-based slot of safe_discard, or None for a locked hand."""
        card_id = self.safe_discard(player)
        if card_id is None:
            return None
        return self.knowledge.slot_of(player, card_id)
