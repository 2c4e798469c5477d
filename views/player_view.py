"""
Legal-visibility view of a game for one player.

A PlayerView is a snapshot of everything a player may know: every hand
except their own, the public board and the full action history. It never
holds a reference back to the game, so agents cannot peek at hidden cards.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.actions import TurnRecord
from core.board import BoardState
from core.cards import Card

if TYPE_CHECKING:
    from core.game_state import GameState


class PlayerView:
    """
    Snapshot of a game as seen by one player.

    Attributes:
        me: Player this view belongs to
        num_players: Number of players in the game
        board: Copy of the public board
        history: Public TurnRecords so far
    """

    def __init__(self, game: "GameState", player: int):
        """
        Build a view from a game state.

        Args:
            game: Game to project
            player: Player who owns the view
        """
        if not 0 <= player < game.num_players:
            raise ValueError(f"Player {player} is not in a {game.num_players}-player game")
        self.me = player
        self.num_players = game.num_players
        self.board: BoardState = game.board.copy()
        self.history: list[TurnRecord] = list(game.history)
        self._hands = [list(hand) for hand in game.hands]
        self._visible: dict[int, Card] = {}
        for other in self.other_players():
            for card_id in self._hands[other]:
                self._visible[card_id] = game.deck[card_id]
        for record in self.history:
            if record.card_id is not None:
                self._visible[record.card_id] = record.card

    def other_players(self) -> list[int]:
        """Other players in turn order starting after me."""
        return [(self.me + offset) % self.num_players for offset in range(1, self.num_players)]

    def hand_ids(self, player: int) -> list[int]:
        """Card ids in a hand, newest first. Always public."""
        return list(self._hands[player])

    def hand_size(self, player: int) -> int:
        return len(self._hands[player])

    def all_hand_ids(self) -> list[int]:
        return [card_id for hand in self._hands for card_id in hand]

    def can_see(self, card_id: int) -> bool:
        return card_id in self._visible

    def card(self, card_id: int) -> Card:
        """
        Identity of a visible card.

        Raises:
            ValueError: If the card is in my own hand or not yet drawn
        """
        if card_id not in self._visible:
            raise ValueError(f"Player {self.me} cannot see card {card_id}")
        return self._visible[card_id]

    def hand(self, player: int) -> list[tuple[int, Card]]:
        """
        (card id, identity) pairs for another player's hand, newest first.

        Raises:
            ValueError: If asked for my own hand
        """
        if player == self.me:
            raise ValueError("A player cannot see their own hand")
        return [(card_id, self._visible[card_id]) for card_id in self._hands[player]]

    def visible_cards(self) -> dict[int, Card]:
        """Every card id whose identity is known to this player."""
        return dict(self._visible)

    @property
    def last_record(self):
        return self.history[-1] if self.history else None

    def __repr__(self) -> str:
        return f"PlayerView(me={self.me}, {self.board.describe()})"
