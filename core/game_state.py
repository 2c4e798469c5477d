"""
Hanabi game state machine.

This module owns the hidden information of a single game: the shuffled
deck and every hand. Card ids are assigned in dealing order, so a card's id
is public even while its identity is not. Hands are stored newest first.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import logging

from core.actions import Action, ActionType, TurnRecord
from core.board import BoardState
from core.cards import Card, new_deck
from core.errors import IllegalAction

logger = logging.getLogger(__name__)


@dataclass
class GameOptions:
    """
    Rules configuration for a game.

    Attributes:
        num_players: Number of players (2-5)
        hand_size: Cards per hand (defaults to 5 for 2-3 players, 4 otherwise)
        max_clues: Clue token capacity
        max_lives: Misplays allowed before the game is lost
    """
    num_players: int = 2
    hand_size: Optional[int] = None
    max_clues: int = 8
    max_lives: int = 3

    def __post_init__(self):
        if not 2 <= self.num_players <= 5:
            raise ValueError(f"num_players must be between 2 and 5, got {self.num_players}")
        if self.hand_size is None:
            self.hand_size = 5 if self.num_players <= 3 else 4
        if self.hand_size < 1:
            raise ValueError(f"hand_size must be positive, got {self.hand_size}")


class GameState:
    """
    Single Hanabi game.

    Attributes:
        options: GameOptions used for this game
        deck: Full deck in dealing order (card id == index)
        hands: Card ids per player, index 0 is the newest card
        board: Public BoardState
        history: TurnRecords in order
    """

    def __init__(
        self,
        options: Optional[GameOptions] = None,
        deck: Optional[list[Card]] = None,
        seed: Optional[int] = None
    ):
        """
        Deal a new game.

        Args:
            options: Rules configuration (defaults to 2 players)
            deck: Explicit deck in dealing order (if None, shuffled from seed)
            seed: Random seed for the shuffle
        """
        self.options = options if options is not None else GameOptions()
        self.deck = list(deck) if deck is not None else new_deck(seed)

        needed = self.options.num_players * self.options.hand_size
        if len(self.deck) < needed:
            raise ValueError(f"Deck of {len(self.deck)} cards cannot deal {needed} cards")

        self.board = BoardState(
            num_players=self.options.num_players,
            hand_size=self.options.hand_size,
            max_clues=self.options.max_clues,
            max_lives=self.options.max_lives,
            clue_tokens=self.options.max_clues,
            lives=self.options.max_lives,
            deck_size=len(self.deck),
        )
        self.hands: list[list[int]] = [[] for _ in range(self.options.num_players)]
        self.history: list[TurnRecord] = []
        self._next_card = 0

        for player in range(self.options.num_players):
            for _ in range(self.options.hand_size):
                self._draw(player)

        logger.debug(f"Dealt game: {' '.join(str(card) for card in self.deck)}")

    @property
    def num_players(self) -> int:
        return self.options.num_players

    @property
    def current_player(self) -> int:
        return self.board.player

    def card(self, card_id: int) -> Card:
        return self.deck[card_id]

    def hand_cards(self, player: int) -> list[Card]:
        return [self.deck[card_id] for card_id in self.hands[player]]

    def _draw(self, player: int) -> None:
        if self._next_card >= len(self.deck):
            return
        self.hands[player].insert(0, self._next_card)
        self._next_card += 1
        self.board.deck_size -= 1

    def is_over(self) -> bool:
        """Out of lives, every stack finished, or the final round is done."""
        return (
            self.board.lives == 0
            or self.board.deckless_turns == 0
            or self.board.is_complete()
        )

    def score(self) -> int:
        return self.board.score()

    def _validate(self, action: Action) -> None:
        if self.is_over():
            raise IllegalAction("The game is over")
        hand = self.hands[self.board.player]
        if action.type in (ActionType.PLAY, ActionType.DISCARD):
            if action.slot is None or not 0 <= action.slot < len(hand):
                raise IllegalAction(f"Slot {action.slot} is not in a hand of {len(hand)} cards")
            if action.type == ActionType.DISCARD and self.board.clue_tokens >= self.board.max_clues:
                raise IllegalAction("Cannot discard at maximum clue tokens")
            return
        if self.board.clue_tokens <= 0:
            raise IllegalAction("No clue tokens remaining")
        if action.target is None or not 0 <= action.target < self.num_players:
            raise IllegalAction(f"Invalid clue target: {action.target}")
        if action.target == self.board.player:
            raise IllegalAction("Cannot clue yourself")
        if not any(action.clue.matches(card) for card in self.hand_cards(action.target)):
            raise IllegalAction(f"Clue {action.clue} touches no cards")

    def process(self, action: Action) -> TurnRecord:
        """
        Apply the current player's action.

        Args:
            action: Action chosen by the current player

        Returns:
            Public TurnRecord describing the outcome

        Raises:
            IllegalAction: If the action breaks the rules
        """
        self._validate(action)
        player = self.board.player
        turn = self.board.turn

        if action.type == ActionType.CLUE:
            touched = tuple(
                card_id for card_id in self.hands[action.target]
                if action.clue.matches(self.deck[card_id])
            )
            self.board.clue_tokens -= 1
            record = TurnRecord(player=player, action=action, touched=touched, turn=turn)
        else:
            card_id = self.hands[player].pop(action.slot)
            card = self.deck[card_id]
            if action.type == ActionType.PLAY:
                success = self.board.play(card)
                record = TurnRecord(player=player, action=action, card_id=card_id, card=card,
                                    success=success, turn=turn)
            else:
                self.board.discard_card(card)
                record = TurnRecord(player=player, action=action, card_id=card_id, card=card, turn=turn)
            self._draw(player)

        self.board.end_turn()
        self.history.append(record)
        logger.debug(f"{record} | {self.board.describe()}")
        return record

    def get_view(self, player: int):
        """Legal-visibility view for the given player."""
        from views.player_view import PlayerView
        return PlayerView(self, player)

    def __repr__(self) -> str:
        return f"GameState({self.board.describe()})"
