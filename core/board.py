"""
Public board state: play stacks, discard pile and token counts.

Everything here is visible to every player. The convention engine keeps its
own copy of the board for each agent, so BoardState is cheap to copy.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

import torch

from core.cards import (
    ALL_CARDS,
    COLORS,
    FINAL_VALUE,
    NUM_COLORS,
    NUM_VALUES,
    Card,
    copies_of,
)


@dataclass
class BoardState:
    """
    Public game board.

    Attributes:
        num_players: Number of players
        hand_size: Cards dealt to each player
        max_clues: Clue token capacity
        max_lives: Starting lives
        clue_tokens: Remaining clue tokens
        lives: Remaining lives
        turn: Number of turns taken so far
        player: Player whose turn it is
        deck_size: Cards left in the draw pile
        stacks: Highest played value per color (0 = empty)
        discard: Counter of discarded and misplayed cards
        deckless_turns: Turns remaining once the deck is empty
    """
    num_players: int
    hand_size: int
    max_clues: int = 8
    max_lives: int = 3
    clue_tokens: int = 8
    lives: int = 3
    turn: int = 0
    player: int = 0
    deck_size: int = 0
    stacks: dict[str, int] = field(default_factory=lambda: {color: 0 for color in COLORS})
    discard: Counter = field(default_factory=Counter)
    deckless_turns: Optional[int] = None

    def copy(self) -> "BoardState":
        return BoardState(
            num_players=self.num_players,
            hand_size=self.hand_size,
            max_clues=self.max_clues,
            max_lives=self.max_lives,
            clue_tokens=self.clue_tokens,
            lives=self.lives,
            turn=self.turn,
            player=self.player,
            deck_size=self.deck_size,
            stacks=dict(self.stacks),
            discard=Counter(self.discard),
            deckless_turns=self.deckless_turns,
        )

    # ------------------------------------------------------------------
    # Turn order
    # ------------------------------------------------------------------

    def next_player(self, player: Optional[int] = None) -> int:
        """Player who acts after the given player (defaults to current)."""
        if player is None:
            player = self.player
        return (player + 1) % self.num_players

    def players_between(self, first: int, last: int) -> list[int]:
        """Players acting strictly after `first` and strictly before `last`."""
        players = []
        player = self.next_player(first)
        while player != last and player != first:
            players.append(player)
            player = self.next_player(player)
        return players

    # ------------------------------------------------------------------
    # Card predicates
    # ------------------------------------------------------------------

    def score(self) -> int:
        return sum(self.stacks.values())

    def is_playable(self, card: Card) -> bool:
        return self.stacks[card.color] + 1 == card.value

    def highest_attainable(self, color: str) -> int:
        """Highest value this color can still reach given the discard pile."""
        for value in range(self.stacks[color] + 1, FINAL_VALUE + 1):
            if self.discard[Card(color, value)] >= copies_of(value):
                return value - 1
        return FINAL_VALUE

    def is_dead(self, card: Card) -> bool:
        """Already played, or can never be played because a lower card is gone."""
        return card.value <= self.stacks[card.color] or card.value > self.highest_attainable(card.color)

    def is_dispensable(self, card: Card) -> bool:
        """Dead, or another copy remains outside the discard pile."""
        if self.is_dead(card):
            return True
        return copies_of(card.value) - self.discard[card] > 1

    def is_critical(self, card: Card) -> bool:
        return not self.is_dispensable(card)

    def is_complete(self) -> bool:
        """True when no stack can grow any further."""
        return all(
            self.stacks[color] == self.highest_attainable(color) for color in COLORS
        )

    def identity_mask(self, predicate) -> torch.Tensor:
        """
        Evaluate a card predicate over every identity.

        Args:
            predicate: Callable taking a Card and returning bool

        Returns:
            [NUM_COLORS, NUM_VALUES] bool tensor
        """
        mask = torch.zeros((NUM_COLORS, NUM_VALUES), dtype=torch.bool)
        for card in ALL_CARDS:
            if predicate(card):
                mask[card.index] = True
        return mask

    # ------------------------------------------------------------------
    # Mutations (used by the game state machine)
    # ------------------------------------------------------------------

    def gain_clue(self) -> None:
        if self.clue_tokens < self.max_clues:
            self.clue_tokens += 1

    def play(self, card: Card) -> bool:
        """
        Put a card on its stack, or into the discard pile as a misplay.

        Returns:
            True if the card was playable
        """
        if self.is_playable(card):
            self.stacks[card.color] = card.value
            if card.value == FINAL_VALUE:
                self.gain_clue()
            return True
        self.discard[card] += 1
        self.lives -= 1
        return False

    def discard_card(self, card: Card) -> None:
        self.discard[card] += 1
        self.gain_clue()

    def end_turn(self) -> None:
        if self.deck_size == 0:
            if self.deckless_turns is None:
                self.deckless_turns = self.num_players
            else:
                self.deckless_turns -= 1
        self.turn += 1
        self.player = self.next_player()

    def describe(self) -> str:
        stacks = " ".join(f"{color}{value}" for color, value in self.stacks.items())
        return (
            f"turn {self.turn} player {self.player} | stacks {stacks} | "
            f"clues {self.clue_tokens}/{self.max_clues} lives {self.lives} deck {self.deck_size}"
        )
