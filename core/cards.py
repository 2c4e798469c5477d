"""
Card identities and deck composition.

Identities are (color, value) pairs. The deck composition is common
knowledge: every color has three 1s, two each of 2s, 3s and 4s, and a
single 5. Tensors indexed by identity use shape [NUM_COLORS, NUM_VALUES]
with value v stored at column v - 1.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import random

import torch

COLORS = ("r", "y", "g", "b", "w")
COLOR_NAMES = ("red", "yellow", "green", "blue", "white")
VALUES = (1, 2, 3, 4, 5)
FINAL_VALUE = 5

NUM_COLORS = len(COLORS)
NUM_VALUES = len(VALUES)

_COPIES = {1: 3, 2: 2, 3: 2, 4: 2, 5: 1}


def copies_of(value: int) -> int:
    """Number of copies of each identity with the given value."""
    return _COPIES[value]


@dataclass(frozen=True, order=True)
class Card:
    """
    A card identity.

    Attributes:
        color: Color letter, one of COLORS
        value: Rank from 1 to 5
    """
    color: str
    value: int

    def __post_init__(self):
        if self.color not in COLORS:
            raise ValueError(f"Unknown color: {self.color!r}")
        if self.value not in VALUES:
            raise ValueError(f"Unknown value: {self.value!r}")

    @property
    def color_index(self) -> int:
        return COLORS.index(self.color)

    @property
    def value_index(self) -> int:
        return self.value - 1

    @property
    def index(self) -> tuple[int, int]:
        """Position of this identity in a [NUM_COLORS, NUM_VALUES] tensor."""
        return self.color_index, self.value_index

    @classmethod
    def from_index(cls, color_index: int, value_index: int) -> "Card":
        return cls(COLORS[color_index], VALUES[value_index])

    @classmethod
    def parse(cls, text: str) -> "Card":
        """Parse a short name such as "r1" or "w5"."""
        if len(text) != 2:
            raise ValueError(f"Cannot parse card {text!r}")
        return cls(text[0], int(text[1]))

    def __str__(self) -> str:
        return f"{self.color}{self.value}"


ALL_CARDS = tuple(Card(color, value) for color in COLORS for value in VALUES)
DECK_SIZE = sum(copies_of(v) for v in VALUES) * NUM_COLORS


def full_deck_counts(device: Optional[torch.device | str] = None) -> torch.Tensor:
    """
    Copies of every identity in a fresh deck.

    Returns:
        [NUM_COLORS, NUM_VALUES] int tensor
    """
    row = torch.tensor([copies_of(v) for v in VALUES], dtype=torch.int64, device=device)
    return row.unsqueeze(0).repeat(NUM_COLORS, 1)


def new_deck(seed: Optional[int] = None) -> list[Card]:
    """
    Build and shuffle a full deck.

    Cards are dealt from the front of the returned list.

    Args:
        seed: Random seed for the shuffle

    Returns:
        List of DECK_SIZE cards
    """
    deck = [card for card in ALL_CARDS for _ in range(copies_of(card.value))]
    random.Random(seed).shuffle(deck)
    return deck
