"""
Per-card candidate identity tracking.

A BeliefModel holds, for every card id in the game, the set of identities
that card could still be. Sets are stored as a [num_cards, NUM_COLORS,
NUM_VALUES] bool tensor and only ever shrink. When a card is played or
discarded its identity becomes public and the entry is retired.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional
import logging

import torch

from core.actions import Clue
from core.board import BoardState
from core.cards import (
    ALL_CARDS,
    COLORS,
    DECK_SIZE,
    NUM_COLORS,
    NUM_VALUES,
    Card,
    full_deck_counts,
)
from core.errors import InconsistentBelief

logger = logging.getLogger(__name__)


class BeliefModel:
    """
    Candidate identity sets for every card of one game.

    Attributes:
        num_cards: Number of card ids tracked
        device: Device tensors are stored on
        candidates: [num_cards, NUM_COLORS, NUM_VALUES] bool tensor
        total_counts: [NUM_COLORS, NUM_VALUES] copies in the full deck
        revealed: Mapping of retired card id to its public identity
    """

    def __init__(
        self,
        num_cards: int = DECK_SIZE,
        device: Optional[torch.device | str] = None
    ):
        """
        Initialize every card to the full deck composition.

        Args:
            num_cards: Number of card ids to track
            device: Device to store tensors on (defaults to utils.device)
        """
        if device is None:
            from utils.device import get_device
            device = get_device()
        self.device = torch.device(device) if isinstance(device, str) else device
        self.num_cards = num_cards
        self.total_counts = full_deck_counts(self.device)
        self.reset()

    def reset(self) -> None:
        """Forget everything except the deck composition."""
        self.candidates = torch.ones(
            (self.num_cards, NUM_COLORS, NUM_VALUES), dtype=torch.bool, device=self.device
        )
        self.revealed: dict[int, Card] = {}
        self._revealed_counts = torch.zeros_like(self.total_counts)

    def copy(self) -> "BeliefModel":
        other = BeliefModel.__new__(BeliefModel)
        other.device = self.device
        other.num_cards = self.num_cards
        other.total_counts = self.total_counts
        other.candidates = self.candidates.clone()
        other.revealed = dict(self.revealed)
        other._revealed_counts = self._revealed_counts.clone()
        return other

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def remaining_counts(self) -> torch.Tensor:
        """Copies of each identity not yet played or discarded."""
        return self.total_counts - self._revealed_counts

    def is_retired(self, card_id: int) -> bool:
        return card_id in self.revealed

    def mask(self, card_id: int) -> torch.Tensor:
        """[NUM_COLORS, NUM_VALUES] candidate mask (a copy)."""
        return self.candidates[card_id].clone()

    def possibilities(self, card_id: int) -> list[Card]:
        if card_id in self.revealed:
            return [self.revealed[card_id]]
        indices = torch.nonzero(self.candidates[card_id], as_tuple=False).tolist()
        return [Card.from_index(c, v) for c, v in indices]

    def num_possibilities(self, card_id: int) -> int:
        return int(self.candidates[card_id].sum().item())

    def known(self, card_id: int) -> Optional[Card]:
        """Identity if the candidate set has collapsed to one card, else None."""
        if card_id in self.revealed:
            return self.revealed[card_id]
        if self.num_possibilities(card_id) != 1:
            return None
        return self.possibilities(card_id)[0]

    def is_known(self, card_id: int) -> bool:
        return self.known(card_id) is not None

    def weight(self, card_id: int) -> int:
        """Remaining copies summed over the card's candidates."""
        return int((self.candidates[card_id] * self.remaining_counts()).sum().item())

    def probability(self, card_id: int, predicate: Callable[[Card], bool], board: BoardState) -> float:
        """
        Probability that the card satisfies a predicate, weighting each
        candidate by its remaining copies.
        """
        weights = self.candidates[card_id] * self.remaining_counts()
        total = weights.sum().item()
        if total == 0:
            return 0.0
        hits = (weights * board.identity_mask(predicate).to(self.device)).sum().item()
        return hits / total

    def is_all(self, card_id: int, mask: torch.Tensor) -> bool:
        """True if every candidate lies inside the given identity mask."""
        return not bool((self.candidates[card_id] & ~mask.to(self.device)).any())

    def is_all_playable(self, card_id: int, board: BoardState) -> bool:
        return self.is_all(card_id, board.identity_mask(board.is_playable))

    def is_all_dead(self, card_id: int, board: BoardState) -> bool:
        return self.is_all(card_id, board.identity_mask(board.is_dead))

    def is_all_dispensable(self, card_id: int, board: BoardState) -> bool:
        return self.is_all(card_id, board.identity_mask(board.is_dispensable))

    def describe(self, card_id: int) -> str:
        known = self.known(card_id)
        if known is not None:
            return str(known)
        colors = "".join(
            color for c, color in enumerate(COLORS) if bool(self.candidates[card_id, c].any())
        )
        values = "".join(
            str(v + 1) for v in range(NUM_VALUES) if bool(self.candidates[card_id, :, v].any())
        )
        return f"[{colors}{values}]"

    # ------------------------------------------------------------------
    # Restrictions
    # ------------------------------------------------------------------

    def intersect(self, card_id: int, mask: torch.Tensor) -> bool:
        """
        Intersect a card's candidates with a mask.

        Args:
            card_id: Card to restrict
            mask: [NUM_COLORS, NUM_VALUES] bool tensor of allowed identities

        Returns:
            True if the candidate set shrank

        Raises:
            InconsistentBelief: If the candidate set would become empty
        """
        if card_id in self.revealed:
            return False
        before = self.candidates[card_id]
        after = before & mask.to(self.device)
        if not bool(after.any()):
            raise InconsistentBelief(
                f"Card {card_id} has no candidates left (was {self.describe(card_id)})",
                card_id=card_id,
            )
        changed = not torch.equal(before, after)
        if changed:
            self.candidates[card_id] = after
        return changed

    def restrict_to(self, card_id: int, card: Card) -> bool:
        """Restrict a card to a single identity (ground truth)."""
        mask = torch.zeros((NUM_COLORS, NUM_VALUES), dtype=torch.bool)
        mask[card.index] = True
        return self.intersect(card_id, mask)

    def exclude(self, card_id: int, card: Card) -> bool:
        """Remove one identity from a card's candidates."""
        mask = torch.ones((NUM_COLORS, NUM_VALUES), dtype=torch.bool)
        mask[card.index] = False
        return self.intersect(card_id, mask)

    def apply_clue(self, card_id: int, clue: Clue, touched: bool) -> bool:
        """
        Apply positive or negative information from a clue.

        Args:
            card_id: Card in the clue receiver's hand
            clue: Clue that was given
            touched: Whether the clue touched this card

        Returns:
            True if the candidate set shrank
        """
        mask = torch.zeros((NUM_COLORS, NUM_VALUES), dtype=torch.bool)
        if clue.is_color:
            mask[COLORS.index(clue.color), :] = True
        else:
            mask[:, clue.value - 1] = True
        if not touched:
            mask = ~mask
        return self.intersect(card_id, mask)

    def apply_clue_to_hand(self, hand: Iterable[int], clue: Clue, touched: Iterable[int]) -> None:
        touched = set(touched)
        for card_id in hand:
            self.apply_clue(card_id, clue, card_id in touched)

    def reveal(self, card_id: int, card: Card) -> None:
        """
        Retire a card whose identity became public.

        Removes the identity from every other unretired card once all of its
        copies are accounted for.

        Raises:
            InconsistentBelief: If the revealed identity had been ruled out
        """
        if card_id in self.revealed:
            return
        if not bool(self.candidates[card_id][card.index]):
            raise InconsistentBelief(
                f"Card {card_id} revealed as {card} but belief was {self.describe(card_id)}",
                card_id=card_id,
            )
        self.candidates[card_id] = False
        self.candidates[card_id][card.index] = True
        self.revealed[card_id] = card
        self._revealed_counts[card.index] += 1

        if int(self.remaining_counts()[card.index].item()) == 0:
            for other in range(self.num_cards):
                if other not in self.revealed and bool(self.candidates[other][card.index]):
                    self.exclude(other, card)
        logger.debug(f"Revealed card {card_id} as {card}")

    def unretired(self, card_ids: Iterable[int]) -> list[int]:
        return [card_id for card_id in card_ids if card_id not in self.revealed]

    def __eq__(self, other) -> bool:
        if not isinstance(other, BeliefModel):
            return NotImplemented
        return (
            self.revealed == other.revealed
            and torch.equal(self.candidates, other.candidates)
        )


def identity_mask(cards: Iterable[Card]) -> torch.Tensor:
    """Build a [NUM_COLORS, NUM_VALUES] mask from a collection of identities."""
    mask = torch.zeros((NUM_COLORS, NUM_VALUES), dtype=torch.bool)
    for card in cards:
        mask[card.index] = True
    return mask


def cards_in_mask(mask: torch.Tensor) -> list[Card]:
    return [card for card in ALL_CARDS if bool(mask[card.index])]
