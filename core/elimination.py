"""
Elimination reasoning over a BeliefModel.

If a set S of cards can only hold identities from a union U, and the
remaining copies of U number exactly |S|, then every copy of U sits inside
S. Those identities can be removed from every card outside S. Repeating
this until nothing changes finds all eliminations reachable with groups up
to a configurable size.

The search works on small integer bitmasks rather than tensors: each card's
candidate set is packed into a 25-bit int, and a depth-first search grows
subsets while the union's copy count stays within the target size.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional
import logging

from core.belief import BeliefModel
from core.cards import ALL_CARDS, Card, NUM_VALUES
from core.errors import InconsistentBelief

logger = logging.getLogger(__name__)

# Safety net against oscillation; each productive pass strictly shrinks a set.
MAX_PASSES = 100

# Largest group agents search by default. The number of subsets grows
# combinatorially with the cards on the table, which hurts at 4-5 players.
DEFAULT_MAX_GROUP_SIZE = 5


@dataclass(frozen=True)
class EliminationGroup:
    """
    A minimal set of cards holding every remaining copy of some identities.

    Attributes:
        card_ids: Cards in the group, sorted
        identities: Identities confined to the group
    """
    card_ids: tuple[int, ...]
    identities: tuple[Card, ...]

    def __len__(self) -> int:
        return len(self.card_ids)

    def __str__(self) -> str:
        cards = ",".join(str(card_id) for card_id in self.card_ids)
        identities = ",".join(str(card) for card in self.identities)
        return f"{{{cards}}}={{{identities}}}"


def _bit(card: Card) -> int:
    color_index, value_index = card.index
    return 1 << (color_index * NUM_VALUES + value_index)


_BITS = {card: _bit(card) for card in ALL_CARDS}


def _pack(belief: BeliefModel, card_id: int) -> int:
    packed = 0
    for card in belief.possibilities(card_id):
        packed |= _BITS[card]
    return packed


def _unpack(packed: int) -> tuple[Card, ...]:
    return tuple(card for card in ALL_CARDS if packed & _BITS[card])


class _CopyCounter:
    """Memoized remaining-copy totals for packed identity sets."""

    def __init__(self, belief: BeliefModel):
        remaining = belief.remaining_counts()
        self._copies = {
            _BITS[card]: int(remaining[card.index].item()) for card in ALL_CARDS
        }
        self._cache: dict[int, int] = {}

    def __call__(self, packed: int) -> int:
        total = self._cache.get(packed)
        if total is None:
            total = sum(copies for bit, copies in self._copies.items() if packed & bit)
            self._cache[packed] = total
        return total


def _search_groups(
    masks: dict[int, int],
    copies: _CopyCounter,
    max_group_size: int,
) -> list[tuple[tuple[int, ...], int]]:
    """
    Find minimal groups among packed candidate sets.

    Returns:
        List of (card_ids, packed union) in increasing group size

    Raises:
        InconsistentBelief: If some set of cards needs more copies than remain
    """
    found: list[tuple[tuple[int, ...], int]] = []
    found_sets: list[frozenset[int]] = []

    for size in range(1, max_group_size + 1):
        # Any card whose own candidates carry more than `size` copies cannot
        # belong to a group of that size.
        eligible = sorted(card_id for card_id, mask in masks.items() if copies(mask) <= size)
        if len(eligible) < size:
            continue

        def extend(start: int, chosen: list[int], union: int) -> None:
            if len(chosen) == size:
                total = copies(union)
                if total < size:
                    raise InconsistentBelief(
                        f"Cards {chosen} need {size} copies but only {total} remain "
                        f"of {','.join(str(card) for card in _unpack(union))}"
                    )
                if total == size:
                    members = frozenset(chosen)
                    if not any(group <= members for group in found_sets):
                        found.append((tuple(chosen), union))
                        found_sets.append(members)
                return
            for index in range(start, len(eligible)):
                if len(chosen) + len(eligible) - index < size:
                    break
                card_id = eligible[index]
                merged = union | masks[card_id]
                if copies(merged) > size:
                    continue
                # Supersets of a group are never minimal.
                if found_sets:
                    members = frozenset(chosen) | {card_id}
                    if any(group <= members for group in found_sets):
                        continue
                chosen.append(card_id)
                extend(index + 1, chosen, merged)
                chosen.pop()

        extend(0, [], 0)

    return found


def find_elimination_groups(
    belief: BeliefModel,
    card_ids: Iterable[int],
    max_group_size: Optional[int] = None
) -> list[EliminationGroup]:
    """
    Find all minimal elimination groups among the given cards.

    Args:
        belief: Belief model to inspect (not modified)
        card_ids: Cards to consider, normally every card currently in a hand
        max_group_size: Largest group to search for. None searches every size;
            agents pass DEFAULT_MAX_GROUP_SIZE.

    Returns:
        List of EliminationGroup in increasing size

    Raises:
        InconsistentBelief: If a set of cards needs more copies than remain
    """
    masks = {card_id: _pack(belief, card_id) for card_id in belief.unretired(card_ids)}
    if not masks:
        return []

    if max_group_size is None:
        max_group_size = len(masks)
    max_group_size = min(max_group_size, len(masks))

    copies = _CopyCounter(belief)
    return [
        EliminationGroup(card_ids=tuple(sorted(ids)), identities=_unpack(union))
        for ids, union in _search_groups(masks, copies, max_group_size)
    ]


def eliminate(
    belief: BeliefModel,
    card_ids: Iterable[int],
    max_group_size: Optional[int] = None
) -> list[EliminationGroup]:
    """
    Run elimination to a fixpoint, shrinking the belief model in place.

    Every identity confined to a group is removed from all other cards in
    `card_ids`. Passes repeat until one produces no change.

    Args:
        belief: Belief model to update
        card_ids: Cards to consider, normally every card currently in a hand
        max_group_size: Largest group to search for (see find_elimination_groups)

    Returns:
        Groups found in the final pass (every group whose constraint holds)

    Raises:
        InconsistentBelief: If elimination empties a candidate set or a set of
            cards needs more copies than remain
    """
    card_ids = belief.unretired(card_ids)
    groups: list[EliminationGroup] = []

    for _ in range(MAX_PASSES):
        groups = find_elimination_groups(belief, card_ids, max_group_size)
        changed = False
        for group in groups:
            members = set(group.card_ids)
            for card_id in card_ids:
                if card_id in members:
                    continue
                for card in group.identities:
                    if card in belief.possibilities(card_id):
                        changed |= belief.exclude(card_id, card)
        if not changed:
            break
        logger.debug(f"Elimination pass removed identities using {len(groups)} group(s)")
    else:
        logger.warning(f"Elimination did not settle after {MAX_PASSES} passes")

    return groups
