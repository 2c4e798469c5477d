"""
Tests for core.belief module.
"""

import pytest
import torch

from core.actions import Clue
from core.belief import BeliefModel, identity_mask, cards_in_mask
from core.board import BoardState
from core.cards import Card
from core.errors import InconsistentBelief


def test_belief_initialization():
    """Test that every card starts with the full deck composition."""
    belief = BeliefModel(device="cpu")
    assert belief.candidates.shape == (50, 5, 5)
    assert belief.num_possibilities(0) == 25
    assert belief.weight(0) == 50
    assert belief.known(0) is None
    assert belief.describe(0) == "[rygbw12345]"


def test_apply_color_clue():
    """Test positive and negative color information."""
    belief = BeliefModel(device="cpu")
    belief.apply_clue_to_hand([0, 1, 2], Clue(color="r"), touched=[1])

    assert belief.describe(1) == "[r12345]"
    assert all(card.color == "r" for card in belief.possibilities(1))
    assert all(card.color != "r" for card in belief.possibilities(0))
    assert belief.num_possibilities(2) == 20


def test_apply_rank_clue_then_color_identifies_card():
    """Test that two clues can pin down an identity."""
    belief = BeliefModel(device="cpu")
    belief.apply_clue(4, Clue(value=5), touched=True)
    belief.apply_clue(4, Clue(color="b"), touched=True)
    assert belief.known(4) == Card("b", 5)
    assert belief.is_known(4)


def test_candidates_only_shrink():
    """Test that no sequence of updates ever grows a candidate set."""
    belief = BeliefModel(device="cpu")
    before = belief.mask(3)
    updates = [
        (Clue(value=1), False),
        (Clue(color="g"), False),
        (Clue(value=4), True),
        (Clue(color="w"), False),
    ]
    for clue, touched in updates:
        belief.apply_clue(3, clue, touched)
        after = belief.mask(3)
        assert not bool((after & ~before).any())
        before = after
    assert belief.possibilities(3) == [Card("r", 4), Card("y", 4), Card("b", 4)]


def test_intersect_to_empty_raises():
    """Test that emptying a candidate set is an engine fault."""
    belief = BeliefModel(device="cpu")
    belief.apply_clue(0, Clue(color="r"), touched=True)
    with pytest.raises(InconsistentBelief) as excinfo:
        belief.apply_clue(0, Clue(color="r"), touched=False)
    assert excinfo.value.card_id == 0


def test_reveal_retires_card():
    """Test that revealing a card fixes and retires it."""
    belief = BeliefModel(device="cpu")
    belief.reveal(7, Card("g", 3))

    assert belief.is_retired(7)
    assert belief.known(7) == Card("g", 3)
    assert int(belief.remaining_counts()[Card("g", 3).index]) == 1
    # Retired cards ignore further restrictions.
    assert belief.apply_clue(7, Clue(color="r"), touched=True) is False


def test_reveal_last_copy_excludes_identity():
    """Test that a fully revealed identity disappears from other cards."""
    belief = BeliefModel(device="cpu")
    belief.reveal(0, Card("w", 5))
    assert Card("w", 5) not in belief.possibilities(1)
    assert Card("w", 5) not in belief.possibilities(49)

    belief.reveal(2, Card("r", 2))
    assert Card("r", 2) in belief.possibilities(3)
    belief.reveal(4, Card("r", 2))
    assert Card("r", 2) not in belief.possibilities(3)


def test_reveal_ruled_out_identity_raises():
    """Test that revealing an excluded identity is an engine fault."""
    belief = BeliefModel(device="cpu")
    belief.apply_clue(5, Clue(value=1), touched=True)
    with pytest.raises(InconsistentBelief):
        belief.reveal(5, Card("r", 2))


def test_probability_and_is_all():
    """Test weighted probabilities and whole-set predicates."""
    belief = BeliefModel(device="cpu")
    board = BoardState(num_players=2, hand_size=5)

    belief.apply_clue(0, Clue(value=1), touched=True)
    assert belief.is_all_playable(0, board)
    assert belief.probability(0, board.is_playable, board) == pytest.approx(1.0)

    belief.apply_clue(1, Clue(value=5), touched=True)
    assert belief.probability(1, board.is_playable, board) == 0.0
    assert not belief.is_all_dispensable(1, board)

    # 15 ones out of 50 cards
    assert belief.probability(2, board.is_playable, board) == pytest.approx(15 / 50)

    board.stacks["r"] = 5
    belief.restrict_to(3, Card("r", 4))
    assert belief.is_all_dead(3, board)


def test_copy_is_independent():
    """Test that copies do not share candidate storage."""
    belief = BeliefModel(device="cpu")
    other = belief.copy()
    other.apply_clue(0, Clue(color="y"), touched=True)
    assert belief.num_possibilities(0) == 25
    assert other.num_possibilities(0) == 5
    assert belief != other
    assert belief == BeliefModel(device="cpu")


def test_identity_mask_helpers():
    """Test conversion between identities and masks."""
    cards = [Card("r", 1), Card("b", 4)]
    mask = identity_mask(cards)
    assert mask.dtype == torch.bool
    assert int(mask.sum()) == 2
    assert cards_in_mask(mask) == cards
