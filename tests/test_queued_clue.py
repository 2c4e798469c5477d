"""
Tests for conventions.queued_clue.
"""

from core.cards import Card
from conventions.queued_clue import (
    ClueStatus,
    Determined,
    DiscardedAtSlot,
    NOT_YET_RESPONDED,
    Played,
    QueuedClue,
    Undetermined,
)


HANDS = [[4, 3, 2, 1, 0], [9, 8, 7, 6, 5], [14, 13, 12, 11, 10]]


def make_clue(targets, dependencies=(), responders=(1,), unknown_plays=(), stacked=()):
    return QueuedClue.create(
        giver=0,
        receiver=1,
        turn=3,
        targets=list(targets),
        dependencies=set(dependencies),
        hands=HANDS,
        stacks={"r": 1, "y": 0, "g": 0, "b": 0, "w": 0},
        receiver_unknown_plays=set(unknown_plays),
        stacked_players=set(stacked),
        responders=list(responders),
    )


# ============================================================================
# Creation
# ============================================================================

def test_create_records_slots():
    """Test that slot numbers are 1-based from the newest card."""
    clue = make_clue([8, 6])
    assert clue.slot_sum == 2 + 4
    assert clue.num_plays == 2
    assert clue.slot_when_clued(9) == 1
    assert clue.slot_when_clued(14) is None
    assert clue.is_open
    assert isinstance(clue.discard_knowledge, Undetermined)
    assert ("r", 1) in clue.discard_knowledge.stacks_when_clued


def test_hands_are_snapshotted():
    """Test that later hand changes do not leak into the clue."""
    hands = [list(hand) for hand in HANDS]
    clue = QueuedClue.create(
        giver=0, receiver=1, turn=0, targets=[7], dependencies=set(), hands=hands,
        stacks={}, receiver_unknown_plays=set(), stacked_players=set(), responders=[1],
    )
    hands[1].insert(0, 20)
    assert clue.slot_when_clued(7) == 3


# ============================================================================
# Progress
# ============================================================================

def test_remaining_target_from_slot_sum():
    """Test recovering the last target once one play is left."""
    clue = make_clue([8, 6])
    assert clue.remaining_target() is None

    clue.note_target_played(8, Card("y", 2))
    assert clue.num_plays == 1
    assert clue.remaining_target() == 6
    assert clue.play_responses[0].slot == 2


def test_trashed_target_adjusts_slot_sum():
    """Test that a target turning into trash drops out of the checksum."""
    clue = make_clue([8, 6])
    clue.note_target_trashed(6)
    assert clue.slot_sum == 2
    assert clue.remaining_target() == 8


def test_resolves_after_plays_and_responders():
    """Test OPEN to RESOLVED once every play and responder is accounted for."""
    clue = make_clue([7], responders=(2, 1))
    clue.note_target_played(7, Card("b", 1))
    assert clue.is_open

    clue.note_response(2, DiscardedAtSlot(5))
    assert clue.first_response == DiscardedAtSlot(5)
    assert clue.is_open

    clue.note_response(1, Played())
    assert clue.status == ClueStatus.RESOLVED
    # The first response is kept.
    assert clue.first_response == DiscardedAtSlot(5)


def test_response_from_unexpected_player_is_ignored():
    """Test that only listed responders are recorded."""
    clue = make_clue([7])
    clue.note_response(2, Played())
    assert clue.first_response == NOT_YET_RESPONDED
    assert clue.remaining_responders == [1]


def test_clue_response_does_not_set_first_response():
    """Test that a clue uses up a responder's turn without a response."""
    clue = make_clue([7], responders=(2, 1))
    clue.note_response(2, NOT_YET_RESPONDED)
    assert clue.first_response == NOT_YET_RESPONDED
    assert clue.remaining_responders == [1]


def test_dependencies_and_references():
    """Test dependency resolution and card references."""
    clue = make_clue([7], dependencies={3, 12})
    assert clue.references(7)
    assert clue.references(12)
    assert not clue.references(9)
    assert clue.awaits(1)
    assert not clue.awaits(0)

    assert clue.resolve_dependency(3)
    assert not clue.resolve_dependency(3)
    assert clue.dependencies == {12}


def test_determine_and_violate():
    """Test discard knowledge and violation bookkeeping."""
    clue = make_clue([7])
    clue.determine({2: 4})
    assert clue.discard_knowledge == Determined(discard_slots={2: 4})
    assert "p2:4" in str(clue.discard_knowledge)

    clue.violate("p1 bombed r3")
    assert clue.status == ClueStatus.VIOLATED
    assert not clue.is_open
    assert "violated: p1 bombed r3" in clue.describe()


def test_is_target_follows_slot_sum():
    """Test that the checksum names the last target once one play is left."""
    clue = make_clue([8, 6])
    assert clue.is_target(8)
    assert clue.is_target(6)
    assert not clue.is_target(9)

    clue.note_target_played(8, Card("y", 2))
    assert clue.is_target(6)
    assert not clue.is_target(8)


# ============================================================================
# Discard knowledge
# ============================================================================

def test_discards_wait_for_stacked_players():
    """Test that discard slots stay open while a stacked player holds a dependency."""
    clue = make_clue([7], dependencies={12}, stacked={2})
    hands = [list(hand) for hand in HANDS]
    assert "waiting on players [2]" in str(clue.discard_knowledge)
    assert not clue.discards_settled(hands, lambda card_id: False)

    clue.resolve_dependency(12)
    hands[2].remove(12)
    assert clue.discards_settled(hands, lambda card_id: False)


def test_discards_wait_for_unknown_receiver_plays():
    """Test that an unidentified receiver play holds the discard slots back."""
    clue = make_clue([7], unknown_plays={9})
    hands = [list(hand) for hand in HANDS]
    assert not clue.discards_settled(hands, lambda card_id: False)
    assert clue.discards_settled(hands, lambda card_id: card_id == 9)

    hands[1].remove(9)
    assert clue.discards_settled(hands, lambda card_id: False)


def test_determined_clue_is_settled_once():
    """Test that determined discard knowledge is not recomputed."""
    clue = make_clue([7])
    assert clue.discards_settled(HANDS, lambda card_id: False)
    clue.determine({2: 1})
    assert not clue.discards_settled(HANDS, lambda card_id: False)
