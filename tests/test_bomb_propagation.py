"""
Tests for queued clue violation and retirement after bombs and discards.
"""

from core.actions import Action, Clue
from conventions.categories import Category
from conventions.queued_clue import ClueStatus
from conftest import Table


def test_bomb_by_receiver_violates_open_clue(table):
    """Test that the receiver bombing another card retires the clue."""
    desc = table.act(Action.give_clue(1, Clue(color="g")))[0]
    assert desc.category == Category.REFERENTIAL_PLAY
    assert desc.target == 7

    desc = table.act(Action.play(0))[0]
    assert desc.category == Category.BOMB

    for knowledge in table.knowledge:
        assert not knowledge.queued_clues
        assert len(knowledge.violated_clues) == 1
        clue = knowledge.violated_clues[0]
        assert clue.status == ClueStatus.VIOLATED
        assert "bombed" in clue.violation
        assert not knowledge.note(7).play
        assert not knowledge.note(7).queued_play
        assert knowledge.instructed_plays[1] == []


def test_discarding_target_violates_clue(table):
    """Test that discarding an expected card that is still useful violates the clue."""
    table.act(Action.give_clue(1, Clue(color="g")))
    table.act(Action.discard(2))

    for knowledge in table.knowledge:
        assert len(knowledge.violated_clues) == 1
        assert "discarded expected card" in knowledge.violated_clues[0].violation


def test_receiver_clue_keeps_clue_open(table):
    """Test that a clue from the receiver does not violate its own queued play."""
    table.act(Action.give_clue(1, Clue(color="g")))
    table.act(Action.give_clue(0, Clue(value=1)))

    for knowledge in table.knowledge:
        assert len(knowledge.queued_clues) == 1
        assert knowledge.queued_clues[0].is_open
        assert knowledge.note(7).play


def test_play_clue_waits_on_receiver_plays(two_player_game):
    """Test that a play clue waits on plays noted in the receiver's hand."""
    table = Table(two_player_game)
    # Rank 1 makes b1 a known play; yellow on y2 then targets r2 behind it.
    table.act(Action.give_clue(1, Clue(value=1)))
    table.act(Action.give_clue(0, Clue(value=3)))
    desc = table.act(Action.give_clue(1, Clue(color="y")))[0]
    assert desc.category == Category.REFERENTIAL_PLAY
    assert desc.target == 9

    for knowledge in table.knowledge:
        note = knowledge.note(9)
        assert note.play
        assert note.queued_play == frozenset({7})
        assert not note.is_due()
        clue = knowledge.queued_clues[-1]
        assert clue.dependencies == {7}

    # Once b1 is played the queued play on r2 becomes due.
    table.act(Action.play(2))
    for knowledge in table.knowledge:
        assert knowledge.note(9).is_due()
