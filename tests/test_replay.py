"""
Tests for utils.replay and the simulate entry point.
"""

import json

import pytest

from core.actions import Action, Clue, TurnRecord
from core.cards import Card
from utils.replay import (
    ACTION_COLOR_CLUE,
    ACTION_DISCARD,
    ACTION_PLAY,
    ACTION_RANK_CLUE,
    action_to_json,
    build_replay,
    card_to_json,
    write_replay,
)
from conftest import Table
import simulate


def test_card_to_json():
    """Test suit index and rank encoding."""
    assert card_to_json(Card("r", 1)) == {"suitIndex": 0, "rank": 1}
    assert card_to_json(Card("w", 5)) == {"suitIndex": 4, "rank": 5}


def test_action_to_json():
    """Test every action type."""
    play = TurnRecord(player=0, action=Action.play(2), card_id=7, card=Card("b", 1), success=True)
    discard = TurnRecord(player=1, action=Action.discard(0), card_id=12, card=Card("g", 2))
    color = TurnRecord(player=0, action=Action.give_clue(1, Clue(color="g")), touched=(6,))
    rank = TurnRecord(player=0, action=Action.give_clue(2, Clue(value=4)), touched=(6,))

    assert action_to_json(play) == {"type": ACTION_PLAY, "target": 7}
    assert action_to_json(discard) == {"type": ACTION_DISCARD, "target": 12}
    assert action_to_json(color) == {"type": ACTION_COLOR_CLUE, "target": 1, "value": 2}
    assert action_to_json(rank) == {"type": ACTION_RANK_CLUE, "target": 2, "value": 4}


def test_action_without_card_id_raises():
    """Test that a play record must name its card."""
    with pytest.raises(ValueError):
        action_to_json(TurnRecord(player=0, action=Action.play(0)))


def test_build_replay_from_game(table):
    """Test a replay document built from a short game."""
    table.act(Action.give_clue(1, Clue(color="g")))
    table.act(Action.play(2))

    game = table.game
    replay = build_replay(game.deck, game.history, ["alice", "bob"])
    assert replay["options"] == {"variant": "No Variant"}
    assert replay["players"] == ["alice", "bob"]
    assert replay["first_player"] == 0
    assert replay["notes"] == [[], []]
    assert replay["deck"][0] == {"suitIndex": 4, "rank": 4}
    assert replay["actions"] == [
        {"type": ACTION_COLOR_CLUE, "target": 1, "value": 2},
        {"type": ACTION_PLAY, "target": 7},
    ]


def test_build_replay_checks_notes():
    """Test that notes must cover every player."""
    with pytest.raises(ValueError):
        build_replay([], [], ["a", "b"], notes=[[]])


def test_write_replay(tmp_path):
    """Test that a replay round-trips through disk as plain JSON."""
    replay = build_replay([Card("r", 1)], [], ["a", "b"], notes=[["r1"], [""]])
    path = write_replay(tmp_path / "replay.json", replay)
    with open(path) as f:
        assert json.load(f) == replay


# ============================================================================
# simulate.py
# ============================================================================

def test_simulate_random_agents(capsys):
    """Test the command-line entry point with random agents."""
    results = simulate.main(["-n", "3", "-s", "1", "-a", "random", "-l", "warning"])
    assert results["total_games"] == 3
    assert "Average score" in capsys.readouterr().out


def test_simulate_writes_replays(tmp_path):
    """Test that --json-output writes one replay per game."""
    pattern = str(tmp_path / "seed_%s.json")
    simulate.main(["-n", "2", "-s", "4", "-p", "3", "-j", pattern, "-l", "warning"])
    assert (tmp_path / "seed_4.json").exists()
    assert (tmp_path / "seed_5.json").exists()


def test_seats_get_their_own_seeds():
    """Test that agent seeds are offset per seat."""
    seeds = [simulate.seat_params(7, seat, None).seed for seat in range(4)]
    assert seeds == [7, 8, 9, 10]
    assert simulate.seat_params(None, 2, 5).seed is None
    assert simulate.seat_params(None, 2, 5).max_group_size == 5


def test_simulate_with_threads(capsys):
    """Test that --threads plays the same number of games on a pool."""
    results = simulate.main(["-n", "4", "-s", "2", "-a", "random", "-t", "2", "--progress", "2", "-l", "warning"])
    assert results["total_games"] == 4
    assert results["first_imperfect_seed"] == 2
    assert "Example seed with non-perfect score: 2" in capsys.readouterr().out
