"""
Tests for envs.hanabi_env.
"""

import pytest

from core.actions import Action, Clue
from core.errors import IllegalAction
from core.game_state import GameOptions
from envs.hanabi_env import HanabiEnv, score_delta_reward
from conftest import stacked_deck


def opening_deck():
    # p0: r1 y1 g1 b3 w4, p1: r2 y2 b1 g4 w5 (newest first)
    return stacked_deck("w4 b3 g1 y1 r1 w5 g4 b1 y2 r2 r3 y3 g2")


def test_env_initialization():
    """Test environment initialization."""
    env = HanabiEnv(GameOptions(num_players=3), seed=1)
    assert env.agent_ids == ["player_0", "player_1", "player_2"]
    assert env.game_state.num_players == 3
    assert not env.game_over


def test_reset_observations():
    """Test that reset gives every agent a view and no record."""
    env = HanabiEnv(seed=5)
    obs = env.reset(seed=5)

    assert set(obs.keys()) == {"player_0", "player_1"}
    assert obs["player_0"]["is_active"]
    assert not obs["player_1"]["is_active"]
    assert obs["player_0"]["record"] is None
    assert obs["player_0"]["view"].me == 0
    assert obs["player_1"]["view"].me == 1


def test_reset_is_seeded():
    """Test that the same seed deals the same game."""
    env = HanabiEnv()
    env.reset(seed=11)
    first = list(env.game_state.deck)
    env.reset(seed=11)
    assert env.game_state.deck == first


def test_step_play_reward():
    """Test that a successful play earns the shared score reward."""
    env = HanabiEnv(deck=opening_deck())
    env.reset()
    env.step({"player_0": Action.give_clue(1, Clue(color="g")), "player_1": None})
    obs, rewards, dones, infos = env.step({"player_0": None, "player_1": Action.play(2)})

    assert rewards == {"player_0": 1.0, "player_1": 1.0}
    assert not dones["player_0"]
    assert obs["player_0"]["is_active"]
    assert obs["player_0"]["record"].card_id == 7
    assert infos["player_0"]["score"] == 1
    assert infos["player_0"]["deck"] is None


def test_step_requires_active_action():
    """Test that the active agent must supply an action."""
    env = HanabiEnv(seed=0)
    env.reset()
    with pytest.raises(ValueError):
        env.step({"player_0": None, "player_1": Action.play(0)})


def test_illegal_action_propagates():
    """Test that rule violations raise IllegalAction."""
    env = HanabiEnv(seed=0)
    env.reset()
    with pytest.raises(IllegalAction):
        env.step({"player_0": Action.discard(0)})


def test_custom_reward_fn():
    """Test a custom reward function penalising lost lives."""
    def lives_reward(prev_board, new_board, agent_id):
        return -float(prev_board.lives - new_board.lives)

    env = HanabiEnv(deck=opening_deck(), reward_fn=lives_reward)
    env.reset()
    _, rewards, _, infos = env.step({"player_0": Action.play(3)})
    assert rewards["player_0"] == -1.0
    assert infos["player_1"]["lives"] == 2


def test_score_delta_reward_function():
    """Test the default reward directly."""
    env = HanabiEnv(deck=opening_deck())
    before = env.game_state.board.copy()
    env.game_state.process(Action.play(0))
    assert score_delta_reward(before, env.game_state.board, "player_0") == 1.0


def test_infos_reveal_deck():
    """Test that the deck is only revealed on request or after the game."""
    env = HanabiEnv(seed=3)
    env.reset()
    assert env.get_infos()["player_0"]["deck"] is None
    infos = env.get_infos(reveal_deck=True)
    assert len(infos["player_1"]["deck"]) == 50
    assert infos["player_1"]["num_players"] == 2
