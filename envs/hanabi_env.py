"""
Multi-agent Hanabi environment.

One game per environment, exposed through the same reset/step API used by
the experiment runner: observations, rewards, dones and infos are dicts
keyed by agent id ("player_0", "player_1", ...).
"""

from __future__ import annotations

from typing import Optional, Any, Callable

from core.actions import Action
from core.board import BoardState
from core.cards import Card
from core.game_state import GameOptions, GameState


def score_delta_reward(
    prev_board: BoardState,
    new_board: BoardState,
    agent_id: str
) -> float:
    """
    Default shared reward: points added to the stacks this step.

    Args:
        prev_board: Board before the action
        new_board: Board after the action
        agent_id: Agent ID string

    Returns:
        Float reward
    """
    return float(new_board.score() - prev_board.score())


class HanabiEnv:
    """
    Multi-agent Hanabi environment.

    Every agent receives an observation each step; only the action of the
    agent whose turn it is gets applied, the others are ignored.

    Attributes:
        options: GameOptions for every game played in this env
        deck: Optional fixed deck (dealing order); shuffled from the seed if None
        game_state: Current GameState
        reward_fn: Reward function (defaults to score delta)
        agent_ids: One id per seat
    """

    def __init__(
        self,
        options: Optional[GameOptions] = None,
        deck: Optional[list[Card]] = None,
        reward_fn: Optional[Callable] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize Hanabi environment.

        Args:
            options: Rules configuration (defaults to 2 players)
            deck: Fixed deck in dealing order, for reproducing a game
            reward_fn: Optional custom reward function
            seed: Random seed for the first deal
        """
        self.options = options if options is not None else GameOptions()
        self.deck = list(deck) if deck is not None else None
        self.reward_fn = reward_fn or score_delta_reward
        self.seed = seed
        self.agent_ids = [f"player_{i}" for i in range(self.options.num_players)]
        self.game_state = GameState(self.options, deck=self.deck, seed=seed)
        self.last_record = None

    def reset(self, seed: Optional[int] = None) -> dict[str, Any]:
        """
        Deal a new game.

        Args:
            seed: Random seed for the shuffle (defaults to the constructor seed)

        Returns:
            obs_dict: Dictionary mapping agent_id to observation
        """
        if seed is None:
            seed = self.seed
        self.game_state = GameState(self.options, deck=self.deck, seed=seed)
        self.last_record = None
        return self._get_observations()

    def step(
        self,
        actions_dict: dict[str, Optional[Action]]
    ) -> tuple[dict, dict, dict, dict]:
        """
        Apply the active agent's action.

        Args:
            actions_dict: Dictionary mapping agent_id to Action (None for
                inactive agents)

        Returns:
            Tuple of (obs_dict, rewards_dict, dones_dict, infos_dict)

        Raises:
            ValueError: If the active agent supplied no action
            IllegalAction: If the action breaks the rules
        """
        active_id = self.agent_ids[self.game_state.current_player]
        action = actions_dict.get(active_id)
        if action is None:
            raise ValueError(f"No action from active agent {active_id}")

        prev_board = self.game_state.board.copy()
        self.last_record = self.game_state.process(action)
        new_board = self.game_state.board

        rewards_dict = {
            agent_id: self.reward_fn(prev_board, new_board, agent_id) for agent_id in self.agent_ids
        }
        done = self.game_state.is_over()
        dones_dict = {agent_id: done for agent_id in self.agent_ids}
        return self._get_observations(), rewards_dict, dones_dict, self.get_infos()

    @property
    def game_over(self) -> bool:
        return self.game_state.is_over()

    def _get_observations(self) -> dict[str, Any]:
        """
        Build per-agent observations.

        Returns:
            Dictionary mapping agent_id to {"view", "record", "is_active"}
        """
        current = self.game_state.current_player
        obs_dict = {}
        for player, agent_id in enumerate(self.agent_ids):
            obs_dict[agent_id] = {
                "view": self.game_state.get_view(player),
                "record": self.last_record,
                "is_active": player == current and not self.game_state.is_over(),
            }
        return obs_dict

    def get_infos(self, reveal_deck: bool = False) -> dict[str, dict]:
        """
        Build infos dict; every agent gets the same game-level info.

        Args:
            reveal_deck: Include the dealt deck even if the game is still running

        Returns:
            Dictionary mapping agent_id to info dict. "deck" is the dealing
            order once the game is over (or when revealed), else None.
        """
        board = self.game_state.board
        over = self.game_state.is_over()
        shared_info = {
            "score": board.score(),
            "turn_count": board.turn,
            "lives": board.lives,
            "clue_tokens": board.clue_tokens,
            "game_over": over,
            "record": self.last_record,
            "history": list(self.game_state.history),
            "deck": list(self.game_state.deck) if over or reveal_deck else None,
            "num_players": self.options.num_players,
        }
        return {agent_id: shared_info for agent_id in self.agent_ids}
