"""
Game trackers for Hanabi experiments.

HanabiExperiment reports every turn and every finished game to a tracker.
What a tracker keeps is up to it: running score statistics, one row per
game, full transcripts, or replay files on disk.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional
import numpy as np

from core.cards import COLORS, FINAL_VALUE
from utils.replay import build_replay, collect_notes, write_replay

MAX_SCORE = len(COLORS) * FINAL_VALUE


def _game_info(final_infos: dict[str, Any]) -> dict[str, Any]:
    """The info dict of any seat; game-level fields are shared by all of them."""
    return next(iter(final_infos.values()))


class GameTracker(ABC):
    """
    Interface the experiment runner reports to.

    on_step fires after every turn, on_episode_end once per game (aborted
    games included) and get_results hands back whatever was collected.
    """

    @abstractmethod
    def on_step(
        self,
        step: int,
        obs_dict: dict[str, Any],
        actions_dict: dict[str, Any],
        rewards_dict: dict[str, float],
        dones_dict: dict[str, bool],
        infos_dict: dict[str, Any]
    ) -> None:
        """
        Record one turn.

        Args:
            step: Turn number within the game
            obs_dict: Observation per agent, after the turn
            actions_dict: Action per agent (None for everyone but the actor)
            rewards_dict: Reward per agent
            dones_dict: Done flag per agent
            infos_dict: Info dict per agent
        """

    @abstractmethod
    def on_episode_end(self, episode_idx: int, final_infos: dict[str, Any]) -> None:
        """
        Record a finished or aborted game.

        Args:
            episode_idx: Position of the game in the run
            final_infos: Env infos with the deck revealed, plus "aborted"
        """

    @abstractmethod
    def get_results(self) -> Any:
        """Collected data, in a tracker-specific shape."""

    def reset(self) -> None:
        """Forget collected data. No-op unless overridden."""


class BaseTracker(GameTracker):
    """
    GameTracker that sums each agent's rewards over the current game.

    Subclasses see turns through _record_step and collect the per-game
    sums with _take_episode_rewards when the game ends.
    """

    def __init__(self):
        self.agent_ids = []
        self.episode_rewards = {}

    def on_step(
        self,
        step: int,
        obs_dict: dict[str, Any],
        actions_dict: dict[str, Any],
        rewards_dict: dict[str, float],
        dones_dict: dict[str, bool],
        infos_dict: dict[str, Any]
    ) -> None:
        if not self.agent_ids:
            self.agent_ids = list(rewards_dict)
            self.episode_rewards = dict.fromkeys(self.agent_ids, 0.0)
        for agent_id, reward in rewards_dict.items():
            self.episode_rewards[agent_id] += float(reward)
        self._record_step(step, actions_dict, rewards_dict, infos_dict)

    def _record_step(
        self,
        step: int,
        actions_dict: dict[str, Any],
        rewards_dict: dict[str, float],
        infos_dict: dict[str, Any]
    ) -> None:
        pass

    def _take_episode_rewards(self) -> dict[str, float]:
        """Return this game's reward sums and start the next game from zero."""
        rewards = dict(self.episode_rewards)
        self.episode_rewards = dict.fromkeys(self.agent_ids, 0.0)
        return rewards


class SummaryTracker(BaseTracker):
    """
    Running score statistics over a whole run.

    Only sums and a score histogram are kept, so a run of any length costs
    the same memory. Aborted games count towards every statistic and are
    also counted separately.
    """

    def __init__(self):
        super().__init__()
        self.total_games = 0
        self.total_steps = 0
        self.aborted_games = 0

        self.histogram = np.zeros(MAX_SCORE + 1, dtype=np.int64)
        self.score_sum = 0.0
        self.score_sum_sq = 0.0
        self.total_turns = 0
        self.lives_sum = 0
        self.reward_sums = {}
        self.first_imperfect_seed = None

    def _record_step(self, step, actions_dict, rewards_dict, infos_dict) -> None:
        self.total_steps += 1

    def on_episode_end(self, episode_idx: int, final_infos: dict[str, Any]) -> None:
        info = _game_info(final_infos)
        score = int(info["score"])

        self.total_games += 1
        self.aborted_games += int(bool(info.get("aborted", False)))
        self.histogram[score] += 1
        self.score_sum += score
        self.score_sum_sq += score ** 2
        self.total_turns += int(info["turn_count"])
        self.lives_sum += int(info["lives"])
        if score < MAX_SCORE and self.first_imperfect_seed is None:
            self.first_imperfect_seed = info.get("seed", episode_idx)

        for agent_id, reward in self._take_episode_rewards().items():
            self.reward_sums[agent_id] = self.reward_sums.get(agent_id, 0.0) + reward

    def get_results(self) -> dict[str, Any]:
        """
        Summarize the run.

        Returns:
            Dict with total_games, aborted_games, histogram ({score: count},
            reached scores only), average_score, stdev_of_average (standard
            error of the mean), perfect_rate, avg_turns, avg_lives,
            rewards_per_agent (mean reward per game) and first_imperfect_seed
            (seed of the first game short of the maximum score, or None).
        """
        n = self.total_games
        if n == 0:
            return {
                "total_games": 0,
                "aborted_games": 0,
                "histogram": {},
                "average_score": 0.0,
                "stdev_of_average": 0.0,
                "perfect_rate": 0.0,
                "avg_turns": 0.0,
                "avg_lives": 0.0,
                "rewards_per_agent": {},
                "first_imperfect_seed": None,
            }

        mean = self.score_sum / n
        stdev_of_average = 0.0
        if n > 1:
            # sum((x - mean)^2) == sum(x^2) - n * mean^2
            squared_deviations = max(0.0, self.score_sum_sq - n * mean ** 2)
            stdev_of_average = float(np.sqrt(squared_deviations / ((n - 1) * n)))

        return {
            "total_games": n,
            "aborted_games": self.aborted_games,
            "histogram": {score: int(count) for score, count in enumerate(self.histogram) if count},
            "average_score": mean,
            "stdev_of_average": stdev_of_average,
            "perfect_rate": int(self.histogram[MAX_SCORE]) / n,
            "avg_turns": self.total_turns / n,
            "avg_lives": self.lives_sum / n,
            "rewards_per_agent": {agent_id: total / n for agent_id, total in self.reward_sums.items()},
            "first_imperfect_seed": self.first_imperfect_seed,
        }

    def reset(self) -> None:
        self.__init__()


class EpisodeTracker(BaseTracker):
    """
    One row per game: score, lives, turns, aborted flag and reward sums.

    Handy for spotting individual bad deals in a run.
    """

    def __init__(self):
        super().__init__()
        self.episodes = []

    def on_episode_end(self, episode_idx: int, final_infos: dict[str, Any]) -> None:
        info = _game_info(final_infos)
        self.episodes.append({
            "episode_idx": episode_idx,
            "score": int(info["score"]),
            "lives": int(info["lives"]),
            "turns": int(info["turn_count"]),
            "aborted": bool(info.get("aborted", False)),
            "total_rewards": self._take_episode_rewards(),
        })

    def get_results(self) -> list[dict]:
        return self.episodes

    def reset(self) -> None:
        self.__init__()


class TrajectoryTracker(BaseTracker):
    """
    Turn-by-turn transcript of every game.

    Each step keeps the public record of the action and the board counters
    after it. Given agents, their state dumps (notes, queued clues, locks)
    are captured after every step as well, which is what you want when
    chasing a convention bug. State dumps need a sequential run with a fixed
    policy_map, since parallel runs build their agents per game. Each
    finished episode also carries the deck and action history, enough for
    utils.replay.
    """

    def __init__(self, agents: Optional[dict[str, Any]] = None, store_states: bool = True):
        """
        Args:
            agents: agent_id -> agent exposing describe_state()
            store_states: Capture agent state dumps (large)
        """
        super().__init__()
        self.agents = agents
        self.store_states = store_states

        self.episodes = []
        self.current_trajectory = []

    def _record_step(self, step, actions_dict, rewards_dict, infos_dict) -> None:
        info = _game_info(infos_dict)
        step_data = {
            "step": step,
            "record": str(info["record"]),
            "score": info["score"],
            "lives": info["lives"],
            "clue_tokens": info["clue_tokens"],
            "rewards": dict(rewards_dict),
        }
        if self.store_states and self.agents:
            step_data["states"] = {agent_id: agent.describe_state() for agent_id, agent in self.agents.items()}
        self.current_trajectory.append(step_data)

    def on_episode_end(self, episode_idx: int, final_infos: dict[str, Any]) -> None:
        info = _game_info(final_infos)
        self.episodes.append({
            "episode_idx": episode_idx,
            "trajectory": self.current_trajectory,
            "score": int(info["score"]),
            "turns": int(info["turn_count"]),
            "aborted": bool(info.get("aborted", False)),
            "num_players": info["num_players"],
            "deck": info["deck"],
            "history": info["history"],
        })
        self.current_trajectory = []
        self._take_episode_rewards()

    def get_results(self) -> list[dict]:
        """
        Returns:
            One dict per game with episode_idx, trajectory (list of step
            dicts), score, turns, aborted, and the num_players, deck and
            history that utils.replay.build_replay takes.
        """
        return self.episodes

    def reset(self) -> None:
        self.__init__(agents=self.agents, store_states=self.store_states)


class ReplayTracker(GameTracker):
    """
    Tracker that writes a hanab.live replay for every finished game.

    Statistics are delegated to an inner tracker, so a ReplayTracker can
    wrap a SummaryTracker and still return its results. Notes and seeds
    carried in the final infos (HanabiExperiment adds both) win over the
    agents and seed given here.
    """

    def __init__(
        self,
        inner: GameTracker,
        path_pattern: str,
        seed: int,
        agents: Optional[dict[str, Any]] = None,
        losses_only: bool = False
    ):
        """
        Args:
            inner: Tracker whose results get_results() returns
            path_pattern: Output path; "%s" is replaced by the game seed
            seed: Seed of the first game (game i uses seed + i)
            agents: Optional mapping of agent_id to agent, for notes and names
            losses_only: Skip games that reach the maximum score
        """
        self.inner = inner
        self.path_pattern = path_pattern
        self.seed = seed
        self.agents = agents
        self.losses_only = losses_only
        self.written = []

    def on_step(
        self,
        step: int,
        obs_dict: dict[str, Any],
        actions_dict: dict[str, Any],
        rewards_dict: dict[str, float],
        dones_dict: dict[str, bool],
        infos_dict: dict[str, Any]
    ) -> None:
        self.inner.on_step(step, obs_dict, actions_dict, rewards_dict, dones_dict, infos_dict)

    def on_episode_end(self, episode_idx: int, final_infos: dict[str, Any]) -> None:
        """Write the replay, then forward to the inner tracker."""
        self.inner.on_episode_end(episode_idx, final_infos)
        info = _game_info(final_infos)
        if self.losses_only and int(info["score"]) == MAX_SCORE:
            return

        deck = info["deck"]
        names = list(final_infos.keys())
        notes = info.get("notes")
        if notes is None and self.agents:
            notes = collect_notes(list(self.agents.values()), len(deck))
        replay = build_replay(deck, info["history"], names, notes)
        seed = info.get("seed", self.seed + episode_idx)
        path = self.path_pattern.replace("%s", str(seed))
        self.written.append(write_replay(path, replay))

    def get_results(self) -> Any:
        return self.inner.get_results()

    def reset(self) -> None:
        self.inner.reset()
        self.written = []
