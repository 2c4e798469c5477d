"""
Experiment runner for Hanabi.

HanabiExperiment plays many seeded games, one after another or on a thread
pool, and reports every step and every finished game to a tracker.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from functools import partial
from typing import Callable, Optional, Any
import logging
import random

from core.errors import InconsistentBelief
from envs.hanabi_env import HanabiEnv
from experiments.trackers import GameTracker, SummaryTracker
from utils.replay import collect_notes

logger = logging.getLogger(__name__)


class _StepRecorder(GameTracker):
    """Buffers one game's turns so worker threads never touch the run's tracker."""

    def __init__(self):
        self.steps = []

    def on_step(self, step, obs_dict, actions_dict, rewards_dict, dones_dict, infos_dict) -> None:
        self.steps.append({
            "step": step,
            "obs_dict": obs_dict,
            "actions_dict": actions_dict,
            "rewards_dict": rewards_dict,
            "dones_dict": dones_dict,
            "infos_dict": infos_dict,
        })

    def on_episode_end(self, episode_idx, final_infos) -> None:
        pass

    def get_results(self) -> list[dict]:
        return self.steps


class HanabiExperiment:
    """
    Plays seeded Hanabi games and feeds the results to trackers.

    Game i of a run is dealt from `seed + i`. A game in which an agent
    raises InconsistentBelief is cut short: each agent's state is logged and
    the game is still handed to the tracker, flagged with `aborted=True`.

    With n_workers > 1 games run on a thread pool. Agents keep per-game
    state, so a parallel run builds a fresh policy map for every game from
    `make_policy_map`. Turns are buffered per game and replayed to the
    tracker in game order, so trackers see the same callbacks as in a
    sequential run.

    Example:
        ```python
        exp = HanabiExperiment(
            env_factory=lambda seed: HanabiEnv(GameOptions(num_players=3), seed=seed),
            n_workers=4,
        )

        def make_policy_map():
            agents = [RefSieveAgent(player) for player in range(3)]
            return {f"player_{i}": agent.act for i, agent in enumerate(agents)}

        results = exp.run_games(make_policy_map=make_policy_map, n_games=100, seed=0)
        print(f"{results['average_score']:.2f} ± {results['stdev_of_average']:.2f}")
        ```

    Attributes:
        env_factory: Builds a HanabiEnv from a game seed
        max_turns: Turn limit after which a game is cut off
        abort_on_error: Re-raise InconsistentBelief instead of recording an aborted game
        n_workers: Games played at once
        progress_every: Log progress every this many games (0 = never)
    """

    def __init__(
        self,
        env_factory: Callable[[int], HanabiEnv],
        max_turns: int = 200,
        abort_on_error: bool = False,
        n_workers: int = 1,
        progress_every: int = 0
    ):
        """
        Set up the runner.

        Args:
            env_factory: Called with each game's seed, e.g.
                        lambda seed: HanabiEnv(seed=seed)
            max_turns: Turn limit per game
            abort_on_error: Let InconsistentBelief propagate to the caller
            n_workers: Size of the thread pool; 1 plays games in order
            progress_every: Log a progress line every this many games
        """
        if n_workers < 1:
            raise ValueError(f"n_workers must be at least 1, got {n_workers}")
        self.env_factory = env_factory
        self.max_turns = max_turns
        self.abort_on_error = abort_on_error
        self.n_workers = n_workers
        self.progress_every = progress_every

    @staticmethod
    def _agents_of(policy_map: dict[str, Callable]) -> list[Any]:
        return [getattr(policy, "__self__", None) for policy in policy_map.values()]

    def _log_agent_states(self, policy_map: dict[str, Callable]) -> None:
        for agent_id, agent in zip(policy_map, self._agents_of(policy_map)):
            if agent is not None and hasattr(agent, "describe_state"):
                logger.error(f"{agent_id}:\n{agent.describe_state()}")

    def _play_game(self, env: HanabiEnv, policy_map: dict[str, Callable], tracker: GameTracker, game_seed: int) -> None:
        """Drive one game until it ends or hits the turn limit."""
        obs_dict = env.reset(seed=game_seed)
        for turn in range(self.max_turns):
            if env.game_over:
                return
            # Every policy sees every observation; inactive ones answer None.
            actions_dict = {agent_id: policy(obs_dict[agent_id]) for agent_id, policy in policy_map.items()}
            obs_dict, rewards_dict, dones_dict, infos_dict = env.step(actions_dict)
            tracker.on_step(
                step=turn,
                obs_dict=obs_dict,
                actions_dict=actions_dict,
                rewards_dict=rewards_dict,
                dones_dict=dones_dict,
                infos_dict=infos_dict
            )
        if not env.game_over:
            logger.warning(f"Game with seed {game_seed} reached the turn limit of {self.max_turns}")

    def _run_game(
        self,
        policy_map: dict[str, Callable],
        tracker: GameTracker,
        game_idx: int,
        game_seed: int
    ) -> dict[str, Any]:
        """
        Play one game, reporting turns to `tracker`.

        Returns:
            Final infos per seat with the deck revealed, plus "aborted",
            "seed" and, when the policies belong to agents that keep
            notes, "notes"
        """
        env = self.env_factory(game_seed)
        unseated = set(env.agent_ids) - set(policy_map)
        if unseated:
            raise ValueError(f"policy_map has no policy for seats: {sorted(unseated)}")

        aborted = False
        try:
            self._play_game(env, policy_map, tracker, game_seed)
        except InconsistentBelief as exc:
            logger.error(f"Game {game_idx} (seed {game_seed}) aborted: {exc}")
            self._log_agent_states(policy_map)
            if self.abort_on_error:
                raise
            aborted = True

        infos = env.get_infos(reveal_deck=True)
        extra = {"aborted": aborted, "seed": game_seed}
        agents = self._agents_of({agent_id: policy_map[agent_id] for agent_id in env.agent_ids})
        if any(getattr(agent, "knowledge", None) is not None for agent in agents):
            deck = infos[env.agent_ids[0]]["deck"]
            extra["notes"] = collect_notes(agents, len(deck))
        return {agent_id: dict(info, **extra) for agent_id, info in infos.items()}

    def _play_recorded(
        self,
        make_policy_map: Callable[[], dict[str, Callable]],
        game_idx: int,
        game_seed: int
    ) -> tuple[list[dict], dict[str, Any]]:
        """Worker body: one game with fresh policies and buffered turns."""
        recorder = _StepRecorder()
        final_infos = self._run_game(make_policy_map(), recorder, game_idx, game_seed)
        return recorder.get_results(), final_infos

    def _finish_game(
        self,
        tracker: GameTracker,
        game_idx: int,
        n_games: int,
        final_infos: dict[str, Any],
        verbose: bool
    ) -> None:
        tracker.on_episode_end(episode_idx=game_idx, final_infos=final_infos)
        info = next(iter(final_infos.values()))
        if verbose:
            print(f"Game {game_idx + 1}/{n_games} (seed {info['seed']}): score {info['score']}")
        if self.progress_every and (game_idx + 1) % self.progress_every == 0:
            logger.info(f"{game_idx + 1}/{n_games} games played")

    def run_games(
        self,
        policy_map: Optional[dict[str, Callable[[dict], Any]]] = None,
        n_games: int = 1,
        tracker: Optional[GameTracker] = None,
        seed: Optional[int] = None,
        verbose: bool = False,
        make_policy_map: Optional[Callable[[], dict[str, Callable[[dict], Any]]]] = None
    ) -> Any:
        """
        Play n_games and return what the tracker collected.

        Args:
            policy_map: agent_id -> policy, reused for every game. A policy
                       takes an observation dict and returns an Action when
                       active, else None. Every seat needs one.
            n_games: Number of games
            tracker: Tracker receiving the callbacks (SummaryTracker if None)
            seed: Seed of the first game (random if None)
            verbose: Print a line after each game
            make_policy_map: Builds a fresh policy map per game. Required
                       when n_workers > 1; takes precedence over policy_map.

        Returns:
            tracker.get_results()

        Raises:
            ValueError: If a seat has no policy, or no policies were given
            InconsistentBelief: If abort_on_error is set and an agent fails
        """
        if policy_map is None and make_policy_map is None:
            raise ValueError("run_games needs policy_map or make_policy_map")
        if self.n_workers > 1 and make_policy_map is None:
            raise ValueError("Parallel runs need make_policy_map; agents cannot be shared between games")
        if tracker is None:
            tracker = SummaryTracker()
        if seed is None:
            seed = random.randint(0, 2**31 - 1)

        if self.n_workers == 1:
            for game_idx in range(n_games):
                policies = make_policy_map() if make_policy_map is not None else policy_map
                final_infos = self._run_game(policies, tracker, game_idx, seed + game_idx)
                self._finish_game(tracker, game_idx, n_games, final_infos, verbose)
            return tracker.get_results()

        with ThreadPoolExecutor(max_workers=self.n_workers) as executor:
            futures = {
                executor.submit(self._play_recorded, make_policy_map, game_idx, seed + game_idx): game_idx
                for game_idx in range(n_games)
            }
            finished = {}
            next_idx = 0
            try:
                for future in as_completed(futures):
                    finished[futures[future]] = future.result()
                    # Replay in game order.
                    while next_idx in finished:
                        steps, final_infos = finished.pop(next_idx)
                        for step in steps:
                            tracker.on_step(**step)
                        self._finish_game(tracker, next_idx, n_games, final_infos, verbose)
                        next_idx += 1
            except Exception:
                for future in futures:
                    future.cancel()
                raise

        return tracker.get_results()

    def run_sweep(
        self,
        policy_factory: Callable[[dict], dict[str, Callable]],
        param_grid: list[dict],
        n_games_per_config: int = 10,
        tracker_factory: Optional[Callable[[], GameTracker]] = None,
        seed: Optional[int] = None,
        verbose: bool = False
    ) -> list[dict]:
        """
        Compare agent configurations on the same kind of deals.

        Configuration i uses seeds starting at `seed + i * 10000`.

        Args:
            policy_factory: params dict -> policy_map, called once per game
            param_grid: Parameter dicts, one per configuration
            n_games_per_config: Games per configuration
            tracker_factory: Builds a fresh tracker per configuration
                           (SummaryTracker if None)
            seed: Base seed (random if None)
            verbose: Print progress

        Returns:
            One {"params", "results", "seed"} dict per configuration

        Example:
            ```python
            def make_policies(params):
                agents = [RefSieveAgent(p, AgentParams(**params)) for p in range(2)]
                return {f"player_{p}": agent.act for p, agent in enumerate(agents)}

            sweep = exp.run_sweep(
                policy_factory=make_policies,
                param_grid=[{"low_clue_threshold": 1}, {"low_clue_threshold": 2}],
                n_games_per_config=100
            )
            ```
        """
        if tracker_factory is None:
            tracker_factory = SummaryTracker
        if seed is None:
            seed = random.randint(0, 2**31 - 1)

        sweep = []
        for config_idx, params in enumerate(param_grid):
            if verbose:
                print(f"\nConfiguration {config_idx + 1}/{len(param_grid)}: {params}")

            config_seed = seed + config_idx * 10000
            results = self.run_games(
                make_policy_map=partial(policy_factory, params),
                n_games=n_games_per_config,
                tracker=tracker_factory(),
                seed=config_seed,
                verbose=verbose
            )
            sweep.append({"params": params, "results": results, "seed": config_seed})

        return sweep
