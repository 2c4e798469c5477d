"""
Experiments module for Hanabi.

This module provides experiment orchestration tools for running many
seeded Hanabi games, parameter sweeps, and collecting results with flexible
tracking.

Exported Classes:
    HanabiExperiment: Main experiment orchestration class
    GameTracker: Abstract base class for trackers
    SummaryTracker: Score statistics tracker (O(1) memory)
    EpisodeTracker: Per-episode results tracker (O(n_games) memory)
    TrajectoryTracker: Full transcript tracker (O(n_games × n_steps) memory)
    ReplayTracker: Writes hanab.live replays around another tracker

Example:
    >>> from experiments import HanabiExperiment, SummaryTracker
    >>> from envs import HanabiEnv
    >>> from agents import RefSieveAgent
    >>>
    >>> exp = HanabiExperiment(env_factory=lambda seed: HanabiEnv(seed=seed))
    >>> agents = [RefSieveAgent(player) for player in range(2)]
    >>> policy_map = {f"player_{i}": agent.act for i, agent in enumerate(agents)}
    >>>
    >>> results = exp.run_games(policy_map=policy_map, n_games=100, tracker=SummaryTracker(), seed=0)
    >>> print(f"Average score: {results['average_score']:.2f}")
"""

from experiments.trackers import (
    GameTracker,
    SummaryTracker,
    EpisodeTracker,
    TrajectoryTracker,
    ReplayTracker,
)
from experiments.hanabi_experiment import HanabiExperiment

__all__ = [
    "HanabiExperiment",
    "GameTracker",
    "SummaryTracker",
    "EpisodeTracker",
    "TrajectoryTracker",
    "ReplayTracker",
]
