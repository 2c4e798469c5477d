"""
Environments module for Hanabi games.

This module provides the multi-agent Hanabi environment used by the
experiment runner.
"""

from envs.hanabi_env import HanabiEnv, score_delta_reward

__all__ = ["HanabiEnv", "score_delta_reward"]
