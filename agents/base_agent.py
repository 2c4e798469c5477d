"""
Base class for Hanabi agents.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Any

from core.actions import Action, TurnRecord
from core.elimination import DEFAULT_MAX_GROUP_SIZE
from views.player_view import PlayerView


@dataclass
class AgentParams:
    """
    Parameters for Hanabi agents.

    Attributes:
        seed: Random seed for reproducibility
        max_group_size: Largest elimination group searched (None = no bound)
        low_clue_threshold: Clue count at or below which hands with a
            critical chop are rescued before anything else
    """
    seed: Optional[int] = None
    max_group_size: Optional[int] = DEFAULT_MAX_GROUP_SIZE
    low_clue_threshold: int = 2


class BaseAgent(ABC):
    """
    Abstract base class for Hanabi agents.

    An agent is driven one observation at a time. Every agent sees every
    action through observe(); only the player whose turn it is is asked for
    a move.
    """

    def __init__(self, player: int, params: Optional[AgentParams] = None):
        """
        Initialize agent.

        Args:
            player: Seat this agent plays
            params: AgentParams with configuration
        """
        self.player = player
        self.params = params if params is not None else AgentParams()

    @abstractmethod
    def reset(self, view: PlayerView) -> None:
        """Start a new game from the opening view."""
        pass

    @abstractmethod
    def observe(self, record: TurnRecord, view: PlayerView) -> None:
        """
        Update internal state after an action.

        Args:
            record: The action just taken by any player
            view: This agent's view after the action
        """
        pass

    @abstractmethod
    def decide_move(self, view: PlayerView) -> Action:
        """Choose a legal action for the current turn."""
        pass

    def describe_state(self) -> str:
        """Human-readable dump of internal state (for error reports)."""
        return f"{type(self).__name__}(player={self.player})"

    def act(self, obs: dict[str, Any]) -> Optional[Action]:
        """
        Policy entry point used by HanabiEnv experiments.

        Args:
            obs: Agent observation from the environment containing:
                - "view": PlayerView for this agent
                - "record": TurnRecord of the last action (None at reset)
                - "is_active": Whether it is this agent's turn

        Returns:
            An Action if this agent is active, else None
        """
        view = obs["view"]
        if obs["record"] is None:
            self.reset(view)
        else:
            self.observe(obs["record"], view)
        if obs["is_active"]:
            return self.decide_move(view)
        return None
