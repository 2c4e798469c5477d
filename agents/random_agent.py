"""
Random baseline agent.
"""

from __future__ import annotations

import random
from typing import Optional

from core.actions import ALL_CLUES, Action, TurnRecord
from agents.base_agent import BaseAgent, AgentParams
from views.player_view import PlayerView


def legal_actions(view: PlayerView) -> list[Action]:
    """Every legal action for the owner of `view`, in a fixed order."""
    board = view.board
    hand_size = view.hand_size(view.me)
    actions = [Action.play(slot) for slot in range(hand_size)]
    if board.clue_tokens < board.max_clues:
        actions.extend(Action.discard(slot) for slot in range(hand_size))
    if board.clue_tokens > 0:
        for receiver in view.other_players():
            cards = [card for _, card in view.hand(receiver)]
            for clue in ALL_CLUES:
                if any(clue.matches(card) for card in cards):
                    actions.append(Action.give_clue(receiver, clue))
    return actions


class RandomAgent(BaseAgent):
    """
    Simple random baseline.

    Picks uniformly among legal actions and keeps no convention state.
    """

    def __init__(self, player: int, params: Optional[AgentParams] = None):
        """
        Initialize random agent.

        Args:
            player: Seat this agent plays
            params: AgentParams (seed is used, other params ignored)
        """
        super().__init__(player, params)
        self.rng = random.Random(self.params.seed)

    def reset(self, view: PlayerView) -> None:
        pass

    def observe(self, record: TurnRecord, view: PlayerView) -> None:
        pass

    def decide_move(self, view: PlayerView) -> Action:
        return self.rng.choice(legal_actions(view))
