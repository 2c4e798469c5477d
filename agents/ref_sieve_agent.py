"""
Referential sieve agent.

Each agent keeps two belief models over the same card ids. The public one
lives inside PlayerKnowledge and is built only from information every
player has, so all agents hold identical copies of it and derive identical
notes from it. The private one additionally knows the identity of every
card this agent can see, and is used only for this agent's own decisions.
"""

from __future__ import annotations

from typing import Optional
import logging

import torch

from agents.base_agent import BaseAgent, AgentParams
from core.actions import Action, TurnRecord
from core.belief import BeliefModel
from core.elimination import eliminate
from conventions.categories import MoveDescription
from conventions.interpretation import ClueInterpreter
from conventions.knowledge import PlayerKnowledge
from conventions.rules import ConventionRuleEngine
from views.player_view import PlayerView

logger = logging.getLogger(__name__)


class RefSieveAgent(BaseAgent):
    """
    Agent that plays the referential sieve convention.

    Attributes:
        interpreter: ClueInterpreter shared by observation and decision
        rules: ConventionRuleEngine choosing moves
        knowledge: PlayerKnowledge for the current game
        private: Private BeliefModel for the current game
        last_move: Description of the most recent observed action
    """

    def __init__(
        self,
        player: int,
        params: Optional[AgentParams] = None,
        device: Optional[torch.device | str] = None
    ):
        """
        Initialize referential sieve agent.

        Args:
            player: Seat this agent plays
            params: AgentParams with configuration
            device: Device for belief tensors (defaults to utils.device)
        """
        super().__init__(player, params)
        if device is None:
            from utils.device import get_device
            device = get_device()
        self.device = torch.device(device) if isinstance(device, str) else device

        self.interpreter = ClueInterpreter(max_group_size=self.params.max_group_size)
        self.rules = ConventionRuleEngine(self.interpreter, low_clue_threshold=self.params.low_clue_threshold)
        self.knowledge: Optional[PlayerKnowledge] = None
        self.private: Optional[BeliefModel] = None
        self.last_move: Optional[MoveDescription] = None

    def reset(self, view: PlayerView) -> None:
        if view.me != self.player:
            raise ValueError(f"Agent for player {self.player} got the view of player {view.me}")
        self.knowledge = PlayerKnowledge(view, device=self.device)
        self.private = BeliefModel(device=self.device)
        self.last_move = None
        self._refresh_private(view)

    def observe(self, record: TurnRecord, view: PlayerView) -> None:
        """
        Apply one action to both belief models and the convention state.

        Raises:
            RuntimeError: If called before reset()
            InconsistentBelief: If the action contradicts what this agent believed
        """
        if self.knowledge is None:
            raise RuntimeError("reset() must be called before observe()")

        if record.is_clue:
            self.private.apply_clue_to_hand(
                view.hand_ids(record.action.target), record.action.clue, record.touched
            )
        else:
            self.private.reveal(record.card_id, record.card)

        self.last_move = self.interpreter.observe(record, self.knowledge, view)
        self._refresh_private(view)

    def _refresh_private(self, view: PlayerView) -> None:
        hand_ids = view.all_hand_ids()
        for card_id in hand_ids:
            if view.can_see(card_id) and not self.private.is_known(card_id):
                self.private.restrict_to(card_id, view.card(card_id))
        eliminate(self.private, hand_ids, self.params.max_group_size)

    def decide_move(self, view: PlayerView) -> Action:
        if self.knowledge is None:
            raise RuntimeError("reset() must be called before decide_move()")
        return self.rules.decide_move(view, self.knowledge, self.private)

    def describe_state(self) -> str:
        if self.knowledge is None:
            return super().describe_state()
        own = " ".join(
            f"{card_id}:{self.private.describe(card_id)}" for card_id in self.knowledge.hands[self.player]
        )
        return f"{self.knowledge.describe()}\n  private view of own hand: {own}"
