"""
Giver-side decision procedure.

The rule engine enumerates every legal action, asks the interpreter what
each one would mean to the rest of the table, drops the ones whose meaning
would be wrong given what this player can actually see, and picks the
highest-priority survivor. Because descriptions come from the same
interpreter every observer runs, the chosen action means to the others
exactly what the giver intended.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from core.actions import ALL_CLUES, Action, TurnRecord
from core.belief import BeliefModel
from core.board import BoardState
from core.cards import Card
from conventions.categories import Category, DiscardKind, MoveDescription
from conventions.interpretation import ClueInterpreter
from conventions.knowledge import PlayerKnowledge
from views.player_view import PlayerView

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    """A legal action together with its public meaning."""
    action: Action
    desc: MoveDescription


class ConventionRuleEngine:
    """
    Chooses conventional moves for one player.

    Priority, highest first: rescue clue for a hand in trouble, due play,
    clues that create plays, referential discard, other informative clues,
    known-safe discard, default chop discard, stall or lock, sacrifice.

    Attributes:
        interpreter: Interpreter shared with the owning agent
        low_clue_threshold: Clue count at or below which rescue clues fire
    """

    def __init__(self, interpreter: ClueInterpreter, low_clue_threshold: int = 2):
        self.interpreter = interpreter
        self.low_clue_threshold = low_clue_threshold

    # ------------------------------------------------------------------
    # Enumeration
    # ------------------------------------------------------------------

    def candidates(self, view: PlayerView, knowledge: PlayerKnowledge) -> list[Candidate]:
        """Every legal action with its description, in a fixed order."""
        board = view.board
        me = view.me
        results = []

        for slot, card_id in enumerate(view.hand_ids(me)):
            action = Action.play(slot)
            record = TurnRecord(player=me, action=action, card_id=card_id, turn=board.turn)
            results.append(Candidate(action, self.interpreter.describe_action(record, knowledge)))

        if board.clue_tokens < board.max_clues:
            for slot, card_id in enumerate(view.hand_ids(me)):
                action = Action.discard(slot)
                record = TurnRecord(player=me, action=action, card_id=card_id, turn=board.turn)
                results.append(Candidate(action, self.interpreter.describe_action(record, knowledge)))

        if board.clue_tokens > 0:
            for receiver in view.other_players():
                hand = view.hand(receiver)
                for clue in ALL_CLUES:
                    touched = tuple(card_id for card_id, card in hand if clue.matches(card))
                    if not touched:
                        continue
                    action = Action.give_clue(receiver, clue)
                    record = TurnRecord(player=me, action=action, touched=touched, turn=board.turn)
                    results.append(Candidate(action, self.interpreter.describe_action(record, knowledge)))

        return results

    # ------------------------------------------------------------------
    # Private checks
    # ------------------------------------------------------------------

    def is_conventional(
        self,
        candidate: Candidate,
        view: PlayerView,
        knowledge: PlayerKnowledge,
        private: BeliefModel
    ) -> bool:
        """
        Whether the public meaning of a move is correct given what I can see.
        """
        desc = candidate.desc
        board = view.board
        if not desc.is_conventional:
            return False

        for ptd in (desc.gave_ptd, desc.unlock_ptd):
            if ptd is not None and view.can_see(ptd) and not self._safe_to_permit(view.card(ptd), board):
                return False

        category = desc.category
        if desc.record.is_clue and not self._touches_are_good(desc, view, knowledge, private):
            return False
        if category == Category.EXPECTED_PLAY:
            note = knowledge.note(desc.target)
            if not note.is_due():
                return False
            promised = self._promised_elsewhere(desc.target, view, knowledge)
            return private.probability(
                desc.target, lambda card: board.is_playable(card) and card not in promised, board
            ) > 0.0
        if category == Category.REFERENTIAL_DISCARD:
            # Only worth a clue when the default chop must not be discarded.
            chop = knowledge.safety.chop(desc.record.action.target)
            return chop is not None and not self._safe_to_permit(view.card(chop), board)
        if category == Category.LOCKING_CLUE:
            return desc.target is not None and not self._safe_to_permit(view.card(desc.target), board)
        if category == Category.DISCARD_CHOP and desc.discard_kind == DiscardKind.DEFAULT:
            return private.probability(desc.target, board.is_dispensable, board) > 0.0
        return True

    @staticmethod
    def _safe_to_permit(card: Card, board: BoardState) -> bool:
        """Permission to discard never lands on a playable or critical card while clues remain."""
        if board.clue_tokens == 0:
            return True
        return not board.is_playable(card) and board.is_dispensable(card)

    def _touches_are_good(
        self,
        desc: MoveDescription,
        view: PlayerView,
        knowledge: PlayerKnowledge,
        private: BeliefModel
    ) -> bool:
        """
        Whether every card a clue newly marks is what the receiver will take it for.

        New trash must be dead. Each new play must be playable once the plays
        queued ahead of it land, and must not repeat a card that is already
        clued or promised elsewhere, or another new play of the same clue.
        """
        board = view.board
        for card_id in desc.new_known_trash:
            if view.can_see(card_id) and not board.is_dead(view.card(card_id)):
                return False

        new_plays = list(desc.new_known_plays)
        if desc.category in (Category.REFERENTIAL_PLAY, Category.UNLOCK) and desc.target not in new_plays:
            new_plays.append(desc.target)
        taken = self._committed_identities(view, knowledge, private, exclude=set(new_plays))
        for card_id in new_plays:
            if not view.can_see(card_id):
                continue
            card = view.card(card_id)
            if card in taken or not self._will_be_playable(card_id, desc, view, knowledge):
                return False
            taken.add(card)
        return True

    @staticmethod
    def _committed_identities(
        view: PlayerView,
        knowledge: PlayerKnowledge,
        private: BeliefModel,
        exclude: set[int]
    ) -> set[Card]:
        """Identities of clued or play-noted cards on the table that are not trash."""
        identities = set()
        for player in range(view.num_players):
            for card_id in view.hand_ids(player):
                note = knowledge.note(card_id)
                if card_id in exclude or note.trash or not (note.clued or note.play):
                    continue
                card = view.card(card_id) if view.can_see(card_id) else private.known(card_id)
                if card is not None:
                    identities.add(card)
        return identities

    @staticmethod
    def _promised_elsewhere(card_id: int, view: PlayerView, knowledge: PlayerKnowledge) -> set[Card]:
        """
        Identities another hand will play first.

        Of two noted plays with the same identity, the older card (lower id)
        keeps the play.
        """
        promised = set()
        for player in view.other_players():
            for other in view.hand_ids(player):
                if other < card_id and knowledge.note(other).playable():
                    promised.add(view.card(other))
        return promised

    def _will_be_playable(
        self,
        card_id: int,
        desc: MoveDescription,
        view: PlayerView,
        knowledge: PlayerKnowledge
    ) -> bool:
        """
        Replay the plays the receiver will wait on, then check one card.

        Plays in my own hand are never counted on.
        """
        giver = view.me
        receiver = desc.record.action.target
        stacks = view.board.copy()

        waiting = [
            other for other in view.hand_ids(receiver)
            if other != card_id and (knowledge.note(other).playable() or other in desc.new_known_plays)
        ]
        for player in view.board.players_between(giver, receiver):
            waiting.extend(knowledge.noted_plays(player))
        pending = [view.card(other) for other in waiting if view.can_see(other)]

        progress = True
        while progress:
            progress = False
            for card in list(pending):
                if stacks.is_playable(card):
                    stacks.stacks[card.color] = card.value
                    pending.remove(card)
                    progress = True

        return stacks.is_playable(view.card(card_id))

    def _needs_rescue(self, receiver: int, view: PlayerView, knowledge: PlayerKnowledge) -> bool:
        if knowledge.is_locked(receiver):
            return True
        if knowledge.is_loaded(receiver) or view.board.clue_tokens > self.low_clue_threshold:
            return False
        chop = knowledge.safety.chop(receiver)
        if chop is None:
            return False
        card = view.card(chop)
        board = view.board
        return board.is_playable(card) or (board.is_critical(card) and not board.is_dead(card))

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    def priority(self, candidate: Candidate, view: PlayerView, knowledge: PlayerKnowledge) -> tuple:
        """Sort key; smaller is better."""
        desc = candidate.desc
        category = desc.category
        action = candidate.action
        distance = 0
        if action.target is not None:
            distance = (action.target - view.me) % view.num_players

        if category in (Category.REFERENTIAL_PLAY, Category.UNLOCK):
            if self._needs_rescue(action.target, view, knowledge):
                return (0, -desc.new_plays, distance)
            return (2, -desc.new_plays, distance)
        if category == Category.EXPECTED_PLAY:
            return (1, action.slot)
        if category in (Category.GOOD_TOUCH_RANK, Category.PLAY_FILL_IN) and desc.new_plays:
            return (2, -desc.new_plays, distance)
        if category == Category.REFERENTIAL_DISCARD:
            return (3, distance)
        if category in (Category.GOOD_TOUCH_RANK, Category.PLAY_FILL_IN, Category.FIX_CLUE, Category.TRASH_FILL_IN):
            return (4, -len(desc.new_known_trash), distance)
        if category == Category.DISCARD_CHOP:
            if desc.discard_kind == DiscardKind.EXPECTED:
                return (5, action.slot)
            if desc.discard_kind == DiscardKind.DEFAULT:
                return (6, action.slot)
            return (8, action.slot)
        if category in (Category.STALL, Category.LOCKING_CLUE):
            return (7, distance)
        return (9, distance)

    # ------------------------------------------------------------------
    # Decision
    # ------------------------------------------------------------------

    def decide_move(self, view: PlayerView, knowledge: PlayerKnowledge, private: BeliefModel) -> Action:
        """
        Choose an action for the player owning `view`.

        Args:
            view: Current legal view
            knowledge: Owning agent's convention state
            private: Owning agent's private belief model

        Returns:
            A legal Action
        """
        candidates = self.candidates(view, knowledge)
        conventional = [c for c in candidates if self.is_conventional(c, view, knowledge, private)]
        if conventional:
            best = min(conventional, key=lambda c: self.priority(c, view, knowledge))
            logger.debug(f"p{view.me} chooses {best.action} ({best.desc})")
            return best.action

        action = self._fallback(candidates, view, knowledge, private)
        logger.debug(f"p{view.me} has no conventional move, falls back to {action}")
        return action

    def _fallback(
        self,
        candidates: list[Candidate],
        view: PlayerView,
        knowledge: PlayerKnowledge,
        private: BeliefModel
    ) -> Action:
        board = view.board
        clues = [c for c in candidates if c.action.clue is not None]

        if board.clue_tokens >= board.max_clues and clues:
            return clues[0].action

        if board.clue_tokens < board.max_clues:
            slot = knowledge.safety.safe_discard_slot(view.me)
            if slot is not None:
                return Action.discard(slot)

        if clues:
            return clues[0].action

        hand = view.hand_ids(view.me)
        if board.clue_tokens < board.max_clues:
            best_slot = max(
                range(len(hand)),
                key=lambda slot: (private.probability(hand[slot], board.is_dispensable, board), slot),
            )
            return Action.discard(best_slot)
        return Action.play(0)
