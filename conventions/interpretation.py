"""
Receiver-side interpretation of observed actions.

ClueInterpreter turns each public TurnRecord into a MoveDescription using
only public information (categorize_move), then applies that meaning to an
agent's PlayerKnowledge (update_state) and lets derived state settle:
empathy notes, elimination groups, queued clue bookkeeping and chops.

Clue categories are checked in a fixed order so that any two observers with
the same history always agree:

    play fill-in, trash fill-in, unlock, then
    color: referential play, else stall or unconventional
    rank:  good-touch rank, fix, then referential discard / lock / stall
           for an unloaded receiver, or a stall for a loaded one
"""

from __future__ import annotations

from typing import Iterable, Optional
import logging

from core.actions import TurnRecord
from core.elimination import eliminate
from core.errors import InconsistentBelief
from conventions.categories import (
    Category,
    DiscardKind,
    MoveDescription,
    StallKind,
)
from conventions.knowledge import PlayerKnowledge
from conventions.notes import LockStatus
from conventions.queued_clue import (
    NOT_YET_RESPONDED,
    ClueStatus,
    DiscardedAtSlot,
    Played,
    QueuedClue,
)
from views.player_view import PlayerView

logger = logging.getLogger(__name__)


def color_clue_target(knowledge: PlayerKnowledge, receiver: int, touched) -> Optional[int]:
    """
    Play target of a color clue.

    Walking the previously-unclued cards newest first, the focus at
    precedence p is the card just right of position p and the target is
    the card at p. The newest previously-unclued card is only a focus once
    every other card has been tried, and then targets the oldest one.
    """
    unclued = knowledge.previously_unclued(receiver)
    count = len(unclued)
    for precedence in range(count):
        focus = unclued[(precedence + 1) % count]
        if focus in touched:
            return unclued[precedence]
    return None


def rank_clue_target(knowledge: PlayerKnowledge, receiver: int, touched) -> Optional[tuple[int, bool]]:
    """
    Discard target of a rank clue.

    The focus is the newest touched previously-unclued card whose right
    neighbour is untouched; the target is that neighbour. When the focus is
    the oldest previously-unclued card the target wraps to the newest one,
    which means there is no card to the right.

    Returns:
        (target, wrapped) or None if no previously-unclued card was touched
    """
    unclued = knowledge.previously_unclued(receiver)
    count = len(unclued)
    for precedence in range(count):
        focus = unclued[precedence]
        target = unclued[(precedence + 1) % count]
        wrapped = precedence == count - 1
        if focus in touched and (wrapped or target not in touched):
            return target, wrapped
    return None


class ClueInterpreter:
    """
    Categorizes public actions and applies their meaning.

    Attributes:
        max_group_size: Bound passed to the elimination engine
    """

    def __init__(self, max_group_size: Optional[int] = None):
        self.max_group_size = max_group_size

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def observe(self, record: TurnRecord, knowledge: PlayerKnowledge, view: PlayerView) -> MoveDescription:
        """
        Process one public action end to end.

        Args:
            record: The action just taken
            knowledge: Knowledge to update in place
            view: Observer's view after the action

        Returns:
            The move's description
        """
        desc = self.categorize_move(record, knowledge)
        logger.debug(f"p{knowledge.me} sees {record}: {desc}")
        affected = self.update_state(desc, knowledge)
        self.settle(knowledge, view, affected)
        return desc

    # ------------------------------------------------------------------
    # Categorization (pure)
    # ------------------------------------------------------------------

    def categorize_move(self, record: TurnRecord, knowledge: PlayerKnowledge) -> MoveDescription:
        """
        Classify an observed action into exactly one Category.

        Uses only public information held in `knowledge` as it stood before
        the action; `knowledge` is not modified.
        """
        if record.is_play and record.success is False:
            return MoveDescription(record=record, category=Category.BOMB, target=record.card_id)
        return self.describe_action(record, knowledge)

    def describe_action(self, record: TurnRecord, knowledge: PlayerKnowledge) -> MoveDescription:
        """
        Describe an action without knowing its outcome.

        Used both for observed actions and for hypothetical ones the rule
        engine is considering.
        """
        if record.is_clue:
            return self._describe_clue(record, knowledge)
        if record.is_play:
            return self._describe_play(record, knowledge)
        return self._describe_discard(record, knowledge)

    def _describe_play(self, record: TurnRecord, knowledge: PlayerKnowledge) -> MoveDescription:
        if not knowledge.note(record.card_id).playable():
            return MoveDescription(record=record, category=Category.UNCONVENTIONAL, target=record.card_id)
        next_player = knowledge.board.next_player(record.player)
        return MoveDescription(
            record=record,
            category=Category.EXPECTED_PLAY,
            target=record.card_id,
            gave_ptd=knowledge.safety.chop_if_unloaded(next_player),
        )

    def _describe_discard(self, record: TurnRecord, knowledge: PlayerKnowledge) -> MoveDescription:
        player = record.player
        note = knowledge.note(record.card_id)
        if knowledge.is_locked(player):
            kind = DiscardKind.SACRIFICE
        elif note.trash or (note.ptd and not note.playable()):
            kind = DiscardKind.EXPECTED
        elif not knowledge.is_loaded(player) and record.card_id == knowledge.safety.chop(player):
            kind = DiscardKind.DEFAULT
        else:
            return MoveDescription(record=record, category=Category.UNCONVENTIONAL, target=record.card_id)
        next_player = knowledge.board.next_player(player)
        return MoveDescription(
            record=record,
            category=Category.DISCARD_CHOP,
            target=record.card_id,
            discard_kind=kind,
            gave_ptd=knowledge.safety.chop_if_unloaded(next_player),
        )

    def _describe_clue(self, record: TurnRecord, knowledge: PlayerKnowledge) -> MoveDescription:
        receiver = record.action.target
        clue = record.action.clue
        touched = set(record.touched)
        hand = knowledge.hands[receiver]
        board = knowledge.board
        notes = knowledge.notes

        belief = knowledge.public.copy()
        belief.apply_clue_to_hand(hand, clue, touched)
        playable = board.identity_mask(board.is_playable)
        dead = board.identity_mask(board.is_dead)
        new_known_plays = tuple(
            card_id for card_id in hand
            if not notes[card_id].play and belief.is_all(card_id, playable)
        )
        new_known_trash = tuple(
            card_id for card_id in hand
            if not notes[card_id].trash and belief.is_all(card_id, dead)
        )

        def describe(category: Category, **kwargs) -> MoveDescription:
            return MoveDescription(
                record=record,
                category=category,
                new_known_plays=new_known_plays,
                new_known_trash=new_known_trash,
                **kwargs,
            )

        if any(notes[card_id].clued and card_id in touched for card_id in new_known_plays):
            return describe(Category.PLAY_FILL_IN)
        if any(notes[card_id].clued and card_id in touched for card_id in new_known_trash):
            return describe(Category.TRASH_FILL_IN)

        at_max_clues = board.clue_tokens >= board.max_clues
        giver_locked = knowledge.is_locked(record.player)

        if clue.is_color:
            target = color_clue_target(knowledge, receiver, touched)
            if target is not None:
                if knowledge.is_locked(receiver):
                    return describe(
                        Category.UNLOCK,
                        target=target,
                        unlock_ptd=self._unlock_ptd(knowledge, receiver, target, touched),
                    )
                return describe(Category.REFERENTIAL_PLAY, target=target)
            return self._stall_or_unconventional(describe, at_max_clues, giver_locked, StallKind.EIGHT_CLUE)

        if new_known_plays:
            return describe(Category.GOOD_TOUCH_RANK)
        if any(notes[card_id].clued for card_id in new_known_trash):
            return describe(Category.FIX_CLUE)

        chop = knowledge.safety.chop_if_unloaded(receiver)
        if chop is None:
            return self._stall_or_unconventional(describe, at_max_clues, giver_locked, StallKind.LOADED_RANK)

        found = rank_clue_target(knowledge, receiver, touched)
        if found is None:
            return self._stall_or_unconventional(describe, at_max_clues, giver_locked, StallKind.EIGHT_CLUE)
        target, wrapped = found
        if not wrapped:
            return describe(Category.REFERENTIAL_DISCARD, target=target, gave_ptd=target)
        if target in touched:
            return describe(Category.LOCKING_CLUE, target=target)
        if at_max_clues:
            return describe(Category.STALL, stall_kind=StallKind.EIGHT_CLUE, gave_ptd=target)
        if giver_locked:
            return describe(Category.STALL, stall_kind=StallKind.LOCKED_HAND, gave_ptd=target)
        return describe(Category.LOCKING_CLUE, target=target)

    @staticmethod
    def _stall_or_unconventional(describe, at_max_clues: bool, giver_locked: bool, kind: StallKind) -> MoveDescription:
        if at_max_clues:
            return describe(Category.STALL, stall_kind=kind)
        if giver_locked:
            return describe(Category.STALL, stall_kind=StallKind.LOCKED_HAND)
        return describe(Category.UNCONVENTIONAL)

    @staticmethod
    def _unlock_ptd(knowledge: PlayerKnowledge, receiver: int, target: int, touched) -> Optional[int]:
        """Card that regains permission once an unlock target is played."""
        locked_card = knowledge.locks[receiver].locked_card
        hand = knowledge.hands[receiver]
        if locked_card in hand and locked_card != target and locked_card not in touched:
            return locked_card
        for card_id in knowledge.previously_unclued(receiver):
            if card_id != target and card_id not in touched:
                return card_id
        return None

    # ------------------------------------------------------------------
    # State update
    # ------------------------------------------------------------------

    def update_state(self, desc: MoveDescription, knowledge: PlayerKnowledge) -> set[int]:
        """
        Apply a described move to knowledge in place.

        Hands are updated by removing a played or discarded card; newly drawn
        cards arrive through settle().

        Returns:
            Players whose hands or notes the move changed
        """
        record = desc.record
        affected = set()
        if desc.gave_ptd is not None:
            knowledge.note(desc.gave_ptd).ptd = True
            affected.add(knowledge.holder(desc.gave_ptd))

        if record.is_clue:
            self._apply_clue(desc, knowledge)
            affected.add(record.action.target)
        else:
            affected.add(record.player)
            self._apply_card_left(desc, knowledge)
        return affected - {None}

    def _apply_clue(self, desc: MoveDescription, knowledge: PlayerKnowledge) -> None:
        record = desc.record
        receiver = record.action.target
        knowledge.public.apply_clue_to_hand(knowledge.hands[receiver], record.action.clue, record.touched)

        for card_id in record.touched:
            knowledge.note(card_id).clued = True
        for card_id in desc.new_known_plays:
            knowledge.note(card_id).play = True
        for card_id in desc.new_known_trash:
            knowledge.note(card_id).trash = True
            knowledge.known_trash.add(card_id)

        if desc.category == Category.REFERENTIAL_PLAY:
            self._queue_play(desc, knowledge)
        elif desc.category == Category.UNLOCK:
            self._queue_play(desc, knowledge)
            knowledge.locks[receiver].promise_unlock(desc.target, desc.unlock_ptd)
        elif desc.category == Category.LOCKING_CLUE:
            self._lock_hand(knowledge, receiver, desc.target)

        # Clues are not plays or discards, but they still use up a responder's turn.
        for clue in knowledge.queued_clues:
            clue.note_response(record.player, NOT_YET_RESPONDED)

    def _queue_play(self, desc: MoveDescription, knowledge: PlayerKnowledge) -> None:
        record = desc.record
        giver = record.player
        receiver = record.action.target
        target = desc.target
        notes = knowledge.notes

        targets = [
            card_id for card_id in knowledge.hands[receiver]
            if card_id == target or card_id in desc.new_known_plays
        ]
        between = knowledge.board.players_between(giver, receiver)
        dependencies = {
            card_id for card_id in knowledge.hands[receiver]
            if notes[card_id].playable() and card_id not in targets
        }
        for player in between:
            dependencies.update(knowledge.noted_plays(player))
        dependencies.update(card_id for card_id in targets if card_id != target)

        notes[target].play = True
        notes[target].queued_play = frozenset(dependencies)
        self._check_acyclic(knowledge, target)

        clue = QueuedClue.create(
            giver=giver,
            receiver=receiver,
            turn=record.turn,
            targets=targets,
            dependencies=dependencies,
            hands=knowledge.hands,
            stacks=knowledge.board.stacks,
            receiver_unknown_plays={
                card_id for card_id in knowledge.hands[receiver]
                if card_id not in targets and notes[card_id].playable() and not knowledge.public.is_known(card_id)
            },
            stacked_players={knowledge.holder(card_id) for card_id in dependencies} - {None},
            responders=between + [receiver],
        )
        knowledge.queued_clues.append(clue)
        knowledge.instructed_plays[receiver].append(target)

    @staticmethod
    def _check_acyclic(knowledge: PlayerKnowledge, start: int) -> None:
        """Raise if the queued-play graph reachable from `start` has a cycle."""
        visiting: set[int] = set()
        done: set[int] = set()

        def visit(card_id: int) -> None:
            if card_id in done:
                return
            if card_id in visiting:
                raise InconsistentBelief(
                    f"Queued plays form a cycle through card {card_id}",
                    card_id=card_id,
                    dump=knowledge.describe(),
                )
            visiting.add(card_id)
            for dependency in knowledge.note(card_id).queued_play:
                visit(dependency)
            visiting.discard(card_id)
            done.add(card_id)

        visit(start)

    @staticmethod
    def _lock_hand(knowledge: PlayerKnowledge, player: int, locked_card: Optional[int]) -> None:
        for card_id in knowledge.hands[player]:
            knowledge.note(card_id).ptd = False
        if locked_card is not None:
            knowledge.note(locked_card).lock = True
        knowledge.locks[player].lock(locked_card)
        logger.debug(f"p{knowledge.me}: hand of p{player} locked on {locked_card}")

    def _apply_card_left(self, desc: MoveDescription, knowledge: PlayerKnowledge) -> None:
        record = desc.record
        player = record.player
        card_id = record.card_id
        note = knowledge.note(card_id)
        slot = knowledge.slot_of(player, card_id) + 1
        lock = knowledge.locks[player]

        for clue in knowledge.queued_clues:
            if not clue.is_open:
                continue
            if desc.category == Category.BOMB:
                if clue.awaits(player) or clue.references(card_id):
                    clue.violate(f"p{player} bombed {record.card} (card {card_id})")
            elif record.is_play:
                if clue.is_target(card_id):
                    clue.note_target_played(card_id, record.card)
                elif card_id in clue.dependencies:
                    clue.resolve_dependency(card_id)
                elif desc.category == Category.UNCONVENTIONAL and self._holds_expected(knowledge, clue, player):
                    clue.violate(f"p{player} played {record.card} instead of an expected card")
            elif clue.references(card_id):
                if note.trash:
                    if clue.is_target(card_id):
                        clue.note_target_trashed(card_id)
                    else:
                        clue.resolve_dependency(card_id)
                else:
                    clue.violate(f"p{player} discarded expected card {record.card} (card {card_id})")

            if clue.is_open:
                response = Played() if record.is_play else DiscardedAtSlot(slot)
                clue.note_response(player, response)

        if lock.status == LockStatus.LOCKED:
            # The replacement card is not covered by the lock.
            lock.release()
            logger.debug(f"p{knowledge.me}: hand of p{player} is no longer locked")
        elif lock.status == LockStatus.PENDING_UNLOCK and card_id == lock.unlock_target:
            if desc.category == Category.EXPECTED_PLAY:
                ptd = lock.unlock_ptd
                lock.release()
                if ptd is not None and ptd in knowledge.hands[player] and knowledge.note(ptd).unclued():
                    knowledge.note(ptd).ptd = True
                    knowledge.note(ptd).lock = False
                else:
                    chop = knowledge.safety.find_chop(player)
                    if chop is not None and chop != card_id:
                        knowledge.note(chop).ptd = True
                logger.debug(f"p{knowledge.me}: hand of p{player} unlocked")
            else:
                lock.lock(lock.locked_card)

        knowledge.public.reveal(card_id, record.card)
        knowledge.hands[player].remove(card_id)
        knowledge.known_trash.discard(card_id)
        if card_id in knowledge.instructed_plays[player]:
            knowledge.instructed_plays[player].remove(card_id)

        if desc.category == Category.BOMB and (note.trash or note.ptd):
            self._lock_hand(knowledge, player, knowledge.safety.find_chop(player))

    @staticmethod
    def _holds_expected(knowledge: PlayerKnowledge, clue: QueuedClue, player: int) -> bool:
        hand = knowledge.hands[player]
        return any(card_id in hand for card_id in list(clue.targets) + list(clue.dependencies))

    # ------------------------------------------------------------------
    # Settling derived state
    # ------------------------------------------------------------------

    def settle(
        self,
        knowledge: PlayerKnowledge,
        view: PlayerView,
        players: Optional[Iterable[int]] = None
    ) -> None:
        """
        Bring derived state up to date after an action.

        Syncs hands and board from the view, retires finished queued clues,
        refreshes empathy notes and elimination groups, prunes queued-play
        dependencies and updates chops and discard knowledge.

        Args:
            knowledge: Knowledge to update in place
            view: Observer's view after the action
            players: Players the action itself changed. Their chops are
                recomputed along with any hand settling touches; None
                recomputes every chop.
        """
        changed = None if players is None else set(players)
        drawn = knowledge.sync(view)
        changed = self._merge(changed, drawn)
        changed = self._merge(changed, self._retire_clues(knowledge))
        changed = self._merge(changed, self._check_empathy(knowledge))

        hand_ids = knowledge.all_hand_ids()
        groups = eliminate(knowledge.public, hand_ids, self.max_group_size)
        membership = {card_id: group for group in groups for card_id in group.card_ids}
        for card_id in hand_ids:
            knowledge.note(card_id).elimination = membership.get(card_id)
        changed = self._merge(changed, self._check_empathy(knowledge))

        changed = self._merge(changed, self._prune_dependencies(knowledge))
        knowledge.safety.refresh(None if changed is None else sorted(changed))
        self._determine_discards(knowledge)

    @staticmethod
    def _merge(changed: Optional[set[int]], players: Iterable[int]) -> Optional[set[int]]:
        if changed is None:
            return None
        return changed | set(players)

    @staticmethod
    def _check_empathy(knowledge: PlayerKnowledge) -> set[int]:
        """Mark cards every candidate of which is playable or dead. Returns their holders."""
        board = knowledge.board
        playable = board.identity_mask(board.is_playable)
        dead = board.identity_mask(board.is_dead)
        holders = set()
        for player, hand in enumerate(knowledge.hands):
            for card_id in hand:
                note = knowledge.note(card_id)
                if not note.play and knowledge.public.is_all(card_id, playable):
                    note.play = True
                    holders.add(player)
                elif not note.trash and knowledge.public.is_all(card_id, dead):
                    note.trash = True
                    knowledge.known_trash.add(card_id)
                    holders.add(player)
        return holders

    @staticmethod
    def _prune_dependencies(knowledge: PlayerKnowledge) -> set[int]:
        """
        Drop dependencies that left the table, turned to trash, or lost their play note.

        Returns:
            Holders of cards whose queued play changed
        """
        in_hands = set(knowledge.all_hand_ids())
        holders = set()

        def pending(card_id: int) -> bool:
            note = knowledge.note(card_id)
            return card_id in in_hands and note.playable()

        for player, hand in enumerate(knowledge.hands):
            for card_id in hand:
                note = knowledge.note(card_id)
                if note.queued_play:
                    remaining = frozenset(d for d in note.queued_play if pending(d))
                    if remaining != note.queued_play:
                        note.queued_play = remaining
                        holders.add(player)
        for clue in knowledge.queued_clues:
            for dependency in [d for d in clue.dependencies if not pending(d)]:
                clue.resolve_dependency(dependency)
        return holders

    @staticmethod
    def _retire_clues(knowledge: PlayerKnowledge) -> set[int]:
        """Move finished clues out of the queue. Returns receivers of violated clues."""
        still_open = []
        receivers = set()
        for clue in knowledge.queued_clues:
            if clue.status == ClueStatus.OPEN:
                still_open.append(clue)
            elif clue.status == ClueStatus.RESOLVED:
                knowledge.resolved_clues.append(clue)
            else:
                logger.warning(f"p{knowledge.me}: queued clue violated: {clue.describe()}")
                knowledge.violated_clues.append(clue)
                receivers.add(clue.receiver)
                for target in clue.targets:
                    note = knowledge.note(target)
                    note.play = False
                    note.queued_play = frozenset()
                    for plays in knowledge.instructed_plays:
                        if target in plays:
                            plays.remove(target)
        knowledge.queued_clues = still_open
        return receivers

    @staticmethod
    def _determine_discards(knowledge: PlayerKnowledge) -> None:
        """Fix expected discard slots (1-based) once a clue's stacked plays have resolved."""
        for clue in knowledge.queued_clues:
            if not clue.discards_settled(knowledge.hands, knowledge.public.is_known):
                continue
            slots = {}
            for player in range(knowledge.num_players):
                if player in (knowledge.me, clue.giver):
                    continue
                slot = knowledge.safety.safe_discard_slot(player)
                slots[player] = None if slot is None else slot + 1
            clue.determine(slots)
