"""
Multi-turn bookkeeping for referential play clues.

A QueuedClue follows one clue from the moment it is given until every play
it asked for has happened (resolved) or somebody acts against it
(violated).

Every slot in this module is a 1-based position counted from the newest
card. Target slots (slot_sum, play responses) are read from the hands as
they stood when the clue was given; discard slots (first responses and
determined discards) from the hand as it stood when they were observed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Union

from core.cards import Card


# ----------------------------------------------------------------------
# First response
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class NotYetResponded:
    def __str__(self) -> str:
        return "none yet"


@dataclass(frozen=True)
class Played:
    def __str__(self) -> str:
        return "play"


@dataclass(frozen=True)
class DiscardedAtSlot:
    slot: int

    def __str__(self) -> str:
        return f"discard slot {self.slot}"


FirstResponse = Union[NotYetResponded, Played, DiscardedAtSlot]
NOT_YET_RESPONDED = NotYetResponded()


@dataclass(frozen=True)
class PlayResponse:
    """A target that was played: its identity and slot at clue time."""
    card: Card
    slot: int


# ----------------------------------------------------------------------
# Discard knowledge
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class Undetermined:
    """
    Discard slots cannot be worked out until dependency plays resolve.

    Attributes:
        stacks_when_clued: Play stacks when the clue was given
        receiver_unknown_plays: Receiver's noted plays whose identity was unknown
        hands_when_clued: Every hand when the clue was given
        stacked_players: Players holding plays the target waits on
        clue_giver: Player who gave the clue
    """
    stacks_when_clued: tuple[tuple[str, int], ...]
    receiver_unknown_plays: frozenset[int]
    hands_when_clued: tuple[tuple[int, ...], ...]
    stacked_players: frozenset[int]
    clue_giver: int

    def __str__(self) -> str:
        stacks = " ".join(f"{color}{value}" for color, value in self.stacks_when_clued)
        return f"undetermined (stacks {stacks}, waiting on players {sorted(self.stacked_players)})"


@dataclass(frozen=True)
class Determined:
    """
    Discard slot (1-based) per visible player, excluding the observer and
    the giver.

    A slot of None means that player has no safe discard.
    """
    discard_slots: dict[int, Optional[int]]

    def __str__(self) -> str:
        slots = ", ".join(
            f"p{player}:{'-' if slot is None else slot}" for player, slot in sorted(self.discard_slots.items())
        )
        return f"determined ({slots})"


DiscardKnowledge = Union[Undetermined, Determined]


class ClueStatus(Enum):
    OPEN = "open"
    RESOLVED = "resolved"
    VIOLATED = "violated"


@dataclass
class QueuedClue:
    """
    State of one referential play clue across turns.

    Attributes:
        giver: Player who gave the clue
        receiver: Player holding the targets
        turn: Turn on which the clue was given
        targets: Cards still expected to be played
        dependencies: Cards that must resolve before the targets are due
        slot_sum: Sum of the targets' slots at clue time
        num_plays: Number of plays still expected
        first_response: First play or discard by an expected responder
        play_responses: Targets already played
        remaining_responders: Players still expected to act, in turn order
        discard_knowledge: Undetermined or Determined discard slots
        hands_when_clued: Every hand at clue time, for slot lookups
        status: OPEN, RESOLVED or VIOLATED
        violation: Reason the clue was violated
    """
    giver: int
    receiver: int
    turn: int
    targets: list[int]
    dependencies: set[int]
    slot_sum: int
    num_plays: int
    remaining_responders: list[int]
    discard_knowledge: DiscardKnowledge
    hands_when_clued: tuple[tuple[int, ...], ...]
    first_response: FirstResponse = NOT_YET_RESPONDED
    play_responses: list[PlayResponse] = field(default_factory=list)
    status: ClueStatus = ClueStatus.OPEN
    violation: Optional[str] = None

    @classmethod
    def create(
        cls,
        giver: int,
        receiver: int,
        turn: int,
        targets: list[int],
        dependencies: set[int],
        hands: list[list[int]],
        stacks: dict[str, int],
        receiver_unknown_plays: set[int],
        stacked_players: set[int],
        responders: list[int],
    ) -> "QueuedClue":
        hands_when_clued = tuple(tuple(hand) for hand in hands)
        slot_sum = sum(hands[receiver].index(card_id) + 1 for card_id in targets)
        return cls(
            giver=giver,
            receiver=receiver,
            turn=turn,
            targets=list(targets),
            dependencies=set(dependencies),
            slot_sum=slot_sum,
            num_plays=len(targets),
            remaining_responders=list(responders),
            discard_knowledge=Undetermined(
                stacks_when_clued=tuple(sorted(stacks.items())),
                receiver_unknown_plays=frozenset(receiver_unknown_plays),
                hands_when_clued=hands_when_clued,
                stacked_players=frozenset(stacked_players),
                clue_giver=giver,
            ),
            hands_when_clued=hands_when_clued,
        )

    @property
    def is_open(self) -> bool:
        return self.status == ClueStatus.OPEN

    def slot_when_clued(self, card_id: int) -> Optional[int]:
        hand = self.hands_when_clued[self.receiver]
        if card_id not in hand:
            return None
        return hand.index(card_id) + 1

    def remaining_target(self) -> Optional[int]:
        """
        Recover the last outstanding target from the slot checksum.

        Only defined once a single play is left.
        """
        if self.num_plays != 1:
            return None
        slot = self.slot_sum - sum(response.slot for response in self.play_responses)
        hand = self.hands_when_clued[self.receiver]
        if not 1 <= slot <= len(hand):
            return None
        return hand[slot - 1]

    def is_target(self, card_id: int) -> bool:
        """
        Whether a card leaving the receiver's hand is one of the targets.

        With one play left the slot checksum names the target.
        """
        if self.num_plays == 1:
            remaining = self.remaining_target()
            if remaining is not None:
                return card_id == remaining
        return card_id in self.targets

    def discards_settled(self, hands: list[list[int]], is_known: Callable[[int], bool]) -> bool:
        """
        Whether the expected discard slots can be fixed now.

        Every stacked player must have let go of the dependencies it held at
        clue time, and each receiver play that was unidentified back then
        must have left the hand or become known.
        """
        knowledge = self.discard_knowledge
        if not isinstance(knowledge, Undetermined):
            return False
        for player in knowledge.stacked_players:
            waiting_on = set(knowledge.hands_when_clued[player]) & self.dependencies
            if waiting_on & set(hands[player]):
                return False
        receiver_hand = hands[self.receiver]
        return all(
            card_id not in receiver_hand or is_known(card_id)
            for card_id in knowledge.receiver_unknown_plays
        )

    def references(self, card_id: int) -> bool:
        return card_id in self.targets or card_id in self.dependencies

    def awaits(self, player: int) -> bool:
        return player == self.receiver or player in self.remaining_responders

    def note_response(self, player: int, response: FirstResponse) -> None:
        """Record that an expected responder acted."""
        if player not in self.remaining_responders:
            return
        if isinstance(self.first_response, NotYetResponded) and not isinstance(response, NotYetResponded):
            self.first_response = response
        self.remaining_responders.remove(player)
        self._check_resolved()

    def note_target_played(self, card_id: int, card: Card) -> None:
        slot = self.slot_when_clued(card_id)
        self.play_responses.append(PlayResponse(card=card, slot=slot if slot is not None else 0))
        self._drop_target(card_id)

    def note_target_trashed(self, card_id: int) -> None:
        """A target turned into trash and left the hand without a violation."""
        slot = self.slot_when_clued(card_id)
        self.slot_sum -= slot if slot is not None else 0
        self._drop_target(card_id)

    def _drop_target(self, card_id: int) -> None:
        if card_id in self.targets:
            self.targets.remove(card_id)
            self.num_plays -= 1
        self._check_resolved()

    def resolve_dependency(self, card_id: int) -> bool:
        if card_id not in self.dependencies:
            return False
        self.dependencies.discard(card_id)
        return True

    def determine(self, discard_slots: dict[int, Optional[int]]) -> None:
        self.discard_knowledge = Determined(discard_slots=dict(discard_slots))

    def violate(self, reason: str) -> None:
        self.status = ClueStatus.VIOLATED
        self.violation = reason

    def _check_resolved(self) -> None:
        if self.is_open and self.num_plays <= 0 and not self.remaining_responders:
            self.status = ClueStatus.RESOLVED

    def describe(self) -> str:
        text = (
            f"clue p{self.giver}->p{self.receiver} (turn {self.turn}) {self.status.value}: "
            f"targets {self.targets} after {sorted(self.dependencies)} "
            f"slot_sum {self.slot_sum} plays left {self.num_plays} "
            f"first response {self.first_response} responders {self.remaining_responders} "
            f"discards {self.discard_knowledge}"
        )
        if self.violation:
            text += f" violated: {self.violation}"
        return text
