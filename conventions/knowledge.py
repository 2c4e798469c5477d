"""
Everything one agent believes about the table.

PlayerKnowledge bundles the public belief model with the convention state
derived from it: per-card notes, queued clues, instructed plays, known
trash and per-hand locks. Each agent owns exactly one instance; nothing in
it is ever shared between agents.
"""

from __future__ import annotations

from collections import defaultdict
import copy
from typing import Optional

from core.belief import BeliefModel
from core.board import BoardState
from conventions.discard_safety import DiscardSafety
from conventions.notes import HandLock, LockStatus, Note
from conventions.queued_clue import QueuedClue
from views.player_view import PlayerView


class PlayerKnowledge:
    """
    Convention state held by one agent.

    Attributes:
        me: Owning player
        num_players: Number of players
        hands: Public card ids per player, newest first
        board: Public board copy
        public: Belief model built from public information only
        notes: Note per card id
        queued_clues: Open QueuedClues, oldest first
        resolved_clues: QueuedClues whose plays all happened
        violated_clues: QueuedClues retired after a violation
        instructed_plays: Per player, cards instructed to play, in order
        known_trash: Card ids publicly known to be trash
        locks: HandLock per player
        safety: Discard safety tracker for every hand
    """

    def __init__(self, view: PlayerView, device=None):
        """
        Build initial knowledge from the opening view.

        Args:
            view: The owning player's view at the start of the game
            device: Device for the belief model tensors
        """
        self.me = view.me
        self.num_players = view.num_players
        self.hands: list[list[int]] = [view.hand_ids(player) for player in range(view.num_players)]
        self.board: BoardState = view.board.copy()
        self.public = BeliefModel(device=device)
        self.notes: dict[int, Note] = defaultdict(Note)
        self.queued_clues: list[QueuedClue] = []
        self.resolved_clues: list[QueuedClue] = []
        self.violated_clues: list[QueuedClue] = []
        self.instructed_plays: list[list[int]] = [[] for _ in range(view.num_players)]
        self.known_trash: set[int] = set()
        self.locks: list[HandLock] = [HandLock() for _ in range(view.num_players)]
        self.safety = DiscardSafety(self)
        self.safety.refresh()

    def copy(self) -> "PlayerKnowledge":
        """Deep enough copy for hypothetical reasoning."""
        other = PlayerKnowledge.__new__(PlayerKnowledge)
        other.me = self.me
        other.num_players = self.num_players
        other.hands = [list(hand) for hand in self.hands]
        other.board = self.board.copy()
        other.public = self.public.copy()
        other.notes = defaultdict(Note, {card_id: copy.copy(note) for card_id, note in self.notes.items()})
        other.queued_clues = copy.deepcopy(self.queued_clues)
        other.resolved_clues = list(self.resolved_clues)
        other.violated_clues = list(self.violated_clues)
        other.instructed_plays = [list(plays) for plays in self.instructed_plays]
        other.known_trash = set(self.known_trash)
        other.locks = [copy.copy(lock) for lock in self.locks]
        other.safety = DiscardSafety(other)
        other.safety.refresh()
        return other

    # ------------------------------------------------------------------
    # Hand queries
    # ------------------------------------------------------------------

    def note(self, card_id: int) -> Note:
        return self.notes[card_id]

    def holder(self, card_id: int) -> Optional[int]:
        for player, hand in enumerate(self.hands):
            if card_id in hand:
                return player
        return None

    def slot_of(self, player: int, card_id: int) -> int:
        """0-based position of a card in a hand, newest first."""
        return self.hands[player].index(card_id)

    def previously_unclued(self, player: int) -> list[int]:
        """Cards with no clue, play or trash information, newest first."""
        return [card_id for card_id in self.hands[player] if self.notes[card_id].unclued()]

    def is_loaded(self, player: int) -> bool:
        """The hand holds a noted play, known trash or a permitted discard."""
        return any(self.notes[card_id].is_action() for card_id in self.hands[player])

    def is_locked(self, player: int) -> bool:
        """Locked and with nothing safe to do."""
        return self.locks[player].status != LockStatus.UNLOCKED and not self.is_loaded(player)

    def due_plays(self, player: int) -> list[int]:
        return [card_id for card_id in self.hands[player] if self.notes[card_id].is_due()]

    def noted_plays(self, player: int) -> list[int]:
        return [card_id for card_id in self.hands[player] if self.notes[card_id].playable()]

    @property
    def my_queue(self) -> list[QueuedClue]:
        """Open queued clues directed at the owning player."""
        return [clue for clue in self.queued_clues if clue.receiver == self.me]

    def open_clues_for(self, player: int) -> list[QueuedClue]:
        return [clue for clue in self.queued_clues if clue.receiver == player]

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def describe_card(self, card_id: int) -> str:
        text = f"{card_id}:{self.public.describe(card_id)}"
        note = self.notes[card_id].describe()
        return f"{text}({note})" if note else text

    def describe(self) -> str:
        """Human-readable dump of notes, queued clues and locks."""
        lines = [f"knowledge of player {self.me} | {self.board.describe()}"]
        for player, hand in enumerate(self.hands):
            cards = " ".join(self.describe_card(card_id) for card_id in hand)
            chop = self.safety.chop(player)
            lines.append(
                f"  p{player}: {cards} | chop {chop} | {self.locks[player].describe()}"
            )
        for clue in self.queued_clues:
            lines.append(f"  queued {clue.describe()}")
        for clue in self.violated_clues:
            lines.append(f"  violated {clue.describe()}")
        if self.known_trash:
            lines.append(f"  known trash {sorted(self.known_trash)}")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Synchronisation
    # ------------------------------------------------------------------

    def sync(self, view: PlayerView) -> dict[int, list[int]]:
        """
        Adopt hands and board from a fresh view.

        Returns:
            Newly drawn card ids per player
        """
        drawn: dict[int, list[int]] = {}
        for player in range(self.num_players):
            hand = view.hand_ids(player)
            new_ids = [card_id for card_id in hand if card_id not in self.hands[player]]
            if new_ids:
                drawn[player] = new_ids
            self.hands[player] = hand
        self.board = view.board.copy()
        return drawn

    def all_hand_ids(self) -> list[int]:
        return [card_id for hand in self.hands for card_id in hand]
