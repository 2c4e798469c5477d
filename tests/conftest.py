"""
Pytest configuration for the Hanabi engine.

Pins belief tensors to the CPU and provides helpers for dealing stacked
decks, so tests can put known cards in known hands.
"""

import os

# Keep tests on the CPU regardless of available accelerators.
os.environ.setdefault("HANABI_DEVICE", "cpu")

from collections import Counter

import pytest

from core.cards import ALL_CARDS, Card, copies_of
from core.game_state import GameOptions, GameState


def stacked_deck(front: str) -> list[Card]:
    """
    Full deck whose first cards are given, the rest in sorted order.

    Args:
        front: Space-separated cards in dealing order, e.g. "r1 y1 g2"

    Returns:
        List of 50 cards in dealing order
    """
    head = [Card.parse(text) for text in front.split()]
    remaining = Counter({card: copies_of(card.value) for card in ALL_CARDS})
    remaining.subtract(head)
    if any(count < 0 for count in remaining.values()):
        raise ValueError(f"Too many copies requested in {front!r}")
    tail = [card for card in ALL_CARDS for _ in range(remaining[card])]
    return head + tail


def deal(hands: list[str], extra: str = "") -> GameState:
    """
    Game whose players start with the given hands.

    Args:
        hands: One string per player listing cards newest first, e.g. "r1 y1 g1 b1 w1"
        extra: Cards dealt next after the hands

    Returns:
        GameState with player 0 to act
    """
    options = GameOptions(num_players=len(hands))
    front = []
    for hand in hands:
        cards = hand.split()
        if len(cards) != options.hand_size:
            raise ValueError(f"Hand {hand!r} must have {options.hand_size} cards")
        # Dealing inserts at the front, so deal oldest first.
        front.extend(reversed(cards))
    front.extend(extra.split())
    return GameState(options, deck=stacked_deck(" ".join(front)))


@pytest.fixture
def two_player_game():
    """Two-player game with a fixed, hand-picked opening."""
    return deal(
        ["r1 y1 g1 b3 w4", "r2 y2 b1 g4 w5"],
        extra="r3 y3 g2",
    )


class Table:
    """
    A game together with one PlayerKnowledge per seat.

    Every action goes through the game first and is then observed by each
    seat's knowledge, the way agents see it during a real game.

    Attributes:
        game: The underlying GameState
        interpreter: ClueInterpreter shared by every seat
        knowledge: PlayerKnowledge per seat
    """

    def __init__(self, game: GameState, max_group_size=None):
        from conventions.interpretation import ClueInterpreter
        from conventions.knowledge import PlayerKnowledge

        self.game = game
        self.interpreter = ClueInterpreter(max_group_size=max_group_size)
        self.knowledge = [
            PlayerKnowledge(game.get_view(player)) for player in range(game.num_players)
        ]

    def act(self, action):
        """Apply an action and return each seat's description of it."""
        record = self.game.process(action)
        return [
            self.interpreter.observe(record, knowledge, self.game.get_view(knowledge.me))
            for knowledge in self.knowledge
        ]

    def describe(self, action):
        """What seat 0 would read into an action before it is taken."""
        from core.actions import TurnRecord

        game = self.game
        player = game.current_player
        if action.clue is not None:
            touched = tuple(
                card_id for card_id in game.hands[action.target]
                if action.clue.matches(game.card(card_id))
            )
            record = TurnRecord(player=player, action=action, touched=touched, turn=game.board.turn)
        else:
            card_id = game.hands[player][action.slot]
            record = TurnRecord(player=player, action=action, card_id=card_id, turn=game.board.turn)
        return self.interpreter.describe_action(record, self.knowledge[0])


@pytest.fixture
def table(two_player_game):
    """Table around the two-player opening."""
    return Table(two_player_game)
