"""
Tests for core.game_state, core.board and core.cards.
"""

import pytest

from core.actions import Action, Clue
from core.board import BoardState
from core.cards import ALL_CARDS, DECK_SIZE, Card, new_deck
from core.errors import IllegalAction
from core.game_state import GameOptions, GameState
from conftest import deal, stacked_deck


# ============================================================================
# Cards and deck
# ============================================================================

def test_deck_composition():
    """Test that a shuffled deck has the standard 50 cards."""
    deck = new_deck(seed=3)
    assert len(deck) == DECK_SIZE == 50
    assert deck.count(Card("r", 1)) == 3
    assert deck.count(Card("g", 2)) == 2
    assert deck.count(Card("w", 5)) == 1


def test_deck_shuffle_is_seeded():
    """Test that the same seed gives the same deck."""
    assert new_deck(seed=7) == new_deck(seed=7)
    assert new_deck(seed=7) != new_deck(seed=8)


def test_card_parse_and_index():
    """Test parsing short card names."""
    card = Card.parse("b4")
    assert card == Card("b", 4)
    assert str(card) == "b4"
    assert Card.from_index(*card.index) == card
    with pytest.raises(ValueError):
        Card.parse("x1")


def test_stacked_deck_helper():
    """Test the stacked deck used throughout the tests."""
    deck = stacked_deck("w5 r1")
    assert deck[:2] == [Card("w", 5), Card("r", 1)]
    assert len(deck) == DECK_SIZE
    assert Card("w", 5) not in deck[2:]


# ============================================================================
# Board
# ============================================================================

def test_board_predicates():
    """Test playable, dead and critical classification."""
    board = BoardState(num_players=2, hand_size=5)
    board.stacks["r"] = 2

    assert board.is_playable(Card("r", 3))
    assert not board.is_playable(Card("r", 4))
    assert board.is_dead(Card("r", 1))
    assert board.is_critical(Card("g", 5))
    assert not board.is_critical(Card("g", 2))

    board.discard[Card("g", 2)] += 1
    assert board.is_critical(Card("g", 2))

    board.discard[Card("g", 2)] += 1
    assert board.is_dead(Card("g", 3))
    assert board.highest_attainable("g") == 1


def test_board_players_between():
    """Test turn-order helpers."""
    board = BoardState(num_players=4, hand_size=4)
    assert board.players_between(0, 3) == [1, 2]
    assert board.players_between(2, 1) == [3, 0]
    assert board.players_between(1, 2) == []
    assert board.next_player(3) == 0


def test_identity_mask():
    """Test that identity masks agree with the predicate."""
    board = BoardState(num_players=2, hand_size=5)
    mask = board.identity_mask(board.is_playable)
    assert int(mask.sum()) == 5
    for card in ALL_CARDS:
        assert bool(mask[card.index]) == (card.value == 1)


# ============================================================================
# Game state
# ============================================================================

def test_game_options_defaults():
    """Test default hand sizes per player count."""
    assert GameOptions(num_players=2).hand_size == 5
    assert GameOptions(num_players=3).hand_size == 5
    assert GameOptions(num_players=4).hand_size == 4
    assert GameOptions(num_players=5).hand_size == 4
    with pytest.raises(ValueError):
        GameOptions(num_players=6)


def test_game_state_initialization(two_player_game):
    """Test dealing: card ids in dealing order, hands newest first."""
    game = two_player_game
    assert game.hands[0] == [4, 3, 2, 1, 0]
    assert game.hands[1] == [9, 8, 7, 6, 5]
    assert game.hand_cards(0)[0] == Card("r", 1)
    assert game.hand_cards(1)[4] == Card("w", 5)
    assert game.board.deck_size == DECK_SIZE - 10
    assert game.board.clue_tokens == 8
    assert game.current_player == 0


def test_play_success_and_draw(two_player_game):
    """Test a successful play scores and draws into slot 1."""
    game = two_player_game
    game.process(Action.give_clue(1, Clue(value=1)))
    record = game.process(Action.play(2))  # b1

    assert record.success is True
    assert record.card == Card("b", 1)
    assert game.board.stacks["b"] == 1
    assert game.hands[1][0] == 10
    assert game.score() == 1
    assert game.current_player == 0


def test_misplay_costs_a_life(two_player_game):
    """Test a bomb goes to the discard pile and costs a life."""
    game = two_player_game
    record = game.process(Action.play(3))  # b3

    assert record.success is False
    assert game.board.lives == 2
    assert game.board.discard[Card("b", 3)] == 1
    assert game.board.clue_tokens == 8


def test_discard_gains_clue(two_player_game):
    """Test discarding returns a clue token."""
    game = two_player_game
    game.process(Action.give_clue(1, Clue(color="r")))
    assert game.board.clue_tokens == 7
    game.process(Action.discard(4))
    assert game.board.clue_tokens == 8


def test_illegal_actions(two_player_game):
    """Test that rule violations raise IllegalAction."""
    game = two_player_game
    with pytest.raises(IllegalAction):
        game.process(Action.discard(0))  # at max clues
    with pytest.raises(IllegalAction):
        game.process(Action.give_clue(0, Clue(value=1)))  # self
    with pytest.raises(IllegalAction):
        game.process(Action.give_clue(1, Clue(value=3)))  # touches nothing
    with pytest.raises(IllegalAction):
        game.process(Action.play(7))
    with pytest.raises(ValueError):
        game.process(Action.play(-1))


def test_no_clue_tokens():
    """Test that a clue with no tokens left is rejected."""
    game = deal(["r1 y1 g1 b1 w1", "r2 y2 g2 b2 w2"])
    game.board.clue_tokens = 0
    with pytest.raises(IllegalAction):
        game.process(Action.give_clue(1, Clue(value=2)))


def test_five_returns_clue():
    """Test that completing a stack returns a clue token."""
    game = deal(["r5 y1 g1 b1 w1", "r2 y2 g2 b2 w2"])
    game.board.stacks["r"] = 4
    game.board.clue_tokens = 5
    game.process(Action.play(0))
    assert game.board.clue_tokens == 6


def test_final_round_length():
    """Test each player gets exactly one turn after the deck runs out."""
    game = GameState(GameOptions(num_players=3), seed=0)
    turns_after_empty = 0
    while not game.is_over():
        empty_before = game.board.deck_size == 0
        game.board.clue_tokens = 0
        game.process(Action.discard(0))
        if empty_before:
            turns_after_empty += 1
    assert game.board.deck_size == 0
    assert turns_after_empty == 3


def test_game_over_at_zero_lives():
    """Test that three bombs end the game."""
    game = deal(["r2 y2 g2 b2 w2", "r3 y3 g3 b3 w3"], extra="r4 r4")
    for _ in range(3):
        game.process(Action.play(0))
    assert game.board.lives == 0
    assert game.is_over()
    with pytest.raises(IllegalAction):
        game.process(Action.play(0))
