"""
hanab.live replay export.

Builds the JSON document hanab.live accepts for replaying a game: the deck
in dealing order, every action, the player names and, optionally, each
player's card notes. Play and discard targets are card ids (dealing
order); clue targets are player indices.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Union
import json
import logging

from core.actions import ActionType, TurnRecord
from core.cards import COLORS, Card

logger = logging.getLogger(__name__)

ACTION_PLAY = 0
ACTION_DISCARD = 1
ACTION_COLOR_CLUE = 2
ACTION_RANK_CLUE = 3


def card_to_json(card: Card) -> dict[str, int]:
    return {"suitIndex": COLORS.index(card.color), "rank": card.value}


def action_to_json(record: TurnRecord) -> dict[str, int]:
    """
    Convert one TurnRecord to a hanab.live action.

    Raises:
        ValueError: If a play or discard record has no card id
    """
    action = record.action
    if action.type == ActionType.CLUE:
        if action.clue.is_color:
            return {"type": ACTION_COLOR_CLUE, "target": action.target, "value": COLORS.index(action.clue.color)}
        return {"type": ACTION_RANK_CLUE, "target": action.target, "value": action.clue.value}
    if record.card_id is None:
        raise ValueError(f"Record {record} has no card id")
    kind = ACTION_PLAY if action.type == ActionType.PLAY else ACTION_DISCARD
    return {"type": kind, "target": record.card_id}


def build_replay(
    deck: list[Card],
    history: list[TurnRecord],
    player_names: list[str],
    notes: Optional[list[list[str]]] = None
) -> dict[str, Any]:
    """
    Assemble a hanab.live replay document.

    Args:
        deck: Every card in dealing order
        history: TurnRecords in order
        player_names: One name per seat
        notes: Per player, one note string per card id (empty lists if None)

    Returns:
        JSON-serializable dict
    """
    if notes is None:
        notes = [[] for _ in player_names]
    if len(notes) != len(player_names):
        raise ValueError(f"Got notes for {len(notes)} players, expected {len(player_names)}")
    return {
        "options": {"variant": "No Variant"},
        "players": list(player_names),
        "first_player": 0,
        "notes": [list(player_notes) for player_notes in notes],
        "deck": [card_to_json(card) for card in deck],
        "actions": [action_to_json(record) for record in history],
    }


def collect_notes(agents: list[Any], num_cards: int) -> list[list[str]]:
    """
    Note strings per player from agents that keep PlayerKnowledge.

    Agents without knowledge contribute empty notes.
    """
    notes = []
    for agent in agents:
        knowledge = getattr(agent, "knowledge", None)
        if knowledge is None:
            notes.append([""] * num_cards)
            continue
        notes.append([knowledge.describe_card(card_id) for card_id in range(num_cards)])
    return notes


def write_replay(path: Union[str, Path], replay: dict[str, Any]) -> Path:
    """Write a replay document to disk and return its path."""
    path = Path(path)
    with path.open("w") as f:
        json.dump(replay, f)
    logger.info(f"Wrote replay to {path}")
    return path
