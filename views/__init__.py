"""
Per-player views of a game.

This module provides the legal-visibility projection agents act on: every
hand except the viewer's own, the public board and the action history.
"""

from views.player_view import PlayerView

__all__ = ["PlayerView"]
