"""
Utility functions for Hanabi.
"""

from utils.device import (
    get_device,
    get_device_name,
    DEFAULT_DEVICE,
    DEVICE_NAME
)
from utils.replay import build_replay, collect_notes, write_replay

__all__ = [
    "get_device",
    "get_device_name",
    "DEFAULT_DEVICE",
    "DEVICE_NAME",
    "build_replay",
    "collect_notes",
    "write_replay",
]
