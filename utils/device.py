"""
Device management utilities for PyTorch.

Belief tensors are tiny, so the default device is the CPU. Set the
HANABI_DEVICE environment variable ("cpu", "cuda", "mps", "auto") to
override; "auto" picks the best available accelerator.
"""

import os

import torch


def _detect_best_device() -> tuple[torch.device, str]:
    if torch.cuda.is_available():
        return torch.device("cuda"), "CUDA"
    if hasattr(torch.backends, "mps") and torch.backends.mps.is_available():
        return torch.device("mps"), "MPS (Apple Silicon)"
    return torch.device("cpu"), "CPU"


def _resolve_device(requested: str) -> tuple[torch.device, str]:
    requested = requested.strip().lower()
    if requested == "auto":
        return _detect_best_device()
    device = torch.device(requested)
    return device, device.type.upper()


DEFAULT_DEVICE, DEVICE_NAME = _resolve_device(os.environ.get("HANABI_DEVICE", "cpu"))


def get_device() -> torch.device:
    """
    Get the default compute device.

    Returns:
        torch.device: Device from HANABI_DEVICE (CPU if unset)
    """
    return DEFAULT_DEVICE


def get_device_name() -> str:
    """
    Get human-readable device name.

    Returns:
        str: Device name (e.g., "CPU", "CUDA", "MPS (Apple Silicon)")
    """
    return DEVICE_NAME
