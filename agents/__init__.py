"""
Agents package for Hanabi.

This package provides the base agent interface and its implementations.

Modules:
    base_agent: BaseAgent and AgentParams
    random_agent: Uniformly random legal moves (baseline)
    ref_sieve_agent: Referential sieve convention player
"""

from agents.base_agent import BaseAgent, AgentParams
from agents.random_agent import RandomAgent, legal_actions
from agents.ref_sieve_agent import RefSieveAgent

__all__ = [
    "BaseAgent",
    "AgentParams",
    "RandomAgent",
    "RefSieveAgent",
    "legal_actions",
]
