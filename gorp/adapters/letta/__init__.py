"""Letta agent adapter."""

from gorp.adapters.letta.client import LettaClient, LettaError

__all__ = ["LettaClient", "LettaError"]
