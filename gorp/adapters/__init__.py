"""Adapters — Discord, Letta and HTTP implementations of the ports."""
