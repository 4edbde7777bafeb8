"""Persistent Oracle-backed store layer for agent memory, sessions and state."""

__version__ = "0.1.0"
