"""Squire: context assembly for a personal memory assistant."""

__version__ = "0.1.0"
