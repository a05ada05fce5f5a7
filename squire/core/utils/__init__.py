"""Shared utilities."""

from .tokens import estimate_tokens

__all__ = ["estimate_tokens"]
