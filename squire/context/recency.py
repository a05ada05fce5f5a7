"""Recency decay for candidate memories."""

import math
from datetime import datetime, timezone

SECONDS_PER_DAY = 24 * 60 * 60


def days_between(created_at: datetime, now: datetime) -> float:
    """Fractional days from ``created_at`` to ``now``; naive values are UTC."""
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (now - created_at).total_seconds() / SECONDS_PER_DAY


def recency_score(created_at: datetime, lookback_days: float, now: datetime) -> float:
    """Exponential decay with a half-life of half the lookback window.

    A memory exactly at the lookback boundary scores exp(-2), so it is
    decayed but not cut off. Timestamps in the future clamp to 1.0.
    """
    if lookback_days <= 0:
        raise ValueError("lookback_days must be positive")

    days_since = days_between(created_at, now)
    if days_since <= 0:
        return 1.0

    half_life = lookback_days / 2
    score = math.exp(-days_since / half_life)
    return max(0.0, min(1.0, score))
