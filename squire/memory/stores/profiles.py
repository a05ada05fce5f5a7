"""Context profile stores."""

import logging
from typing import Any

from ...context.sources import ProfileStore
from ...core.domain.context import Profile
from ...core.errors import ConfigurationError
from ..database.postgres import PostgresConnection

logger = logging.getLogger(__name__)

_PROFILE_COLUMNS = """
    id::text AS id, name, description, min_salience, min_strength,
    lookback_days, max_tokens, format, scoring_weights, budget_caps, is_default
"""


def _profile_from_row(row: Any) -> Profile:
    return Profile(**dict(row))


class PostgresProfileStore(ProfileStore):
    """Profiles read from the ``context_profiles`` table."""

    def __init__(self, postgres: PostgresConnection):
        self.postgres = postgres

    async def get_profile(self, name: str) -> Profile | None:
        rows = await self.postgres.execute_query(
            f"SELECT {_PROFILE_COLUMNS} FROM context_profiles WHERE name = $1",
            name,
            fetch=True,
        )
        return _profile_from_row(rows[0]) if rows else None

    async def get_default_profile(self) -> Profile:
        rows = await self.postgres.execute_query(
            f"SELECT {_PROFILE_COLUMNS} FROM context_profiles "
            "WHERE is_default = TRUE LIMIT 1",
            fetch=True,
        )
        if not rows:
            raise ConfigurationError("No default context profile configured")
        return _profile_from_row(rows[0])

    async def list_profiles(self) -> list[Profile]:
        rows = await self.postgres.execute_query(
            f"SELECT {_PROFILE_COLUMNS} FROM context_profiles "
            "ORDER BY is_default DESC, name ASC",
            fetch=True,
        )
        return [_profile_from_row(row) for row in rows or []]


class CachedProfileStore(ProfileStore):
    """Read-through cache in front of another profile store.

    Owned by the caller, not the engine. Whoever edits profiles must call
    ``invalidate`` afterwards.
    """

    def __init__(self, backend: ProfileStore):
        self.backend = backend
        self._by_name: dict[str, Profile] = {}
        self._default: Profile | None = None

    async def get_profile(self, name: str) -> Profile | None:
        if name in self._by_name:
            return self._by_name[name]

        profile = await self.backend.get_profile(name)
        if profile is not None:
            self._by_name[name] = profile
        return profile

    async def get_default_profile(self) -> Profile:
        if self._default is None:
            self._default = await self.backend.get_default_profile()
        return self._default

    async def list_profiles(self) -> list[Profile]:
        profiles = await self.backend.list_profiles()
        for profile in profiles:
            self._by_name[profile.name] = profile
        return profiles

    def invalidate(self, name: str | None = None) -> None:
        """Drop cached profiles; all of them when no name is given."""
        if name is None:
            self._by_name.clear()
            self._default = None
            logger.debug("Profile cache cleared")
            return

        self._by_name.pop(name, None)
        if self._default is not None and self._default.name == name:
            self._default = None
