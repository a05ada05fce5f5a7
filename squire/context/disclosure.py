"""Disclosure audit logging.

Every context package handed to a model is recorded before it is returned.
The audit trail is mandatory: if the record cannot be written, the whole
assembly fails.
"""

import logging
import uuid
from datetime import datetime

from ..core.domain.context import DisclosureRecord, Profile, ScoredItem, utc_now
from ..core.errors import AuditError
from .sources import DisclosureStore

logger = logging.getLogger(__name__)


class DisclosureLogger:
    """Writes one immutable disclosure record per assembled package."""

    def __init__(self, store: DisclosureStore):
        self.store = store

    async def log(
        self,
        profile: Profile,
        items: list[ScoredItem],
        token_count: int,
        query: str | None = None,
        conversation_id: str | None = None,
        created_at: datetime | None = None,
    ) -> str:
        """Persist the disclosure of the selected memories.

        Only memory ids are recorded; auxiliary evidence is not part of the
        audit row. ``created_at`` defaults to the current UTC time.

        Returns:
            Durable identifier of the disclosure record

        Raises:
            AuditError: If the record could not be persisted
        """
        item_ids = [item.id for item in items]
        record = DisclosureRecord(
            id=str(uuid.uuid4()),
            profile_name=profile.name,
            query=query,
            disclosed_item_ids=item_ids,
            item_count=len(item_ids),
            scoring_weights=profile.scoring_weights,
            token_count=token_count,
            format=profile.format,
            conversation_id=conversation_id,
            created_at=created_at or utc_now(),
        )

        try:
            disclosure_id = await self.store.append(record)
        except Exception as e:
            logger.error(f"❌ Failed to write disclosure record {record.id}: {e}")
            raise AuditError(f"Disclosure logging failed: {str(e)}") from e

        if not disclosure_id:
            raise AuditError("Disclosure store returned no record id")

        logger.info(
            f"🔏 Disclosure {disclosure_id}: {record.item_count} memories, "
            f"{token_count} tokens (profile={profile.name})"
        )
        return str(disclosure_id)

    async def recent(
        self, limit: int, conversation_id: str | None = None
    ) -> list[DisclosureRecord]:
        """Return the newest disclosure records first."""
        return await self.store.list_recent(limit, conversation_id)
