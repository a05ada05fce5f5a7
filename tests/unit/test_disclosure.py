"""Unit tests for disclosure audit logging."""

from unittest.mock import AsyncMock

import pytest

from squire.context.disclosure import DisclosureLogger
from squire.context.scoring import score_items
from squire.core.domain.context import OutputFormat
from squire.core.errors import AuditError
from tests.fakes import NOW, FakeDisclosureStore, make_candidate, make_profile


@pytest.mark.asyncio
class TestDisclosureLogger:
    """Test cases for the DisclosureLogger."""

    def setup_method(self):
        self.store = FakeDisclosureStore()
        self.logger = DisclosureLogger(self.store)
        self.profile = make_profile(name="work", format=OutputFormat.JSON)
        self.items = score_items(
            [make_candidate("m1", salience=9), make_candidate("m2", similarity=0.5)],
            self.profile,
            NOW,
        )

    async def test_writes_one_record(self):
        disclosure_id = await self.logger.log(
            self.profile, self.items, 80, query="status", conversation_id="conv-1"
        )

        assert len(self.store.records) == 1
        record = self.store.records[0]
        assert record.id == disclosure_id
        assert record.profile_name == "work"
        assert record.query == "status"
        assert record.disclosed_item_ids == ["m1", "m2"]
        assert record.item_count == 2
        assert record.token_count == 80
        assert record.format == OutputFormat.JSON
        assert record.conversation_id == "conv-1"
        assert record.scoring_weights == self.profile.scoring_weights

    async def test_record_uses_given_timestamp(self):
        await self.logger.log(self.profile, self.items, 80, created_at=NOW)

        assert self.store.records[0].created_at == NOW

    async def test_empty_disclosure_is_still_recorded(self):
        await self.logger.log(self.profile, [], 0)

        record = self.store.records[0]
        assert record.item_count == 0
        assert record.disclosed_item_ids == []
        assert record.query is None

    async def test_store_failure_raises_audit_error(self):
        self.logger = DisclosureLogger(FakeDisclosureStore(fail=True))

        with pytest.raises(AuditError) as exc_info:
            await self.logger.log(self.profile, self.items, 80)

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    async def test_missing_id_raises_audit_error(self):
        store = FakeDisclosureStore()
        store.append = AsyncMock(return_value=None)

        with pytest.raises(AuditError):
            await DisclosureLogger(store).log(self.profile, self.items, 80)

    async def test_store_assigned_id_is_returned(self):
        store = FakeDisclosureStore()
        store.append = AsyncMock(return_value="db-42")

        assert await DisclosureLogger(store).log(self.profile, [], 0) == "db-42"

    async def test_recent_filters_by_conversation(self):
        await self.logger.log(self.profile, [], 0, conversation_id="a")
        await self.logger.log(self.profile, [], 0, conversation_id="b")
        await self.logger.log(self.profile, [], 0, conversation_id="a")

        records = await self.logger.recent(10, conversation_id="a")

        assert len(records) == 2
        assert all(r.conversation_id == "a" for r in records)
        assert records[0].id == self.store.records[2].id
