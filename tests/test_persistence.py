"""Tests for the in-memory stores."""

from datetime import UTC, datetime, timedelta

import pytest

from campaignhq.campaigns.models import AudienceSegment, Campaign
from campaignhq.core.errors import PersistenceError
from campaignhq.core.tree import Rule, RuleGroup, to_document
from campaignhq.persistence import (
    CampaignStore,
    InMemoryCampaignStore,
    InMemorySegmentStore,
    SegmentStore,
)

EPOCH = datetime(2025, 1, 1, tzinfo=UTC)


def campaign(user_id: str = "u1", offset: int = 0, **kwargs) -> Campaign:
    created = EPOCH + timedelta(minutes=offset)
    return Campaign(user_id=user_id, created_at=created, updated_at=created, **kwargs)


class TestInMemoryCampaignStore:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(InMemoryCampaignStore(), CampaignStore)
        assert isinstance(InMemorySegmentStore(), SegmentStore)

    @pytest.mark.asyncio
    async def test_create_and_get(self) -> None:
        store = InMemoryCampaignStore()
        rules = RuleGroup(
            rules=(
                Rule(field="subscribed", operator="=", value=False),
                Rule(field="lastPurchase", operator="between", value=("2025-01-01", "2025-02-01")),
            )
        )
        created = await store.create(campaign(name="Spring", rules=rules))
        loaded = await store.get(created.id)

        assert loaded == created
        assert loaded is not None
        assert loaded.rules.rules[0].value is False
        assert loaded.rules.rules[1].value == ("2025-01-01", "2025-02-01")
        assert await store.get("missing") is None

    @pytest.mark.asyncio
    async def test_create_rejects_existing_id(self) -> None:
        store = InMemoryCampaignStore()
        item = campaign()
        await store.create(item)
        with pytest.raises(PersistenceError):
            await store.create(item)

    @pytest.mark.asyncio
    async def test_list_is_newest_first_per_owner(self) -> None:
        store = InMemoryCampaignStore()
        old = await store.create(campaign(offset=0, name="old"))
        new = await store.create(campaign(offset=5, name="new"))
        await store.create(campaign(user_id="u2", offset=10, name="other"))

        assert [c.id for c in await store.list("u1")] == [new.id, old.id]
        assert [c.name for c in await store.list("u2")] == ["other"]
        assert await store.list("nobody") == []

    @pytest.mark.asyncio
    async def test_update_accepts_rule_documents(self) -> None:
        store = InMemoryCampaignStore()
        created = await store.create(campaign(name="Spring"))
        rules = RuleGroup(rules=(Rule(field="spend", operator=">", value=10),))

        updated = await store.update(created.id, {"name": "Summer", "rules": to_document(rules)})

        assert updated.name == "Summer"
        assert updated.rules == rules
        assert updated.updated_at > created.updated_at

    @pytest.mark.asyncio
    async def test_update_failures(self) -> None:
        store = InMemoryCampaignStore()
        created = await store.create(campaign())
        with pytest.raises(PersistenceError):
            await store.update("missing", {"name": "x"})
        with pytest.raises(PersistenceError):
            await store.update(created.id, {"id": "other"})
        with pytest.raises(PersistenceError):
            await store.update(created.id, {"colour": "red"})

    @pytest.mark.asyncio
    async def test_delete(self) -> None:
        store = InMemoryCampaignStore()
        created = await store.create(campaign())
        await store.delete(created.id)
        assert await store.get(created.id) is None
        assert await store.list("u1") == []
        with pytest.raises(PersistenceError):
            await store.delete(created.id)


class TestInMemorySegmentStore:
    @pytest.mark.asyncio
    async def test_round_trip(self) -> None:
        store = InMemorySegmentStore()
        segment = AudienceSegment(
            user_id="u1",
            name="Lapsed",
            rules=RuleGroup(rules=(Rule(field="inactive", operator=">", value=90),)),
        )
        created = await store.create(segment)
        assert await store.list("u1") == [created]

        renamed = await store.update(created.id, {"name": "Lapsed customers"})
        assert renamed.name == "Lapsed customers"
        assert renamed.rules == segment.rules

        assert store.clear() == 1
        assert len(store) == 0
