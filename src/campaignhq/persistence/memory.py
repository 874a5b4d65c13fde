"""
In-memory stores.

Entries hold documents rather than live models, so every write and read
passes through the same serialization a real backend would apply.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

import structlog

from campaignhq.campaigns.models import AudienceSegment, Campaign
from campaignhq.core.errors import PersistenceError
from campaignhq.core.tree import from_document

logger = structlog.get_logger()

M = TypeVar("M", Campaign, AudienceSegment)


@dataclass
class StoreEntry:
    """A stored document."""

    id: str
    owner_id: str
    document: dict[str, Any]
    stored_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class _DocumentStore(Generic[M]):
    model: type[M]
    kind: str

    def __init__(self) -> None:
        self._entries: dict[str, StoreEntry] = {}
        self._by_owner: dict[str, list[str]] = {}  # owner_id -> [ids]
        self._log = logger.bind(component=f"memory_{self.kind}_store")

    async def create(self, item: M) -> M:
        if item.id in self._entries:
            raise PersistenceError(f"{self.kind} {item.id} already exists")

        entry = StoreEntry(id=item.id, owner_id=item.user_id, document=item.to_document())
        self._entries[item.id] = entry
        self._by_owner.setdefault(item.user_id, []).append(item.id)

        self._log.debug("item_created", item_id=item.id, owner_id=item.user_id)
        return self._load(entry)

    async def update(self, item_id: str, changes: Mapping[str, Any]) -> M:
        entry = self._require(item_id)
        values = dict(changes)
        if "id" in values and values["id"] != item_id:
            raise PersistenceError(f"Cannot change the id of {self.kind} {item_id}")
        if isinstance(values.get("rules"), Mapping):
            values["rules"] = from_document(values["rules"])

        try:
            updated = self._load(entry).revise(**values)
        except ValueError as e:
            raise PersistenceError(f"Invalid changes for {self.kind} {item_id}: {e}") from e

        if updated.user_id != entry.owner_id:
            self._by_owner[entry.owner_id].remove(item_id)
            self._by_owner.setdefault(updated.user_id, []).append(item_id)
            entry.owner_id = updated.user_id
        entry.document = updated.to_document()

        self._log.debug("item_updated", item_id=item_id, fields=sorted(values))
        return self._load(entry)

    async def delete(self, item_id: str) -> None:
        entry = self._require(item_id)
        del self._entries[item_id]
        self._by_owner[entry.owner_id].remove(item_id)
        self._log.debug("item_deleted", item_id=item_id)

    async def list(self, owner_id: str) -> list[M]:
        items = [self._load(self._entries[i]) for i in self._by_owner.get(owner_id, [])]
        items.sort(key=lambda item: (item.created_at, item.id), reverse=True)
        return items

    async def get(self, item_id: str) -> M | None:
        entry = self._entries.get(item_id)
        return self._load(entry) if entry else None

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        self._by_owner.clear()
        return count

    def _require(self, item_id: str) -> StoreEntry:
        entry = self._entries.get(item_id)
        if entry is None:
            raise PersistenceError(f"{self.kind} {item_id} not found")
        return entry

    def _load(self, entry: StoreEntry) -> M:
        return self.model.from_document(entry.document)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[M]:
        return iter(self._load(entry) for entry in self._entries.values())


class InMemoryCampaignStore(_DocumentStore[Campaign]):
    """Campaign store backed by a dict."""

    model = Campaign
    kind = "campaign"


class InMemorySegmentStore(_DocumentStore[AudienceSegment]):
    """Segment store backed by a dict."""

    model = AudienceSegment
    kind = "segment"
