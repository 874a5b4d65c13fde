"""
Storage protocols for campaigns and audience segments.

Implementations are async and raise PersistenceError for any backend
failure. Rules are persisted in document form so typed values survive.
"""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from campaignhq.campaigns.models import AudienceSegment, Campaign


@runtime_checkable
class CampaignStore(Protocol):
    """Where campaigns are kept."""

    async def create(self, campaign: Campaign) -> Campaign: ...

    async def update(self, campaign_id: str, changes: Mapping[str, Any]) -> Campaign: ...

    async def delete(self, campaign_id: str) -> None: ...

    async def list(self, owner_id: str) -> list[Campaign]:
        """Campaigns owned by ``owner_id``, newest first."""
        ...

    async def get(self, campaign_id: str) -> Campaign | None: ...


@runtime_checkable
class SegmentStore(Protocol):
    """Where audience segments are kept."""

    async def create(self, segment: AudienceSegment) -> AudienceSegment: ...

    async def update(
        self, segment_id: str, changes: Mapping[str, Any]
    ) -> AudienceSegment: ...

    async def delete(self, segment_id: str) -> None: ...

    async def list(self, owner_id: str) -> list[AudienceSegment]:
        """Segments owned by ``owner_id``, newest first."""
        ...

    async def get(self, segment_id: str) -> AudienceSegment | None: ...
