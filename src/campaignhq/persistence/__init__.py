"""Campaign and segment persistence."""

from campaignhq.persistence.base import CampaignStore, SegmentStore
from campaignhq.persistence.memory import InMemoryCampaignStore, InMemorySegmentStore

__all__ = [
    "CampaignStore",
    "SegmentStore",
    "InMemoryCampaignStore",
    "InMemorySegmentStore",
]
