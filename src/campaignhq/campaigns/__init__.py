"""Campaigns, audience segments and draft editing."""

from campaignhq.campaigns.models import (
    ALLOWED_TRANSITIONS,
    AudienceSegment,
    Campaign,
    CampaignStatus,
)
from campaignhq.campaigns.validation import CampaignValidator, ValidationIssue, validate_campaign
from campaignhq.campaigns.editor import CampaignDraft, CampaignEditor

__all__ = [
    "ALLOWED_TRANSITIONS",
    "AudienceSegment",
    "Campaign",
    "CampaignDraft",
    "CampaignEditor",
    "CampaignStatus",
    "CampaignValidator",
    "ValidationIssue",
    "validate_campaign",
]
