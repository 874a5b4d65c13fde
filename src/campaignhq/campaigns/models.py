"""
Campaign aggregate and reusable audience segments.

Both wrap one predicate tree and are the units handed to the persistence
collaborator. Documents use the JSON-compatible tree form from
``campaignhq.core.tree`` so typed rule values survive the round trip.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from ulid import ULID

from campaignhq.core.errors import InvalidTransitionError
from campaignhq.core.tree import RuleGroup, from_document, new_group


class CampaignStatus(Enum):
    """Lifecycle of a campaign."""

    DRAFT = "draft"  # Being authored; rules editable
    ACTIVE = "active"  # Sending
    PAUSED = "paused"  # Sending suspended
    COMPLETED = "completed"  # Sent
    FAILED = "failed"  # Send pipeline gave up


ALLOWED_TRANSITIONS: dict[CampaignStatus, frozenset[CampaignStatus]] = {
    CampaignStatus.DRAFT: frozenset({CampaignStatus.ACTIVE, CampaignStatus.FAILED}),
    CampaignStatus.ACTIVE: frozenset(
        {CampaignStatus.PAUSED, CampaignStatus.COMPLETED, CampaignStatus.FAILED}
    ),
    CampaignStatus.PAUSED: frozenset(
        {CampaignStatus.ACTIVE, CampaignStatus.COMPLETED, CampaignStatus.FAILED}
    ),
    CampaignStatus.COMPLETED: frozenset(),
    CampaignStatus.FAILED: frozenset(),
}


def _now() -> datetime:
    return datetime.now(UTC)


def _document_data(data: Mapping[str, Any]) -> dict[str, Any]:
    values = dict(data)
    if "rules" in values and isinstance(values["rules"], Mapping):
        values["rules"] = from_document(values["rules"])
    return values


class Campaign(BaseModel):
    """A marketing campaign targeting the audience its rules describe."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=lambda: str(ULID()))
    user_id: str
    name: str = ""
    description: str = ""
    rules: RuleGroup = Field(default_factory=new_group)
    message: str = ""
    status: CampaignStatus = CampaignStatus.DRAFT
    audience_size: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @property
    def is_draft(self) -> bool:
        return self.status is CampaignStatus.DRAFT

    def revise(self, **changes: Any) -> "Campaign":
        """Copy with ``changes`` applied and ``updated_at`` bumped."""
        data = dict(self)
        data.update(changes)
        data["updated_at"] = _now()
        return Campaign.model_validate(data)

    def transition(self, status: CampaignStatus) -> "Campaign":
        """Move to ``status`` if the lifecycle allows it."""
        if status is self.status:
            return self
        if status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.status.value, status.value)
        return self.revise(status=status)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "Campaign":
        return cls.model_validate(_document_data(data))


class AudienceSegment(BaseModel):
    """A named predicate saved for reuse across campaigns."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=lambda: str(ULID()))
    user_id: str
    name: str
    description: str = ""
    rules: RuleGroup = Field(default_factory=new_group)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def revise(self, **changes: Any) -> "AudienceSegment":
        data = dict(self)
        data.update(changes)
        data["updated_at"] = _now()
        return AudienceSegment.model_validate(data)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "AudienceSegment":
        return cls.model_validate(_document_data(data))
