"""
Draft editing for a single campaign.

The editor owns the working copy of a campaign form: every rule edit goes
through the pure mutation functions and replaces the draft's tree, audience
size refreshes are conflated so only the latest tree's figure lands, and
saving hands the draft to a store without touching the working copy when
the store fails.
"""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from campaignhq.campaigns.models import AudienceSegment, Campaign
from campaignhq.campaigns.validation import CampaignValidator, ValidationIssue
from campaignhq.core import mutations
from campaignhq.core.errors import (
    AuthRequiredError,
    CampaignFrozenError,
    CampaignValidationError,
    PersistenceError,
)
from campaignhq.core.fields import FieldCatalog, default_catalog
from campaignhq.core.summary import audience_text
from campaignhq.core.tree import Combinator, RuleGroup, new_group
from campaignhq.evaluation.estimator import (
    AudienceSizeEstimator,
    AudienceSizeTracker,
    PlaceholderEstimator,
    SizeEstimate,
)
from campaignhq.generation.client import GeneratedMessage, MessageGenerator, MessageRequest

if TYPE_CHECKING:
    from campaignhq.persistence.base import CampaignStore

logger = structlog.get_logger()


class CampaignDraft(BaseModel):
    """The editable fields of a campaign form."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = ""
    description: str = ""
    message: str = ""
    rules: RuleGroup = Field(default_factory=new_group)
    audience_size: int = Field(default=0, ge=0)

    @classmethod
    def from_campaign(cls, campaign: Campaign) -> "CampaignDraft":
        return cls(
            name=campaign.name,
            description=campaign.description,
            message=campaign.message,
            rules=campaign.rules,
            audience_size=campaign.audience_size,
        )


class CampaignEditor:
    """
    Working copy of one campaign.

    A new campaign starts from an empty draft; an existing one starts from
    its stored fields. Rules of a campaign that has left draft status are
    frozen and every rule edit raises CampaignFrozenError.
    """

    def __init__(
        self,
        campaign: Campaign | None = None,
        catalog: FieldCatalog | None = None,
        estimator: AudienceSizeEstimator | None = None,
    ) -> None:
        self._campaign = campaign
        self._catalog = catalog or default_catalog()
        self._draft = CampaignDraft.from_campaign(campaign) if campaign else CampaignDraft()
        self._tracker = AudienceSizeTracker(estimator or PlaceholderEstimator.from_settings())
        self._validator = CampaignValidator(self._catalog)
        self._log = logger.bind(
            component="campaign_editor",
            campaign_id=campaign.id if campaign else None,
        )

    @property
    def campaign(self) -> Campaign | None:
        """The stored campaign this draft edits, if it has been saved."""
        return self._campaign

    @property
    def draft(self) -> CampaignDraft:
        return self._draft

    @property
    def rules(self) -> RuleGroup:
        return self._draft.rules

    @property
    def catalog(self) -> FieldCatalog:
        return self._catalog

    @property
    def tracker(self) -> AudienceSizeTracker:
        return self._tracker

    @property
    def is_frozen(self) -> bool:
        return self._campaign is not None and not self._campaign.is_draft

    # --- Rule edits ---

    def set_combinator(self, group_id: str, combinator: Combinator) -> RuleGroup:
        return self._replace_rules(mutations.set_combinator(self._editable_rules(), group_id, combinator))

    def add_rule(self, group_id: str) -> RuleGroup:
        return self._replace_rules(mutations.add_rule(self._editable_rules(), group_id, self._catalog))

    def add_group(self, group_id: str, combinator: Combinator = Combinator.AND) -> RuleGroup:
        return self._replace_rules(mutations.add_group(self._editable_rules(), group_id, combinator))

    def update_rule(self, rule_id: str, patch: Mapping[str, Any]) -> RuleGroup:
        return self._replace_rules(
            mutations.update_rule(self._editable_rules(), rule_id, patch, self._catalog)
        )

    def update_group(self, group_id: str, patch: Mapping[str, Any]) -> RuleGroup:
        return self._replace_rules(mutations.update_group(self._editable_rules(), group_id, patch))

    def delete_node(self, node_id: str) -> RuleGroup:
        return self._replace_rules(mutations.delete_node(self._editable_rules(), node_id))

    def apply_segment(self, segment: AudienceSegment) -> RuleGroup:
        """Replace the draft's rules with a saved segment's rules."""
        self._editable_rules()
        self._log.info("segment_applied", segment_id=segment.id)
        return self._replace_rules(segment.rules)

    def to_segment(self, name: str, owner_id: str | None, description: str = "") -> AudienceSegment:
        """Capture the current rules as a reusable segment."""
        if not owner_id:
            raise AuthRequiredError("Saving a segment requires a signed-in user")
        return AudienceSegment(
            user_id=owner_id,
            name=name,
            description=description,
            rules=self._draft.rules,
        )

    # --- Form fields ---

    def set_details(
        self,
        name: str | None = None,
        description: str | None = None,
        message: str | None = None,
    ) -> CampaignDraft:
        changes = {
            key: value
            for key, value in (("name", name), ("description", description), ("message", message))
            if value is not None
        }
        if changes:
            self._draft = self._draft.model_copy(update=changes)
        return self._draft

    # --- Async collaborators ---

    async def refresh_audience_size(self) -> SizeEstimate | None:
        """
        Re-estimate the audience for the current rules.

        Returns None when a later edit or refresh superseded this one; the
        draft's size is then left for the later request to set.
        """
        estimate = await self._tracker.refresh(self._draft.rules)
        if estimate is None:
            return None
        self._draft = self._draft.model_copy(update={"audience_size": estimate.size or 0})
        return estimate

    def validate(self) -> tuple[list[ValidationIssue], list[ValidationIssue]]:
        """Validate the draft. Returns (errors, warnings)."""
        return self._validator.validate(self._draft.name, self._draft.message, self._draft.rules)

    async def generate_message(self, generator: MessageGenerator) -> GeneratedMessage:
        """Generate copy for the draft and use it as the draft's message."""
        if not self._draft.name.strip():
            raise CampaignValidationError([ValidationIssue(
                code="EMPTY_NAME",
                message="Campaign name is required",
                location="name",
            )])

        generated = await generator.generate(MessageRequest(
            name=self._draft.name,
            description=self._draft.description,
            audience=audience_text(self._draft.rules, self._catalog),
        ))
        self._draft = self._draft.model_copy(update={"message": generated.content})
        self._log.info("message_generated", is_fallback=generated.is_fallback)
        return generated

    async def save(self, store: "CampaignStore", owner_id: str | None) -> Campaign:
        """
        Create or update the campaign from the draft.

        Raises:
            AuthRequiredError: no owner id
            CampaignValidationError: the draft has validation errors
            PersistenceError: the store failed; the draft is kept as it was
        """
        if not owner_id:
            raise AuthRequiredError("Saving a campaign requires a signed-in user")

        errors, _ = self.validate()
        if errors:
            raise CampaignValidationError(errors)

        fields = self._draft.model_dump(exclude={"rules"})
        try:
            if self._campaign is None:
                saved = await store.create(Campaign(user_id=owner_id, rules=self._draft.rules, **fields))
            else:
                changes = dict(fields)
                if not self.is_frozen:
                    changes["rules"] = self._draft.rules
                saved = await store.update(self._campaign.id, changes)
        except PersistenceError:
            self._log.warning("campaign_save_failed", owner_id=owner_id)
            raise

        self._campaign = saved
        self._log = self._log.bind(campaign_id=saved.id)
        self._log.info("campaign_saved", status=saved.status.value)
        return saved

    def _editable_rules(self) -> RuleGroup:
        if self._campaign is not None and not self._campaign.is_draft:
            raise CampaignFrozenError(self._campaign.id, self._campaign.status.value)
        return self._draft.rules

    def _replace_rules(self, rules: RuleGroup) -> RuleGroup:
        if rules is self._draft.rules:
            return rules
        # a size only ever describes the tree it was estimated for
        self._draft = self._draft.model_copy(update={"rules": rules, "audience_size": 0})
        self._tracker.invalidate()
        return rules
