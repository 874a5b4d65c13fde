"""
Error taxonomy for CampaignHQ.

Tree mutation and predicate evaluation never raise for stale ids or
malformed records; they degrade to no-ops and non-matches instead. The
exceptions below cover the remaining failure surfaces: form validation,
the external collaborators, and programmer-visible contract violations.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from campaignhq.campaigns.validation import ValidationIssue


class CampaignHQError(Exception):
    """Base class for all CampaignHQ errors."""

    user_message = "Something went wrong. Please try again."


class NotFoundError(CampaignHQError, LookupError):
    """A lookup addressed something that does not exist."""


class FieldNotFoundError(NotFoundError):
    """A field id is not registered in the field catalog."""

    def __init__(self, field_id: str) -> None:
        super().__init__(f"Unknown field: {field_id}")
        self.field_id = field_id


class CampaignValidationError(CampaignHQError, ValueError):
    """A campaign failed form validation; carries the per-field issues."""

    user_message = "Please fix the highlighted fields."

    def __init__(self, issues: "list[ValidationIssue]") -> None:
        summary = "; ".join(issue.message for issue in issues) or "invalid campaign"
        super().__init__(summary)
        self.issues = issues

    @property
    def by_location(self) -> dict[str, str]:
        """First message per form location, for rendering next to inputs."""
        messages: dict[str, str] = {}
        for issue in self.issues:
            messages.setdefault(issue.location or "form", issue.message)
        return messages


class GenerationError(CampaignHQError):
    """The message-generation collaborator failed for an unclassified reason."""

    user_message = "Failed to generate message. Please try again."
    retryable = True


class RateLimitedError(GenerationError):
    """The completion API rejected the request with HTTP 429."""

    user_message = "Message generation is busy right now. Please try again in a moment."


class InvalidCredentialsError(GenerationError):
    """The completion API key is missing or was rejected."""

    user_message = "Invalid OpenAI API key. Please check your API key and try again."
    retryable = False


class ServiceUnavailableError(GenerationError):
    """The completion API is down or unreachable."""

    user_message = "OpenAI service is currently experiencing issues. Please try again later."


class PersistenceError(CampaignHQError):
    """The hosted data store rejected a create, update or delete."""

    user_message = "Failed to save. Your changes are kept, please try again."


class AuthRequiredError(CampaignHQError, PermissionError):
    """An operation needing an owner id ran without an authenticated user."""

    user_message = "You must be logged in to continue."


class CampaignFrozenError(CampaignHQError):
    """The targeting predicate of a non-draft campaign cannot be edited."""

    user_message = "This campaign is no longer a draft and its audience cannot be changed."

    def __init__(self, campaign_id: str, status: str) -> None:
        super().__init__(f"Campaign {campaign_id} is {status}; rules are frozen")
        self.campaign_id = campaign_id
        self.status = status


class InvalidTransitionError(CampaignHQError, ValueError):
    """A campaign status change is not allowed by the lifecycle."""

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Cannot move campaign from {current} to {requested}")
        self.current = current
        self.requested = requested


class RootDeletionError(CampaignHQError, ValueError):
    """The root group of a predicate tree cannot be deleted."""
