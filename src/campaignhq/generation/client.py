"""
Campaign copy generation through an OpenAI-compatible chat completions API.

Failures are classified so callers can show a specific message: rate limits
degrade to a canned fallback message, a bad or missing key raises
InvalidCredentialsError, server and network failures raise
ServiceUnavailableError, and anything else raises GenerationError.
"""

from typing import TYPE_CHECKING, Any

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field

from campaignhq.config import Settings, get_settings
from campaignhq.core.errors import (
    GenerationError,
    InvalidCredentialsError,
    RateLimitedError,
    ServiceUnavailableError,
)
from campaignhq.core.fields import FieldCatalog
from campaignhq.core.summary import audience_text
from campaignhq.generation.throttle import RequestThrottle

if TYPE_CHECKING:
    from campaignhq.campaigns.models import Campaign

logger = structlog.get_logger()

SYSTEM_PROMPT = "You are a marketing expert that helps create engaging campaign messages."

FALLBACK_MESSAGES = {
    "general": "Thank you for choosing our service! We're excited to help you achieve your goals.",
    "promotional": "Limited time offer! Don't miss out on this exclusive opportunity.",
    "engagement": "Join our community and discover amazing possibilities!",
    "educational": "Learn, grow, and succeed with our comprehensive solutions.",
}


def fallback_message(description: str = "") -> str:
    """Canned message served when generation is rate limited."""
    if "promotion" in description.lower():
        return FALLBACK_MESSAGES["promotional"]
    return FALLBACK_MESSAGES["general"]


class MessageRequest(BaseModel):
    """What the model is told about the campaign."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1)
    description: str = ""
    audience: str = "General audience"

    def user_prompt(self) -> str:
        return (
            "Create a compelling marketing message for a campaign with the following details:\n"
            f"Name: {self.name}\n"
            f"Description: {self.description or 'N/A'}\n"
            f"Target Audience: {self.audience or 'General audience'}\n\n"
            "The message should be concise, engaging, and tailored to the target audience.\n"
            "Keep the message under 200 words."
        )


class GeneratedMessage(BaseModel):
    """Generated campaign copy."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    content: str
    model: str
    is_fallback: bool = False
    usage: dict[str, Any] = Field(default_factory=dict)


class MessageGenerator:
    """Client for the completion API, with its own request throttle."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        throttle: RequestThrottle | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client
        self._throttle = throttle or RequestThrottle(self._settings.generation_min_interval)
        self._log = logger.bind(component="message_generator")

    @property
    def throttle(self) -> RequestThrottle:
        return self._throttle

    async def generate(self, request: MessageRequest) -> GeneratedMessage:
        """Generate copy for ``request``."""
        if not self._settings.openai_api_key:
            raise InvalidCredentialsError("No OpenAI API key configured")

        await self._throttle.wait()
        self._log.info(
            "generating_message",
            name=request.name,
            model=self._settings.openai_model,
        )

        try:
            response = await self._post(self._payload(request))
        except httpx.TransportError as e:
            self._log.warning("generation_transport_error", error=str(e))
            raise ServiceUnavailableError(f"Could not reach the completion API: {e}") from e

        if response.status_code == 429:
            if self._settings.generation_fallback_on_rate_limit:
                self._log.warning("generation_rate_limited_fallback", name=request.name)
                return GeneratedMessage(
                    content=fallback_message(request.description),
                    model=self._settings.openai_model,
                    is_fallback=True,
                )
            raise RateLimitedError("Rate limit exceeded")

        if response.is_error:
            self._log.warning(
                "generation_failed",
                status=response.status_code,
                reason=response.reason_phrase,
            )
            if response.status_code == 401:
                raise InvalidCredentialsError("The completion API rejected the API key")
            if response.status_code >= 500:
                raise ServiceUnavailableError(
                    f"Completion API error: {response.status_code} {response.reason_phrase}"
                )
            raise GenerationError(f"Completion API error: {response.reason_phrase}")

        return self._parse(response)

    async def generate_for_campaign(
        self,
        campaign: "Campaign",
        catalog: FieldCatalog | None = None,
    ) -> GeneratedMessage:
        """Generate copy from a campaign's name, description and audience."""
        return await self.generate(MessageRequest(
            name=campaign.name,
            description=campaign.description,
            audience=audience_text(campaign.rules, catalog),
        ))

    async def check_connection(self) -> bool:
        """Whether a test generation succeeds."""
        try:
            await self.generate(MessageRequest(
                name="Test Campaign",
                description="Testing OpenAI connection",
            ))
        except GenerationError as e:
            self._log.warning("connection_check_failed", error=str(e))
            return False
        self._log.info("connection_check_succeeded")
        return True

    def _payload(self, request: MessageRequest) -> dict[str, Any]:
        return {
            "model": self._settings.openai_model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": request.user_prompt()},
            ],
            "max_tokens": self._settings.generation_max_tokens,
            "temperature": self._settings.generation_temperature,
        }

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        url = f"{self._settings.openai_base_url.rstrip('/')}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self._settings.openai_api_key}",
            "Content-Type": "application/json",
        }
        if self._client is not None:
            return await self._client.post(url, headers=headers, json=payload)
        async with httpx.AsyncClient(timeout=self._settings.generation_timeout) as client:
            return await client.post(url, headers=headers, json=payload)

    def _parse(self, response: httpx.Response) -> GeneratedMessage:
        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            self._log.warning("invalid_completion_response", error=str(e))
            raise GenerationError("Invalid response from the completion API") from e

        if not isinstance(content, str) or not content.strip():
            raise GenerationError("The completion API returned no message")

        return GeneratedMessage(
            content=content.strip(),
            model=data.get("model", self._settings.openai_model),
            usage=data.get("usage") or {},
        )
