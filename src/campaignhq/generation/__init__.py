"""Campaign message generation."""

from campaignhq.generation.client import (
    FALLBACK_MESSAGES,
    GeneratedMessage,
    MessageGenerator,
    MessageRequest,
    fallback_message,
)
from campaignhq.generation.throttle import RequestThrottle

__all__ = [
    "FALLBACK_MESSAGES",
    "GeneratedMessage",
    "MessageGenerator",
    "MessageRequest",
    "RequestThrottle",
    "fallback_message",
]
