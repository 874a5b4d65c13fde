"""Process setup and the command line."""

from campaignhq.runtime.logs import configure_logging

__all__ = ["configure_logging"]
