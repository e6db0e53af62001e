"""
Error taxonomy of the integration hub.

Public entry points (IntegrationHub, LeadCreator, LeadPipeline, the webhook
endpoint) catch these and report structured failures instead of raising.
"""


class IntegrationHubError(Exception):
    """Base class for every error raised inside the hub."""


class IntegrationConfigError(IntegrationHubError):
    """Integration is missing, inactive, or set up for another channel."""


class UnsupportedChannelError(IntegrationHubError):
    """Channel tag is not one of the supported channels."""

    def __init__(self, channel):
        super().__init__(f"Unsupported channel: {channel}")
        self.channel = channel


class InvalidContactError(IntegrationHubError):
    """Contact has no usable name or no reachable channel."""


class PersistenceError(IntegrationHubError):
    """A store read or write failed."""
