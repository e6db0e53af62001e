#!/usr/bin/env python3
"""
Integration Hub
Single entry point for deliveries from every channel.

Receipt only stores the normalized message; routing runs separately
(LeadPipeline) so stored messages can be replayed after a rule change.
"""

import secrets
import string
from typing import Any, Optional

from pydantic import BaseModel

from integration_hub import env_var_injection
from integration_hub.channels.channel import parse_channel
from integration_hub.channels.message_normalizer import normalize_message
from integration_hub.consts import WEBHOOK_SECRET_LENGTH
from integration_hub.db.db import (
    create_inbound_message, get_integration, set_webhook_secret, try_increment_usage_counter
)
from integration_hub.enums import UsageCounter
from integration_hub.errors import IntegrationConfigError
from integration_hub.utils.log import get_logger, logging_context

logger = get_logger(__name__)

_SECRET_ALPHABET = string.ascii_letters + string.digits


class ProcessResult(BaseModel):
    success: bool
    message_id: Optional[int] = None
    error: Optional[str] = None


def generate_secret(length: int = WEBHOOK_SECRET_LENGTH) -> str:
    return "".join(secrets.choice(_SECRET_ALPHABET) for _ in range(length))


class IntegrationHub:

    def __init__(self, session, base_url: Optional[str] = None):
        self.session = session
        self.base_url = (base_url or env_var_injection.base_url).rstrip("/")

    def process_incoming_message(self, channel: str, payload: Any, integration_id: str) -> ProcessResult:
        """Normalize and store one delivery as a pending message."""
        with logging_context({"integration_id": integration_id, "channel": str(channel)}):
            logger.info(f"📥 Received {channel} delivery for integration {integration_id}")
            try:
                integration = get_integration(self.session, integration_id)
                if integration is None or not integration.is_active:
                    raise IntegrationConfigError("Integration not found or inactive")

                channel_tag = parse_channel(channel)
                if channel_tag.value != integration.channel:
                    raise IntegrationConfigError(
                        f"Integration is configured for {integration.channel}, not {channel_tag.value}"
                    )

                message = normalize_message(channel_tag, payload, integration)
                message_id = create_inbound_message(self.session, message, integration_id)
                self.session.commit()

            except Exception as e:
                self.session.rollback()
                logger.error(f"❌ Failed to process {channel} delivery for integration {integration_id}: {e}")
                return ProcessResult(success=False, error=str(e))

            try_increment_usage_counter(self.session, integration_id, UsageCounter.MESSAGES_RECEIVED)
            logger.info(f"💾 Stored message {message_id} from {message.external_user_id or 'unknown sender'}")
            return ProcessResult(success=True, message_id=message_id)

    def generate_webhook_url(self, integration_id: str, channel: str) -> str:
        """Compose the URL an operator registers with the channel; rotates the stored secret."""
        channel = parse_channel(channel)
        secret = generate_secret()
        set_webhook_secret(self.session, integration_id, secret)
        self.session.commit()

        logger.info(f"🔑 Issued new webhook secret for integration {integration_id} ({channel.value})")
        return f"{self.base_url}/api/webhooks/{channel.value}/{integration_id}?secret={secret}"
