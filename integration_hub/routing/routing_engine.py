#!/usr/bin/env python3
"""
Routing Engine
Decides, per stored message, whether a lead should be opened and in which funnel.

The dedup lookup here is only an optimization. Two concurrent deliveries for
the same identity can both pass it; the unique constraint hit by
LeadCreator's mapping insert is what actually keeps one lead per identity.
"""

from typing import Optional

from pydantic import BaseModel

from integration_hub.channels.canonical_message import CanonicalMessage
from integration_hub.contacts.contact_normalizer import ContactNormalizer
from integration_hub.db.db import (
    find_dedup_by_identity, find_dedup_by_phone, get_active_trigger_rules, has_earlier_message
)
from integration_hub.enums import LeadType, RoutingReason
from integration_hub.routing.trigger_evaluator import evaluate_triggers
from integration_hub.utils.log import get_logger

logger = get_logger(__name__)


class RoutingDecision(BaseModel):
    create: bool
    lead_type: LeadType
    reason: RoutingReason
    existing_lead_id: Optional[str] = None


class RoutingEngine:
    """Routing decisions over persisted state at decision time."""

    def __init__(self, session):
        self.session = session

    def determine_routing(self, message: CanonicalMessage, integration_id: str) -> RoutingDecision:
        logger.info(f"🧭 Routing {message.channel.value} message from {message.external_user_id} "
                    f"(integration {integration_id}, owner {message.owner_type.value})")

        existing = self._check_duplicate(message)
        if existing is not None:
            logger.info(f"🔁 Duplicate contact, lead {existing.lead_id} ({existing.lead_type}) already exists")
            return RoutingDecision(
                create=False,
                lead_type=existing.lead_type,
                reason=RoutingReason.DUPLICATE,
                existing_lead_id=existing.lead_id,
            )

        lead_type = LeadType.for_owner(message.owner_type)

        # Loaded fresh on every call so rule changes apply to the very next delivery
        rules = get_active_trigger_rules(self.session, integration_id)
        matched = evaluate_triggers(rules, message.message_text, lambda: self.is_first_message(message))

        if not matched:
            logger.info(f"⏭️ No trigger matched ({len(rules)} active rules)")
            return RoutingDecision(create=False, lead_type=lead_type, reason=RoutingReason.NO_TRIGGER_MATCH)

        logger.info(f"🎯 Trigger matched, creating {lead_type.value} lead")
        return RoutingDecision(create=True, lead_type=lead_type, reason=RoutingReason.TRIGGER_MATCHED)

    def is_first_message(self, message: CanonicalMessage) -> bool:
        return not has_earlier_message(
            self.session, message.channel.value, message.external_user_id, message.received_at
        )

    def _check_duplicate(self, message: CanonicalMessage):
        existing = find_dedup_by_identity(self.session, message.channel.value, message.external_user_id)
        if existing is not None:
            return existing

        phone = ContactNormalizer.normalize_phone(message.phone)
        if phone:
            return find_dedup_by_phone(self.session, phone)
        return None
