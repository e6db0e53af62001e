#!/usr/bin/env python3
"""
Lead Creator
Opens a lead in the funnel chosen by the routing decision and records which
identity it was opened for.

The lead row, the dedup mapping and the message link are committed together.
When the mapping insert loses to a concurrent writer, the message is linked to
the winning lead instead and this call's own lead row is dropped before commit.
"""

from typing import Optional

from pydantic import BaseModel

from integration_hub.channels.canonical_message import CanonicalMessage
from integration_hub.channels.channel import Channel
from integration_hub.contacts.contact_normalizer import ContactNormalizer, NormalizedContact
from integration_hub.db.db import (
    find_dedup_by_identity, find_dedup_by_phone, get_integration, link_message_to_lead,
    save_deduplication_record, try_increment_usage_counter
)
from integration_hub.db.models.booking_lead import BookingLead
from integration_hub.db.models.franchise_deal import FranchiseDeal
from integration_hub.enums import LeadType, RoutingReason, UsageCounter
from integration_hub.errors import PersistenceError
from integration_hub.leads.assignment import resolve_assignee
from integration_hub.routing.routing_engine import RoutingDecision
from integration_hub.utils.log import get_logger

logger = get_logger(__name__)


class CreateLeadResult(BaseModel):
    success: bool
    lead_id: Optional[str] = None
    lead_type: Optional[LeadType] = None
    mapping_created: bool = False
    error: Optional[str] = None


def lead_comment(message: CanonicalMessage) -> str:
    return f"Auto-created from {message.channel.value}: {message.message_text}"


class LeadCreator:
    """Creates leads inside the caller's session; commits its own unit of work."""

    def __init__(self, session):
        self.session = session

    def create_lead(self, message: CanonicalMessage, decision: RoutingDecision, integration_id: str,
                    contact: Optional[NormalizedContact] = None,
                    message_id: Optional[int] = None) -> CreateLeadResult:
        if not decision.create:
            error = f"Routing decided not to create a lead ({RoutingReason(decision.reason).value})"
            logger.warning(f"⚠️ {error} for {message.channel.value}:{message.external_user_id}")
            return CreateLeadResult(success=False, error=error)

        contact = contact or ContactNormalizer.derive_identity(message)
        lead_type = LeadType(decision.lead_type)

        logger.info(f"🏗️ Creating {lead_type.value} lead for {message.channel.value} user "
                    f"{message.external_user_id} (integration {integration_id})")

        try:
            integration = get_integration(self.session, integration_id)
            assignee = resolve_assignee(self.session, integration)

            lead = self._build_lead(message, contact, lead_type, assignee)
            self.session.add(lead)
            self.session.flush()

            mapping_created = save_deduplication_record(
                self.session,
                integration_id=integration_id,
                channel=message.channel.value,
                external_user_id=message.external_user_id,
                phone=contact.phone,
                lead_id=lead.id,
                lead_type=lead_type.value,
            )

            lead_id = lead.id
            if not mapping_created:
                winner = self._find_winner(message, contact)
                if winner is None:
                    raise PersistenceError(
                        f"Dedup insert for {message.channel.value}:{message.external_user_id} was ignored "
                        f"but no conflicting mapping exists"
                    )
                self.session.delete(lead)
                lead_id = winner.lead_id
                lead_type = LeadType(winner.lead_type)
                logger.info(f"🔁 Lost the race for {message.external_user_id}, linking to existing lead {lead_id}")

            linked = link_message_to_lead(self.session, message, lead_id, lead_type.value, message_id=message_id)
            if not linked:
                logger.warning(f"⚠️ No stored message matched {message.channel.value}:{message.external_user_id} "
                               f"at {message.received_at.isoformat()}")

            self.session.commit()

        except Exception as e:
            self.session.rollback()
            logger.error(f"❌ Failed to create lead for {message.channel.value}:{message.external_user_id}: {e}")
            return CreateLeadResult(success=False, error=str(e))

        if mapping_created:
            try_increment_usage_counter(self.session, integration_id, UsageCounter.LEADS_CREATED)
            logger.info(f"✅ Created {lead_type.value} lead {lead_id}"
                        f"{f' assigned to {assignee}' if assignee else ' (unassigned)'}")
        else:
            self.update_duplicate_stats(integration_id)

        return CreateLeadResult(success=True, lead_id=lead_id, lead_type=lead_type, mapping_created=mapping_created)

    def update_duplicate_stats(self, integration_id: str) -> None:
        try_increment_usage_counter(self.session, integration_id, UsageCounter.DUPLICATES_PREVENTED)

    def _find_winner(self, message: CanonicalMessage, contact: NormalizedContact):
        winner = find_dedup_by_identity(self.session, message.channel.value, message.external_user_id)
        if winner is None and contact.phone:
            winner = find_dedup_by_phone(self.session, contact.phone)
        return winner

    @staticmethod
    def _build_lead(message: CanonicalMessage, contact: NormalizedContact, lead_type: LeadType,
                    assignee: Optional[str]):
        common = dict(
            name=contact.name,
            phone=contact.phone,
            email=contact.email,
            source=contact.source,
            responsible_id=assignee,
            comment=lead_comment(message),
        )

        if lead_type == LeadType.FRANCHISE_SALE:
            return FranchiseDeal(**common)

        channel = message.channel
        return BookingLead(
            franchisee_id=message.owner_id,
            telegram_id=contact.telegram_id if channel == Channel.TELEGRAM else None,
            instagram_username=contact.instagram_username if channel == Channel.INSTAGRAM else None,
            vk_id=contact.vk_id if channel == Channel.VK else None,
            whatsapp_id=contact.whatsapp_id if channel == Channel.WHATSAPP else None,
            **common
        )
