#!/usr/bin/env python3
"""
Lead Pipeline
Routes one stored inbound message: routing decision, contact validity gate
and lead creation. Used by the queue worker and by the replay script.
"""

from typing import Optional

from pydantic import BaseModel

from integration_hub.contacts.contact_normalizer import ContactNormalizer
from integration_hub.db.db import (
    get_message_by_id, inbound_message_to_canonical, mark_message_as_failed, mark_message_as_processed
)
from integration_hub.enums import LeadType, MessageStatus, RoutingReason
from integration_hub.errors import InvalidContactError, PersistenceError
from integration_hub.leads.lead_creator import LeadCreator
from integration_hub.routing.routing_engine import RoutingEngine
from integration_hub.utils.log import get_logger, logging_context

logger = get_logger(__name__)


class PipelineResult(BaseModel):
    success: bool
    message_id: int
    reason: Optional[RoutingReason] = None
    lead_id: Optional[str] = None
    lead_type: Optional[LeadType] = None
    lead_created: bool = False
    skipped: bool = False
    error: Optional[str] = None


class LeadPipeline:

    def __init__(self, session):
        self.session = session
        self.routing_engine = RoutingEngine(session)
        self.lead_creator = LeadCreator(session)

    def route_message(self, message_id: int) -> PipelineResult:
        with logging_context({"message_id": message_id}):
            try:
                return self._route(message_id)
            except Exception as e:
                self.session.rollback()
                logger.error(f"❌ Failed to route message {message_id}: {e}")
                return PipelineResult(success=False, message_id=message_id, error=str(e))

    def _route(self, message_id: int) -> PipelineResult:
        row = get_message_by_id(self.session, message_id)
        if row is None:
            raise PersistenceError(f"Inbound message {message_id} does not exist")
        if row.status == MessageStatus.PROCESSED.value:
            logger.info(f"⏭️ Message {message_id} already processed (lead {row.lead_id})")
            return PipelineResult(success=True, message_id=message_id, lead_id=row.lead_id, skipped=True)

        integration_id = row.integration_id
        message = inbound_message_to_canonical(row)
        decision = self.routing_engine.determine_routing(message, integration_id)

        if decision.reason == RoutingReason.DUPLICATE:
            mark_message_as_processed(self.session, message_id, decision.existing_lead_id, decision.lead_type.value)
            self.session.commit()
            self.lead_creator.update_duplicate_stats(integration_id)
            return PipelineResult(success=True, message_id=message_id, reason=decision.reason,
                                  lead_id=decision.existing_lead_id, lead_type=decision.lead_type)

        if not decision.create:
            mark_message_as_processed(self.session, message_id)
            self.session.commit()
            return PipelineResult(success=True, message_id=message_id, reason=decision.reason)

        contact = ContactNormalizer.derive_identity(message)
        contact = ContactNormalizer.enrich_from_text(contact, message.message_text)
        if not ContactNormalizer.is_valid(contact):
            error = InvalidContactError(
                f"No usable contact for {message.channel.value} user '{message.external_user_id}'"
            )
            logger.warning(f"🚫 {error}")
            mark_message_as_failed(self.session, message_id, str(error))
            self.session.commit()
            return PipelineResult(success=False, message_id=message_id, reason=decision.reason, error=str(error))

        result = self.lead_creator.create_lead(message, decision, integration_id, contact=contact,
                                               message_id=message_id)
        if not result.success:
            return PipelineResult(success=False, message_id=message_id, reason=decision.reason, error=result.error)

        return PipelineResult(
            success=True,
            message_id=message_id,
            reason=decision.reason,
            lead_id=result.lead_id,
            lead_type=result.lead_type,
            lead_created=result.mapping_created,
        )
