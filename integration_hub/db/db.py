from datetime import datetime, timezone, date
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

# Import all models at the top level
from integration_hub.db.models.integration import Integration
from integration_hub.db.models.inbound_message import InboundMessage
from integration_hub.db.models.lead_deduplication import LeadDeduplication
from integration_hub.db.models.trigger_rule import TriggerRule
from integration_hub.db.models.integration_stats import IntegrationStats
from integration_hub.db.models.staff_user import StaffUser
from integration_hub.channels.canonical_message import Attachment, CanonicalMessage
from integration_hub.enums import MessageStatus, UsageCounter
from integration_hub.errors import PersistenceError
from integration_hub.utils.log import get_logger

logger = get_logger(__name__)


def utc_now() -> datetime:
	return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
	"""SQLite hands timestamps back naive; every stored timestamp is UTC."""
	if value.tzinfo is None:
		return value.replace(tzinfo=timezone.utc)
	return value.astimezone(timezone.utc)


def _insert_for(session, model):
	"""Dialect-specific INSERT supporting ON CONFLICT clauses."""
	dialect = session.get_bind().dialect.name
	if dialect == "postgresql":
		return postgresql_insert(model)
	if dialect == "sqlite":
		return sqlite_insert(model)
	raise PersistenceError(f"INSERT .. ON CONFLICT is not available for dialect '{dialect}'")


# Integrations
def get_integration(session, integration_id: str) -> Optional[Integration]:
	"""Get an integration by id, always read fresh from the database."""
	return session.query(Integration).filter_by(id=integration_id).populate_existing().first()


def set_webhook_secret(session, integration_id: str, secret: str) -> None:
	updated = session.query(Integration).filter_by(id=integration_id).update(
		{"webhook_secret": secret, "updated_at": utc_now()},
		synchronize_session=False
	)
	if not updated:
		raise PersistenceError(f"Integration {integration_id} does not exist")


# Inbound messages
def create_inbound_message(session, message: CanonicalMessage, integration_id: str) -> int:
	"""Store a normalized message with status=pending, returns its id."""
	row = InboundMessage(
		integration_id=integration_id,
		channel=message.channel.value,
		external_user_id=message.external_user_id,
		username=message.username,
		phone=message.phone,
		message_text=message.message_text,
		attachments=[a.model_dump(mode="json") for a in message.attachments] or None,
		owner_type=message.owner_type.value,
		owner_id=message.owner_id,
		received_at=as_utc(message.received_at),
		raw_payload=message.raw_payload,
		status=MessageStatus.PENDING.value,
	)
	session.add(row)
	session.flush()

	return row.id


def get_message_by_id(session, message_id: int) -> Optional[InboundMessage]:
	return session.query(InboundMessage).filter_by(id=message_id).populate_existing().first()


def inbound_message_to_canonical(row: InboundMessage) -> CanonicalMessage:
	"""Rebuild the canonical message from its stored row (used for replay)."""
	return CanonicalMessage(
		channel=row.channel,
		external_user_id=row.external_user_id,
		username=row.username,
		phone=row.phone,
		message_text=row.message_text or "",
		attachments=[Attachment(**a) for a in (row.attachments or [])],
		owner_type=row.owner_type,
		owner_id=row.owner_id,
		received_at=as_utc(row.received_at),
		raw_payload=row.raw_payload,
	)


def has_earlier_message(session, channel: str, external_user_id: str, received_at: datetime) -> bool:
	"""Whether a message from the same identity with an earlier origin timestamp is stored.

	Senders without an external id share no identity, so they never have an earlier message.
	"""
	if not external_user_id:
		return False
	earlier = session.query(InboundMessage.id).filter(
		InboundMessage.channel == channel,
		InboundMessage.external_user_id == external_user_id,
		InboundMessage.received_at < as_utc(received_at)
	).first()
	return earlier is not None


def get_pending_messages(session, integration_id: Optional[str] = None, limit: Optional[int] = None) -> List[InboundMessage]:
	"""Pending messages in origin order, oldest first."""
	query = session.query(InboundMessage).filter(InboundMessage.status == MessageStatus.PENDING.value)
	if integration_id:
		query = query.filter(InboundMessage.integration_id == integration_id)
	query = query.order_by(InboundMessage.received_at.asc(), InboundMessage.id.asc())
	if limit:
		query = query.limit(limit)
	return query.all()


def link_message_to_lead(session, message: CanonicalMessage, lead_id: str, lead_type: str,
                         message_id: Optional[int] = None) -> int:
	"""Mark the originating message processed.

	Matched by row id when known, else by (channel, external_user_id, received_at).
	Returns the number of rows updated.
	"""
	query = session.query(InboundMessage)
	if message_id is not None:
		query = query.filter(InboundMessage.id == message_id)
	elif message.external_user_id:
		query = query.filter(
			InboundMessage.channel == message.channel.value,
			InboundMessage.external_user_id == message.external_user_id,
			InboundMessage.received_at == as_utc(message.received_at)
		)
	else:
		# without an id or identity any match could belong to another sender
		return 0
	return query.update({
		"lead_id": lead_id,
		"lead_type": lead_type,
		"status": MessageStatus.PROCESSED.value,
		"processed_at": utc_now(),
	}, synchronize_session=False)


def mark_message_as_processed(session, message_id: int, lead_id: Optional[str] = None,
                              lead_type: Optional[str] = None) -> None:
	session.query(InboundMessage).filter_by(id=message_id).update({
		"lead_id": lead_id,
		"lead_type": lead_type,
		"status": MessageStatus.PROCESSED.value,
		"processed_at": utc_now(),
		"error": None,
	}, synchronize_session=False)


def mark_message_as_failed(session, message_id: int, error: str) -> None:
	session.query(InboundMessage).filter_by(id=message_id).update({
		"status": MessageStatus.FAILED.value,
		"processed_at": utc_now(),
		"error": error,
	}, synchronize_session=False)


# Deduplication mapping
def find_dedup_by_identity(session, channel: str, external_user_id: str) -> Optional[LeadDeduplication]:
	if not external_user_id:
		return None
	return session.query(LeadDeduplication).filter_by(
		channel=channel, external_user_id=external_user_id
	).first()


def find_dedup_by_phone(session, phone: str) -> Optional[LeadDeduplication]:
	if not phone:
		return None
	return session.query(LeadDeduplication).filter_by(phone=phone).first()


def save_deduplication_record(session, integration_id: str, channel: str, external_user_id: str,
                              phone: Optional[str], lead_id: str, lead_type: str) -> bool:
	"""Insert the identity -> lead mapping, first writer wins.

	A conflicting row is never overwritten. Returns True only for the call whose
	row was actually written. A missing external id is stored as NULL, which never
	conflicts, leaving the phone as the only key for such senders.
	"""
	stmt = _insert_for(session, LeadDeduplication).values(
		integration_id=integration_id,
		channel=channel,
		external_user_id=external_user_id or None,
		phone=phone or None,
		lead_id=lead_id,
		lead_type=lead_type,
	).on_conflict_do_nothing()
	result = session.execute(stmt)
	return result.rowcount == 1


# Trigger rules
def get_active_trigger_rules(session, integration_id: str) -> List[TriggerRule]:
	return session.query(TriggerRule).filter(
		TriggerRule.integration_id == integration_id,
		TriggerRule.is_active.is_(True)
	).order_by(TriggerRule.priority.desc(), TriggerRule.id.asc()).all()


# Usage counters
def _counter_column(counter: UsageCounter):
	if counter == UsageCounter.MESSAGES_RECEIVED:
		return IntegrationStats.messages_received
	elif counter == UsageCounter.LEADS_CREATED:
		return IntegrationStats.leads_created
	elif counter == UsageCounter.DUPLICATES_PREVENTED:
		return IntegrationStats.duplicates_prevented
	raise ValueError(f"Unknown usage counter: {counter}")


def increment_usage_counter(session, integration_id: str, counter: UsageCounter,
                            on_date: Optional[date] = None) -> None:
	"""Atomic upsert-and-increment of one daily counter."""
	column = _counter_column(UsageCounter(counter))
	day = on_date or utc_now().date()
	stmt = _insert_for(session, IntegrationStats).values(
		integration_id=integration_id,
		date=day,
		**{column.key: 1}
	)
	stmt = stmt.on_conflict_do_update(
		index_elements=[IntegrationStats.integration_id, IntegrationStats.date],
		set_={column.key: column + 1, "updated_at": func.now()}
	)
	session.execute(stmt)


def try_increment_usage_counter(session, integration_id: str, counter: UsageCounter) -> bool:
	"""Increment and commit one counter; failures are logged and swallowed."""
	try:
		increment_usage_counter(session, integration_id, counter)
		session.commit()
		return True
	except Exception as e:
		session.rollback()
		logger.warning(f"⚠️ Failed to increment {getattr(counter, 'value', counter)} for integration {integration_id}: {e}")
		return False


def get_usage_counters(session, integration_id: str, on_date: Optional[date] = None) -> Optional[IntegrationStats]:
	day = on_date or utc_now().date()
	return session.query(IntegrationStats).filter_by(integration_id=integration_id, date=day).populate_existing().first()


# Staff directory
def get_eligible_staff(session, roles: Sequence[str], franchisee_id: Optional[str] = None) -> List[StaffUser]:
	"""Active staff with one of `roles`, earliest created first."""
	query = session.query(StaffUser).filter(
		StaffUser.role.in_(list(roles)),
		StaffUser.is_active.is_(True)
	)
	if franchisee_id:
		query = query.filter(StaffUser.franchisee_id == franchisee_id)
	return query.order_by(StaffUser.created_at.asc(), StaffUser.id.asc()).all()


def get_processing_summary(session, integration_id: Optional[str] = None) -> List[Tuple[str, int]]:
	"""Count of inbound messages per status."""
	query = session.query(InboundMessage.status, func.count(InboundMessage.id))
	if integration_id:
		query = query.filter(InboundMessage.integration_id == integration_id)
	return query.group_by(InboundMessage.status).all()
