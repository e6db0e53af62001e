# integration_hub/db/models/inbound_message.py

from sqlalchemy import Column, Integer, Text, ForeignKey, TIMESTAMP, JSON, Index
from sqlalchemy.sql import func
from integration_hub.db.db_interface import DbInterface


class InboundMessage(DbInterface):
	__tablename__ = "inbound_messages"

	id = Column(Integer, primary_key=True)
	integration_id = Column(Text, ForeignKey("integrations.id"), nullable=False)
	channel = Column(Text, nullable=False)
	external_user_id = Column(Text, nullable=False)
	username = Column(Text)
	phone = Column(Text)
	message_text = Column(Text, nullable=False, server_default="")
	attachments = Column(JSON)
	owner_type = Column(Text, nullable=False)
	owner_id = Column(Text)
	# origin timestamp reported by the channel, not arrival time
	received_at = Column(TIMESTAMP(timezone=True), nullable=False)
	raw_payload = Column(JSON)
	status = Column(Text, nullable=False, server_default="pending", default="pending")
	lead_id = Column(Text)
	lead_type = Column(Text)
	processed_at = Column(TIMESTAMP(timezone=True))
	error = Column(Text)
	created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

	__table_args__ = (
		Index("ix_inbound_messages_identity_received_at", "channel", "external_user_id", "received_at"),
		Index("ix_inbound_messages_integration_id_status", "integration_id", "status"),
	)
