# integration_hub/db/models/booking_lead.py

import uuid

from sqlalchemy import Column, Text, TIMESTAMP, Index
from sqlalchemy.sql import func
from integration_hub.db.db_interface import DbInterface


class BookingLead(DbInterface):
	"""A franchisee's booking funnel entry."""
	__tablename__ = "booking_leads"

	id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
	name = Column(Text, nullable=False)
	phone = Column(Text)
	email = Column(Text)
	source = Column(Text, nullable=False)
	status = Column(Text, nullable=False, server_default="new", default="new")
	stage = Column(Text, nullable=False, server_default="new_lead", default="new_lead")
	responsible_id = Column(Text)
	franchisee_id = Column(Text)
	comment = Column(Text)
	# platform identity of the originating channel, one of these at most
	telegram_id = Column(Text)
	instagram_username = Column(Text)
	vk_id = Column(Text)
	whatsapp_id = Column(Text)
	created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

	__table_args__ = (
		Index("ix_booking_leads_franchisee_id_created_at", "franchisee_id", "created_at"),
	)
