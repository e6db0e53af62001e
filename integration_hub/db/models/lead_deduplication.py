# integration_hub/db/models/lead_deduplication.py

from sqlalchemy import Column, Integer, Text, TIMESTAMP, UniqueConstraint
from sqlalchemy.sql import func
from integration_hub.db.db_interface import DbInterface


class LeadDeduplication(DbInterface):
	__tablename__ = "lead_deduplication"

	id = Column(Integer, primary_key=True)
	integration_id = Column(Text, nullable=False)
	channel = Column(Text, nullable=False)
	external_user_id = Column(Text)  # NULL when the channel gave no sender id
	phone = Column(Text)
	lead_id = Column(Text, nullable=False)
	lead_type = Column(Text, nullable=False)
	created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

	# These constraints are the only thing serializing concurrent lead creation
	__table_args__ = (
		UniqueConstraint("channel", "external_user_id", name="uq_lead_deduplication_identity"),
		UniqueConstraint("phone", name="uq_lead_deduplication_phone"),
	)
