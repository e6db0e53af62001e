# integration_hub/db/models/integration_stats.py

from sqlalchemy import Column, Integer, Text, Date, TIMESTAMP, UniqueConstraint
from sqlalchemy.sql import func
from integration_hub.db.db_interface import DbInterface


class IntegrationStats(DbInterface):
	__tablename__ = "integration_stats"

	id = Column(Integer, primary_key=True)
	integration_id = Column(Text, nullable=False)
	date = Column(Date, nullable=False)
	messages_received = Column(Integer, nullable=False, server_default="0", default=0)
	leads_created = Column(Integer, nullable=False, server_default="0", default=0)
	duplicates_prevented = Column(Integer, nullable=False, server_default="0", default=0)
	updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

	__table_args__ = (
		UniqueConstraint("integration_id", "date", name="uq_integration_stats_integration_id_date"),
	)
