# integration_hub/db/models/trigger_rule.py

from sqlalchemy import Column, Integer, Text, Boolean, ForeignKey, TIMESTAMP, JSON, Index
from sqlalchemy.sql import func
from integration_hub.db.db_interface import DbInterface


class TriggerRule(DbInterface):
	__tablename__ = "trigger_rules"

	id = Column(Integer, primary_key=True)
	integration_id = Column(Text, ForeignKey("integrations.id"), nullable=False)
	trigger_type = Column(Text, nullable=False)  # always | first_message | keywords
	keywords = Column(JSON)
	keywords_match_type = Column(Text, nullable=False, server_default="any", default="any")
	priority = Column(Integer, nullable=False, server_default="0", default=0)
	is_active = Column(Boolean, nullable=False, server_default="true", default=True)
	created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

	__table_args__ = (
		Index("ix_trigger_rules_integration_id_priority", "integration_id", "priority"),
	)
