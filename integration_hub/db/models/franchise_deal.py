# integration_hub/db/models/franchise_deal.py

import uuid

from sqlalchemy import Column, Text, TIMESTAMP
from sqlalchemy.sql import func
from integration_hub.db.db_interface import DbInterface


class FranchiseDeal(DbInterface):
	"""Head-office franchise-sales funnel entry."""
	__tablename__ = "franchise_deals"

	id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
	name = Column(Text, nullable=False)
	phone = Column(Text)
	email = Column(Text)
	source = Column(Text, nullable=False)
	status = Column(Text, nullable=False, server_default="new", default="new")
	stage = Column(Text, nullable=False, server_default="new_lead", default="new_lead")
	responsible_id = Column(Text)
	comment = Column(Text)
	created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
