# integration_hub/db/models/integration.py

import uuid

from sqlalchemy import Column, Text, Boolean, TIMESTAMP
from sqlalchemy.sql import func
from integration_hub.db.db_interface import DbInterface


class Integration(DbInterface):
	__tablename__ = "integrations"

	id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
	channel = Column(Text, nullable=False)
	owner_type = Column(Text, nullable=False)  # head_office | franchisee
	owner_id = Column(Text)  # set iff franchisee-owned
	is_active = Column(Boolean, nullable=False, server_default="true", default=True)
	assignment_strategy = Column(Text)  # fixed_user | first_admin | round_robin
	default_assignee_id = Column(Text)
	webhook_secret = Column(Text)
	created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
	updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())
