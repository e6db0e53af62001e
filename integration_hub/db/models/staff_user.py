# integration_hub/db/models/staff_user.py

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Text, Boolean, TIMESTAMP
from sqlalchemy.sql import func
from integration_hub.db.db_interface import DbInterface


class StaffUser(DbInterface):
	__tablename__ = "staff_users"

	id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
	name = Column(Text)
	role = Column(Text, nullable=False)
	franchisee_id = Column(Text)
	is_active = Column(Boolean, nullable=False, server_default="true", default=True)
	# set per row with microseconds; first_admin orders by it and now() repeats within a transaction
	created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(),
	                    default=lambda: datetime.now(timezone.utc))
