"""create integration hub tables

Integrations, stored inbound messages, the identity -> lead dedup mapping,
trigger rules, daily usage counters, and the staff/lead tables the hub writes to.
"""

from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
	op.create_table(
		"integrations",
		sa.Column("id", sa.Text, primary_key=True),
		sa.Column("channel", sa.Text, nullable=False),
		sa.Column("owner_type", sa.Text, nullable=False),
		sa.Column("owner_id", sa.Text),
		sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
		sa.Column("assignment_strategy", sa.Text),
		sa.Column("default_assignee_id", sa.Text),
		sa.Column("webhook_secret", sa.Text),
		sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
		sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
	)

	op.create_table(
		"inbound_messages",
		sa.Column("id", sa.Integer, primary_key=True),
		sa.Column("integration_id", sa.Text, sa.ForeignKey("integrations.id"), nullable=False),
		sa.Column("channel", sa.Text, nullable=False),
		sa.Column("external_user_id", sa.Text, nullable=False),
		sa.Column("username", sa.Text),
		sa.Column("phone", sa.Text),
		sa.Column("message_text", sa.Text, nullable=False, server_default=""),
		sa.Column("attachments", sa.JSON),
		sa.Column("owner_type", sa.Text, nullable=False),
		sa.Column("owner_id", sa.Text),
		sa.Column("received_at", sa.TIMESTAMP(timezone=True), nullable=False),
		sa.Column("raw_payload", sa.JSON),
		sa.Column("status", sa.Text, nullable=False, server_default="pending"),
		sa.Column("lead_id", sa.Text),
		sa.Column("lead_type", sa.Text),
		sa.Column("processed_at", sa.TIMESTAMP(timezone=True)),
		sa.Column("error", sa.Text),
		sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
	)
	op.create_index("ix_inbound_messages_identity_received_at", "inbound_messages",
	                ["channel", "external_user_id", "received_at"])
	op.create_index("ix_inbound_messages_integration_id_status", "inbound_messages",
	                ["integration_id", "status"])

	# The unique constraints here are what keeps one lead per contact under concurrency
	op.create_table(
		"lead_deduplication",
		sa.Column("id", sa.Integer, primary_key=True),
		sa.Column("integration_id", sa.Text, nullable=False),
		sa.Column("channel", sa.Text, nullable=False),
		sa.Column("external_user_id", sa.Text, nullable=False),
		sa.Column("phone", sa.Text),
		sa.Column("lead_id", sa.Text, nullable=False),
		sa.Column("lead_type", sa.Text, nullable=False),
		sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
		sa.UniqueConstraint("channel", "external_user_id", name="uq_lead_deduplication_identity"),
		sa.UniqueConstraint("phone", name="uq_lead_deduplication_phone"),
	)

	op.create_table(
		"trigger_rules",
		sa.Column("id", sa.Integer, primary_key=True),
		sa.Column("integration_id", sa.Text, sa.ForeignKey("integrations.id"), nullable=False),
		sa.Column("trigger_type", sa.Text, nullable=False),
		sa.Column("keywords", sa.JSON),
		sa.Column("keywords_match_type", sa.Text, nullable=False, server_default="any"),
		sa.Column("priority", sa.Integer, nullable=False, server_default="0"),
		sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
		sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
	)
	op.create_index("ix_trigger_rules_integration_id_priority", "trigger_rules", ["integration_id", "priority"])

	op.create_table(
		"integration_stats",
		sa.Column("id", sa.Integer, primary_key=True),
		sa.Column("integration_id", sa.Text, nullable=False),
		sa.Column("date", sa.Date, nullable=False),
		sa.Column("messages_received", sa.Integer, nullable=False, server_default="0"),
		sa.Column("leads_created", sa.Integer, nullable=False, server_default="0"),
		sa.Column("duplicates_prevented", sa.Integer, nullable=False, server_default="0"),
		sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
		sa.UniqueConstraint("integration_id", "date", name="uq_integration_stats_integration_id_date"),
	)

	op.create_table(
		"staff_users",
		sa.Column("id", sa.Text, primary_key=True),
		sa.Column("name", sa.Text),
		sa.Column("role", sa.Text, nullable=False),
		sa.Column("franchisee_id", sa.Text),
		sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
		sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
	)

	op.create_table(
		"franchise_deals",
		sa.Column("id", sa.Text, primary_key=True),
		sa.Column("name", sa.Text, nullable=False),
		sa.Column("phone", sa.Text),
		sa.Column("email", sa.Text),
		sa.Column("source", sa.Text, nullable=False),
		sa.Column("status", sa.Text, nullable=False, server_default="new"),
		sa.Column("stage", sa.Text, nullable=False, server_default="new_lead"),
		sa.Column("responsible_id", sa.Text),
		sa.Column("comment", sa.Text),
		sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
	)

	op.create_table(
		"booking_leads",
		sa.Column("id", sa.Text, primary_key=True),
		sa.Column("name", sa.Text, nullable=False),
		sa.Column("phone", sa.Text),
		sa.Column("email", sa.Text),
		sa.Column("source", sa.Text, nullable=False),
		sa.Column("status", sa.Text, nullable=False, server_default="new"),
		sa.Column("stage", sa.Text, nullable=False, server_default="new_lead"),
		sa.Column("responsible_id", sa.Text),
		sa.Column("franchisee_id", sa.Text),
		sa.Column("comment", sa.Text),
		sa.Column("telegram_id", sa.Text),
		sa.Column("instagram_username", sa.Text),
		sa.Column("vk_id", sa.Text),
		sa.Column("whatsapp_id", sa.Text),
		sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
	)
	op.create_index("ix_booking_leads_franchisee_id_created_at", "booking_leads", ["franchisee_id", "created_at"])


def downgrade():
	op.drop_index("ix_booking_leads_franchisee_id_created_at", table_name="booking_leads")
	op.drop_table("booking_leads")
	op.drop_table("franchise_deals")
	op.drop_table("staff_users")
	op.drop_table("integration_stats")
	op.drop_index("ix_trigger_rules_integration_id_priority", table_name="trigger_rules")
	op.drop_table("trigger_rules")
	op.drop_table("lead_deduplication")
	op.drop_index("ix_inbound_messages_integration_id_status", table_name="inbound_messages")
	op.drop_index("ix_inbound_messages_identity_received_at", table_name="inbound_messages")
	op.drop_table("inbound_messages")
	op.drop_table("integrations")
