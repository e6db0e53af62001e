"""Allow NULL external_user_id in lead_deduplication

Senders without an external id were stored as '' and all collided on
(channel, external_user_id). NULL never conflicts, so such senders are
deduplicated by phone only.
"""

from alembic import op
import sqlalchemy as sa

revision = '0002'
down_revision = '0001'
branch_labels = None
depends_on = None


def upgrade():
	with op.batch_alter_table('lead_deduplication') as batch_op:
		batch_op.alter_column('external_user_id', existing_type=sa.Text(), nullable=True)

	op.execute("UPDATE lead_deduplication SET external_user_id = NULL WHERE external_user_id = ''")


def downgrade():
	# fails if more than one id-less mapping exists for a channel
	op.execute("UPDATE lead_deduplication SET external_user_id = '' WHERE external_user_id IS NULL")

	with op.batch_alter_table('lead_deduplication') as batch_op:
		batch_op.alter_column('external_user_id', existing_type=sa.Text(), nullable=False)
