"""Add inventory.expiry_date

Revision ID: 20250818195500
Revises: 20250818194500
Create Date: 2025-08-18 19:55:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20250818195500"
down_revision = "20250818194500"
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    columns = {c["name"] for c in inspector.get_columns("inventory")}
    indexes = {ix["name"] for ix in inspector.get_indexes("inventory")}

    with op.batch_alter_table("inventory", schema=None) as batch_op:
        if "expiry_date" not in columns:
            batch_op.add_column(sa.Column("expiry_date", sa.Date(), nullable=True))
        if "inventory_expiry_date_idx" not in indexes:
            batch_op.create_index("inventory_expiry_date_idx", ["expiry_date"], unique=False)


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    columns = {c["name"] for c in inspector.get_columns("inventory")}
    indexes = {ix["name"] for ix in inspector.get_indexes("inventory")}

    with op.batch_alter_table("inventory", schema=None) as batch_op:
        if "inventory_expiry_date_idx" in indexes:
            batch_op.drop_index("inventory_expiry_date_idx")
        if "expiry_date" in columns:
            batch_op.drop_column("expiry_date")
