"""Add sales.subtotal if missing

Revision ID: 20250810173000
Revises: 20250120000000
Create Date: 2025-08-10 17:30:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20250810173000"
down_revision = "20250120000000"
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    columns = {c["name"] for c in inspector.get_columns("sales")}
    if "subtotal" not in columns:
        with op.batch_alter_table("sales", schema=None) as batch_op:
            batch_op.add_column(sa.Column("subtotal", sa.Numeric(10, 2), nullable=False, server_default="0"))


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    columns = {c["name"] for c in inspector.get_columns("sales")}
    if "subtotal" in columns:
        with op.batch_alter_table("sales", schema=None) as batch_op:
            batch_op.drop_column("subtotal")
