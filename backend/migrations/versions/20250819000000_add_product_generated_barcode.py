"""Add products.is_generated_barcode

Revision ID: 20250819000000
Revises: 20250818195500
Create Date: 2025-08-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20250819000000"
down_revision = "20250818195500"
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    columns = {c["name"] for c in inspector.get_columns("products")}
    if "is_generated_barcode" not in columns:
        with op.batch_alter_table("products", schema=None) as batch_op:
            batch_op.add_column(
                sa.Column("is_generated_barcode", sa.Boolean(), nullable=False, server_default=sa.false())
            )


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    columns = {c["name"] for c in inspector.get_columns("products")}
    if "is_generated_barcode" in columns:
        with op.batch_alter_table("products", schema=None) as batch_op:
            batch_op.drop_column("is_generated_barcode")
