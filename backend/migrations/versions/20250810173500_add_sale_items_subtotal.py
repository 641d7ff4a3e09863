"""Add sale_items.subtotal if missing

Revision ID: 20250810173500
Revises: 20250810173400
Create Date: 2025-08-10 17:35:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20250810173500"
down_revision = "20250810173400"
branch_labels = None
depends_on = None

CHECK_NAME = "ck_sale_items_subtotal_non_negative"


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    columns = {c["name"] for c in inspector.get_columns("sale_items")}
    checks = {ck["name"] for ck in inspector.get_check_constraints("sale_items")}

    with op.batch_alter_table("sale_items", schema=None) as batch_op:
        if "subtotal" not in columns:
            batch_op.add_column(sa.Column("subtotal", sa.Numeric(10, 2), nullable=False, server_default="0"))
        if CHECK_NAME not in checks:
            batch_op.create_check_constraint(CHECK_NAME, "subtotal >= 0")


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    columns = {c["name"] for c in inspector.get_columns("sale_items")}
    checks = {ck["name"] for ck in inspector.get_check_constraints("sale_items")}

    with op.batch_alter_table("sale_items", schema=None) as batch_op:
        if CHECK_NAME in checks:
            batch_op.drop_constraint(CHECK_NAME, type_="check")
        if "subtotal" in columns:
            batch_op.drop_column("subtotal")
