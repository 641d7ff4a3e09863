"""Add sales.status and sales.notes if missing

Revision ID: 20250810173100
Revises: 20250810173000
Create Date: 2025-08-10 17:31:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20250810173100"
down_revision = "20250810173000"
branch_labels = None
depends_on = None

SALE_STATUSES = ("pending", "completed", "cancelled")


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    columns = {c["name"] for c in inspector.get_columns("sales")}
    checks = {ck["name"] for ck in inspector.get_check_constraints("sales")}

    with op.batch_alter_table("sales", schema=None) as batch_op:
        if "status" not in columns:
            batch_op.add_column(sa.Column("status", sa.String(length=20), nullable=False, server_default="completed"))
        if "ck_sales_status" not in checks:
            statuses = ", ".join(f"'{s}'" for s in SALE_STATUSES)
            batch_op.create_check_constraint("ck_sales_status", f"status IN ({statuses})")
        if "notes" not in columns:
            batch_op.add_column(sa.Column("notes", sa.Text(), nullable=True))


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    columns = {c["name"] for c in inspector.get_columns("sales")}
    checks = {ck["name"] for ck in inspector.get_check_constraints("sales")}

    with op.batch_alter_table("sales", schema=None) as batch_op:
        if "notes" in columns:
            batch_op.drop_column("notes")
        if "ck_sales_status" in checks:
            batch_op.drop_constraint("ck_sales_status", type_="check")
        if "status" in columns:
            batch_op.drop_column("status")
