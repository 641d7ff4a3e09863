"""Add receipt_number, payment_method, payment_status and total_amount to sales if missing

Revision ID: 20250810173200
Revises: 20250810173100
Create Date: 2025-08-10 17:32:00.000000

The enum CHECK constraints for the payment columns are added by 20250810173400.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20250810173200"
down_revision = "20250810173100"
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    columns = {c["name"] for c in inspector.get_columns("sales")}
    uniques = {uq["name"] for uq in inspector.get_unique_constraints("sales")}

    with op.batch_alter_table("sales", schema=None) as batch_op:
        if "receipt_number" not in columns:
            batch_op.add_column(sa.Column("receipt_number", sa.String(length=50), nullable=True))
        if "uq_sales_receipt_number" not in uniques:
            batch_op.create_unique_constraint("uq_sales_receipt_number", ["receipt_number"])
        if "payment_method" not in columns:
            batch_op.add_column(sa.Column("payment_method", sa.String(length=20), nullable=False, server_default="cash"))
        if "payment_status" not in columns:
            batch_op.add_column(sa.Column("payment_status", sa.String(length=20), nullable=False, server_default="paid"))
        if "total_amount" not in columns:
            batch_op.add_column(sa.Column("total_amount", sa.Numeric(10, 2), nullable=False, server_default="0"))


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    columns = {c["name"] for c in inspector.get_columns("sales")}
    uniques = {uq["name"] for uq in inspector.get_unique_constraints("sales")}

    with op.batch_alter_table("sales", schema=None) as batch_op:
        for column in ("total_amount", "payment_status", "payment_method"):
            if column in columns:
                batch_op.drop_column(column)
        if "uq_sales_receipt_number" in uniques:
            batch_op.drop_constraint("uq_sales_receipt_number", type_="unique")
        if "receipt_number" in columns:
            batch_op.drop_column("receipt_number")
