"""Ensure the payment_method / payment_status CHECK constraints exist

Revision ID: 20250810173400
Revises: 20250810173200
Create Date: 2025-08-10 17:34:00.000000

Columns added by hand on legacy databases can hold values outside the
enumerations; those rows are normalized to the column defaults first so the
constraints can be created.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20250810173400"
down_revision = "20250810173200"
branch_labels = None
depends_on = None

PAYMENT_METHODS = ("cash", "credit_card", "debit_card", "mobile_payment", "other")
PAYMENT_STATUSES = ("pending", "paid", "partially_paid", "refunded")

CHECKS = {
    "ck_sales_payment_method": ("payment_method", PAYMENT_METHODS, "cash"),
    "ck_sales_payment_status": ("payment_status", PAYMENT_STATUSES, "paid"),
}


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing = {ck["name"] for ck in inspector.get_check_constraints("sales")}
    missing = {name: entry for name, entry in CHECKS.items() if name not in existing}
    if not missing:
        return

    sales = sa.table("sales", sa.column("payment_method"), sa.column("payment_status"))
    for column, values, default in missing.values():
        col = sales.c[column]
        bind.execute(
            sales.update()
            .where(sa.or_(col.is_(None), col.not_in(values)))
            .values({column: default})
        )

    with op.batch_alter_table("sales", schema=None) as batch_op:
        for name, (column, values, _default) in missing.items():
            allowed = ", ".join(f"'{v}'" for v in values)
            batch_op.create_check_constraint(name, f"{column} IN ({allowed})")


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing = {ck["name"] for ck in inspector.get_check_constraints("sales")}

    with op.batch_alter_table("sales", schema=None) as batch_op:
        for name in CHECKS:
            if name in existing:
                batch_op.drop_constraint(name, type_="check")
