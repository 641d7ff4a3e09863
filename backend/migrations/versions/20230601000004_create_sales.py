"""Create sales (totals, status and payment columns follow in 20250810173000-173400)

Revision ID: 20230601000004
Revises: 20230601000002
Create Date: 2023-06-01 00:00:04.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20230601000004"
down_revision = "20230601000002"
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table("sales"):
        op.create_table(
            "sales",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("sale_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("customer_id", sa.Uuid(), nullable=True),
            sa.Column("user_id", sa.Uuid(), nullable=False),
            sa.Column("tax_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
            sa.Column("discount_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(
                ["customer_id"], ["customers.id"],
                name="sales_customer_id_fkey", ondelete="SET NULL", onupdate="CASCADE",
            ),
            sa.ForeignKeyConstraint(
                ["user_id"], ["users.id"],
                name="sales_user_id_fkey", ondelete="RESTRICT", onupdate="CASCADE",
            ),
            sa.PrimaryKeyConstraint("id"),
        )

    inspector = sa.inspect(bind)
    indexes = {ix["name"] for ix in inspector.get_indexes("sales")}
    with op.batch_alter_table("sales", schema=None) as batch_op:
        if "sales_sale_date_idx" not in indexes:
            batch_op.create_index("sales_sale_date_idx", ["sale_date"], unique=False)
        if "sales_customer_id_idx" not in indexes:
            batch_op.create_index("sales_customer_id_idx", ["customer_id"], unique=False)
        if "sales_user_id_idx" not in indexes:
            batch_op.create_index("sales_user_id_idx", ["user_id"], unique=False)


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if inspector.has_table("sales"):
        op.drop_table("sales")
