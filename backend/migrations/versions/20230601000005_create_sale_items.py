"""Create sale_items (subtotal follows in 20250810173500)

Revision ID: 20230601000005
Revises: 20230601000004
Create Date: 2023-06-01 00:00:05.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20230601000005"
down_revision = "20230601000004"
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table("sale_items"):
        op.create_table(
            "sale_items",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("sale_id", sa.Uuid(), nullable=False),
            sa.Column("product_id", sa.Integer(), nullable=False),
            sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("unit_price", sa.Numeric(10, 2), nullable=False, server_default="0"),
            sa.Column("discount", sa.Numeric(10, 2), nullable=False, server_default="0"),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.ForeignKeyConstraint(
                ["sale_id"], ["sales.id"],
                name="sale_items_sale_id_fkey", ondelete="CASCADE", onupdate="CASCADE",
            ),
            sa.ForeignKeyConstraint(
                ["product_id"], ["products.id"],
                name="sale_items_product_id_fkey", ondelete="RESTRICT", onupdate="CASCADE",
            ),
            sa.PrimaryKeyConstraint("id"),
            sa.CheckConstraint("quantity >= 1", name="ck_sale_items_quantity_positive"),
            sa.CheckConstraint("unit_price >= 0", name="ck_sale_items_unit_price_non_negative"),
            sa.CheckConstraint("discount >= 0", name="ck_sale_items_discount_non_negative"),
        )

    inspector = sa.inspect(bind)
    indexes = {ix["name"] for ix in inspector.get_indexes("sale_items")}
    with op.batch_alter_table("sale_items", schema=None) as batch_op:
        if "sale_items_sale_id_idx" not in indexes:
            batch_op.create_index("sale_items_sale_id_idx", ["sale_id"], unique=False)
        if "sale_items_product_id_idx" not in indexes:
            batch_op.create_index("sale_items_product_id_idx", ["product_id"], unique=False)


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if inspector.has_table("sale_items"):
        op.drop_table("sale_items")
