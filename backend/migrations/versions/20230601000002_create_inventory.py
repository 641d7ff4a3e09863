"""Create inventory

Revision ID: 20230601000002
Revises: 20230531000000
Create Date: 2023-06-01 00:00:02.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20230601000002"
down_revision = "20230531000000"
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table("inventory"):
        op.create_table(
            "inventory",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("product_id", sa.Integer(), nullable=False),
            sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("location", sa.String(length=100), nullable=True),
            sa.Column("min_quantity", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.ForeignKeyConstraint(
                ["product_id"], ["products.id"],
                name="inventory_product_id_fkey", ondelete="CASCADE", onupdate="CASCADE",
            ),
            sa.PrimaryKeyConstraint("id"),
            sa.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
            sa.CheckConstraint("min_quantity >= 0", name="ck_inventory_min_quantity_non_negative"),
            sqlite_autoincrement=True,
        )

    inspector = sa.inspect(bind)
    indexes = {ix["name"] for ix in inspector.get_indexes("inventory")}
    if "inventory_product_id_idx" not in indexes:
        with op.batch_alter_table("inventory", schema=None) as batch_op:
            batch_op.create_index("inventory_product_id_idx", ["product_id"], unique=False)


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if inspector.has_table("inventory"):
        op.drop_table("inventory")
