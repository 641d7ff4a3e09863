"""Create inventory_transactions

Revision ID: 20230601000006
Revises: 20230601000005
Create Date: 2023-06-01 00:00:06.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20230601000006"
down_revision = "20230601000005"
branch_labels = None
depends_on = None

TRANSACTION_TYPES = ("purchase", "sale", "adjustment", "return", "transfer")


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table("inventory_transactions"):
        types = ", ".join(f"'{t}'" for t in TRANSACTION_TYPES)
        op.create_table(
            "inventory_transactions",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("inventory_id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Uuid(), nullable=False),
            sa.Column("type", sa.String(length=20), nullable=False),
            sa.Column("quantity", sa.Integer(), nullable=False),
            sa.Column("reason", sa.String(length=255), nullable=True),
            sa.Column("reference_id", sa.Uuid(), nullable=True),
            sa.Column("reference_type", sa.String(length=32), nullable=True),
            sa.Column("previous_quantity", sa.Integer(), nullable=False),
            sa.Column("new_quantity", sa.Integer(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.ForeignKeyConstraint(
                ["inventory_id"], ["inventory.id"],
                name="inventory_transactions_inventory_id_fkey", ondelete="RESTRICT", onupdate="CASCADE",
            ),
            sa.ForeignKeyConstraint(
                ["user_id"], ["users.id"],
                name="inventory_transactions_user_id_fkey", ondelete="RESTRICT", onupdate="CASCADE",
            ),
            sa.PrimaryKeyConstraint("id"),
            sa.CheckConstraint(f"type IN ({types})", name="ck_inventory_transactions_type"),
            sa.CheckConstraint("quantity <> 0", name="ck_inventory_transactions_quantity_non_zero"),
            sa.CheckConstraint(
                "new_quantity = previous_quantity + quantity",
                name="ck_inventory_transactions_balance",
            ),
        )

    inspector = sa.inspect(bind)
    indexes = {ix["name"] for ix in inspector.get_indexes("inventory_transactions")}
    with op.batch_alter_table("inventory_transactions", schema=None) as batch_op:
        for column in ("inventory_id", "user_id", "reference_id"):
            name = f"inventory_transactions_{column}_idx"
            if name not in indexes:
                batch_op.create_index(name, [column], unique=False)


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if inspector.has_table("inventory_transactions"):
        op.drop_table("inventory_transactions")
