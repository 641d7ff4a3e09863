"""Create notifications if missing

Revision ID: 20250818194000
Revises: 20250810191500
Create Date: 2025-08-18 19:40:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20250818194000"
down_revision = "20250810191500"
branch_labels = None
depends_on = None

NOTIFICATION_TYPES = (
    "low_stock",
    "new_order",
    "payment_received",
    "system_update",
    "customer_return",
    "expiry_alert",
    "near_expiry",
)


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table("notifications"):
        types = ", ".join(f"'{t}'" for t in NOTIFICATION_TYPES)
        op.create_table(
            "notifications",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Uuid(), nullable=False),
            sa.Column("type", sa.String(length=32), nullable=False),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("related_id", sa.Integer(), nullable=True),
            sa.Column("related_type", sa.String(length=32), nullable=True),
            sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.ForeignKeyConstraint(
                ["user_id"], ["users.id"],
                name="notifications_user_id_fkey", ondelete="CASCADE", onupdate="CASCADE",
            ),
            sa.PrimaryKeyConstraint("id"),
            sa.CheckConstraint(f"type IN ({types})", name="ck_notifications_type"),
            sqlite_autoincrement=True,
        )

    inspector = sa.inspect(bind)
    indexes = {ix["name"] for ix in inspector.get_indexes("notifications")}
    with op.batch_alter_table("notifications", schema=None) as batch_op:
        for column in ("user_id", "is_read", "created_at"):
            name = f"notifications_{column}_idx"
            if name not in indexes:
                batch_op.create_index(name, [column], unique=False)


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if inspector.has_table("notifications"):
        op.drop_table("notifications")
