"""Create login_history

Revision ID: 20230801000000
Revises: 20230601000009
Create Date: 2023-08-01 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20230801000000"
down_revision = "20230601000009"
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table("login_history"):
        op.create_table(
            "login_history",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("user_id", sa.Uuid(), nullable=False),
            sa.Column("ip_address", sa.String(length=45), nullable=True),
            sa.Column("user_agent", sa.Text(), nullable=True),
            sa.Column("device", sa.String(length=64), nullable=True),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="success"),
            sa.Column("login_time", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.ForeignKeyConstraint(
                ["user_id"], ["users.id"],
                name="login_history_user_id_fkey", ondelete="CASCADE", onupdate="CASCADE",
            ),
            sa.PrimaryKeyConstraint("id"),
            sa.CheckConstraint("status IN ('success', 'failed')", name="ck_login_history_status"),
        )

    inspector = sa.inspect(bind)
    indexes = {ix["name"] for ix in inspector.get_indexes("login_history")}
    with op.batch_alter_table("login_history", schema=None) as batch_op:
        for column in ("user_id", "login_time", "status"):
            name = f"login_history_{column}_idx"
            if name not in indexes:
                batch_op.create_index(name, [column], unique=False)


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if inspector.has_table("login_history"):
        op.drop_table("login_history")
