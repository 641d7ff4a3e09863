"""Allow login_history.user_id to be NULL (failed logins for unknown usernames)

Revision ID: 20250820000000
Revises: 20250819000000
Create Date: 2025-08-20 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20250820000000"
down_revision = "20250819000000"
branch_labels = None
depends_on = None


def _user_id(inspector):
    return next(c for c in inspector.get_columns("login_history") if c["name"] == "user_id")


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if _user_id(inspector)["nullable"]:
        return

    with op.batch_alter_table("login_history", schema=None) as batch_op:
        batch_op.alter_column("user_id", existing_type=sa.Uuid(), nullable=True)


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if not _user_id(inspector)["nullable"]:
        return

    orphans = bind.execute(sa.text("SELECT COUNT(*) FROM login_history WHERE user_id IS NULL")).scalar()
    if orphans:
        raise RuntimeError(
            f"login_history has {orphans} rows without a user; delete them before restoring NOT NULL"
        )

    with op.batch_alter_table("login_history", schema=None) as batch_op:
        batch_op.alter_column("user_id", existing_type=sa.Uuid(), nullable=False)
