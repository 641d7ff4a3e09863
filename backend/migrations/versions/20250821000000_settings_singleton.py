"""Collapse settings to a single row pinned to id = 1

Revision ID: 20250821000000
Revises: 20250820000000
Create Date: 2025-08-21 00:00:00.000000

The most recently updated row wins; the others are deleted. After this the
CHECK constraint refuses any second row.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20250821000000"
down_revision = "20250820000000"
branch_labels = None
depends_on = None

SETTINGS_ID = 1
CHECK_NAME = "ck_settings_singleton"


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    checks = {ck["name"] for ck in inspector.get_check_constraints("settings")}
    if CHECK_NAME in checks:
        return

    settings = sa.table("settings", sa.column("id", sa.Integer()), sa.column("updated_at"))
    keep = bind.execute(
        sa.select(settings.c.id).order_by(settings.c.updated_at.desc(), settings.c.id.desc()).limit(1)
    ).scalar()

    if keep is not None:
        bind.execute(settings.delete().where(settings.c.id != keep))
        if keep != SETTINGS_ID:
            bind.execute(settings.update().where(settings.c.id == keep).values(id=SETTINGS_ID))

    with op.batch_alter_table("settings", schema=None) as batch_op:
        batch_op.create_check_constraint(CHECK_NAME, f"id = {SETTINGS_ID}")


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    checks = {ck["name"] for ck in inspector.get_check_constraints("settings")}
    if CHECK_NAME in checks:
        with op.batch_alter_table("settings", schema=None) as batch_op:
            batch_op.drop_constraint(CHECK_NAME, type_="check")
