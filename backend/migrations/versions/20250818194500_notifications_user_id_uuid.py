"""Make notifications.user_id a UUID foreign key to users (ON DELETE CASCADE)

Revision ID: 20250818194500
Revises: 20250818194000
Create Date: 2025-08-18 19:45:00.000000

Tables created by hand used an INTEGER user_id, which cannot point at UUID
users. Such notifications are discarded; they are transient and are
regenerated by the stock checks. Forward-only.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20250818194500"
down_revision = "20250818194000"
branch_labels = None
depends_on = None

FK_NAME = "notifications_user_id_fkey"
INDEX_NAME = "notifications_user_id_idx"
# Names the unnamed foreign keys SQLite reflects so batch mode can drop them.
NAMING_CONVENTION = {"fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s"}


def _column(inspector, table, name):
    return next((c for c in inspector.get_columns(table) if c["name"] == name), None)


def _foreign_keys(inspector, table, column):
    return [fk for fk in inspector.get_foreign_keys(table) if fk["constrained_columns"] == [column]]


def _fk_name(fk):
    return fk.get("name") or f"fk_notifications_{fk['constrained_columns'][0]}_{fk['referred_table']}"


def _fk_matches(fk):
    options = fk.get("options") or {}
    return (
        fk["referred_table"] == "users"
        and (options.get("ondelete") or "").upper() == "CASCADE"
        and (options.get("onupdate") or "").upper() == "CASCADE"
    )


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if not inspector.has_table("notifications"):
        return

    column = _column(inspector, "notifications", "user_id")
    fks = _foreign_keys(inspector, "notifications", "user_id")
    needs_new_column = column is None or isinstance(column["type"], sa.Integer)

    if not needs_new_column and len(fks) == 1 and _fk_matches(fks[0]):
        return

    indexes = {ix["name"] for ix in inspector.get_indexes("notifications")}

    if needs_new_column:
        bind.execute(sa.text("DELETE FROM notifications"))

    with op.batch_alter_table("notifications", schema=None, naming_convention=NAMING_CONVENTION) as batch_op:
        if needs_new_column and INDEX_NAME in indexes:
            batch_op.drop_index(INDEX_NAME)
        for fk in fks:
            batch_op.drop_constraint(_fk_name(fk), type_="foreignkey")
        if needs_new_column:
            if column is not None:
                batch_op.drop_column("user_id")
            batch_op.add_column(sa.Column("user_id", sa.Uuid(), nullable=True))
        batch_op.create_foreign_key(
            FK_NAME, "users", ["user_id"], ["id"], ondelete="CASCADE", onupdate="CASCADE",
        )

    inspector = sa.inspect(bind)
    indexes = {ix["name"] for ix in inspector.get_indexes("notifications")}
    with op.batch_alter_table("notifications", schema=None) as batch_op:
        batch_op.alter_column("user_id", existing_type=sa.Uuid(), nullable=False)
        if INDEX_NAME not in indexes:
            batch_op.create_index(INDEX_NAME, ["user_id"], unique=False)


def downgrade():
    raise NotImplementedError("20250818194500 is forward-only: INTEGER user ids cannot be restored")
