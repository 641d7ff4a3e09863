"""Make inventory_transactions.inventory_id INTEGER with a RESTRICT foreign key to inventory

Revision ID: 20250810191500
Revises: 20250810173600
Create Date: 2025-08-10 19:15:00.000000

The transaction ledger is append-only, so a UUID-typed column holding rows is
refused instead of silently orphaning stock history. Forward-only.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20250810191500"
down_revision = "20250810173600"
branch_labels = None
depends_on = None

FK_NAME = "inventory_transactions_inventory_id_fkey"
INDEX_NAME = "inventory_transactions_inventory_id_idx"
# Names the unnamed foreign keys SQLite reflects so batch mode can drop them.
NAMING_CONVENTION = {"fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s"}


def _column(inspector, table, name):
    return next((c for c in inspector.get_columns(table) if c["name"] == name), None)


def _foreign_keys(inspector, table, column):
    return [fk for fk in inspector.get_foreign_keys(table) if fk["constrained_columns"] == [column]]


def _fk_name(fk):
    return fk.get("name") or f"fk_inventory_transactions_{fk['constrained_columns'][0]}_{fk['referred_table']}"


def _fk_matches(fk):
    options = fk.get("options") or {}
    return (
        fk["referred_table"] == "inventory"
        and (options.get("ondelete") or "").upper() == "RESTRICT"
        and (options.get("onupdate") or "").upper() == "CASCADE"
    )


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if not inspector.has_table("inventory_transactions"):
        return

    column = _column(inspector, "inventory_transactions", "inventory_id")
    fks = _foreign_keys(inspector, "inventory_transactions", "inventory_id")
    is_integer = column is not None and isinstance(column["type"], sa.Integer)

    if is_integer and len(fks) == 1 and _fk_matches(fks[0]):
        return

    if not is_integer:
        rows = bind.execute(sa.text("SELECT COUNT(*) FROM inventory_transactions")).scalar()
        if rows:
            raise RuntimeError(
                f"inventory_transactions.inventory_id is not INTEGER and {rows} ledger rows exist; "
                "map them to inventory ids before upgrading"
            )

    with op.batch_alter_table("inventory_transactions", schema=None, naming_convention=NAMING_CONVENTION) as batch_op:
        for fk in fks:
            batch_op.drop_constraint(_fk_name(fk), type_="foreignkey")
        if not is_integer:
            if column is not None:
                batch_op.drop_column("inventory_id")
            batch_op.add_column(sa.Column("inventory_id", sa.Integer(), nullable=True))
        batch_op.create_foreign_key(
            FK_NAME, "inventory", ["inventory_id"], ["id"], ondelete="RESTRICT", onupdate="CASCADE",
        )

    inspector = sa.inspect(bind)
    indexes = {ix["name"] for ix in inspector.get_indexes("inventory_transactions")}
    with op.batch_alter_table("inventory_transactions", schema=None) as batch_op:
        batch_op.alter_column("inventory_id", existing_type=sa.Integer(), nullable=False)
        if INDEX_NAME not in indexes:
            batch_op.create_index(INDEX_NAME, ["inventory_id"], unique=False)


def downgrade():
    raise NotImplementedError("20250810191500 is forward-only: inventory_id is not converted back to UUID")
