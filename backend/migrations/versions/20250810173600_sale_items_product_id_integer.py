"""Make sale_items.product_id INTEGER with a RESTRICT foreign key to products

Revision ID: 20250810173600
Revises: 20250810173500
Create Date: 2025-08-10 17:36:00.000000

Some installs created product_id as UUID. Existing foreign keys on the column
are found by introspection (their names vary between installs) and replaced
by sale_items_product_id_fkey. UUID values cannot be mapped to product ids,
so a converted column starts out NULL and stays nullable until backfilled.
Forward-only.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20250810173600"
down_revision = "20250810173500"
branch_labels = None
depends_on = None

FK_NAME = "sale_items_product_id_fkey"
INDEX_NAME = "sale_items_product_id_idx"
# Names the unnamed foreign keys SQLite reflects so batch mode can drop them.
NAMING_CONVENTION = {"fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s"}


def _column(inspector, table, name):
    return next((c for c in inspector.get_columns(table) if c["name"] == name), None)


def _foreign_keys(inspector, table, column):
    return [fk for fk in inspector.get_foreign_keys(table) if fk["constrained_columns"] == [column]]


def _fk_name(fk):
    return fk.get("name") or f"fk_sale_items_{fk['constrained_columns'][0]}_{fk['referred_table']}"


def _fk_matches(fk):
    options = fk.get("options") or {}
    return (
        fk["referred_table"] == "products"
        and (options.get("ondelete") or "").upper() == "RESTRICT"
        and (options.get("onupdate") or "").upper() == "CASCADE"
    )


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if not inspector.has_table("sale_items"):
        return

    column = _column(inspector, "sale_items", "product_id")
    fks = _foreign_keys(inspector, "sale_items", "product_id")
    is_integer = column is not None and isinstance(column["type"], sa.Integer)

    if is_integer and len(fks) == 1 and _fk_matches(fks[0]):
        return

    with op.batch_alter_table("sale_items", schema=None, naming_convention=NAMING_CONVENTION) as batch_op:
        for fk in fks:
            batch_op.drop_constraint(_fk_name(fk), type_="foreignkey")
        if not is_integer:
            if column is not None:
                batch_op.drop_column("product_id")
            batch_op.add_column(sa.Column("product_id", sa.Integer(), nullable=True))
        batch_op.create_foreign_key(
            FK_NAME, "products", ["product_id"], ["id"], ondelete="RESTRICT", onupdate="CASCADE",
        )

    inspector = sa.inspect(bind)
    nulls = bind.execute(sa.text("SELECT COUNT(*) FROM sale_items WHERE product_id IS NULL")).scalar()
    indexes = {ix["name"] for ix in inspector.get_indexes("sale_items")}
    with op.batch_alter_table("sale_items", schema=None) as batch_op:
        if not nulls:
            batch_op.alter_column("product_id", existing_type=sa.Integer(), nullable=False)
        if INDEX_NAME not in indexes:
            batch_op.create_index(INDEX_NAME, ["product_id"], unique=False)


def downgrade():
    raise NotImplementedError("20250810173600 is forward-only: UUID product ids cannot be restored")
