"""Create users, customers and products

Revision ID: 20230531000000
Revises:
Create Date: 2023-05-31 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20230531000000"
down_revision = None
branch_labels = None
depends_on = None

USER_ROLES = ("admin", "manager", "cashier", "storekeeper", "accountant", "staff")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
    ]


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table("users"):
        roles = ", ".join(f"'{r}'" for r in USER_ROLES)
        op.create_table(
            "users",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("username", sa.String(length=64), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=True),
            sa.Column("password_hash", sa.String(length=255), nullable=False),
            sa.Column("full_name", sa.String(length=255), nullable=True),
            sa.Column("phone", sa.String(length=32), nullable=True),
            sa.Column("role", sa.String(length=32), nullable=False, server_default="staff"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("username", name="uq_users_username"),
            sa.UniqueConstraint("email", name="uq_users_email"),
            sa.CheckConstraint(f"role IN ({roles})", name="ck_users_role"),
        )

    if not inspector.has_table("customers"):
        op.create_table(
            "customers",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=True),
            sa.Column("phone", sa.String(length=32), nullable=True),
            sa.Column("address", sa.Text(), nullable=True),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
        )

    if not inspector.has_table("products"):
        op.create_table(
            "products",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("name_ar", sa.String(length=255), nullable=True),
            sa.Column("description_ar", sa.Text(), nullable=True),
            sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default="0"),
            sa.Column("cost", sa.Numeric(10, 2), nullable=True),
            sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("category", sa.String(length=100), nullable=True),
            sa.Column("barcode", sa.String(length=50), nullable=True),
            sa.Column("serial_number", sa.String(length=100), nullable=True),
            sa.Column("unit_id", sa.Integer(), nullable=True),
            sa.Column("is_online", sa.Boolean(), nullable=False, server_default=sa.false()),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
            sa.CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
            sa.CheckConstraint("cost IS NULL OR cost >= 0", name="ck_products_cost_non_negative"),
            sqlite_autoincrement=True,
        )

    inspector = sa.inspect(bind)
    indexes = {ix["name"] for ix in inspector.get_indexes("products")}
    with op.batch_alter_table("products", schema=None) as batch_op:
        if "products_barcode_idx" not in indexes:
            batch_op.create_index("products_barcode_idx", ["barcode"], unique=False)
        if "products_category_idx" not in indexes:
            batch_op.create_index("products_category_idx", ["category"], unique=False)


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    for table in ("products", "customers", "users"):
        if inspector.has_table(table):
            op.drop_table(table)
