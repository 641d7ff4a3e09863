"""Create settings

Revision ID: 20230601000008
Revises: 20230601000007
Create Date: 2023-06-01 00:00:08.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20230601000008"
down_revision = "20230601000007"
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table("settings"):
        op.create_table(
            "settings",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("store_name", sa.String(length=255), nullable=False, server_default="My Store"),
            sa.Column("currency_code", sa.String(length=10), nullable=False, server_default="AED"),
            sa.Column("currency_symbol", sa.String(length=10), nullable=False, server_default="د.إ"),
            sa.Column("email", sa.String(length=255), nullable=True),
            sa.Column("phone", sa.String(length=255), nullable=True),
            sa.Column("address", sa.String(length=255), nullable=True),
            sa.Column("city", sa.String(length=255), nullable=True),
            sa.Column("state", sa.String(length=255), nullable=True),
            sa.Column("postal_code", sa.String(length=255), nullable=True),
            sa.Column("country", sa.String(length=255), nullable=True),
            sa.Column("website", sa.String(length=255), nullable=True),
            sa.Column("tax_rate", sa.Float(), nullable=True, server_default="0"),
            sa.Column("logo_url", sa.String(length=255), nullable=True),
            sa.Column("language", sa.String(length=10), nullable=False, server_default="ar"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.PrimaryKeyConstraint("id"),
        )


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if inspector.has_table("settings"):
        op.drop_table("settings")
