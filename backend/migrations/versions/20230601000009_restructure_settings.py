"""Restructure legacy key/value settings into one row of columns

Revision ID: 20230601000009
Revises: 20230601000008
Create Date: 2023-06-01 00:00:09.000000

Early installs stored settings as (key, value) rows. Known keys are folded
into a single columnar row; unknown keys are dropped. Forward-only: the
original key/value layout is not reconstructed.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20230601000009"
down_revision = "20230601000008"
branch_labels = None
depends_on = None

TEXT_KEYS = (
    "store_name", "currency_code", "currency_symbol", "email", "phone", "address",
    "city", "state", "postal_code", "country", "website", "logo_url", "language",
)

DEFAULTS = {
    "store_name": "My Store",
    "currency_code": "AED",
    "currency_symbol": "د.إ",
    "language": "ar",
    "tax_rate": 0.0,
}


def _legacy_row(rows):
    record = dict(DEFAULTS)
    for key, value in rows:
        if key in TEXT_KEYS and value not in (None, ""):
            record[key] = value
        elif key == "tax_rate":
            try:
                record["tax_rate"] = float(value)
            except (TypeError, ValueError):
                pass
    return record


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if not inspector.has_table("settings"):
        return

    columns = {c["name"] for c in inspector.get_columns("settings")}
    if not {"key", "value"} <= columns:
        return

    rows = bind.execute(sa.text('SELECT "key", "value" FROM settings')).all()
    op.drop_table("settings")

    settings = op.create_table(
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

    if rows:
        op.bulk_insert(settings, [dict(_legacy_row(rows), id=1)])


def downgrade():
    raise NotImplementedError("20230601000009 is forward-only: key/value settings are not restored")
