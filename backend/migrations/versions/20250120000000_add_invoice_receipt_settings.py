"""Add invoice and receipt options to settings

Revision ID: 20250120000000
Revises: 20230801000000
Create Date: 2025-01-20 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20250120000000"
down_revision = "20230801000000"
branch_labels = None
depends_on = None


def _new_columns():
    return [
        sa.Column("invoice_prefix", sa.String(length=20), nullable=True, server_default="INV"),
        sa.Column("invoice_suffix", sa.String(length=20), nullable=True, server_default=""),
        sa.Column("invoice_next_number", sa.Integer(), nullable=True, server_default="1001"),
        sa.Column("invoice_show_logo", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column("invoice_show_tax_number", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column("invoice_show_signature", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column("invoice_footer_text", sa.Text(), nullable=True, server_default="Thank you for your business!"),
        sa.Column(
            "invoice_terms_and_conditions",
            sa.Text(),
            nullable=True,
            server_default="All sales are final. Returns accepted within 30 days with receipt.",
        ),
        sa.Column("receipt_show_logo", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column("receipt_show_tax_details", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column("receipt_print_automatically", sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column("receipt_footer_text", sa.Text(), nullable=True, server_default="Thank you for shopping with us!"),
    ]


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing = {c["name"] for c in inspector.get_columns("settings")}

    with op.batch_alter_table("settings", schema=None) as batch_op:
        for column in _new_columns():
            if column.name not in existing:
                batch_op.add_column(column)


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing = {c["name"] for c in inspector.get_columns("settings")}

    with op.batch_alter_table("settings", schema=None) as batch_op:
        for column in reversed(_new_columns()):
            if column.name in existing:
                batch_op.drop_column(column.name)
