"""Add products.image_url

Revision ID: 20230601000007
Revises: 20230601000006
Create Date: 2023-06-01 00:00:07.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20230601000007"
down_revision = "20230601000006"
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    columns = {c["name"] for c in inspector.get_columns("products")}
    if "image_url" not in columns:
        with op.batch_alter_table("products", schema=None) as batch_op:
            batch_op.add_column(sa.Column("image_url", sa.String(length=500), nullable=True))


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    columns = {c["name"] for c in inspector.get_columns("products")}
    if "image_url" in columns:
        with op.batch_alter_table("products", schema=None) as batch_op:
            batch_op.drop_column("image_url")
