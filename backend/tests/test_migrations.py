"""
Migration chain tests against a throwaway SQLite file.

Each test gets a fresh database and drives Alembic directly so that
exceptions raised by a revision reach the test unchanged.
"""

import shutil
import textwrap
import uuid

import pytest
from alembic import command
from sqlalchemy import inspect, text

from retailpos import create_app
from retailpos.extensions import db, migrate
from retailpos.services import schema_service


HEAD = "20250821000000"


@pytest.fixture
def migration_app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'migrations.sqlite3'}",
        "BCRYPT_ROUNDS": 4,
        "LOG_LEVEL": "WARNING",
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def alembic_config(migration_app):
    return migrate.get_config()


def snapshot(engine):
    """Tables, columns, indexes, foreign keys and named constraints as plain data."""
    inspector = inspect(engine)
    result = {}
    for table in sorted(inspector.get_table_names()):
        if table == "alembic_version":
            continue
        result[table] = {
            "columns": sorted(
                (c["name"], str(c["type"]), bool(c["nullable"])) for c in inspector.get_columns(table)
            ),
            "indexes": sorted(ix["name"] for ix in inspector.get_indexes(table)),
            "foreign_keys": sorted(
                (
                    fk["name"] or "",
                    tuple(fk["constrained_columns"]),
                    fk["referred_table"],
                    tuple(sorted((fk.get("options") or {}).items())),
                )
                for fk in inspector.get_foreign_keys(table)
            ),
            "checks": sorted(ck["name"] or "" for ck in inspector.get_check_constraints(table)),
            "uniques": sorted(uq["name"] or "" for uq in inspector.get_unique_constraints(table)),
        }
    return result


def test_head_matches_models(alembic_config):
    command.upgrade(alembic_config, "head")

    report = schema_service.check_schema(db.engine)

    assert report.current_revision == HEAD
    assert report.head_revision == HEAD
    assert report.missing == []
    assert report.policy_problems == []
    assert report.ok


def test_head_schema_names(alembic_config):
    command.upgrade(alembic_config, "head")
    schema = snapshot(db.engine)

    assert "ck_settings_singleton" in schema["settings"]["checks"]
    assert {"ck_sales_status", "ck_sales_payment_method", "ck_sales_payment_status"} <= set(schema["sales"]["checks"])
    assert "uq_sales_receipt_number" in schema["sales"]["uniques"]
    assert "ck_sale_items_subtotal_non_negative" in schema["sale_items"]["checks"]
    assert "inventory_expiry_date_idx" in schema["inventory"]["indexes"]

    fks = {fk[0]: fk for fk in schema["sale_items"]["foreign_keys"]}
    assert dict(fks["sale_items_sale_id_fkey"][3])["ondelete"] == "CASCADE"
    assert dict(fks["sale_items_product_id_fkey"][3])["ondelete"] == "RESTRICT"


def test_rerunning_every_revision_changes_nothing(alembic_config):
    command.upgrade(alembic_config, "head")
    before = snapshot(db.engine)

    command.stamp(alembic_config, "base")
    command.upgrade(alembic_config, "head")

    assert snapshot(db.engine) == before


@pytest.mark.parametrize(
    "revision, previous",
    [
        ("20230531000000", "base"),
        ("20230601000002", "20230531000000"),
        ("20230601000004", "20230601000002"),
        ("20230601000005", "20230601000004"),
        ("20230601000006", "20230601000005"),
        ("20230601000007", "20230601000006"),
        ("20230601000008", "20230601000007"),
        ("20230801000000", "20230601000009"),
        ("20250120000000", "20230801000000"),
        ("20250810173000", "20250120000000"),
        ("20250810173100", "20250810173000"),
        ("20250810173200", "20250810173100"),
        ("20250810173400", "20250810173200"),
        ("20250810173500", "20250810173400"),
        ("20250818194000", "20250810191500"),
        ("20250818195500", "20250818194500"),
        ("20250819000000", "20250818195500"),
        ("20250820000000", "20250819000000"),
        ("20250821000000", "20250820000000"),
    ],
)
def test_downgrade_restores_previous_schema(alembic_config, revision, previous):
    if previous != "base":
        command.upgrade(alembic_config, previous)
    before = snapshot(db.engine)

    command.upgrade(alembic_config, revision)
    assert snapshot(db.engine) != before

    command.downgrade(alembic_config, previous)
    assert snapshot(db.engine) == before


def test_forward_only_revision_refuses_downgrade(alembic_config):
    command.upgrade(alembic_config, "head")

    with pytest.raises(NotImplementedError):
        command.downgrade(alembic_config, "20250818194000")


def test_nullable_login_user_cannot_be_reverted_with_anonymous_rows(alembic_config):
    command.upgrade(alembic_config, "head")
    with db.engine.begin() as conn:
        conn.execute(
            text("INSERT INTO login_history (id, user_id, status) VALUES (:id, NULL, 'failed')"),
            {"id": uuid.uuid4().hex},
        )

    with pytest.raises(RuntimeError, match="without a user"):
        command.downgrade(alembic_config, "20250819000000")


def test_settings_singleton_keeps_latest_row(alembic_config):
    command.upgrade(alembic_config, "20250820000000")
    with db.engine.begin() as conn:
        conn.execute(text(
            "INSERT INTO settings (id, store_name, updated_at) VALUES "
            "(1, 'Older', '2024-01-01 00:00:00'), (5, 'Newer', '2025-01-01 00:00:00')"
        ))

    command.upgrade(alembic_config, HEAD)

    with db.engine.connect() as conn:
        rows = conn.execute(text("SELECT id, store_name FROM settings")).all()
    assert [tuple(r) for r in rows] == [(1, "Newer")]


def test_legacy_key_value_settings_are_folded_into_one_row(alembic_config):
    command.upgrade(alembic_config, "20230601000007")
    with db.engine.begin() as conn:
        conn.execute(text('CREATE TABLE settings (id INTEGER PRIMARY KEY, "key" VARCHAR(255) NOT NULL, value TEXT)'))
        conn.execute(text(
            "INSERT INTO settings (\"key\", value) VALUES "
            "('store_name', 'Souq Al Madina'), ('tax_rate', '5'), ('theme', 'dark')"
        ))

    command.upgrade(alembic_config, "20230601000009")

    with db.engine.connect() as conn:
        columns = {c["name"] for c in inspect(conn).get_columns("settings")}
        row = conn.execute(text("SELECT id, store_name, currency_code, tax_rate, language FROM settings")).one()

    assert "key" not in columns
    assert tuple(row) == (1, "Souq Al Madina", "AED", 5.0, "ar")


def test_sale_items_product_id_is_repaired(alembic_config):
    command.upgrade(alembic_config, "20250810173500")
    with db.engine.begin() as conn:
        conn.execute(text("DROP TABLE sale_items"))
        conn.execute(text(
            "CREATE TABLE sale_items ("
            "id CHAR(32) NOT NULL PRIMARY KEY, "
            "sale_id CHAR(32) NOT NULL REFERENCES sales (id) ON DELETE CASCADE ON UPDATE CASCADE, "
            "product_id VARCHAR(36), "
            "quantity INTEGER NOT NULL DEFAULT 1, "
            "unit_price NUMERIC(10, 2) NOT NULL DEFAULT 0, "
            "discount NUMERIC(10, 2) NOT NULL DEFAULT 0, "
            "subtotal NUMERIC(10, 2) NOT NULL DEFAULT 0, "
            "notes TEXT, "
            "created_at DATETIME NOT NULL DEFAULT (CURRENT_TIMESTAMP), "
            "updated_at DATETIME NOT NULL DEFAULT (CURRENT_TIMESTAMP))"
        ))

    command.upgrade(alembic_config, "20250810173600")

    columns = {c["name"]: c for c in inspect(db.engine).get_columns("sale_items")}
    assert str(columns["product_id"]["type"]) == "INTEGER"
    fks = [fk for fk in inspect(db.engine).get_foreign_keys("sale_items") if fk["constrained_columns"] == ["product_id"]]
    assert len(fks) == 1
    assert fks[0]["referred_table"] == "products"
    assert fks[0]["options"]["ondelete"] == "RESTRICT"


def test_unnamed_product_fk_is_replaced(alembic_config):
    command.upgrade(alembic_config, "20250810173500")
    with db.engine.begin() as conn:
        conn.execute(text("DROP TABLE sale_items"))
        conn.execute(text(
            "CREATE TABLE sale_items ("
            "id CHAR(32) NOT NULL PRIMARY KEY, "
            "sale_id CHAR(32) NOT NULL REFERENCES sales (id) ON DELETE CASCADE ON UPDATE CASCADE, "
            "product_id INTEGER REFERENCES products (id) ON DELETE CASCADE, "
            "quantity INTEGER NOT NULL DEFAULT 1, "
            "unit_price NUMERIC(10, 2) NOT NULL DEFAULT 0, "
            "discount NUMERIC(10, 2) NOT NULL DEFAULT 0, "
            "subtotal NUMERIC(10, 2) NOT NULL DEFAULT 0, "
            "notes TEXT, "
            "created_at DATETIME NOT NULL DEFAULT (CURRENT_TIMESTAMP), "
            "updated_at DATETIME NOT NULL DEFAULT (CURRENT_TIMESTAMP))"
        ))

    command.upgrade(alembic_config, "20250810173600")

    fks = [fk for fk in inspect(db.engine).get_foreign_keys("sale_items") if fk["constrained_columns"] == ["product_id"]]
    assert len(fks) == 1
    assert fks[0]["name"] == "sale_items_product_id_fkey"
    assert fks[0]["options"]["ondelete"] == "RESTRICT"


# --- failed runs ---------------------------------------------------------------

FAILING_REVISION = '''
from alembic import op
import sqlalchemy as sa

revision = "20250901000000"
down_revision = "{down_revision}"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table("half_applied", sa.Column("id", sa.Integer(), primary_key=True))
    raise RuntimeError("revision failed after its first statement")


def downgrade():
    op.drop_table("half_applied")
'''


@pytest.fixture
def failing_config(migration_app, tmp_path):
    """Copy of the migration scripts with one more revision that fails halfway."""
    directory = tmp_path / "migrations"
    shutil.copytree(migration_app.config["MIGRATIONS_DIR"], directory, ignore=shutil.ignore_patterns("__pycache__"))
    (directory / "versions" / "20250901000000_fails_halfway.py").write_text(
        textwrap.dedent(FAILING_REVISION.format(down_revision=HEAD))
    )
    return migrate.get_config(directory=str(directory))


def _ledger():
    with db.engine.connect() as conn:
        return conn.execute(text("SELECT version_num FROM alembic_version")).scalar()


def test_failing_revision_leaves_no_schema_changes(failing_config):
    command.upgrade(failing_config, HEAD)
    before = snapshot(db.engine)

    with pytest.raises(RuntimeError, match="failed after its first statement"):
        command.upgrade(failing_config, "head")

    assert "half_applied" not in inspect(db.engine).get_table_names()
    assert snapshot(db.engine) == before
    assert _ledger() == HEAD


def test_failed_run_from_empty_database_applies_nothing(failing_config):
    with pytest.raises(RuntimeError):
        command.upgrade(failing_config, "head")

    assert inspect(db.engine).get_table_names() == []


def test_foreign_keys_enforced_again_after_a_failed_run(failing_config):
    command.upgrade(failing_config, HEAD)
    with pytest.raises(RuntimeError):
        command.upgrade(failing_config, "head")

    with db.engine.connect() as conn:
        assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
