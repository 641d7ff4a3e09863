import pytest
from sqlalchemy import Column, ForeignKey, Integer, MetaData, Table, create_engine, text

from retailpos.extensions import db
from retailpos.models import FOREIGN_KEY_POLICIES, Product, association_policy_problems, verify_database_policies
from retailpos.models.policies import fk_name, policy_relationship_kwargs


def test_models_agree_with_registry(app):
    assert association_policy_problems() == []


def test_created_schema_agrees_with_registry(db_session):
    assert verify_database_policies(db.engine) == []


def test_every_foreign_key_cascades_on_update():
    assert {p.onupdate for p in FOREIGN_KEY_POLICIES.values()} == {"CASCADE"}


def test_fk_names_follow_convention(app):
    assert fk_name("sale_items.product_id") == "sale_items_product_id_fkey"
    fk = next(iter(Product.__table__.metadata.tables["inventory"].c.product_id.foreign_keys))
    assert fk.name == "inventory_product_id_fkey"


@pytest.mark.parametrize(
    "key, expected",
    [
        ("inventory.product_id", {"cascade": "all, delete-orphan", "passive_deletes": True}),
        ("sales.customer_id", {"cascade": "save-update, merge", "passive_deletes": True}),
        ("sale_items.product_id", {"cascade": "save-update, merge", "passive_deletes": "all"}),
    ],
)
def test_relationship_options_follow_delete_action(key, expected):
    assert policy_relationship_kwargs(key) == expected


def test_drifted_table_metadata_is_reported(app):
    metadata = MetaData()
    Table("products", metadata, Column("id", Integer, primary_key=True))
    Table(
        "inventory",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("product_id", Integer, ForeignKey("products.id", ondelete="SET NULL", onupdate="CASCADE")),
    )

    problems = association_policy_problems(metadata, mappers=[])

    assert "inventory.product_id: ondelete 'SET NULL', registry says CASCADE" in problems
    assert "sales.user_id: registered but not declared on any model" in problems


def test_drifted_database_is_reported(app):
    engine = create_engine("sqlite://")
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE products (id INTEGER PRIMARY KEY)"))
        conn.execute(text(
            "CREATE TABLE inventory (id INTEGER PRIMARY KEY, "
            "product_id INTEGER REFERENCES products (id) ON DELETE SET NULL)"
        ))

    problems = verify_database_policies(engine)

    assert "inventory.product_id: ON DELETE SET NULL, expected CASCADE" in problems
    assert "inventory.product_id: ON UPDATE NO ACTION, expected CASCADE" in problems
    assert "sales.user_id: table sales is missing" in problems
    engine.dispose()
