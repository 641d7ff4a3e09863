# Overview: Foreign-key action registry shared by model columns, relationships and schema checks.

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import inspect as sa_inspect, text
from sqlalchemy.orm import ONETOMANY, configure_mappers

from ..extensions import db


CASCADE = "CASCADE"
RESTRICT = "RESTRICT"
SET_NULL = "SET NULL"


class SchemaPolicyError(RuntimeError):
    def __init__(self, message: str, details: list[str] | None = None):
        super().__init__(message)
        self.details = details or []


@dataclass(frozen=True)
class ForeignKeyPolicy:
    """
    One foreign key, declared once.

    target:     "table.column" the key points at
    ondelete:   CASCADE / RESTRICT / SET NULL
    onupdate:   action on parent key change
    collection: "Model.attribute" of the parent-side one-to-many, if mapped
    """
    target: str
    ondelete: str
    onupdate: str = CASCADE
    collection: str | None = None

    @property
    def target_table(self) -> str:
        return self.target.split(".", 1)[0]


# Keyed by "child_table.child_column".
FOREIGN_KEY_POLICIES: dict[str, ForeignKeyPolicy] = {
    "inventory.product_id": ForeignKeyPolicy("products.id", CASCADE, collection="Product.inventory_items"),
    "inventory_transactions.inventory_id": ForeignKeyPolicy("inventory.id", RESTRICT, collection="Inventory.transactions"),
    "inventory_transactions.user_id": ForeignKeyPolicy("users.id", RESTRICT),
    "sales.customer_id": ForeignKeyPolicy("customers.id", SET_NULL, collection="Customer.sales"),
    "sales.user_id": ForeignKeyPolicy("users.id", RESTRICT),
    "sale_items.sale_id": ForeignKeyPolicy("sales.id", CASCADE, collection="Sale.items"),
    "sale_items.product_id": ForeignKeyPolicy("products.id", RESTRICT, collection="Product.sale_items"),
    "notifications.user_id": ForeignKeyPolicy("users.id", CASCADE, collection="User.notifications"),
    "login_history.user_id": ForeignKeyPolicy("users.id", CASCADE, collection="User.login_history"),
}


def fk_name(key: str) -> str:
    table, column = key.split(".", 1)
    return f"{table}_{column}_fkey"


def policy_fk(key: str) -> db.ForeignKey:
    """ForeignKey for a model column, built from the registry entry for `key`."""
    policy = FOREIGN_KEY_POLICIES[key]
    return db.ForeignKey(
        policy.target,
        ondelete=policy.ondelete,
        onupdate=policy.onupdate,
        name=fk_name(key),
    )


def policy_relationship_kwargs(key: str) -> dict:
    """
    ORM options for the parent-side collection of `key`.

    CASCADE  -> the ORM deletes children with the parent; the database does the
                rest for rows that were never loaded.
    SET NULL -> the database nulls the children; the ORM does not load them.
    RESTRICT -> the ORM never touches children so the database can refuse
                the parent delete.
    """
    policy = FOREIGN_KEY_POLICIES[key]
    if policy.ondelete == CASCADE:
        return {"cascade": "all, delete-orphan", "passive_deletes": True}
    if policy.ondelete == SET_NULL:
        return {"cascade": "save-update, merge", "passive_deletes": True}
    if policy.ondelete == RESTRICT:
        return {"cascade": "save-update, merge", "passive_deletes": "all"}
    raise SchemaPolicyError(f"Unsupported ondelete action {policy.ondelete!r} for {key}")


def _relationship_matches(rel, policy: ForeignKeyPolicy) -> bool:
    if policy.ondelete == CASCADE:
        return rel.cascade.delete and rel.cascade.delete_orphan and rel.passive_deletes is True
    if policy.ondelete == SET_NULL:
        return not rel.cascade.delete and rel.passive_deletes is True
    return not rel.cascade.delete and rel.passive_deletes == "all"


def association_policy_problems(metadata=None, mappers=None) -> list[str]:
    """Compare table FKs and one-to-many relationships against the registry."""
    configure_mappers()
    metadata = metadata if metadata is not None else db.metadata
    if mappers is None:
        mappers = [m for m in db.Model.registry.mappers]

    problems: list[str] = []
    seen_fks: set[str] = set()

    for table in metadata.sorted_tables:
        for fk in table.foreign_keys:
            key = f"{table.name}.{fk.parent.name}"
            seen_fks.add(key)
            policy = FOREIGN_KEY_POLICIES.get(key)
            if policy is None:
                problems.append(f"{key}: foreign key not registered")
                continue
            if fk.target_fullname != policy.target:
                problems.append(f"{key}: targets {fk.target_fullname}, registry says {policy.target}")
            if (fk.ondelete or "").upper() != policy.ondelete:
                problems.append(f"{key}: ondelete {fk.ondelete!r}, registry says {policy.ondelete}")
            if (fk.onupdate or "").upper() != policy.onupdate:
                problems.append(f"{key}: onupdate {fk.onupdate!r}, registry says {policy.onupdate}")

    for key in FOREIGN_KEY_POLICIES:
        if key not in seen_fks:
            problems.append(f"{key}: registered but not declared on any model")

    collections: dict[str, object] = {}
    for mapper in mappers:
        for rel in mapper.relationships:
            if rel.direction is not ONETOMANY:
                continue
            name = f"{mapper.class_.__name__}.{rel.key}"
            collections[name] = rel
            remote = rel.local_remote_pairs[0][1]
            key = f"{remote.table.name}.{remote.name}"
            policy = FOREIGN_KEY_POLICIES.get(key)
            if policy is None:
                problems.append(f"{name}: one-to-many over unregistered key {key}")
            elif policy.collection != name:
                problems.append(f"{name}: registry maps {key} to {policy.collection!r}")
            elif not _relationship_matches(rel, policy):
                problems.append(f"{name}: cascade/passive_deletes disagree with ondelete {policy.ondelete}")

    for key, policy in FOREIGN_KEY_POLICIES.items():
        if policy.collection and policy.collection not in collections:
            problems.append(f"{key}: collection {policy.collection} is not mapped")

    return problems


def verify_association_policies(metadata=None, mappers=None) -> None:
    problems = association_policy_problems(metadata, mappers)
    if problems:
        raise SchemaPolicyError("Association policies are inconsistent", problems)


def _sqlite_foreign_keys(conn, table: str) -> list[dict]:
    rows = conn.execute(text(f'PRAGMA foreign_key_list("{table}")')).mappings().all()
    return [
        {
            "constrained_columns": [row["from"]],
            "referred_table": row["table"],
            "referred_columns": [row["to"]],
            "options": {"ondelete": row["on_delete"], "onupdate": row["on_update"]},
        }
        for row in rows
    ]


def verify_database_policies(engine) -> list[str]:
    """
    Compare the live catalog with the registry.

    Returns a list of drift descriptions; empty means the database agrees.
    """
    problems: list[str] = []
    with engine.connect() as conn:
        inspector = sa_inspect(conn)
        tables = set(inspector.get_table_names())
        for key, policy in FOREIGN_KEY_POLICIES.items():
            table, column = key.split(".", 1)
            if table not in tables:
                problems.append(f"{key}: table {table} is missing")
                continue
            if conn.dialect.name == "sqlite":
                fks = _sqlite_foreign_keys(conn, table)
            else:
                fks = inspector.get_foreign_keys(table)
            matches = [fk for fk in fks if fk["constrained_columns"] == [column]]
            if not matches:
                problems.append(f"{key}: no foreign key in database")
                continue
            if len(matches) > 1:
                problems.append(f"{key}: {len(matches)} foreign keys in database, expected 1")
            fk = matches[0]
            if fk["referred_table"] != policy.target_table:
                problems.append(f"{key}: references {fk['referred_table']}, expected {policy.target_table}")
            options = fk.get("options") or {}
            ondelete = (options.get("ondelete") or "NO ACTION").upper()
            onupdate = (options.get("onupdate") or "NO ACTION").upper()
            if ondelete != policy.ondelete:
                problems.append(f"{key}: ON DELETE {ondelete}, expected {policy.ondelete}")
            if onupdate != policy.onupdate:
                problems.append(f"{key}: ON UPDATE {onupdate}, expected {policy.onupdate}")
    return problems
