# Overview: Live-database checks: migration head, model/table drift, FK delete policies.

from __future__ import annotations

import os
from dataclasses import dataclass, field

from alembic.config import Config as AlembicConfig
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from flask import current_app
from sqlalchemy import inspect as sa_inspect

from ..extensions import db
from ..models.policies import verify_database_policies


@dataclass
class SchemaReport:
    current_revision: str | None
    head_revision: str | None
    missing: list[str] = field(default_factory=list)
    policy_problems: list[str] = field(default_factory=list)

    @property
    def up_to_date(self) -> bool:
        return self.current_revision is not None and self.current_revision == self.head_revision

    @property
    def ok(self) -> bool:
        return self.up_to_date and not self.missing and not self.policy_problems


def _script_directory() -> ScriptDirectory:
    directory = current_app.config["MIGRATIONS_DIR"]
    config = AlembicConfig(os.path.join(directory, "alembic.ini"))
    config.set_main_option("script_location", directory)
    return ScriptDirectory.from_config(config)


def migration_status(engine=None) -> tuple[str | None, str | None]:
    """(current revision in the database, head revision on disk)."""
    engine = engine or db.engine
    with engine.connect() as conn:
        current = MigrationContext.configure(conn).get_current_revision()
    head = _script_directory().get_current_head()
    return current, head


def missing_schema_objects(engine=None) -> list[str]:
    """Tables and columns the models expect but the database lacks."""
    engine = engine or db.engine
    problems: list[str] = []
    with engine.connect() as conn:
        inspector = sa_inspect(conn)
        tables = set(inspector.get_table_names())
        for table in db.metadata.sorted_tables:
            if table.name not in tables:
                problems.append(f"table {table.name} is missing")
                continue
            live = {c["name"] for c in inspector.get_columns(table.name)}
            for column in table.columns:
                if column.name not in live:
                    problems.append(f"column {table.name}.{column.name} is missing")
    return problems


def check_schema(engine=None) -> SchemaReport:
    engine = engine or db.engine
    current, head = migration_status(engine)
    report = SchemaReport(
        current_revision=current,
        head_revision=head,
        missing=missing_schema_objects(engine),
        policy_problems=verify_database_policies(engine),
    )
    if report.ok:
        current_app.logger.info("Schema check passed at revision %s", current)
    else:
        current_app.logger.warning(
            "Schema check found problems (revision %s, head %s): %s missing objects, %s policy problems",
            current, head, len(report.missing), len(report.policy_problems),
        )
    return report
