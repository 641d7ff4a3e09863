import logging
from logging.config import fileConfig

from flask import current_app

from alembic import context
from sqlalchemy import event, text

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
# Keep the application's loggers alive when migrations run inside a live app.
fileConfig(config.config_file_name, disable_existing_loggers=False)
logger = logging.getLogger('alembic.env')

# Arbitrary constant shared by every process that runs migrations against
# the same PostgreSQL database.
MIGRATION_LOCK_KEY = 73_150_601


def get_engine():
    try:
        # this works with Flask-SQLAlchemy<3 and Alchemical
        return current_app.extensions['migrate'].db.get_engine()
    except (TypeError, AttributeError):
        # this works with Flask-SQLAlchemy>=3
        return current_app.extensions['migrate'].db.engine


def get_engine_url():
    try:
        return get_engine().url.render_as_string(hide_password=False).replace(
            '%', '%%')
    except AttributeError:
        return str(get_engine().url).replace('%', '%%')


config.set_main_option('sqlalchemy.url', get_engine_url())
target_db = current_app.extensions['migrate'].db


def get_metadata():
    if hasattr(target_db, 'metadatas'):
        return target_db.metadatas[None]
    return target_db.metadata


def run_migrations_offline():
    """Run migrations in 'offline' mode (emit SQL to stdout)."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=get_metadata(),
        literal_binds=True,
        transaction_per_migration=True,
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def _begin_immediate(conn):
    if conn.info.get('migration_write_lock'):
        conn.exec_driver_sql('BEGIN IMMEDIATE')


def _acquire(connection):
    """
    Serialize migration runs and prepare the connection.

    PostgreSQL: session-level advisory lock, held until _release().
    SQLite: foreign key enforcement off so batch table rebuilds can copy rows.
    pysqlite commits DDL as it goes, so its implicit transaction handling is
    switched off and every transaction opens with BEGIN IMMEDIATE instead:
    the write lock is taken before the first statement and DDL rolls back
    with the rest of the run.
    """
    dialect = connection.dialect.name
    if dialect == 'postgresql':
        logger.info('Waiting for migration lock %s', MIGRATION_LOCK_KEY)
        connection.execute(text('SELECT pg_advisory_lock(:key)'), {'key': MIGRATION_LOCK_KEY})
    elif dialect == 'sqlite':
        connection.execute(text('PRAGMA foreign_keys=OFF'))
    # Alembic must start from a clean connection to own its transactions.
    connection.commit()

    if dialect == 'sqlite':
        driver_connection = connection.connection.driver_connection
        connection.info['pysqlite_isolation_level'] = driver_connection.isolation_level
        driver_connection.isolation_level = None
        connection.info['migration_write_lock'] = True
        event.listen(connection, 'begin', _begin_immediate)


def _release(connection):
    dialect = connection.dialect.name
    if connection.in_transaction():
        connection.rollback()
    if dialect == 'postgresql':
        connection.execute(text('SELECT pg_advisory_unlock(:key)'), {'key': MIGRATION_LOCK_KEY})
    elif dialect == 'sqlite':
        connection.info.pop('migration_write_lock', None)
        connection.connection.driver_connection.isolation_level = connection.info.pop(
            'pysqlite_isolation_level', '')
        # Outside a transaction again, so the pragma takes effect.
        connection.execute(text('PRAGMA foreign_keys=ON'))
    connection.commit()


def run_migrations_online():
    """Run migrations in 'online' mode: one transaction per revision, one per run on SQLite."""

    # this callback is used to prevent an auto-migration from being generated
    # when there are no changes to the schema
    # reference: http://alembic.zzzcomputing.com/en/latest/cookbook.html
    def process_revision_directives(context, revision, directives):
        if getattr(config.cmd_opts, 'autogenerate', False):
            script = directives[0]
            if script.upgrade_ops.is_empty():
                directives[:] = []
                logger.info('No changes in schema detected.')

    conf_args = dict(current_app.extensions['migrate'].configure_args)
    if conf_args.get("process_revision_directives") is None:
        conf_args["process_revision_directives"] = process_revision_directives
    conf_args.setdefault("transaction_per_migration", True)
    conf_args.setdefault("render_as_batch", True)

    connectable = get_engine()
    if connectable.dialect.name == "sqlite":
        # One transaction for the whole run: the write lock is held until it
        # ends and a failing revision leaves no earlier step of the run behind.
        conf_args["transactional_ddl"] = True
        conf_args["transaction_per_migration"] = False

    with connectable.connect() as connection:
        _acquire(connection)
        try:
            context.configure(
                connection=connection,
                target_metadata=get_metadata(),
                **conf_args
            )

            with context.begin_transaction():
                context.run_migrations()
        finally:
            _release(connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
