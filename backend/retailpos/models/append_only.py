# Overview: ORM listeners that keep audit tables insert-only.

from __future__ import annotations

from sqlalchemy import event, inspect as sa_inspect


class AppendOnlyViolation(RuntimeError):
    """Raised before flush when code tries to rewrite an audit row."""


def _changed_columns(target) -> list[str]:
    state = sa_inspect(target)
    return [
        attr.key
        for attr in state.mapper.column_attrs
        if state.attrs[attr.key].history.has_changes()
    ]


def append_only(*, allow_delete: bool = False):
    """
    Class decorator: block UPDATE (and DELETE unless allow_delete) through the ORM.

    allow_delete is for rows whose parent owns them with a cascading FK
    (login history goes away with its user). Bulk query.update() bypasses
    mapper events and is not covered here.
    """

    def decorator(cls):
        table = cls.__tablename__

        @event.listens_for(cls, "before_update")
        def _block_update(mapper, connection, target):
            changed = _changed_columns(target)
            if changed:
                raise AppendOnlyViolation(
                    f"{table} rows are append-only; attempted to change: {', '.join(changed)}"
                )

        if not allow_delete:
            @event.listens_for(cls, "before_delete")
            def _block_delete(mapper, connection, target):
                raise AppendOnlyViolation(f"{table} rows are append-only; delete is not allowed")

        return cls

    return decorator
