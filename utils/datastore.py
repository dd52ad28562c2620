"""Table-oriented gateway to the relational store.

Views talk to the database only through :class:`DataStore`. Every operation is
single-shot: it runs one statement, commits, and hands back a
:class:`StoreResult` carrying either data or a :class:`StoreError`. Nothing is
retried and nothing is raised to the caller, so every call site has to look at
``result.error`` before trusting ``result.data``.

Row-level security lives here as well, playing the part the database policies
play in a hosted backend: owned tables are scoped to the identity the store was
opened for, and catalog tables cannot be written at all.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from flask import current_app
from sqlalchemy import false, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.types import DateTime

from extensions import db

OWNER_COLUMNS: dict[str, str] = {
    "profiles": "user_id",
    "training_progress": "user_id",
    "incentives": "user_id",
    "waste_reports": "reporter_id",
}

READ_ONLY_TABLES: frozenset[str] = frozenset({"training_modules", "waste_facilities"})

STORE_TABLES: frozenset[str] = frozenset(OWNER_COLUMNS) | READ_ONLY_TABLES


class StoreError(Exception):
    """A failed store operation, returned inside a :class:`StoreResult`."""

    def __init__(self, message: str, code: str = "store_error", table: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.table = table


@dataclass
class StoreResult:
    data: Any = None
    error: Optional[StoreError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _serialize_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _serialize_row(row: Mapping) -> dict:
    return {key: _serialize_value(value) for key, value in row.items()}


def _parse_columns(columns: str | Sequence[str]) -> list[str] | None:
    if isinstance(columns, str):
        if columns.strip() == "*":
            return None
        return [c.strip() for c in columns.split(",") if c.strip()]
    return list(columns)


class DataStore:
    """Store handle bound to one identity (``None`` for anonymous visitors)."""

    def __init__(self, identity: Optional[str] = None) -> None:
        self.identity = identity

    # -- schema helpers -------------------------------------------------

    def _table(self, name: str):
        table = db.metadata.tables.get(name)
        if name not in STORE_TABLES or table is None:
            raise StoreError(f"Unknown table '{name}'", code="unknown_table", table=name)
        return table

    def _column(self, table, name: str):
        if name not in table.c:
            raise StoreError(f"Unknown column '{name}' on '{table.name}'", code="unknown_column", table=table.name)
        return table.c[name]

    def _coerce_row(self, table, row: Mapping) -> dict:
        coerced = {}
        for key, value in row.items():
            column = self._column(table, key)
            if isinstance(value, str) and isinstance(column.type, DateTime):
                try:
                    value = datetime.fromisoformat(value)
                except ValueError as exc:
                    raise StoreError(f"Invalid timestamp for '{key}'", code="invalid_value", table=table.name) from exc
            coerced[key] = value
        return coerced

    def _filter_clauses(self, table, filters: Optional[Mapping]) -> list:
        return [self._column(table, key) == value for key, value in (filters or {}).items()]

    # -- row security ---------------------------------------------------

    def _read_scope(self, table) -> list:
        owner = OWNER_COLUMNS.get(table.name)
        if not owner:
            return []
        if self.identity is None:
            return [false()]
        return [table.c[owner] == self.identity]

    def _check_writable(self, table, row: Mapping) -> None:
        if table.name in READ_ONLY_TABLES:
            raise StoreError(
                f"Permission denied for table {table.name}", code="permission_denied", table=table.name
            )
        if self.identity is None:
            raise StoreError("Not authenticated", code="not_authenticated", table=table.name)
        owner = OWNER_COLUMNS[table.name]
        if owner in row and row[owner] != self.identity:
            raise StoreError(
                f"New row violates row-level security policy for table \"{table.name}\"",
                code="row_security",
                table=table.name,
            )

    # -- failure handling -----------------------------------------------

    def _fail(self, operation: str, table_name: str, error: StoreError) -> StoreResult:
        current_app.logger.warning(
            "store_operation_failed",
            extra={
                "operation": operation,
                "table": table_name,
                "code": error.code,
                "error": error.message,
                "identity": self.identity,
            },
        )
        return StoreResult(error=error)

    def _run(self, operation: str, table_name: str, action) -> StoreResult:
        try:
            return StoreResult(data=action())
        except StoreError as exc:
            db.session.rollback()
            return self._fail(operation, table_name, exc)
        except SQLAlchemyError as exc:
            db.session.rollback()
            return self._fail(operation, table_name, StoreError(str(exc.__cause__ or exc), table=table_name))

    # -- operations -----------------------------------------------------

    def fetch(
        self,
        table_name: str,
        columns: str | Sequence[str] = "*",
        filters: Optional[Mapping] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> StoreResult:
        def action():
            table = self._table(table_name)
            names = _parse_columns(columns)
            selected = [self._column(table, n) for n in names] if names else [table]
            stmt = select(*selected)
            for clause in self._read_scope(table) + self._filter_clauses(table, filters):
                stmt = stmt.where(clause)
            if order_by:
                column = self._column(table, order_by)
                stmt = stmt.order_by(column.desc() if descending else column.asc())
            rows = db.session.execute(stmt).mappings().all()
            return [_serialize_row(r) for r in rows]

        return self._run("fetch", table_name, action)

    def fetch_single(
        self,
        table_name: str,
        columns: str | Sequence[str] = "*",
        filters: Optional[Mapping] = None,
    ) -> StoreResult:
        result = self.fetch(table_name, columns, filters)
        if result.error:
            return result
        if len(result.data) != 1:
            error = StoreError(
                f"Expected a single row from '{table_name}', got {len(result.data)}",
                code="not_found" if not result.data else "multiple_rows",
                table=table_name,
            )
            return self._fail("fetch_single", table_name, error)
        return StoreResult(data=result.data[0])

    def insert(self, table_name: str, row: Mapping) -> StoreResult:
        def action():
            table = self._table(table_name)
            self._check_writable(table, row)
            db.session.execute(insert(table).values(**self._coerce_row(table, row)))
            db.session.commit()
            return None

        return self._run("insert", table_name, action)

    def update(self, table_name: str, values: Mapping, filters: Mapping) -> StoreResult:
        def action():
            table = self._table(table_name)
            self._check_writable(table, values)
            if not filters:
                raise StoreError("Update requires a filter", code="missing_filter", table=table_name)
            stmt = update(table).values(**self._coerce_row(table, values))
            for clause in self._read_scope(table) + self._filter_clauses(table, filters):
                stmt = stmt.where(clause)
            result = db.session.execute(stmt)
            db.session.commit()
            return result.rowcount

        return self._run("update", table_name, action)

    def upsert(
        self,
        table_name: str,
        row: Mapping,
        on_conflict: Iterable[str],
        ignore_duplicates: bool = False,
    ) -> StoreResult:
        def action():
            table = self._table(table_name)
            self._check_writable(table, row)
            keys = list(on_conflict)
            for key in keys:
                self._column(table, key)
                if key not in row:
                    raise StoreError(f"Upsert row is missing conflict key '{key}'", code="invalid_value", table=table_name)
            dialect = db.engine.dialect.name
            if dialect == "postgresql":
                stmt = postgresql.insert(table)
            elif dialect == "sqlite":
                stmt = sqlite.insert(table)
            else:
                raise StoreError(f"Upsert is not supported on {dialect}", code="unsupported", table=table_name)
            stmt = stmt.values(**self._coerce_row(table, row))
            changes = {k: stmt.excluded[k] for k in row if k not in keys}
            if ignore_duplicates or not changes:
                stmt = stmt.on_conflict_do_nothing(index_elements=keys)
            else:
                stmt = stmt.on_conflict_do_update(index_elements=keys, set_=changes)
            db.session.execute(stmt)
            db.session.commit()
            return None

        return self._run("upsert", table_name, action)
