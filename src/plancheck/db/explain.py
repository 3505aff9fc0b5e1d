"""
SQLAlchemy plan source - obtains EXPLAIN output from a live database.

Statements per backend:
- mysql: EXPLAIN <sql>              (tabular rows, kept as structured rows)
- postgres: EXPLAIN <sql>           (one "QUERY PLAN" text column)
- sqlite: EXPLAIN QUERY PLAN <sql>  (id, parent, notused, detail)
- generic: EXPLAIN <sql>

Read-only: only EXPLAIN statements are issued; the query itself never runs.
Statements go through exec_driver_sql so that colons and percent signs in
the query text are not treated as bind parameters.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, assert_never

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from plancheck.checker import RawPlan
from plancheck.exceptions import EvaluationError
from plancheck.models import BackendKind

logger = logging.getLogger(__name__)

MYSQL_COLUMNS = (
    "id",
    "select_type",
    "table",
    "partitions",
    "type",
    "possible_keys",
    "key",
    "key_len",
    "ref",
    "rows",
    "filtered",
    "Extra",
)


def explain_statement(backend: BackendKind, sql: str) -> str:
    """Build the EXPLAIN statement for `sql` on `backend`."""
    query = sql.strip().rstrip(";")
    if backend is BackendKind.SQLITE:
        return f"EXPLAIN QUERY PLAN {query}"
    elif (
        backend is BackendKind.MYSQL
        or backend is BackendKind.POSTGRES
        or backend is BackendKind.GENERIC
    ):
        return f"EXPLAIN {query}"
    else:
        assert_never(backend)


def _format_value(value: Any) -> str:
    return "NULL" if value is None else str(value)


def render_plan_text(backend: BackendKind, rows: Sequence[Mapping[str, Any]]) -> str:
    """
    Render EXPLAIN result rows as plan text.

    MySQL rows become "column: value" blocks (so "type: ALL" is visible to
    text heuristics), postgres yields its QUERY PLAN lines, sqlite its
    detail lines, and anything else one " | "-joined line per row.
    """
    if backend is BackendKind.MYSQL:
        blocks = []
        for index, row in enumerate(rows, 1):
            columns = [c for c in MYSQL_COLUMNS if c in row]
            columns += [c for c in row if c not in MYSQL_COLUMNS]
            lines = [f"*************************** {index}. row ***************************"]
            lines += [f"{column}: {_format_value(row[column])}" for column in columns]
            blocks.append("\n".join(lines))
        return "\n".join(blocks)
    elif backend is BackendKind.POSTGRES:
        return "\n".join(_format_value(next(iter(row.values()), None)) for row in rows)
    elif backend is BackendKind.SQLITE:
        return "\n".join(_format_value(row.get("detail")) for row in rows)
    elif backend is BackendKind.GENERIC:
        return "\n".join(" | ".join(_format_value(v) for v in row.values()) for row in rows)
    else:
        assert_never(backend)


class SQLAlchemyPlanSource:
    """
    PlanSource backed by a SQLAlchemy Engine or Connection.

    Args:
        bind: Engine (a connection is opened per explain) or Connection
            (used as-is, so uncommitted fixtures are visible)
        backend: Override the backend derived from the dialect name
    """

    def __init__(self, bind: Engine | Connection, backend: BackendKind | None = None) -> None:
        self.bind = bind
        self._backend = backend

    @property
    def backend(self) -> BackendKind:
        if self._backend is not None:
            return self._backend
        return BackendKind.from_adapter_name(self.bind.dialect.name)

    def explain(self, sql: str) -> RawPlan:
        """
        Run EXPLAIN for `sql`.

        Raises:
            EvaluationError: If the database rejects the statement
        """
        backend = self.backend
        statement = explain_statement(backend, sql)
        logger.debug("Running %s", statement)

        try:
            rows = self._execute(statement)
        except SQLAlchemyError as e:
            raise EvaluationError(
                f"EXPLAIN failed on {backend.value}: {e}",
                cause=e,
                sql=sql,
            ) from e

        return RawPlan(
            backend=backend,
            text=render_plan_text(backend, rows),
            rows=rows if backend is BackendKind.MYSQL else None,
        )

    def _execute(self, statement: str) -> list[dict[str, Any]]:
        if isinstance(self.bind, Engine):
            with self.bind.connect() as connection:
                return self._fetch(connection, statement)
        return self._fetch(self.bind, statement)

    @staticmethod
    def _fetch(connection: Connection, statement: str) -> list[dict[str, Any]]:
        result = connection.exec_driver_sql(statement)
        return [dict(row) for row in result.mappings()]
