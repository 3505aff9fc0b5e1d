"""Shared fixtures for plancheck tests."""

from __future__ import annotations

from typing import Any

import pytest

from plancheck.checker import PlanChecker, RawPlan, StaticPlanSource
from plancheck.config import Config, reset_config
from plancheck.models import BackendKind, ExecutionPlan
from plancheck.normalizer import normalize


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch):
    """Keep PLANCHECK_* variables from the host out of every test."""
    import os

    for key in list(os.environ):
        if key.startswith("PLANCHECK_"):
            monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


def mysql_row(
    access_type: str | None = "ref",
    key: str | None = "idx_email",
    possible_keys: str | None = "idx_email",
    rows: Any = 1,
    extra: str | None = None,
    **columns: Any,
) -> dict[str, Any]:
    """Build a MySQL tabular EXPLAIN row using the real column names."""
    row: dict[str, Any] = {
        "id": 1,
        "select_type": "SIMPLE",
        "table": "users",
        "type": access_type,
        "possible_keys": possible_keys,
        "key": key,
        "rows": rows,
        "Extra": extra,
    }
    row.update(columns)
    return row


def make_plan(
    backend: BackendKind,
    text: str = "",
    rows: list[dict[str, Any]] | None = None,
) -> ExecutionPlan:
    return normalize(backend, text, rows)


def static_checker(
    backend: BackendKind,
    text: str = "",
    rows: list[dict[str, Any]] | None = None,
    config: Config | None = None,
) -> PlanChecker:
    return PlanChecker(
        StaticPlanSource(RawPlan(backend=backend, text=text, rows=rows)),
        config=config or Config(),
    )


class FailingSource:
    """Plan source standing in for an unreachable database."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error or ConnectionError("connection refused")
        self.calls = 0

    def explain(self, sql: str) -> RawPlan:
        self.calls += 1
        raise self.error


POSTGRES_SEQ_SCAN = (
    "Limit  (cost=0.28..8.29 rows=1 width=617) (actual time=0.019..0.019 rows=0 loops=1)\n"
    "  ->  Seq Scan on users"
)

POSTGRES_INDEX_SCAN = (
    "Limit  (cost=0.28..8.29 rows=1 width=617) (actual time=0.019..0.019 rows=0 loops=1)\n"
    "  ->  Index Scan using index_users_on_email on users"
)
