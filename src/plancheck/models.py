"""
Data models for plan classification.

These models represent a normalized execution plan and the verdicts rules
produce for it. They're designed to be:
- Immutable (frozen=True): a plan is built once per query and never mutated
- Serializable: easy JSON output for the --json flag
- Backend-aware: every plan carries the BackendKind its text came from
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BackendKind(str, Enum):
    """
    Database backend whose EXPLAIN format is being interpreted.

    Closed set: every rule declares its behavior for each member. Unknown
    engines map to GENERIC, which only gets the substring heuristics.
    """

    MYSQL = "mysql"
    POSTGRES = "postgres"
    SQLITE = "sqlite"
    GENERIC = "generic"

    @classmethod
    def from_adapter_name(cls, name: str | None) -> "BackendKind":
        """
        Map an adapter or dialect name to a backend, defaulting to GENERIC.

        Accepts the names SQLAlchemy dialects and common drivers report
        ("mysql", "mariadb", "postgresql", "sqlite", ...), case-insensitively.
        """
        if not name:
            return cls.GENERIC
        return _ADAPTER_ALIASES.get(name.strip().lower(), cls.GENERIC)


_ADAPTER_ALIASES: dict[str, BackendKind] = {
    "mysql": BackendKind.MYSQL,
    "mysql2": BackendKind.MYSQL,
    "mariadb": BackendKind.MYSQL,
    "trilogy": BackendKind.MYSQL,
    "postgres": BackendKind.POSTGRES,
    "postgresql": BackendKind.POSTGRES,
    "postgis": BackendKind.POSTGRES,
    "sqlite": BackendKind.SQLITE,
    "sqlite3": BackendKind.SQLITE,
}


class PlanRow(BaseModel):
    """
    One step of a structured execution plan.

    Mirrors a row of MySQL's tabular EXPLAIN (`type`, `key`,
    `possible_keys`, `rows`, `Extra`), with the "NULL" sentinel already
    folded into None by the normalizer.
    """

    model_config = ConfigDict(frozen=True)

    access_type: str | None = None
    key: str | None = None
    possible_keys: str | None = None
    estimated_rows: int | None = Field(default=None, ge=0)
    extra: tuple[str, ...] = ()

    @property
    def uses_index(self) -> bool:
        """An index was actually used for this step."""
        return self.key is not None

    @property
    def has_index_candidate(self) -> bool:
        """The planner listed at least one usable index for this step."""
        return self.possible_keys is not None

    def has_extra(self, flag: str) -> bool:
        """Check whether any Extra flag mentions `flag`."""
        return any(flag in item for item in self.extra)


class ExecutionPlan(BaseModel):
    """
    Canonical plan consumed by every rule.

    Attributes:
        backend: Backend the plan came from
        raw_text: Lower-cased plan text, used by text heuristics
        display_text: Plan text exactly as received, used in messages
        rows: Structured plan rows (empty when only text was available)
    """

    model_config = ConfigDict(frozen=True)

    backend: BackendKind
    raw_text: str = ""
    display_text: str = ""
    rows: tuple[PlanRow, ...] = ()

    @property
    def has_structured_rows(self) -> bool:
        return len(self.rows) > 0

    def contains(self, *needles: str) -> bool:
        """True if the lower-cased plan text contains any of `needles`."""
        return any(needle in self.raw_text for needle in needles)


class ErrorKind(str, Enum):
    """One kind per rule. Closed set."""

    FULL_SCAN = "full_scan"
    BAD_ACCESS_TYPE = "bad_access_type"
    TOO_MANY_ROWS = "too_many_rows"
    EXPENSIVE_OPERATION = "expensive_operation"
    NO_INDEX = "no_index"
    UNUSED_INDEX_CANDIDATE = "unused_index_candidate"


class ClassificationResult(BaseModel):
    """
    Verdict of a single rule on a single plan.

    `kind` is None for a pass. On failure the detail fields relevant to the
    kind are populated:
    - TOO_MANY_ROWS: observed_rows, threshold
    - EXPENSIVE_OPERATION: operations (row order, duplicates kept)
    - UNUSED_INDEX_CANDIDATE: possible_keys
    """

    model_config = ConfigDict(frozen=True)

    rule_id: str
    kind: ErrorKind | None = None
    observed_rows: int | None = None
    threshold: int | None = None
    operations: tuple[str, ...] = ()
    possible_keys: str | None = None

    @field_validator("operations", mode="before")
    @classmethod
    def _coerce_operations(cls, value: Any) -> Any:
        if isinstance(value, list):
            return tuple(value)
        return value

    @classmethod
    def ok(cls, rule_id: str) -> "ClassificationResult":
        return cls(rule_id=rule_id)

    @classmethod
    def fail(cls, rule_id: str, kind: ErrorKind, **detail: Any) -> "ClassificationResult":
        return cls(rule_id=rule_id, kind=kind, **detail)

    @property
    def passed(self) -> bool:
        return self.kind is None

    @property
    def failed(self) -> bool:
        return self.kind is not None

    @property
    def message(self) -> str:
        """Human-readable description of the verdict."""
        if self.kind is None:
            return f"Query plan satisfies {self.rule_id}"
        if self.kind is ErrorKind.FULL_SCAN:
            return "Query would perform a full table scan"
        if self.kind is ErrorKind.BAD_ACCESS_TYPE:
            return "Query uses a problematic access type (ALL or index)"
        if self.kind is ErrorKind.TOO_MANY_ROWS:
            return (
                f"Query would scan too many rows "
                f"({self.observed_rows} > threshold of {self.threshold})"
            )
        if self.kind is ErrorKind.EXPENSIVE_OPERATION:
            return f"Query uses expensive operations: {', '.join(self.operations)}"
        if self.kind is ErrorKind.NO_INDEX:
            return "Query does not use an available index"
        return f"Query has potential indexes ({self.possible_keys}) but none were used"

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "rule_id": self.rule_id,
            "passed": self.passed,
            "kind": self.kind.value if self.kind else None,
            "message": self.message,
            "observed_rows": self.observed_rows,
            "threshold": self.threshold,
            "operations": list(self.operations),
            "possible_keys": self.possible_keys,
        }
