"""
Rule: Access Type Quality

MySQL access types, best to worst:
- system/const: Single row lookup
- eq_ref: Unique index lookup per row
- ref: Non-unique index lookup
- range: Index range scan
- index: Full index scan
- ALL: Full table scan

Both "index" and "ALL" mean the planner touches a large share of the
table, even though "index" formally uses an index.

Without structured rows the rule falls back to a broad substring check that
also treats "index scan" as bad, which flags efficient Postgres index
scans as well.
"""

from __future__ import annotations

from typing import assert_never

from plancheck.models import BackendKind, ClassificationResult, ErrorKind, ExecutionPlan
from plancheck.rules.base import Rule
from plancheck.rules.registry import register_rule
from plancheck.rules.symptoms import BROAD_SCAN_MARKERS, contains_any

BAD_ACCESS_TYPES = frozenset({"ALL", "index"})


@register_rule
class AccessType(Rule):
    """Fail when any plan step uses access type ALL or index."""

    rule_id = "ACCESS_TYPE"
    error_kind = ErrorKind.BAD_ACCESS_TYPE
    description = "Detects problematic access types (ALL or index)"
    aliases = ("BAD_ACCESS_TYPE", "HAVE_GOOD_ACCESS_TYPE")

    def classify(self, plan: ExecutionPlan) -> ClassificationResult:
        if plan.has_structured_rows:
            for row in plan.rows:
                if row.access_type in BAD_ACCESS_TYPES:
                    return self._fail()
            return self._ok()

        backend = plan.backend
        if backend is BackendKind.MYSQL:
            # Structured EXPLAIN is the only source for MySQL
            return self._ok()
        elif (
            backend is BackendKind.POSTGRES
            or backend is BackendKind.SQLITE
            or backend is BackendKind.GENERIC
        ):
            if contains_any(plan.raw_text, BROAD_SCAN_MARKERS):
                return self._fail()
            return self._ok()
        else:
            assert_never(backend)


def classify_access_type(plan: ExecutionPlan) -> ClassificationResult:
    """Classify `plan` with the access type rule."""
    return AccessType().classify(plan)
