"""
Rule: Expensive Operations

'Using filesort' means MySQL must sort results without an index; for large
result sets the sort spills to disk. 'Using temporary' means an
intermediate temporary table was created (GROUP BY / DISTINCT / UNION on
non-indexed columns).

Unlike the row count and index rules this one does not stop at the first
offending step: it collects every occurrence in row order, duplicates
included, so the caller sees all of them.

Text-only plans get a loose fallback: any "sort" or "temp" substring fails
with a single synthetic label. MySQL only reports these operations through
the Extra column of structured rows and passes when none were obtainable.
"""

from __future__ import annotations

from typing import assert_never

from plancheck.models import BackendKind, ClassificationResult, ErrorKind, ExecutionPlan
from plancheck.rules.base import Rule
from plancheck.rules.registry import register_rule

EXPENSIVE_EXTRA_FLAGS = ("Using filesort", "Using temporary")
TEXT_FALLBACK_LABEL = "Sort or temporary operations"


@register_rule
class ExpensiveOperations(Rule):
    """Fail when the plan needs a filesort or a temporary table."""

    rule_id = "EXPENSIVE_OPERATIONS"
    error_kind = ErrorKind.EXPENSIVE_OPERATION
    description = "Detects filesort and temporary table usage"
    aliases = ("EXPENSIVE_OPERATION", "AVOID_EXPENSIVE_OPERATIONS")

    def classify(self, plan: ExecutionPlan) -> ClassificationResult:
        if plan.has_structured_rows:
            operations: list[str] = []
            for row in plan.rows:
                for flag in EXPENSIVE_EXTRA_FLAGS:
                    if row.has_extra(flag):
                        operations.append(flag)
            if operations:
                return self._fail(operations=tuple(operations))
            return self._ok()

        backend = plan.backend
        if backend is BackendKind.MYSQL:
            return self._ok()
        elif (
            backend is BackendKind.POSTGRES
            or backend is BackendKind.SQLITE
            or backend is BackendKind.GENERIC
        ):
            if plan.contains("sort", "temp"):
                return self._fail(operations=(TEXT_FALLBACK_LABEL,))
            return self._ok()
        else:
            assert_never(backend)


def classify_expensive_operations(plan: ExecutionPlan) -> ClassificationResult:
    """Classify `plan` with the expensive operations rule."""
    return ExpensiveOperations().classify(plan)
