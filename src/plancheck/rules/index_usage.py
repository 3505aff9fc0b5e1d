"""
Rule: Index Usage

With structured rows, every plan step must report a key. Without them,
"no index" is indistinguishable from "full scan", so the shared scan-symptom
heuristic decides. MySQL only reports index usage through structured rows
and passes when none were obtainable.
"""

from __future__ import annotations

from typing import assert_never

from plancheck.models import BackendKind, ClassificationResult, ErrorKind, ExecutionPlan
from plancheck.rules.base import Rule
from plancheck.rules.registry import register_rule
from plancheck.rules.symptoms import matches_scan_symptom


@register_rule
class IndexUsage(Rule):
    """Fail on the first plan step that uses no index."""

    rule_id = "INDEX_USAGE"
    error_kind = ErrorKind.NO_INDEX
    description = "Detects plan steps that do not use an index"
    aliases = ("NO_INDEX", "USE_INDEX")

    def classify(self, plan: ExecutionPlan) -> ClassificationResult:
        if plan.has_structured_rows:
            for row in plan.rows:
                if not row.uses_index:
                    return self._fail()
            return self._ok()

        backend = plan.backend
        if backend is BackendKind.MYSQL:
            return self._ok()
        elif (
            backend is BackendKind.POSTGRES
            or backend is BackendKind.SQLITE
            or backend is BackendKind.GENERIC
        ):
            if matches_scan_symptom(plan.raw_text, backend):
                return self._fail()
            return self._ok()
        else:
            assert_never(backend)


def classify_index_usage(plan: ExecutionPlan) -> ClassificationResult:
    """Classify `plan` with the index usage rule."""
    return IndexUsage().classify(plan)
