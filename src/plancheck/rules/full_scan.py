"""
Rule: Full Table Scan

Detects plans that read every row of a table instead of going through an
index.

Detection order:
- mysql: "type=all" / "type: all" in the text, then structured rows with
  type ALL, then (only when no rows were obtainable) "full table scan",
  "filesort" or "temporary table" in the text
- other backends with structured rows: any row with type ALL
- other backends: the shared scan-symptom heuristic

Also registered as TABLE_SCAN.
"""

from __future__ import annotations

from plancheck.models import BackendKind, ClassificationResult, ErrorKind, ExecutionPlan
from plancheck.rules.base import Rule
from plancheck.rules.registry import register_rule
from plancheck.rules.symptoms import matches_scan_symptom

MYSQL_ACCESS_ALL_MARKERS = ("type=all", "type: all")
MYSQL_TEXT_FALLBACK_MARKERS = ("full table scan", "filesort", "temporary table")


@register_rule
class FullScan(Rule):
    """Fail when the plan performs a full table scan."""

    rule_id = "FULL_SCAN"
    error_kind = ErrorKind.FULL_SCAN
    description = "Detects full table scans (type ALL, Seq Scan, SCAN TABLE)"
    aliases = ("TABLE_SCAN", "RAISE_FULL_SCAN_ERROR")

    def classify(self, plan: ExecutionPlan) -> ClassificationResult:
        if plan.backend is BackendKind.MYSQL:
            return self._classify_mysql(plan)

        if plan.has_structured_rows:
            return self._classify_rows(plan)

        if matches_scan_symptom(plan.raw_text, plan.backend):
            return self._fail()
        return self._ok()

    def _classify_mysql(self, plan: ExecutionPlan) -> ClassificationResult:
        if plan.contains(*MYSQL_ACCESS_ALL_MARKERS):
            return self._fail()

        if plan.has_structured_rows:
            return self._classify_rows(plan)

        if plan.contains(*MYSQL_TEXT_FALLBACK_MARKERS):
            return self._fail()
        return self._ok()

    def _classify_rows(self, plan: ExecutionPlan) -> ClassificationResult:
        for row in plan.rows:
            if row.access_type == "ALL":
                return self._fail()
        return self._ok()


def classify_full_scan(plan: ExecutionPlan) -> ClassificationResult:
    """Classify `plan` with the full scan rule."""
    return FullScan().classify(plan)


classify_table_scan = classify_full_scan
