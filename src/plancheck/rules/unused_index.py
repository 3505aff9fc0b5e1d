"""
Rule: Unused Index Candidate

Detect when possible_keys exists but key is NULL: the planner found indexes
that could help and decided not to use any of them.

Common causes:
- Query doesn't match the index columns properly
- Statistics are stale
- Small table where a full scan is cheaper

Only structured rows carry possible_keys; text-only plans pass vacuously.
"""

from __future__ import annotations

from plancheck.models import ClassificationResult, ErrorKind, ExecutionPlan
from plancheck.rules.base import Rule
from plancheck.rules.registry import register_rule


@register_rule
class UnusedIndexCandidate(Rule):
    """Fail on the first step that had an index candidate but used no key."""

    rule_id = "UNUSED_INDEX_CANDIDATE"
    error_kind = ErrorKind.UNUSED_INDEX_CANDIDATE
    description = "Detects available indexes the planner chose not to use"
    aliases = ("USE_AVAILABLE_INDEXES",)

    def classify(self, plan: ExecutionPlan) -> ClassificationResult:
        for row in plan.rows:
            if not row.uses_index and row.has_index_candidate:
                return self._fail(possible_keys=row.possible_keys)
        return self._ok()


def classify_unused_index_candidate(plan: ExecutionPlan) -> ClassificationResult:
    """Classify `plan` with the unused index candidate rule."""
    return UnusedIndexCandidate().classify(plan)
