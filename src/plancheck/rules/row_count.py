"""
Rule: Row Count Threshold

Fails when a single plan step expects to examine more rows than the caller
allows. The first offending step wins; estimates are never summed across
steps, and a step exactly at the threshold passes.

Only structured rows carry row estimates. Text-only plans pass vacuously.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from plancheck.config import get_config
from plancheck.models import ClassificationResult, ErrorKind, ExecutionPlan
from plancheck.rules.base import Rule, RuleConfig
from plancheck.rules.registry import register_rule


class RowCountConfig(RuleConfig):
    """
    Configuration for row count checks.

    Attributes:
        threshold: Maximum estimated rows any single step may examine
    """

    threshold: int = Field(
        default=1_000,
        ge=1,
        strict=True,
        description="Maximum estimated rows per plan step",
    )


@register_rule
class RowCount(Rule):
    """Fail on the first plan step estimating more rows than the threshold."""

    rule_id = "ROW_COUNT"
    error_kind = ErrorKind.TOO_MANY_ROWS
    description = "Detects plan steps examining more rows than a threshold"
    aliases = ("TOO_MANY_ROWS", "SCAN_FEWER_THAN")
    config_schema = RowCountConfig

    def __init__(
        self,
        config: RuleConfig | dict[str, Any] | None = None,
        *,
        threshold: int | None = None,
    ) -> None:
        """
        Initialize the rule.

        Args:
            config: Configuration object or dict
            threshold: Shorthand for {"threshold": threshold}. When neither
                is given, Config.default_row_threshold is used.
        """
        if config is None:
            if threshold is None:
                threshold = get_config().default_row_threshold
            config = {"threshold": threshold}
        super().__init__(config)

    @property
    def threshold(self) -> int:
        config: RowCountConfig = self.config  # type: ignore[assignment]
        return config.threshold

    def classify(self, plan: ExecutionPlan) -> ClassificationResult:
        threshold = self.threshold
        for row in plan.rows:
            if row.estimated_rows is not None and row.estimated_rows > threshold:
                return self._fail(observed_rows=row.estimated_rows, threshold=threshold)
        return self._ok()


def classify_row_count(plan: ExecutionPlan, threshold: int) -> ClassificationResult:
    """
    Classify `plan` against a row threshold.

    Raises:
        ConfigurationError: If threshold is not a positive integer
    """
    return RowCount(threshold=threshold).classify(plan)
