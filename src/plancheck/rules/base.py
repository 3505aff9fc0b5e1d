"""
Base class for plan classification rules.

All rules must inherit from Rule and implement classify(). A rule is a pure
function of an ExecutionPlan (plus its frozen config): no I/O, no shared
mutable state, the same plan always yields the same ClassificationResult.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from plancheck.exceptions import ConfigurationError
from plancheck.models import ClassificationResult, ErrorKind, ExecutionPlan


class RuleConfig(BaseModel):
    """
    Base configuration for all rules.

    Rules can define their own config schema by subclassing this. Whether a
    rule runs at all is decided by Config.rules, not here.

    Example:
        class RowCountConfig(RuleConfig):
            threshold: int = 1000
    """

    model_config = ConfigDict(frozen=True, extra="forbid")


class Rule(ABC):
    """
    Abstract base class for plan rules.

    Attributes:
        rule_id: Unique identifier, UPPER_SNAKE_CASE (e.g., "FULL_SCAN")
        version: Semver string, bump when detection logic changes
        error_kind: The ErrorKind reported when the rule fails
        description: One-line description for documentation
        aliases: Additional names the registry resolves to this rule
        config_schema: Pydantic model for rule configuration
    """

    rule_id: str
    version: str = "1.0.0"
    error_kind: ErrorKind
    description: str = ""
    aliases: tuple[str, ...] = ()

    config_schema: type[RuleConfig] = RuleConfig

    def __init__(self, config: RuleConfig | dict[str, Any] | None = None) -> None:
        """
        Initialize the rule with configuration.

        Args:
            config: RuleConfig instance, dict, or None for defaults.
                    A dict is validated against config_schema.

        Raises:
            ConfigurationError: If the dict does not validate.
        """
        if config is None:
            self.config = self.config_schema()
        elif isinstance(config, dict):
            try:
                self.config = self.config_schema(**config)
            except ValidationError as e:
                raise ConfigurationError(
                    f"Invalid configuration for rule '{self.rule_id}': {e}",
                    config_key=self.rule_id,
                ) from e
        else:
            self.config = config

    @abstractmethod
    def classify(self, plan: ExecutionPlan) -> ClassificationResult:
        """
        Classify a plan.

        Returns:
            A passing result, or a failing one carrying self.error_kind and
            the detail fields for that kind.
        """
        pass

    def _ok(self) -> ClassificationResult:
        return ClassificationResult.ok(self.rule_id)

    def _fail(self, **detail: Any) -> ClassificationResult:
        return ClassificationResult.fail(self.rule_id, self.error_kind, **detail)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(rule_id={self.rule_id!r}, version={self.version!r})"
