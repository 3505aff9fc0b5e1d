"""
Package-level exception hierarchy for plancheck.

All exceptions inherit from PlanCheckError, enabling:
- Catching all plancheck errors with a single except clause
- Context fields for debugging (config_key, sql, cause)
- Structured serialization via to_dict() for JSON error output

Rule violations are NOT exceptions. A rule that finds a full scan returns a
failed ClassificationResult; exceptions are reserved for the cases where no
verdict could be produced at all.

Hierarchy:
    PlanCheckError
    ├── EvaluationError      – The plan could not be obtained or analyzed
    └── ConfigurationError   – Invalid configuration, threshold or rule name
"""

from __future__ import annotations

from typing import Any


class PlanCheckError(Exception):
    """
    Base exception for all plancheck errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON error output."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
        }


class EvaluationError(PlanCheckError):
    """
    The query could not be analyzed.

    Raised (or carried on a CheckOutcome) when the EXPLAIN output could not
    be obtained or normalized: unreachable connection, invalid SQL, a plan
    source that blew up. It never stands in for a rule verdict.

    Attributes:
        cause: The underlying exception, if any.
        sql: The query text being evaluated, if known.
    """

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        sql: str | None = None,
    ) -> None:
        self.cause = cause
        self.sql = sql
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["sql"] = self.sql
        result["cause_type"] = type(self.cause).__name__ if self.cause else None
        result["cause_message"] = str(self.cause) if self.cause else None
        return result


class ConfigurationError(PlanCheckError):
    """
    Error in plancheck configuration.

    Covers unparseable config files, non-positive row thresholds, unknown
    rule names and attempts to run a rule disabled in config.

    Attributes:
        config_key: The configuration key that caused the error (if known).
    """

    def __init__(self, message: str, config_key: str | None = None) -> None:
        self.config_key = config_key
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["config_key"] = self.config_key
        return result
