"""
Plan checker - runs rules against the plan of a query.

The checker is the seam between the pure classification engine and the
outside world:

    PlanSource.explain(sql) -> RawPlan -> normalize() -> Rule.classify()

It keeps two negative outcomes apart:
- the rule failed: the plan was analyzed and violates the rule
  (CheckOutcome.result is a failed ClassificationResult)
- the plan could not be analyzed at all: no verdict exists
  (CheckOutcome.error is an EvaluationError)

Usage:
    from plancheck import PlanChecker
    from plancheck.db import SQLAlchemyPlanSource

    checker = PlanChecker(SQLAlchemyPlanSource(engine))
    outcome = checker.check("SELECT * FROM users WHERE email = 'a@b.c'", "index_usage")
    if not outcome.passed:
        print(outcome.failure_message())
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, Union, runtime_checkable

from plancheck.config import Config, get_config
from plancheck.exceptions import ConfigurationError, EvaluationError
from plancheck.models import BackendKind, ClassificationResult, ExecutionPlan
from plancheck.normalizer import normalize
from plancheck.rules import Rule, RuleRegistry, get_registry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawPlan:
    """
    EXPLAIN output as handed over by a plan source.

    Attributes:
        backend: Backend the plan came from
        text: Plan rendered as text, exactly as the database produced it
        rows: Structured EXPLAIN rows, when the backend has them
    """

    backend: BackendKind
    text: str
    rows: Sequence[Mapping[str, Any]] | None = None


@runtime_checkable
class PlanSource(Protocol):
    """Anything that can produce the EXPLAIN output for a query."""

    def explain(self, sql: str) -> RawPlan:
        ...


class StaticPlanSource:
    """Plan source that returns the same pre-captured plan for any query."""

    def __init__(self, plan: RawPlan) -> None:
        self.plan = plan

    def explain(self, sql: str) -> RawPlan:
        return self.plan


RuleSpec = Union[Rule, type[Rule], str]


def _takes_threshold(rule_cls: type[Rule]) -> bool:
    return "threshold" in rule_cls.config_schema.model_fields


@dataclass(frozen=True)
class CheckOutcome:
    """
    Result of checking one query against one rule.

    Exactly one of `result` and `error` is set.
    """

    sql: str
    rule_id: str
    plan_text: str = ""
    result: ClassificationResult | None = None
    error: EvaluationError | None = None

    @property
    def evaluated(self) -> bool:
        """The plan was analyzed and a verdict exists."""
        return self.error is None and self.result is not None

    @property
    def passed(self) -> bool:
        return self.evaluated and self.result is not None and self.result.passed

    def _context(self) -> str:
        return f"Query: {self.sql}\nEXPLAIN output: {self.plan_text}"

    def failure_message(self) -> str:
        """Message for an expectation that the query satisfies the rule."""
        if self.error is not None:
            return f"expected the query to pass {self.rule_id} but got unexpected error: {self.error.message}"
        if self.result is not None and self.result.failed:
            return f"expected the query to pass but failed: {self.result.message}\n{self._context()}"
        return f"expected the query to pass {self.rule_id} but it failed\n{self._context()}"

    def failure_message_when_negated(self) -> str:
        """Message for an expectation that the query violates the rule."""
        if self.error is not None:
            return f"expected the query to fail {self.rule_id} but got unexpected error: {self.error.message}"
        return f"expected the query to fail {self.rule_id}, but it passed\n{self._context()}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "sql": self.sql,
            "rule_id": self.rule_id,
            "evaluated": self.evaluated,
            "passed": self.passed,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error.to_dict() if self.error else None,
        }


class PlanChecker:
    """
    Runs plan rules for queries obtained through a PlanSource.

    Args:
        source: Where EXPLAIN output comes from
        config: Configuration (defaults to get_config())
        registry: Rule registry used to resolve names (defaults to global)
    """

    def __init__(
        self,
        source: PlanSource,
        config: Config | None = None,
        registry: RuleRegistry | None = None,
    ) -> None:
        self.source = source
        self.config = config or get_config()
        self.registry = registry or get_registry()

    def resolve_rule(self, rule: RuleSpec, threshold: int | None = None) -> Rule:
        """
        Turn a rule name, class or instance into a ready rule instance.

        Raises:
            ConfigurationError: Unknown name, invalid threshold, a threshold
                given to a rule that takes none, or a disabled rule
        """
        if isinstance(rule, Rule):
            instance = rule
        else:
            rule_cls = self.registry.resolve(rule) if isinstance(rule, str) else rule
            if threshold is not None:
                instance = rule_cls({"threshold": threshold})
            elif _takes_threshold(rule_cls):
                instance = rule_cls({"threshold": self.config.default_row_threshold})
            else:
                instance = rule_cls()

        if not self.config.is_rule_enabled(instance.rule_id):
            raise ConfigurationError(
                f"Rule '{instance.rule_id}' is disabled in configuration",
                config_key=instance.rule_id,
            )
        return instance

    def fetch_plan(self, sql: str) -> ExecutionPlan:
        """
        Obtain and normalize the plan for `sql`.

        Raises:
            EvaluationError: If the source or the normalizer fails
        """
        try:
            raw = self.source.explain(sql)
            return normalize(raw.backend, raw.text, raw.rows)
        except EvaluationError as e:
            if e.sql is None:
                e.sql = sql
            raise
        except Exception as e:
            raise EvaluationError(
                f"Could not obtain EXPLAIN output: {type(e).__name__}: {e}",
                cause=e,
                sql=sql,
            ) from e

    def check(self, sql: str, rule: RuleSpec, threshold: int | None = None) -> CheckOutcome:
        """Check `sql` against a single rule."""
        instance = self.resolve_rule(rule, threshold)
        try:
            plan = self.fetch_plan(sql)
        except EvaluationError as e:
            logger.warning("Could not evaluate %s: %s", instance.rule_id, e.message)
            return CheckOutcome(sql=sql, rule_id=instance.rule_id, error=e)
        return self.evaluate(plan, instance, sql=sql)

    def check_all(
        self,
        sql: str,
        rules: Sequence[RuleSpec] | None = None,
        threshold: int | None = None,
    ) -> list[CheckOutcome]:
        """
        Check `sql` against several rules, fetching the plan once.

        Without `rules`, every registered rule enabled in config runs. The
        threshold only applies to rules that take one.
        """
        if rules is None:
            instances = [
                self._instantiate_default(rule_cls, threshold)
                for rule_cls in self.registry.all()
                if self.config.is_rule_enabled(rule_cls.rule_id)
            ]
        else:
            instances = [self._instantiate_default(rule, threshold) for rule in rules]

        try:
            plan = self.fetch_plan(sql)
        except EvaluationError as e:
            logger.warning("Could not evaluate query: %s", e.message)
            return [CheckOutcome(sql=sql, rule_id=r.rule_id, error=e) for r in instances]

        return [self.evaluate(plan, instance, sql=sql) for instance in instances]

    def _instantiate_default(self, rule: RuleSpec, threshold: int | None) -> Rule:
        if isinstance(rule, Rule):
            return self.resolve_rule(rule)
        rule_cls = self.registry.resolve(rule) if isinstance(rule, str) else rule
        return self.resolve_rule(rule_cls, threshold if _takes_threshold(rule_cls) else None)

    def evaluate(
        self,
        plan: ExecutionPlan,
        rule: RuleSpec,
        *,
        sql: str = "",
        threshold: int | None = None,
    ) -> CheckOutcome:
        """Run one rule on an already-normalized plan."""
        instance = self.resolve_rule(rule, threshold)
        try:
            result = instance.classify(plan)
        except Exception as e:
            error = EvaluationError(
                f"Rule '{instance.rule_id}' v{instance.version} failed: {type(e).__name__}: {e}",
                cause=e,
                sql=sql or None,
            )
            logger.warning("%s", error.message)
            return CheckOutcome(sql=sql, rule_id=instance.rule_id, plan_text=plan.display_text, error=error)

        logger.debug(
            "%s on %s plan: %s",
            instance.rule_id,
            plan.backend.value,
            result.kind.value if result.kind else "pass",
        )
        return CheckOutcome(
            sql=sql,
            rule_id=instance.rule_id,
            plan_text=plan.display_text,
            result=result,
        )
