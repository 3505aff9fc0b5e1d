"""
Assertion helpers for test suites.

Each helper checks one query against one rule:
- rule violated: raises AssertionError with the failure message (query text
  and EXPLAIN output included), so the test FAILS
- plan could not be analyzed: raises EvaluationError, so the test ERRORS
  instead of reporting a verdict that was never reached

Example (pytest):
    from plancheck.assertions import assert_uses_index

    def test_lookup_by_email_is_indexed(plan_checker):
        assert_uses_index(plan_checker, "SELECT * FROM users WHERE email = 'a@b.c'")
"""

from __future__ import annotations

from plancheck.checker import CheckOutcome, PlanChecker, PlanSource, RuleSpec


def _checker(target: PlanChecker | PlanSource) -> PlanChecker:
    if isinstance(target, PlanChecker):
        return target
    return PlanChecker(target)


def _run(
    target: PlanChecker | PlanSource,
    sql: str,
    rule: RuleSpec,
    *,
    expect_pass: bool = True,
    threshold: int | None = None,
) -> CheckOutcome:
    outcome = _checker(target).check(sql, rule, threshold=threshold)

    if outcome.error is not None:
        raise outcome.error

    if expect_pass and not outcome.passed:
        raise AssertionError(outcome.failure_message())
    if not expect_pass and outcome.passed:
        raise AssertionError(outcome.failure_message_when_negated())
    return outcome


def assert_full_scan(target: PlanChecker | PlanSource, sql: str) -> CheckOutcome:
    """Assert the query DOES perform a full table scan."""
    return _run(target, sql, "FULL_SCAN", expect_pass=False)


def assert_no_full_scan(target: PlanChecker | PlanSource, sql: str) -> CheckOutcome:
    """Assert the query does not perform a full table scan."""
    return _run(target, sql, "FULL_SCAN")


def assert_good_access_type(target: PlanChecker | PlanSource, sql: str) -> CheckOutcome:
    """Assert no plan step uses access type ALL or index."""
    return _run(target, sql, "ACCESS_TYPE")


def assert_scans_fewer_than(
    target: PlanChecker | PlanSource,
    sql: str,
    threshold: int,
) -> CheckOutcome:
    """Assert no plan step estimates more than `threshold` rows."""
    return _run(target, sql, "ROW_COUNT", threshold=threshold)


def assert_avoids_expensive_operations(target: PlanChecker | PlanSource, sql: str) -> CheckOutcome:
    """Assert the plan needs neither a filesort nor a temporary table."""
    return _run(target, sql, "EXPENSIVE_OPERATIONS")


def assert_uses_index(target: PlanChecker | PlanSource, sql: str) -> CheckOutcome:
    """Assert every plan step uses an index."""
    return _run(target, sql, "INDEX_USAGE")


def assert_uses_available_indexes(target: PlanChecker | PlanSource, sql: str) -> CheckOutcome:
    """Assert the planner used an index wherever it listed candidates."""
    return _run(target, sql, "UNUSED_INDEX_CANDIDATE")


def assert_violates(
    target: PlanChecker | PlanSource,
    sql: str,
    rule: RuleSpec,
    threshold: int | None = None,
) -> CheckOutcome:
    """
    Assert the query DOES violate `rule`.

    The negated form of every helper above, for any rule name, class or
    instance:

        assert_violates(checker, "SELECT * FROM users", "index_usage")
        assert_violates(checker, "SELECT * FROM users", "row_count", threshold=10)
    """
    return _run(target, sql, rule, expect_pass=False, threshold=threshold)
