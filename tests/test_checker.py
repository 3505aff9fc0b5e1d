"""
Tests for the plan checker and the assertion helpers.

The checker must keep "the plan violates a rule" apart from "the plan could
not be analyzed".
"""

from __future__ import annotations

import pytest

from plancheck.assertions import (
    assert_avoids_expensive_operations,
    assert_full_scan,
    assert_good_access_type,
    assert_no_full_scan,
    assert_scans_fewer_than,
    assert_uses_available_indexes,
    assert_uses_index,
    assert_violates,
)
from plancheck.checker import PlanChecker, RawPlan, StaticPlanSource
from plancheck.config import Config, RuleSettings
from plancheck.exceptions import ConfigurationError, EvaluationError
from plancheck.models import BackendKind, ErrorKind
from plancheck.rules import FullScan, IndexUsage, Rule, RowCount

from conftest import (
    POSTGRES_INDEX_SCAN,
    POSTGRES_SEQ_SCAN,
    FailingSource,
    make_plan,
    mysql_row,
    static_checker,
)

SQL = "SELECT * FROM users WHERE email = 'a@example.com'"


class TestCheck:
    """PlanChecker.check()."""

    def test_failed_rule_is_a_result_not_an_error(self):
        checker = static_checker(BackendKind.POSTGRES, POSTGRES_SEQ_SCAN)

        outcome = checker.check(SQL, "full_scan")

        assert outcome.evaluated
        assert not outcome.passed
        assert outcome.error is None
        assert outcome.result.kind is ErrorKind.FULL_SCAN

    def test_passing_rule(self):
        checker = static_checker(BackendKind.POSTGRES, POSTGRES_INDEX_SCAN)

        outcome = checker.check(SQL, FullScan)

        assert outcome.passed
        assert outcome.rule_id == "FULL_SCAN"

    def test_source_failure_is_an_evaluation_error(self):
        source = FailingSource()
        checker = PlanChecker(source, config=Config())

        outcome = checker.check(SQL, "index_usage")

        assert not outcome.evaluated
        assert not outcome.passed
        assert outcome.result is None
        assert isinstance(outcome.error, EvaluationError)
        assert isinstance(outcome.error.cause, ConnectionError)
        assert outcome.error.sql == SQL

    def test_evaluation_error_from_source_gets_sql(self):
        checker = PlanChecker(FailingSource(EvaluationError("no connection")), config=Config())

        outcome = checker.check(SQL, "full_scan")

        assert outcome.error.message == "no connection"
        assert outcome.error.sql == SQL

    def test_crashing_rule_is_an_evaluation_error(self):
        class _Broken(Rule):
            rule_id = "BROKEN"
            error_kind = ErrorKind.FULL_SCAN

            def classify(self, plan):
                raise KeyError("boom")

        checker = static_checker(BackendKind.GENERIC, "anything")

        outcome = checker.check(SQL, _Broken())

        assert outcome.error is not None
        assert "BROKEN" in outcome.error.message
        assert isinstance(outcome.error.cause, KeyError)

    def test_threshold_is_passed_to_row_count(self):
        checker = static_checker(BackendKind.MYSQL, rows=[mysql_row(rows=500)])

        outcome = checker.check(SQL, "row_count", threshold=10)

        assert outcome.result.observed_rows == 500
        assert outcome.result.threshold == 10

    def test_row_count_default_threshold_from_checker_config(self):
        checker = static_checker(
            BackendKind.MYSQL,
            rows=[mysql_row(rows=500)],
            config=Config(default_row_threshold=1000),
        )

        assert checker.check(SQL, "row_count").passed

    def test_threshold_for_rule_without_one_is_rejected(self):
        checker = static_checker(BackendKind.MYSQL)

        with pytest.raises(ConfigurationError):
            checker.check(SQL, "full_scan", threshold=10)

    def test_unknown_rule_is_rejected(self):
        checker = static_checker(BackendKind.MYSQL)

        with pytest.raises(ConfigurationError):
            checker.check(SQL, "missing_rule")

    def test_disabled_rule_is_rejected(self):
        config = Config(rules={"FULL_SCAN": RuleSettings(enabled=False)})
        checker = static_checker(BackendKind.POSTGRES, POSTGRES_SEQ_SCAN, config=config)

        with pytest.raises(ConfigurationError, match="disabled"):
            checker.check(SQL, "full_scan")


class TestCheckAll:
    """PlanChecker.check_all()."""

    def test_runs_every_enabled_rule_once_per_plan(self):
        config = Config(rules={"EXPENSIVE_OPERATIONS": RuleSettings(enabled=False)})
        checker = static_checker(
            BackendKind.MYSQL,
            rows=[mysql_row("ALL", key=None, possible_keys=None, rows=500)],
            config=config,
        )

        outcomes = checker.check_all(SQL, threshold=10)

        verdicts = {o.rule_id: o.passed for o in outcomes}
        assert verdicts == {
            "FULL_SCAN": False,
            "ACCESS_TYPE": False,
            "ROW_COUNT": False,
            "INDEX_USAGE": False,
            "UNUSED_INDEX_CANDIDATE": True,
        }

    def test_selected_rules(self):
        checker = static_checker(BackendKind.POSTGRES, POSTGRES_INDEX_SCAN)

        outcomes = checker.check_all(SQL, rules=["full_scan", IndexUsage])

        assert [o.rule_id for o in outcomes] == ["FULL_SCAN", "INDEX_USAGE"]
        assert all(o.passed for o in outcomes)

    def test_source_failure_marks_every_outcome(self):
        source = FailingSource()
        checker = PlanChecker(source, config=Config())

        outcomes = checker.check_all(SQL, rules=["full_scan", "row_count"])

        assert source.calls == 1
        assert all(o.error is not None for o in outcomes)


class TestEvaluate:
    """PlanChecker.evaluate() on pre-normalized plans."""

    def test_evaluate_plan(self):
        checker = static_checker(BackendKind.GENERIC)
        plan = make_plan(BackendKind.MYSQL, rows=[mysql_row(rows=50)])

        outcome = checker.evaluate(plan, RowCount(threshold=10), sql=SQL)

        assert outcome.result.observed_rows == 50
        assert outcome.sql == SQL


class TestMessages:
    """CheckOutcome message rendering."""

    def test_failure_message_includes_query_and_plan(self):
        checker = static_checker(BackendKind.POSTGRES, POSTGRES_SEQ_SCAN)

        message = checker.check(SQL, "full_scan").failure_message()

        assert "Query would perform a full table scan" in message
        assert f"Query: {SQL}" in message
        # Plan text passes through unchanged, not lower-cased
        assert "Seq Scan on users" in message

    def test_negated_message(self):
        checker = static_checker(BackendKind.POSTGRES, POSTGRES_INDEX_SCAN)

        message = checker.check(SQL, "full_scan").failure_message_when_negated()

        assert message.startswith("expected the query to fail FULL_SCAN, but it passed")
        assert "Index Scan using index_users_on_email" in message

    def test_error_message_names_cause_without_verdict(self):
        checker = PlanChecker(FailingSource(), config=Config())

        message = checker.check(SQL, "full_scan").failure_message()

        assert "unexpected error" in message
        assert "connection refused" in message
        assert "full table scan" not in message

    def test_to_dict(self):
        checker = static_checker(BackendKind.MYSQL, rows=[mysql_row(rows=500)])

        data = checker.check(SQL, "row_count", threshold=10).to_dict()

        assert data["evaluated"] is True
        assert data["passed"] is False
        assert data["result"]["observed_rows"] == 500
        assert data["error"] is None


class TestAssertions:
    """Assertion helpers."""

    def test_full_scan_expectations(self):
        seq = static_checker(BackendKind.POSTGRES, POSTGRES_SEQ_SCAN)
        idx = static_checker(BackendKind.POSTGRES, POSTGRES_INDEX_SCAN)

        assert_full_scan(seq, SQL)
        assert_no_full_scan(idx, SQL)

        with pytest.raises(AssertionError, match="but it passed"):
            assert_full_scan(idx, SQL)
        with pytest.raises(AssertionError, match="full table scan"):
            assert_no_full_scan(seq, SQL)

    def test_accepts_plan_source(self):
        source = StaticPlanSource(RawPlan(BackendKind.POSTGRES, POSTGRES_INDEX_SCAN))

        outcome = assert_no_full_scan(source, SQL)

        assert outcome.passed

    def test_structured_assertions(self):
        good = static_checker(BackendKind.MYSQL, rows=[mysql_row()])

        assert_good_access_type(good, SQL)
        assert_scans_fewer_than(good, SQL, 10)
        assert_avoids_expensive_operations(good, SQL)
        assert_uses_index(good, SQL)
        assert_uses_available_indexes(good, SQL)

    def test_row_count_assertion_message(self):
        checker = static_checker(BackendKind.MYSQL, rows=[mysql_row(rows=500)])

        with pytest.raises(AssertionError, match=r"500 > threshold of 10"):
            assert_scans_fewer_than(checker, SQL, 10)

    def test_expensive_operations_assertion_message(self):
        checker = static_checker(BackendKind.MYSQL, rows=[mysql_row(extra="Using temporary")])

        with pytest.raises(AssertionError, match="Using temporary"):
            assert_avoids_expensive_operations(checker, SQL)

    def test_unused_index_assertion_message(self):
        checker = static_checker(
            BackendKind.MYSQL, rows=[mysql_row(key=None, possible_keys="idx_email")]
        )

        with pytest.raises(AssertionError, match=r"\(idx_email\)"):
            assert_uses_available_indexes(checker, SQL)

    def test_unanalyzable_query_raises_evaluation_error(self):
        checker = PlanChecker(FailingSource(), config=Config())

        with pytest.raises(EvaluationError):
            assert_uses_index(checker, SQL)

        # Not an AssertionError: the test errors instead of failing
        assert not issubclass(EvaluationError, AssertionError)

    def test_violates_any_rule(self):
        unindexed = static_checker(
            BackendKind.MYSQL,
            rows=[mysql_row("ALL", key=None, possible_keys="idx_email", rows=500, extra="Using filesort")],
        )

        assert_violates(unindexed, SQL, "access_type")
        assert_violates(unindexed, SQL, "expensive_operations")
        assert_violates(unindexed, SQL, IndexUsage)
        assert_violates(unindexed, SQL, "unused_index_candidate")
        outcome = assert_violates(unindexed, SQL, "row_count", threshold=10)

        assert outcome.result.observed_rows == 500

    def test_violates_reports_a_passing_query(self):
        checker = static_checker(BackendKind.MYSQL, rows=[mysql_row(rows=5)])

        with pytest.raises(AssertionError, match="expected the query to fail ROW_COUNT, but it passed"):
            assert_violates(checker, SQL, "row_count", threshold=10)

    def test_violates_raises_evaluation_error_for_unanalyzable_query(self):
        checker = PlanChecker(FailingSource(), config=Config())

        with pytest.raises(EvaluationError):
            assert_violates(checker, SQL, "index_usage")
