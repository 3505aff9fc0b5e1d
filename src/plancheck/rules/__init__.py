"""Plan rules module - one classifier per check."""

from plancheck.rules.base import Rule, RuleConfig
from plancheck.rules.registry import RuleRegistry, get_registry, register_rule
from plancheck.rules.symptoms import matches_scan_symptom
from plancheck.rules.full_scan import FullScan, classify_full_scan, classify_table_scan
from plancheck.rules.access_type import AccessType, classify_access_type
from plancheck.rules.row_count import RowCount, RowCountConfig, classify_row_count
from plancheck.rules.expensive_operations import (
    ExpensiveOperations,
    classify_expensive_operations,
)
from plancheck.rules.index_usage import IndexUsage, classify_index_usage
from plancheck.rules.unused_index import (
    UnusedIndexCandidate,
    classify_unused_index_candidate,
)

__all__ = [
    "Rule",
    "RuleConfig",
    "RuleRegistry",
    "get_registry",
    "register_rule",
    "matches_scan_symptom",
    # Individual rules
    "AccessType",
    "ExpensiveOperations",
    "FullScan",
    "IndexUsage",
    "RowCount",
    "RowCountConfig",
    "UnusedIndexCandidate",
    # Function forms
    "classify_access_type",
    "classify_expensive_operations",
    "classify_full_scan",
    "classify_index_usage",
    "classify_row_count",
    "classify_table_scan",
    "classify_unused_index_candidate",
]
