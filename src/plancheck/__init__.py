"""plancheck - classify query execution plans against static efficiency rules."""

__version__ = "0.1.0"
__license__ = "MIT"

# Exception hierarchy (import first so other modules can use it)
from plancheck.exceptions import (
    PlanCheckError,
    EvaluationError,
    ConfigurationError,
)

from plancheck.models import (
    BackendKind,
    ClassificationResult,
    ErrorKind,
    ExecutionPlan,
    PlanRow,
)
from plancheck.normalizer import normalize
from plancheck.rules import (
    AccessType,
    ExpensiveOperations,
    FullScan,
    IndexUsage,
    Rule,
    RowCount,
    UnusedIndexCandidate,
    classify_access_type,
    classify_expensive_operations,
    classify_full_scan,
    classify_index_usage,
    classify_row_count,
    classify_table_scan,
    classify_unused_index_candidate,
    get_registry,
    matches_scan_symptom,
)
from plancheck.checker import (
    CheckOutcome,
    PlanChecker,
    PlanSource,
    RawPlan,
    StaticPlanSource,
)
from plancheck.config import Config, get_config

__all__ = [
    # Exception hierarchy
    "PlanCheckError",
    "EvaluationError",
    "ConfigurationError",
    # Models
    "BackendKind",
    "ClassificationResult",
    "ErrorKind",
    "ExecutionPlan",
    "PlanRow",
    # Normalization
    "normalize",
    # Rules
    "Rule",
    "AccessType",
    "ExpensiveOperations",
    "FullScan",
    "IndexUsage",
    "RowCount",
    "UnusedIndexCandidate",
    "classify_access_type",
    "classify_expensive_operations",
    "classify_full_scan",
    "classify_index_usage",
    "classify_row_count",
    "classify_table_scan",
    "classify_unused_index_candidate",
    "matches_scan_symptom",
    "get_registry",
    # Checking
    "CheckOutcome",
    "PlanChecker",
    "PlanSource",
    "RawPlan",
    "StaticPlanSource",
    # Configuration
    "Config",
    "get_config",
    # Metadata
    "__version__",
    "__license__",
]
