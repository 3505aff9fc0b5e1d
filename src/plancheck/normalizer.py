"""
Plan normalizer.

Converts backend-specific EXPLAIN output into one canonical ExecutionPlan.

Structured rows use MySQL's tabular EXPLAIN column names, read
case-sensitively:
- type: Access type (ALL, index, range, ref, eq_ref, const, system)
- key: Index actually used
- possible_keys: Indexes that could be used
- rows: Estimated rows to examine
- Extra: Additional information ("Using where; Using filesort")

The literal string "NULL" is how several drivers render SQL NULL in these
columns, so it is folded into None here and nowhere else.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from plancheck.models import BackendKind, ExecutionPlan, PlanRow

logger = logging.getLogger(__name__)

NULL_SENTINEL = "NULL"


def normalize(
    backend: BackendKind,
    raw_text: str | None,
    structured_rows: Iterable[Any] | None = None,
) -> ExecutionPlan:
    """
    Build an ExecutionPlan from raw EXPLAIN output.

    Args:
        backend: Backend the output came from (supplied by the caller)
        raw_text: Plan rendered as text; lower-cased once here
        structured_rows: Optional EXPLAIN row mappings. Entries that are not
            mappings are dropped, missing columns are treated as absent.

    Returns:
        Immutable ExecutionPlan
    """
    text = raw_text or ""
    rows = tuple(_iter_plan_rows(structured_rows)) if structured_rows else ()

    logger.debug(
        "Normalized %s plan: %d structured row(s), %d chars of text",
        backend.value,
        len(rows),
        len(text),
    )

    return ExecutionPlan(
        backend=backend,
        raw_text=text.lower(),
        display_text=text,
        rows=rows,
    )


def _iter_plan_rows(structured_rows: Iterable[Any]) -> Iterable[PlanRow]:
    for index, row in enumerate(structured_rows):
        if not isinstance(row, Mapping):
            logger.debug("Dropping malformed plan row %d: %r", index, row)
            continue
        try:
            yield parse_row(row)
        except ValidationError as e:
            logger.debug("Dropping malformed plan row %d: %s", index, e)


def parse_row(row: Mapping[str, Any]) -> PlanRow:
    """Map one EXPLAIN row mapping onto a PlanRow."""
    return PlanRow(
        access_type=_parse_str(row.get("type")),
        key=_parse_str(row.get("key")),
        possible_keys=_parse_str(row.get("possible_keys")),
        estimated_rows=_parse_count(row.get("rows")),
        extra=_parse_extra(row.get("Extra")),
    )


def _parse_str(value: Any) -> str | None:
    """Parse a nullable string column ("NULL" and "" mean absent)."""
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    text = str(value).strip()
    if not text or text == NULL_SENTINEL:
        return None
    return text


def _parse_count(value: Any) -> int | None:
    """Parse a row estimate that might be a string, float or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        count = int(value)
    except (ValueError, TypeError, OverflowError):
        return None
    return count if count >= 0 else None


def _parse_extra(value: Any) -> tuple[str, ...]:
    """Split the Extra column into individual flags."""
    if value is None:
        return ()
    if isinstance(value, (set, frozenset)):
        parts = sorted(str(item) for item in value)
    elif isinstance(value, (list, tuple)):
        parts = [str(item) for item in value]
    else:
        text = _parse_str(value)
        if text is None:
            return ()
        parts = text.split(";")
    return tuple(part.strip() for part in parts if part and part.strip())
