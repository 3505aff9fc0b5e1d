"""
Text heuristics shared by the rules that fall back to plan text.

Backends without structured EXPLAIN rows only give us a rendered plan, so
"full scan" and "no index" are detected from the same substrings.
"""

from __future__ import annotations

from typing import assert_never

from plancheck.models import BackendKind

GENERIC_SCAN_MARKERS = ("full scan", "table scan", "seq scan")

# Access-type fallback also counts index scans, Postgres ones included.
BROAD_SCAN_MARKERS = GENERIC_SCAN_MARKERS + ("index scan",)


def contains_any(raw_text: str, markers: tuple[str, ...]) -> bool:
    return any(marker in raw_text for marker in markers)


def matches_scan_symptom(raw_text: str, backend: BackendKind) -> bool:
    """
    Check lower-cased plan text for signs of an unindexed table scan.

    - postgres: "seq scan" present and no "index scan" anywhere
    - sqlite: "scan table" present and no "search table" anywhere
    - mysql / generic: any of "full scan", "table scan", "seq scan"

    The postgres and sqlite checks look at the whole text, not per node, so
    a plan mixing scan kinds across nodes does not match.
    """
    if backend is BackendKind.POSTGRES:
        return "seq scan" in raw_text and "index scan" not in raw_text
    elif backend is BackendKind.SQLITE:
        return "scan table" in raw_text and "search table" not in raw_text
    elif backend is BackendKind.MYSQL or backend is BackendKind.GENERIC:
        return contains_any(raw_text, GENERIC_SCAN_MARKERS)
    else:
        assert_never(backend)
