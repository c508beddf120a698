"""Graded equivalence between two executed query results.

Scores are tiered so that the value alone tells which check failed:

=========================  ======================
outcome                    score
=========================  ======================
either query failed        0.0
different column sets      0.25
different row counts       0.5 + 0.25 * min/max
same shape, other values   0.75
identical                  1.0
=========================  ======================
"""

import asyncio
import json
from typing import Any, List, Optional

import logfire

from .executor import QueryExecutor, TimeBound
from .models import ComparisonOutcome, QueryResult
from .normalize import extract_query


def _serialized(data: List[List[Any]]) -> str:
    """JSON text of the cells; booleans stay distinct from numbers and mapping key order counts."""
    return json.dumps(data, default=str)


def compare_results(expected: QueryResult, actual: QueryResult) -> ComparisonOutcome:
    """
    Score how closely ``actual`` reproduces ``expected``.

    Args:
        expected: Result of the reference query
        actual: Result of the candidate query

    Returns:
        ComparisonOutcome with a score in [0, 1] and a human readable reason
    """
    if not expected.success or not actual.success:
        reason = (
            f"generated query failed: {actual.error}"
            if expected.success
            else f"expected query failed: {expected.error}"
        )
        return ComparisonOutcome(score=0.0, reason=reason)

    expected_cols = expected.columns or []
    actual_cols = actual.columns or []
    expected_set, actual_set = set(expected_cols), set(actual_cols)
    missing = [c for c in expected_cols if c not in actual_set]
    extra = [c for c in actual_cols if c not in expected_set]

    if missing or extra:
        return ComparisonOutcome(
            score=0.25,
            reason=f"column mismatch: missing [{', '.join(missing)}], extra [{', '.join(extra)}]",
        )

    if expected.row_count != actual.row_count:
        ratio = min(expected.row_count, actual.row_count) / max(
            expected.row_count, actual.row_count
        )
        return ComparisonOutcome(
            score=0.5 + ratio * 0.25,
            reason=f"row count mismatch: expected {expected.row_count}, got {actual.row_count}",
        )

    if _serialized(expected.data or []) == _serialized(actual.data or []):
        return ComparisonOutcome(score=1.0, reason="exact match")

    return ComparisonOutcome(score=0.75, reason="same structure but different values")


async def _execute_within(
    executor: QueryExecutor,
    query: str,
    *,
    start_time: Optional[TimeBound],
    end_time: Optional[TimeBound],
    timeout: Optional[float],
) -> QueryResult:
    try:
        return await asyncio.wait_for(
            executor.execute(query, start_time=start_time, end_time=end_time), timeout
        )
    except asyncio.TimeoutError:
        return QueryResult.failure(f"query timed out after {timeout}s")


async def compare_queries(
    expected_query: str,
    actual_query: str,
    *,
    executor: Optional[QueryExecutor] = None,
    start_time: Optional[TimeBound] = None,
    end_time: Optional[TimeBound] = None,
    timeout: Optional[float] = None,
) -> ComparisonOutcome:
    """
    Execute the reference and candidate queries concurrently over one window and compare.

    Both queries are fence-stripped first. ``timeout`` bounds each execution;
    a query that runs past it counts as failed.
    """
    executor = executor or QueryExecutor()

    with logfire.span("Comparing APL queries", expected=expected_query, actual=actual_query):
        expected, actual = await asyncio.gather(
            _execute_within(
                executor,
                extract_query(expected_query),
                start_time=start_time,
                end_time=end_time,
                timeout=timeout,
            ),
            _execute_within(
                executor,
                extract_query(actual_query),
                start_time=start_time,
                end_time=end_time,
                timeout=timeout,
            ),
        )
        outcome = compare_results(expected, actual)
        logfire.info("Comparison scored", score=outcome.score, reason=outcome.reason)
        return outcome
