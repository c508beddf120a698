"""
Example: Scoring SPL to APL Translations
=========================================

Demonstrates the evaluation flow end to end:
- Loading translation cases and recorded model outputs from YAML
- Static scoring (exact match, key operators, dataset, time filter)
- Result equivalence against the query endpoint, when configured
- Comparing two queries directly

Set AXIOM_PLAY_URL and AXIOM_PLAY_TOKEN (or put them in .env) to execute
queries; without them only the static evaluators run.

Run: python -m examples.spl_to_apl.run
"""

import asyncio
from pathlib import Path

from apleval import (
    QueryExecutor,
    compare_queries,
    default_evaluators,
    load_cases,
    load_outputs,
    score_outputs,
)

HERE = Path(__file__).parent


def main():
    print("=" * 60)
    print("Example: SPL to APL translation scoring")
    print("=" * 60)

    executor = QueryExecutor()
    if not executor.configured:
        print("\n(query endpoint not configured, skipping result equivalence)")

    cases = load_cases(HERE / "cases.yml")
    outputs = load_outputs(HERE / "outputs.yml", cases)

    # --- Score every recorded output ---
    print(f"\n▸ Scoring {len(outputs)} recorded output(s) against {len(cases)} case(s)...")

    report = score_outputs(
        cases,
        outputs,
        name="spl-to-apl",
        evaluators=default_evaluators(execute=executor.configured, executor=executor),
    )
    report.print(include_reasons=True)

    if not executor.configured:
        return

    # --- Compare two queries directly over a fixed window ---
    print("\n▸ Comparing two queries directly...")

    outcome = asyncio.run(
        compare_queries(
            "['sample-http-logs'] | summarize count() by status",
            "['sample-http-logs'] | summarize count() by method",
            executor=executor,
            start_time="2024-01-01T00:00:00Z",
            end_time="2024-01-01T01:00:00Z",
            timeout=30,
        )
    )
    print(f"  score:  {outcome.score:.3f}")
    print(f"  reason: {outcome.reason}")


if __name__ == "__main__":
    main()
