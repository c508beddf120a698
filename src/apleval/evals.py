import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from pydantic_evals.evaluators import EvaluationReason, Evaluator, EvaluatorContext

from .compare import compare_queries
from .executor import QueryExecutor
from .normalize import dataset_reference, extract_query, normalize_apl
from .timefilter import extract_time_expression

KEY_OPERATORS: list[re.Pattern] = [
    re.compile(pattern)
    for pattern in (
        r"\bsummarize\b",
        r"\bwhere\b",
        r"\bextend\b",
        r"\bproject\b",
        r"\border by\b",
        r"\btake\b",
        r"\bjoin\b",
        r"\bunion\b",
        r"\bmv-expand\b",
        r"\bparse\b",
        r"\bextract\b",
        r"\bcount\(\)",
        r"\bcountif\b",
        r"\bdcount\b",
        r"\bbin\b",
        r"\btop\b",
        r"\barg_max\b",
        r"\barg_min\b",
    )
]


def _output_text(ctx: EvaluatorContext) -> str:
    return "" if ctx.output is None else str(ctx.output)


@dataclass
class ResultEquivalence(Evaluator):
    """Executes the expected and generated APL and scores how closely the results agree."""

    evaluation_name: str = "ResultEquivalence"
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    timeout: Optional[float] = None
    executor: Optional[QueryExecutor] = field(default=None, repr=False, compare=False)

    async def evaluate(self, ctx: EvaluatorContext) -> EvaluationReason:
        if ctx.expected_output is None:
            return EvaluationReason(value=1.0, reason="Skipped (no expected query)")

        outcome = await compare_queries(
            str(ctx.expected_output),
            _output_text(ctx),
            executor=self.executor,
            start_time=self.start_time,
            end_time=self.end_time,
            timeout=self.timeout,
        )
        return EvaluationReason(value=outcome.score, reason=outcome.reason)

    def build_serialization_arguments(self) -> dict[str, Any]:
        arguments = super().build_serialization_arguments()
        arguments.pop("executor", None)
        return arguments


@dataclass
class ExactMatch(Evaluator):

    evaluation_name: str = "ExactMatch"

    def evaluate(self, ctx: EvaluatorContext) -> EvaluationReason:
        expected = normalize_apl(str(ctx.expected_output or ""))
        actual = normalize_apl(_output_text(ctx))
        if expected == actual:
            return EvaluationReason(value=True, reason="Normalized queries are identical")
        return EvaluationReason(value=False, reason=f"Expected {expected!r}, got {actual!r}")


@dataclass
class KeyOperatorsPresent(Evaluator):
    """Fraction of the expected query's key operators that the generated query also uses."""

    evaluation_name: str = "KeyOperatorsPresent"

    def evaluate(self, ctx: EvaluatorContext) -> EvaluationReason:
        expected = str(ctx.expected_output or "").lower()
        actual = _output_text(ctx).lower()

        wanted = [p for p in KEY_OPERATORS if p.search(expected)]
        if not wanted:
            return EvaluationReason(value=1.0, reason="Expected query uses no key operators")

        missing = [p.pattern for p in wanted if not p.search(actual)]
        matched = len(wanted) - len(missing)
        reason = f"{matched}/{len(wanted)} key operators present"
        if missing:
            reason += f", missing: {', '.join(missing)}"
        return EvaluationReason(value=matched / len(wanted), reason=reason)


@dataclass
class DatasetCorrect(Evaluator):

    evaluation_name: str = "DatasetCorrect"

    def evaluate(self, ctx: EvaluatorContext) -> EvaluationReason:
        expected = dataset_reference(extract_query(str(ctx.expected_output or "")))
        if expected is None:
            return EvaluationReason(value=True, reason="Expected query names no dataset")

        actual = dataset_reference(extract_query(_output_text(ctx)))
        if actual == expected:
            return EvaluationReason(value=True, reason=f"Queries dataset {expected!r}")
        return EvaluationReason(
            value=False, reason=f"Expected dataset {expected!r}, got {actual!r}"
        )


@dataclass
class TimeFilterPresent(Evaluator):
    """Passes when the expected query has no time bound, or the generated one has any."""

    evaluation_name: str = "TimeFilterPresent"

    def evaluate(self, ctx: EvaluatorContext) -> EvaluationReason:
        expected = extract_time_expression(extract_query(str(ctx.expected_output or "")))
        if expected is None:
            return EvaluationReason(value=True, reason="No time bound expected")

        actual = extract_time_expression(extract_query(_output_text(ctx)))
        if actual is None:
            return EvaluationReason(
                value=False, reason=f"Expected a time bound like {expected.raw!r}, found none"
            )
        return EvaluationReason(value=True, reason=f"Time bound {actual.start} .. {actual.end}")


def default_evaluators(
    *,
    execute: bool = True,
    timeout: Optional[float] = None,
    executor: Optional[QueryExecutor] = None,
) -> List[Evaluator]:
    evaluators: List[Evaluator] = [
        ExactMatch(),
        KeyOperatorsPresent(),
        DatasetCorrect(),
        TimeFilterPresent(),
    ]
    if execute:
        evaluators.append(ResultEquivalence(timeout=timeout, executor=executor))
    return evaluators
