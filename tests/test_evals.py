"""Tests for the pydantic-evals evaluators."""

from conftest import tabular
from pydantic_evals import Case, Dataset

from apleval import (
    DatasetCorrect,
    ExactMatch,
    KeyOperatorsPresent,
    ResultEquivalence,
    TimeFilterPresent,
    TranslationCase,
    default_evaluators,
    score_outputs,
)

BY_STATUS = "['logs'] | summarize count() by status"
BY_METHOD = "['logs'] | summarize count() by method"


def evaluate_one(expected: str, output: str, evaluators):
    """Score a single recorded output and return its report case."""
    case = TranslationCase(id="case", name="case", spl="index=logs", expected_apl=expected)
    report = score_outputs([case], {"case": output}, evaluators=evaluators)
    assert len(report.cases) == 1
    return report.cases[0]


class TestResultEquivalence:
    """Tests for execution-based scoring."""

    def test_identical_results(self, executor, endpoint):
        endpoint.respond(BY_STATUS, json_body=tabular({"status": ["200"], "count_": [5]}))

        fenced = f"```apl\n{BY_STATUS}\n```"
        case = evaluate_one(BY_STATUS, fenced, [ResultEquivalence(executor=executor)])

        result = case.scores["ResultEquivalence"]
        assert result.value == 1.0
        assert result.reason == "exact match"

    def test_different_columns(self, executor, endpoint):
        endpoint.respond(BY_STATUS, json_body=tabular({"status": ["200"], "count_": [5]}))
        endpoint.respond(BY_METHOD, json_body=tabular({"method": ["GET"], "count_": [5]}))

        case = evaluate_one(BY_STATUS, BY_METHOD, [ResultEquivalence(executor=executor)])

        result = case.scores["ResultEquivalence"]
        assert result.value == 0.25
        assert result.reason == "column mismatch: missing [status], extra [method]"

    def test_window_passed_to_both_queries(self, executor, endpoint):
        evaluator = ResultEquivalence(
            start_time="2024-01-01T00:00:00Z", end_time="2024-01-02T00:00:00Z", executor=executor
        )

        evaluate_one(BY_STATUS, BY_STATUS, [evaluator])

        assert [b.get("startTime") for b in endpoint.bodies()] == ["2024-01-01T00:00:00Z"] * 2

    def test_skipped_without_expected_output(self, executor, endpoint):
        dataset = Dataset(
            name="no-expected",
            cases=[Case(name="open", inputs={"id": "open", "spl": "index=logs"})],
            evaluators=[ResultEquivalence(executor=executor)],
        )

        async def answer(inputs: dict) -> str:
            return BY_STATUS

        report = dataset.evaluate_sync(answer, name="no-expected")

        result = report.cases[0].scores["ResultEquivalence"]
        assert result.value == 1.0
        assert "Skipped" in result.reason
        assert endpoint.requests == []


class TestStaticEvaluators:
    """Tests for evaluators that only look at query text."""

    def test_exact_match_ignores_layout_and_fences(self):
        case = evaluate_one(
            "['logs']\n| summarize count() by status",
            '```apl\n["logs"] | summarize  count() by status\n```',
            [ExactMatch()],
        )

        assert case.assertions["ExactMatch"].value is True

    def test_exact_match_fails_on_different_query(self):
        case = evaluate_one(BY_STATUS, BY_METHOD, [ExactMatch()])

        assert case.assertions["ExactMatch"].value is False
        assert "method" in case.assertions["ExactMatch"].reason

    def test_key_operators_ratio(self):
        expected = "['logs'] | where status == 500 | summarize count() by bin(_time, 1h)"
        output = "['logs'] | where status == 500 | count"

        case = evaluate_one(expected, output, [KeyOperatorsPresent()])

        result = case.scores["KeyOperatorsPresent"]
        assert result.value == 0.25
        assert result.reason.startswith("1/4 key operators present")

    def test_key_operators_none_expected(self):
        case = evaluate_one("['logs']", "['logs'] | take 5", [KeyOperatorsPresent()])

        assert case.scores["KeyOperatorsPresent"].value == 1.0

    def test_dataset_correct(self):
        case = evaluate_one(BY_STATUS, "```\n['logs'] | count\n```", [DatasetCorrect()])

        assert case.assertions["DatasetCorrect"].value is True

    def test_dataset_wrong(self):
        case = evaluate_one(BY_STATUS, "['other-logs'] | count", [DatasetCorrect()])

        result = case.assertions["DatasetCorrect"]
        assert result.value is False
        assert "'other-logs'" in result.reason

    def test_time_filter_missing(self):
        expected = "['logs'] | where _time between (ago(1h) .. now()) | count"

        case = evaluate_one(expected, "['logs'] | count", [TimeFilterPresent()])

        assert case.assertions["TimeFilterPresent"].value is False

    def test_time_filter_present_with_other_bound(self):
        expected = "['logs'] | where _time between (ago(1h) .. now()) | count"
        output = "['logs'] | where _time > ago(1d) | count"

        case = evaluate_one(expected, output, [TimeFilterPresent()])

        assert case.assertions["TimeFilterPresent"].value is True

    def test_time_filter_not_expected(self):
        case = evaluate_one(BY_STATUS, BY_STATUS, [TimeFilterPresent()])

        assert case.assertions["TimeFilterPresent"].value is True


class TestDefaultEvaluators:
    """Tests for the evaluator set used by the score command."""

    def test_with_execution(self):
        names = [type(e).__name__ for e in default_evaluators(timeout=5.0)]

        assert names == [
            "ExactMatch",
            "KeyOperatorsPresent",
            "DatasetCorrect",
            "TimeFilterPresent",
            "ResultEquivalence",
        ]

    def test_without_execution(self):
        evaluators = default_evaluators(execute=False)

        assert not any(isinstance(e, ResultEquivalence) for e in evaluators)

    def test_options_forwarded(self, executor):
        equivalence = default_evaluators(timeout=2.5, executor=executor)[-1]

        assert equivalence.timeout == 2.5
        assert equivalence.executor is executor
