"""Translation cases: YAML loading, pydantic-evals datasets, and scoring of recorded outputs.

Case file::

    cases:
      - id: basic-count-by-status
        name: Basic count by status
        spl: index=http_logs | stats count by status
        expected_apl: |
          ['sample-http-logs']
          | where _time between (ago(1h) .. now())
          | summarize count() by status
        category: aggregation
        dataset: sample-http-logs

Outputs file (recorded model answers, keyed by case id)::

    basic-count-by-status: |
      ```apl
      ['sample-http-logs'] | summarize count() by status
      ```
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import logfire
import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_evals import Case, Dataset
from pydantic_evals.evaluators import Evaluator
from pydantic_evals.reporting import EvaluationReport

from .errors import CaseFileError
from .evals import default_evaluators

Source = Union[str, Path, dict]


class TranslationCase(BaseModel):
    id: str = Field(description="Unique, descriptive case id, e.g. top-10-uris")
    name: str
    spl: str = Field(description="SPL query given to the model")
    expected_apl: str = Field(description="Reference APL translation")
    category: Optional[str] = None
    dataset: Optional[str] = Field(default=None, description="Target dataset of the query")
    notes: Optional[str] = Field(default=None, description="Dataset quirks worth knowing")


class CaseFile(BaseModel):
    cases: List[TranslationCase]

    @model_validator(mode="after")
    def _unique_ids(self) -> "CaseFile":
        seen = set()
        for case in self.cases:
            if case.id in seen:
                raise ValueError(f"duplicate case id {case.id!r}")
            seen.add(case.id)
        return self


def _read_yaml(source: Source) -> Any:
    if isinstance(source, dict):
        return source
    source_str = str(source)
    try:
        if isinstance(source, str) and ("\n" in source_str or ":" in source_str):
            return yaml.safe_load(source_str)
        with open(source_str) as f:
            return yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise CaseFileError(f"Cannot read {source_str[:80]!r}: {e}") from e


def load_cases(source: Source) -> List[TranslationCase]:
    """
    Load translation cases.

    Args:
        source: Path to a YAML file, YAML content, or an already parsed dict

    Returns:
        Cases in file order

    Raises:
        CaseFileError: If the YAML is unreadable, malformed, or repeats an id
    """
    loaded = _read_yaml(source)
    try:
        return CaseFile.model_validate(loaded).cases
    except ValidationError as e:
        raise CaseFileError(f"Invalid case file: {e}") from e


def load_outputs(source: Source, cases: Sequence[TranslationCase]) -> Dict[str, str]:
    """Load recorded model outputs keyed by case id; every id must name a known case."""
    loaded = _read_yaml(source)
    if not isinstance(loaded, dict):
        raise CaseFileError("Outputs file must map case ids to model outputs")

    known = {case.id for case in cases}
    outputs = {
        str(case_id): "" if output is None else str(output) for case_id, output in loaded.items()
    }
    unknown = [case_id for case_id in outputs if case_id not in known]
    if unknown:
        raise CaseFileError(f"Outputs for unknown case ids: {', '.join(unknown)}")

    return outputs


def to_dataset(
    cases: Sequence[TranslationCase],
    *,
    name: str,
    evaluators: Optional[Sequence[Evaluator]] = None,
) -> Dataset:
    dataset_cases: List[Case] = []

    for case in cases:
        metadata = {"category": case.category, "dataset": case.dataset, "notes": case.notes}
        dataset_cases.append(
            Case(
                name=case.id,
                inputs={"id": case.id, "spl": case.spl},
                expected_output=case.expected_apl,
                metadata={k: v for k, v in metadata.items() if v is not None} or None,
            )
        )

    if evaluators is None:
        evaluators = default_evaluators()

    return Dataset(name=name, cases=dataset_cases, evaluators=list(evaluators))


def score_outputs(
    cases: Sequence[TranslationCase],
    outputs: Dict[str, str],
    *,
    name: str = "spl-translation",
    evaluators: Optional[Sequence[Evaluator]] = None,
) -> EvaluationReport:
    """
    Score recorded model outputs against the cases with the given evaluators.

    Cases without a recorded output are left out of the report.
    """
    covered = [case for case in cases if case.id in outputs]
    skipped = len(cases) - len(covered)
    if skipped:
        logfire.warn("Cases without recorded output skipped", skipped=skipped)

    dataset = to_dataset(covered, name=name, evaluators=evaluators)

    async def recorded_output(inputs: dict) -> str:
        return outputs[inputs["id"]]

    return dataset.evaluate_sync(recorded_output, name=name)
