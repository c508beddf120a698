"""
apleval - Result-equivalence evaluation for SPL to APL query translation.
"""
import importlib.metadata

__version__ = importlib.metadata.version("apleval")

from .cases import TranslationCase, load_cases, load_outputs, score_outputs, to_dataset
from .compare import compare_queries, compare_results
from .config import AxiomConfig, load_config
from .evals import (
    DatasetCorrect,
    ExactMatch,
    KeyOperatorsPresent,
    ResultEquivalence,
    TimeFilterPresent,
    default_evaluators,
)
from .executor import QueryExecutor, execute_query
from .models import ComparisonOutcome, DatasetSchema, QueryResult, SchemaField, TimeExpression
from .normalize import dataset_reference, extract_query, normalize_apl
from .schema import SchemaCache, get_schema
from .timefilter import extract_time_expression, inject_time_range, strip_time_filter

__all__ = [
    "extract_query",
    "normalize_apl",
    "dataset_reference",
    "extract_time_expression",
    "strip_time_filter",
    "inject_time_range",
    "QueryExecutor",
    "execute_query",
    "SchemaCache",
    "get_schema",
    "compare_results",
    "compare_queries",
    "QueryResult",
    "TimeExpression",
    "DatasetSchema",
    "SchemaField",
    "ComparisonOutcome",
    "AxiomConfig",
    "load_config",
    "ResultEquivalence",
    "ExactMatch",
    "KeyOperatorsPresent",
    "DatasetCorrect",
    "TimeFilterPresent",
    "default_evaluators",
    "TranslationCase",
    "load_cases",
    "load_outputs",
    "to_dataset",
    "score_outputs",
]
