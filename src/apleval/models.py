"""Data types shared by the query engine: results, time expressions, schemas, scores."""

from typing import Any, List, Optional

from pydantic import BaseModel, Field


class QueryResult(BaseModel):
    """Outcome of executing one APL query.

    ``data`` is columnar: ``data[c]`` holds the cells of ``columns[c]``, each
    list ``row_count`` long. Failed results carry ``error`` and no columns.
    """

    success: bool
    row_count: int = 0
    error: Optional[str] = None
    elapsed_ms: Optional[int] = None
    columns: Optional[List[str]] = None
    data: Optional[List[List[Any]]] = None

    @classmethod
    def failure(cls, error: str, elapsed_ms: Optional[int] = None) -> "QueryResult":
        return cls(success=False, row_count=0, error=error, elapsed_ms=elapsed_ms)

    def rows(self) -> List[dict[str, Any]]:
        """Transpose the columnar data into one dict per row."""
        if not self.success or not self.columns or not self.data:
            return []
        return [dict(zip(self.columns, row)) for row in zip(*self.data)]


class TimeExpression(BaseModel):
    start: str = Field(description="Unevaluated lower bound, e.g. ago(1h)")
    end: str = Field(description="Unevaluated upper bound, now() when only a lower bound exists")
    raw: str = Field(description="Exact predicate text as it appears in the query")


class SchemaField(BaseModel):
    name: str
    type: str


class DatasetSchema(BaseModel):
    fields: List[SchemaField] = Field(default_factory=list)

    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]


class ComparisonOutcome(BaseModel):
    score: float = Field(ge=0.0, le=1.0)
    reason: str
