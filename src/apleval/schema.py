"""Memoized dataset schemas, fetched with ``getschema`` through the query executor."""

from typing import Dict, List, Optional

import logfire

from .executor import QueryExecutor
from .models import DatasetSchema, QueryResult, SchemaField

NAME_COLUMNS = ("columnname", "name")
TYPE_COLUMNS = ("columntype", "datatype", "type")


def schema_query(dataset: str) -> str:
    return f"['{dataset}'] | getschema"


def _find_column(columns: List[str], candidates: tuple[str, ...]) -> Optional[int]:
    normalized = [c.lower().replace("_", "") for c in columns]
    for candidate in candidates:
        if candidate in normalized:
            return normalized.index(candidate)
    return None


def schema_from_result(result: QueryResult) -> Optional[DatasetSchema]:
    """Zip the name and type columns of a ``getschema`` result into fields."""
    if not result.success or not result.columns or not result.data:
        return None

    name_index = _find_column(result.columns, NAME_COLUMNS)
    type_index = _find_column(result.columns, TYPE_COLUMNS)
    if name_index is None or type_index is None:
        return None

    return DatasetSchema(
        fields=[
            SchemaField(name=str(name), type=str(type_))
            for name, type_ in zip(result.data[name_index], result.data[type_index])
        ]
    )


class SchemaCache:
    """
    Dataset name -> schema, filled on first successful lookup and never evicted.

    Failed lookups are not cached, so a transient error is retried on the next
    call. Concurrent misses for one dataset may both fetch; the second write
    stores an identical schema.
    """

    def __init__(self, executor: Optional[QueryExecutor] = None):
        self._executor = executor
        self._schemas: Dict[str, DatasetSchema] = {}

    @property
    def executor(self) -> QueryExecutor:
        if self._executor is None:
            self._executor = QueryExecutor()
        return self._executor

    def __contains__(self, dataset: str) -> bool:
        return dataset in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)

    def clear(self) -> None:
        self._schemas.clear()

    async def get(self, dataset: str) -> Optional[DatasetSchema]:
        cached = self._schemas.get(dataset)
        if cached is not None:
            logfire.debug("Schema cache hit", dataset=dataset)
            return cached

        result = await self.executor.execute(schema_query(dataset))
        schema = schema_from_result(result)
        if schema is None:
            logfire.warn(
                "Schema unavailable", dataset=dataset, error=result.error or "no name/type columns"
            )
            return None

        self._schemas[dataset] = schema
        logfire.info("Schema cached", dataset=dataset, fields=len(schema.fields))
        return schema


default_schema_cache = SchemaCache()


async def get_schema(dataset: str) -> Optional[DatasetSchema]:
    return await default_schema_cache.get(dataset)
