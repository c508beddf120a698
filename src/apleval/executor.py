"""Execute APL queries against the tabular query endpoint.

Every failure mode (missing configuration, transport errors, non-2xx
responses, unparseable bodies) comes back as a failed ``QueryResult``;
``execute`` never raises for them.
"""

import json
import time
from datetime import datetime
from typing import Any, Optional, Union

import httpx
import logfire

from .config import MISSING_CONFIG_MESSAGE, AxiomConfig
from .models import QueryResult
from .timefilter import inject_time_range, strip_time_filter

TimeBound = Union[str, datetime]


def _iso(value: Optional[TimeBound]) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return value.isoformat()


def _error_message(response: httpx.Response) -> str:
    body = response.text
    try:
        payload = json.loads(body)
    except ValueError:
        return body
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return body


def parse_tabular(payload: Any) -> tuple[list[str], list[list[Any]]]:
    """
    Read column names and columnar cells from the first table of a tabular response.

    Missing or malformed parts (no tables, a field without a name, cells
    that are not lists) degrade to no columns and no rows. Fields without cell
    data get one empty list each so that columns and data stay aligned.
    """
    tables = payload.get("tables") if isinstance(payload, dict) else None
    table = tables[0] if isinstance(tables, list) and tables else None
    if not isinstance(table, dict):
        return [], []

    fields = table.get("fields") or []
    if not isinstance(fields, list) or not all(
        isinstance(field, dict) and isinstance(field.get("name"), str) for field in fields
    ):
        return [], []

    columns = [field["name"] for field in fields]
    data = table.get("columns") or [[] for _ in columns]
    if not isinstance(data, list) or not all(isinstance(cells, list) for cells in data):
        return [], []
    return columns, data


class QueryExecutor:
    """
    Sends APL to ``POST {url}/v1/datasets/_apl?format=tabular``.

    Args:
        config: Endpoint settings; read from the environment when omitted
        transport: Optional httpx transport, e.g. ``httpx.MockTransport`` in tests

    Example:
        executor = QueryExecutor()
        result = asyncio.run(executor.execute("['sample-http-logs'] | count"))
    """

    def __init__(
        self,
        config: Optional[AxiomConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config if config is not None else AxiomConfig.from_env()
        self.transport = transport

    @property
    def configured(self) -> bool:
        return self.config is not None

    def prepare_query(self, query: str, *, scoped: bool, time_range: Optional[str] = None) -> str:
        """Strip text time filters; inject ``time_range`` only when no explicit bounds are sent."""
        if time_range and not scoped:
            return inject_time_range(query, time_range)
        return strip_time_filter(query)

    async def execute(
        self,
        query: str,
        *,
        start_time: Optional[TimeBound] = None,
        end_time: Optional[TimeBound] = None,
        time_range: Optional[str] = None,
    ) -> QueryResult:
        if self.config is None:
            return QueryResult.failure(MISSING_CONFIG_MESSAGE)

        start, end = _iso(start_time), _iso(end_time)
        body: dict[str, Any] = {
            "apl": self.prepare_query(query, scoped=bool(start or end), time_range=time_range)
        }
        if start:
            body["startTime"] = start
        if end:
            body["endTime"] = end

        with logfire.span("Executing APL query", apl=body["apl"], start_time=start, end_time=end):
            started = time.perf_counter()
            try:
                async with httpx.AsyncClient(transport=self.transport, timeout=None) as client:
                    response = await client.post(
                        self.config.query_url, headers=self.config.headers(), json=body
                    )
                elapsed_ms = round((time.perf_counter() - started) * 1000)

                if not response.is_success:
                    error = f"HTTP {response.status_code}: {_error_message(response)}"
                    logfire.warn("APL query rejected", status=response.status_code, error=error)
                    return QueryResult.failure(error, elapsed_ms=elapsed_ms)

                columns, data = parse_tabular(response.json())
                result = QueryResult(
                    success=True,
                    row_count=len(data[0]) if data else 0,
                    columns=columns,
                    data=data,
                    elapsed_ms=elapsed_ms,
                )
            except Exception as e:
                logfire.warn("APL query failed", error=str(e))
                return QueryResult.failure(str(e) or type(e).__name__)

            logfire.info("APL query succeeded", rows=result.row_count, elapsed_ms=elapsed_ms)
            return result


async def execute_query(
    query: str,
    *,
    start_time: Optional[TimeBound] = None,
    end_time: Optional[TimeBound] = None,
    time_range: Optional[str] = None,
) -> QueryResult:
    """Execute with an executor configured from the environment."""
    return await QueryExecutor().execute(
        query, start_time=start_time, end_time=end_time, time_range=time_range
    )
