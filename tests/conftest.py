"""Pytest configuration and shared fixtures for apleval tests."""

import json
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from apleval import AxiomConfig, QueryExecutor, QueryResult

# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep real endpoint credentials and Logfire settings out of every test."""
    for name in ("AXIOM_PLAY_URL", "AXIOM_PLAY_TOKEN", "AXIOM_PLAY_ORG_ID", "LOGFIRE_ENABLED"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def axiom_env(monkeypatch):
    """Endpoint settings as they would come from the environment."""
    monkeypatch.setenv("AXIOM_PLAY_URL", "https://api.example.test/")
    monkeypatch.setenv("AXIOM_PLAY_TOKEN", "xapt-test-token")
    monkeypatch.setenv("AXIOM_PLAY_ORG_ID", "org-123")


@pytest.fixture
def axiom_config() -> AxiomConfig:
    return AxiomConfig(url="https://api.example.test", token="xapt-test-token", org_id="org-123")


# ============================================================================
# Fake Query Endpoint
# ============================================================================


def tabular(columns: dict[str, list[Any]]) -> dict:
    """Build a tabular response body from {column name: cells}."""
    return {
        "tables": [
            {
                "fields": [{"name": name} for name in columns],
                "columns": [list(cells) for cells in columns.values()],
            }
        ]
    }


class FakeEndpoint:
    """Records requests and answers them from a per-query response table."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.responses: dict[str, Callable[[], httpx.Response]] = {}

    def respond(self, apl: str, status: int = 200, *, json_body: Any = None, text: str = ""):
        if json_body is not None:
            self.responses[apl] = lambda: httpx.Response(status, json=json_body)
        else:
            self.responses[apl] = lambda: httpx.Response(status, text=text)

    def bodies(self) -> list[dict]:
        return [json.loads(request.content) for request in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        apl = json.loads(request.content)["apl"]
        build = self.responses.get(apl)
        return build() if build else httpx.Response(200, json=tabular({}))


@pytest.fixture
def endpoint() -> FakeEndpoint:
    return FakeEndpoint()


@pytest.fixture
def executor(axiom_config: AxiomConfig, endpoint: FakeEndpoint) -> QueryExecutor:
    """Executor wired to the fake endpoint."""
    return QueryExecutor(axiom_config, transport=httpx.MockTransport(endpoint))


@pytest.fixture
def make_result() -> Callable[..., QueryResult]:
    """Successful QueryResult from {column name: cells}."""

    def _make(columns: dict[str, list[Any]]) -> QueryResult:
        data = [list(cells) for cells in columns.values()]
        return QueryResult(
            success=True,
            row_count=len(data[0]) if data else 0,
            columns=list(columns),
            data=data,
        )

    return _make


# ============================================================================
# Case Files
# ============================================================================


@pytest.fixture
def cases_yaml() -> str:
    return """
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
  - id: top-10-uris
    name: Top 10 URIs
    spl: index=http_logs | top limit=10 uri
    expected_apl: |
      ['sample-http-logs']
      | where _time between (ago(1h) .. now())
      | summarize count() by uri
      | top 10 by count_
    category: aggregation
    dataset: sample-http-logs
"""


@pytest.fixture
def outputs_yaml() -> str:
    return """
basic-count-by-status: |
  ```apl
  ['sample-http-logs']
  | where _time between (ago(1h) .. now())
  | summarize count() by status
  ```
"""


@pytest.fixture
def case_files(tmp_path: Path, cases_yaml: str, outputs_yaml: str) -> tuple[Path, Path]:
    cases_path = tmp_path / "cases.yml"
    outputs_path = tmp_path / "outputs.yml"
    cases_path.write_text(cases_yaml)
    outputs_path.write_text(outputs_yaml)
    return cases_path, outputs_path
