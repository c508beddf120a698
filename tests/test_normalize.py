"""Tests for query extraction from model output and textual normalization."""

from apleval import dataset_reference, extract_query, normalize_apl
from apleval.normalize import find_dataset_reference


class TestExtractQuery:
    """Tests for code fence stripping."""

    def test_fenced_with_language_tag(self):
        assert extract_query("```apl\nfoo | bar\n```") == "foo | bar"

    def test_fenced_without_language_tag(self):
        assert extract_query("```\n['logs'] | count\n```") == "['logs'] | count"

    def test_surrounding_whitespace_is_ignored(self):
        raw = "\n\n  ```kusto\n['logs']\n| take 5\n```  \n"
        assert extract_query(raw) == "['logs']\n| take 5"

    def test_multiline_content_kept_intact(self):
        raw = "```apl\n['logs']\n| where status == 500\n| count\n```"
        assert extract_query(raw) == "['logs']\n| where status == 500\n| count"

    def test_unfenced_output_is_trimmed(self):
        assert extract_query("   ['logs'] | count  \n") == "['logs'] | count"

    def test_text_outside_fence_leaves_output_untouched(self):
        raw = "Here is the query:\n```apl\n['logs'] | count\n```"
        assert extract_query(raw) == raw.strip()

    def test_crlf_line_endings(self):
        assert extract_query("```apl\r\n['x'] | count\r\n```") == "['x'] | count"

    def test_crlf_multiline_content(self):
        raw = "```kusto\r\n['x']\r\n| take 5\r\n```\r\n"
        assert extract_query(raw) == "['x']\r\n| take 5"

    def test_empty_fence_is_not_unwrapped(self):
        raw = "```apl\n\n```"
        assert extract_query(raw) == raw

    def test_empty_string(self):
        assert extract_query("") == ""


class TestNormalizeApl:
    """Tests for the exact-match normalization."""

    def test_whitespace_collapsed(self):
        query = "['logs']\n|   where status == 500\n\t| count"
        assert normalize_apl(query) == "['logs'] | where status == 500 | count"

    def test_double_quoted_references_become_single_quoted(self):
        assert normalize_apl('["logs"] | summarize count() by ["geo.city"]') == (
            "['logs'] | summarize count() by ['geo.city']"
        )

    def test_fenced_and_unfenced_normalize_equal(self):
        fenced = "```apl\n['logs']\n| count\n```"
        assert normalize_apl(fenced) == normalize_apl("['logs'] | count")


class TestDatasetReference:
    """Tests for locating the dataset at the head of a query."""

    def test_single_quoted(self):
        assert dataset_reference("['sample-http-logs'] | count") == "sample-http-logs"

    def test_double_quoted(self):
        assert dataset_reference('["otel-demo-traces"] | count') == "otel-demo-traces"

    def test_bare_identifier(self):
        assert dataset_reference("logs | count") == "logs"

    def test_bare_identifier_alone(self):
        assert dataset_reference("logs") == "logs"

    def test_hyphenated_bare_name_is_not_a_reference(self):
        assert dataset_reference("sample-http-logs | count") is None

    def test_let_statement_is_not_a_dataset(self):
        assert dataset_reference("let x = 5; ['logs'] | count") is None

    def test_offset_points_past_reference(self):
        query = "  ['logs'] | count"
        name, end = find_dataset_reference(query)
        assert name == "logs"
        assert query[end:] == " | count"
