"""Recover a bare APL query from model output and normalize it for textual comparison."""

import re
from typing import Optional

# ```apl / ```kusto / ``` ... ``` wrapping the whole output
CODE_FENCE = re.compile(r"^```\w*\s*\n([\s\S]*?)\r?\n[ \t]*```\s*$")

QUOTED_DATASET = re.compile(r"""^\s*\[\s*(['"])(?P<name>[^'"]+)\1\s*\]""")
BARE_DATASET = re.compile(r"^\s*(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?=\s|\||$)")
DOUBLE_QUOTED_REF = re.compile(r'\["([^"]+)"\]')
WHITESPACE = re.compile(r"\s+")

# Leading words that start a statement rather than name a dataset
TABULAR_KEYWORDS = frozenset(
    {"let", "set", "declare", "print", "datatable", "range", "union", "search", "find"}
)


def extract_query(raw_output: str) -> str:
    """
    Strip a code fence that wraps the entire model output.

    Args:
        raw_output: Raw text produced by the model

    Returns:
        The fenced content, trimmed, if the whole output is one fenced block;
        otherwise the trimmed output unchanged.
    """
    query = raw_output.strip()

    match = CODE_FENCE.match(query)
    if match and match.group(1).strip():
        query = match.group(1)

    return query.strip()


def normalize_apl(query: str) -> str:
    """Fence-stripped query with collapsed whitespace and single-quoted ``['name']`` references."""
    result = extract_query(query)
    result = WHITESPACE.sub(" ", result)
    result = DOUBLE_QUOTED_REF.sub(r"['\1']", result)
    return result.strip()


def find_dataset_reference(query: str) -> Optional[tuple[str, int]]:
    """
    Locate the dataset reference at the head of a query.

    Returns:
        (dataset name, offset just past the reference), or None
    """
    match = QUOTED_DATASET.match(query)
    if match:
        return match.group("name"), match.end()

    match = BARE_DATASET.match(query)
    if match and match.group("name").lower() not in TABULAR_KEYWORDS:
        return match.group("name"), match.end()

    return None


def dataset_reference(query: str) -> Optional[str]:
    found = find_dataset_reference(query)
    return found[0] if found else None
