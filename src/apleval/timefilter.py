"""Locate, strip and inject ``_time`` bounds in APL query text.

There is no APL grammar here. A small scanner cuts the query into pipe
segments (pipes inside quoted strings, bracket groups and ``//`` comments do
not count), every ``where``/``filter`` segment is split into its top-level
``and`` operands, and an operand is a time bound when it has one of these
shapes, in priority order:

1. ``_time between (<start> .. <end>)``
2. ``_time >= <start>``
3. ``_time > <start>``

An operand that is one parenthesized group is unwrapped and its own ``and``
operands are classified the same way. Operands of a predicate that contains
a top-level ``or`` are never classified, so such predicates are left exactly
as written.

Example:
    >>> strip_time_filter("['x'] | where _time between (ago(1h) .. now()) | summarize count()")
    "['x'] | summarize count()"
"""

import re
from typing import Iterator, List, Optional

from .models import TimeExpression
from .normalize import find_dataset_reference

DEFAULT_TIME_RANGE = "ago(1h) .. now()"

# Upper bound used when a filter only states a lower bound
NOW = "now()"

TIME_FIELD = r"""(?:_time\b|\[\s*(?:'_time'|"_time")\s*\])"""

BETWEEN_HEAD = re.compile(rf"^{TIME_FIELD}\s+between\s*\(")
GREATER_EQUAL = re.compile(rf"^{TIME_FIELD}\s*>=\s*(?P<expr>\S[\s\S]*)$")
GREATER = re.compile(rf"^{TIME_FIELD}\s*>(?!=)\s*(?P<expr>\S[\s\S]*)$")

FILTER_SEGMENT = re.compile(
    r"^(?P<lead>\s*)(?P<keyword>where|filter)\b\s*(?P<predicate>[\s\S]*?)(?P<trail>\s*)$"
)

BETWEEN, GREATER_OR_EQUAL, GREATER_THAN = range(3)


def _top_level(text: str) -> Iterator[int]:
    """Yield offsets of characters outside quotes, comments and bracket groups.

    A closing bracket with no opener in ``text`` is yielded as well, which is
    how the end of an enclosing group is found when scanning from inside it.
    """
    depth = 0
    quote = None
    i = 0
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "'\"":
            quote = ch
        elif text.startswith("//", i):
            newline = text.find("\n", i)
            i = len(text) if newline == -1 else newline
            continue
        elif ch in "([{":
            depth += 1
        elif ch in ")]}":
            if depth == 0:
                yield i
            else:
                depth -= 1
        elif depth == 0:
            yield i
        i += 1


def _is_word(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def _keyword_offsets(text: str, keyword: str) -> List[int]:
    size = len(keyword)
    return [
        i
        for i in _top_level(text)
        if text.startswith(keyword, i)
        and (i == 0 or not _is_word(text[i - 1]))
        and (i + size == len(text) or not _is_word(text[i + size]))
    ]


def _split_segments(query: str) -> List[str]:
    pipes = [i for i in _top_level(query) if query[i] == "|"]
    bounds = [-1, *pipes, len(query)]
    return [query[start + 1 : end] for start, end in zip(bounds, bounds[1:])]


def _split_conjuncts(predicate: str) -> Optional[List[str]]:
    """Top-level ``and`` operands of a predicate, or None when it has a top-level ``or``."""
    if _keyword_offsets(predicate, "or"):
        return None

    bounds = [0]
    for offset in _keyword_offsets(predicate, "and"):
        bounds.extend((offset, offset + len("and")))
    bounds.append(len(predicate))
    return [predicate[start:end] for start, end in zip(bounds[::2], bounds[1::2])]


def _parse_filter(segment: str) -> Optional[tuple[re.Match, List[str]]]:
    match = FILTER_SEGMENT.match(segment)
    if not match:
        return None
    conjuncts = _split_conjuncts(match.group("predicate"))
    if conjuncts is None:
        return None
    return match, conjuncts


def _between_bounds(text: str, head: re.Match) -> Optional[tuple[str, str]]:
    inner = text[head.end() :]
    close = next((i for i in _top_level(inner) if inner[i] == ")"), None)
    if close is None or inner[close + 1 :].strip():
        return None

    body = inner[:close]
    dots = next((i for i in _top_level(body) if body.startswith("..", i)), None)
    if dots is None:
        return None

    start, end = body[:dots].strip(), body[dots + 2 :].strip()
    if not start or not end:
        return None
    return start, end


def _time_bound(conjunct: str) -> Optional[tuple[int, TimeExpression]]:
    """Classify one predicate operand; returns (pattern priority, expression) for a time bound."""
    text = conjunct.strip()

    head = BETWEEN_HEAD.match(text)
    if head:
        bounds = _between_bounds(text, head)
        if bounds:
            return BETWEEN, TimeExpression(start=bounds[0], end=bounds[1], raw=text)
        return None

    for priority, pattern in ((GREATER_OR_EQUAL, GREATER_EQUAL), (GREATER_THAN, GREATER)):
        match = pattern.match(text)
        if match:
            return priority, TimeExpression(start=match.group("expr").strip(), end=NOW, raw=text)

    return None


def _unwrap(conjunct: str) -> Optional[str]:
    """Body of a conjunct that is exactly one parenthesized group, else None."""
    text = conjunct.strip()
    if not text.startswith("(") or not text.endswith(")"):
        return None
    body = text[1:]
    close = next((i for i in _top_level(body) if body[i] == ")"), None)
    if close != len(body) - 1:
        return None
    return body[:-1]


def _time_bounds(conjunct: str) -> List[tuple[int, TimeExpression]]:
    inner = _unwrap(conjunct)
    if inner is None:
        bound = _time_bound(conjunct)
        return [] if bound is None else [bound]

    operands = _split_conjuncts(inner)
    if operands is None:
        return []
    return [bound for operand in operands for bound in _time_bounds(operand)]


def _strip_conjunct(conjunct: str) -> Optional[str]:
    """The conjunct without its time bounds; None when nothing of it is left."""
    text = conjunct.strip()
    if not _time_bounds(text):
        return text

    inner = _unwrap(text)
    if inner is None:
        return None

    remaining = [r for r in map(_strip_conjunct, _split_conjuncts(inner) or []) if r]
    if not remaining:
        return None
    return f"({' and '.join(remaining)})"


def extract_time_expression(query: str) -> Optional[TimeExpression]:
    """
    Find the time bound a query filters on.

    Args:
        query: APL query text

    Returns:
        The first ``between`` bound, else the first ``>=`` bound, else the
        first ``>`` bound; None when the query states no time bound.
    """
    found: List[tuple[int, TimeExpression]] = []

    for segment in _split_segments(query)[1:]:
        parsed = _parse_filter(segment)
        if parsed is None:
            continue
        for conjunct in parsed[1]:
            found.extend(_time_bounds(conjunct))

    if not found:
        return None
    return min(found, key=lambda item: item[0])[1]


def has_time_filter(query: str) -> bool:
    return extract_time_expression(query) is not None


def strip_time_filter(query: str) -> str:
    """
    Remove every time-bound operand from the query's filter segments.

    A filter segment left empty is dropped together with its pipe; other
    operands of the same predicate are kept and re-joined with ``and``.
    A query with nothing to remove is returned unchanged.
    """
    segments = _split_segments(query)
    kept = segments[:1]
    changed = False

    for segment in segments[1:]:
        parsed = _parse_filter(segment)
        if parsed is None:
            kept.append(segment)
            continue

        match, conjuncts = parsed
        if not any(_time_bounds(c) for c in conjuncts):
            kept.append(segment)
            continue

        remaining = [r for r in map(_strip_conjunct, conjuncts) if r]

        changed = True
        if remaining:
            kept.append(
                f"{match.group('lead')}{match.group('keyword')} "
                f"{' and '.join(remaining)}{match.group('trail')}"
            )

    if not changed:
        return query
    return "|".join(kept).strip()


def inject_time_range(query: str, time_range: str = DEFAULT_TIME_RANGE) -> str:
    """
    Replace any time filter with ``| where _time between (<time_range>)`` after the dataset.

    Args:
        query: APL query text
        time_range: Range body, e.g. ``ago(1h) .. now()``

    Returns:
        The rewritten query, or the query with its time filter stripped when
        no dataset reference starts it.
    """
    stripped = strip_time_filter(query)

    found = find_dataset_reference(stripped)
    if found is None:
        return stripped

    _, end = found
    return f"{stripped[:end]}\n| where _time between ({time_range}){stripped[end:]}"
