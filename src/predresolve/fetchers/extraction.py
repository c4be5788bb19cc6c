"""Structured extraction: JSON paths, CSS selectors and value -> boolean claim coercion."""

from __future__ import annotations

import re
from typing import Any

from bs4 import BeautifulSoup

from predresolve.routing.extract import extract_direction, extract_threshold

_TOKEN_RE = re.compile(r"\.([^.\[\]]+)|\[(\d+)\]|\[['\"]([^'\"]+)['\"]\]")

_TRUE = {"true", "yes", "y", "1", "confirmed"}
_FALSE = {"false", "no", "n", "0", "denied"}


class ExtractionMiss(LookupError):
    """The extraction path does not exist in the payload."""


def parse_path(path: str) -> list[str | int]:
    """Split '$.a.b[0]["c d"]' into ['a', 'b', 0, 'c d']."""
    if not path.startswith("$"):
        raise ValueError(f"JSON path must start with '$': {path!r}")
    rest = path[1:]
    tokens: list[str | int] = []
    pos = 0
    while pos < len(rest):
        match = _TOKEN_RE.match(rest, pos)
        if not match:
            raise ValueError(f"bad JSON path near {rest[pos:]!r}")
        key, index, quoted = match.groups()
        if index is not None:
            tokens.append(int(index))
        else:
            tokens.append(key if key is not None else quoted)
        pos = match.end()
    return tokens


def extract_path(data: Any, path: str) -> Any:
    """Return the value at path in data. Raises ExtractionMiss when absent or null."""
    current = data
    for token in parse_path(path):
        if isinstance(token, int):
            if not isinstance(current, list) or token >= len(current):
                raise ExtractionMiss(f"{path}: index {token} missing")
            current = current[token]
        else:
            if not isinstance(current, dict) or token not in current:
                raise ExtractionMiss(f"{path}: key {token!r} missing")
            current = current[token]
    if current is None:
        raise ExtractionMiss(f"{path}: null")
    return current


def extract_selector(html: str, selector: str) -> str:
    """Text of the first element matching a CSS selector. Raises ExtractionMiss on no match or empty text."""
    node = BeautifulSoup(html, "html.parser").select_one(selector)
    if node is None:
        raise ExtractionMiss(f"{selector}: no match")
    text = node.get_text(" ", strip=True)
    if not text:
        raise ExtractionMiss(f"{selector}: empty")
    return text


def to_number(value: Any) -> float:
    """Coerce an extracted scalar to a positive finite float."""
    if isinstance(value, bool):
        raise ValueError("boolean is not a price")
    if isinstance(value, str):
        value = value.replace(",", "").replace("$", "").strip()
    number = float(value)
    if not number > 0 or number == float("inf"):
        raise ValueError(f"not a positive finite number: {value!r}")
    return number


def to_claim(value: Any, question: str) -> bool | None:
    """Turn an extracted value into a yes/no claim, or None when it needs interpretation.

    Numbers are compared against the threshold named in the question.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        threshold = extract_threshold(question)
        if threshold is None:
            return None
        if extract_direction(question) == "below":
            return value < threshold
        return value > threshold
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        try:
            return to_claim(float(text.replace(",", "")), question)
        except ValueError:
            return None
    return None
