"""Ad-hoc pattern extraction from question text (threshold, direction, asset)."""

from __future__ import annotations

import re
from dataclasses import dataclass

_SUFFIX = {"k": 1e3, "m": 1e6, "b": 1e9}
_NUMBER = r"(\d[\d,]*(?:\.\d+)?)\s*([kmb])?\b"
_DOLLAR_RE = re.compile(r"\$\s?" + _NUMBER, re.IGNORECASE)
_PLAIN_RE = re.compile(r"(?<![\w.$])" + _NUMBER, re.IGNORECASE)
_YEAR_RE = re.compile(r"^(19|20)\d\d$")
_MONTHS = (
    r"jan(uary)?|feb(ruary)?|mar(ch)?|apr(il)?|may|june?|july?|aug(ust)?|"
    r"sept?(ember)?|oct(ober)?|nov(ember)?|dec(ember)?"
)
_MONTH_END_RE = re.compile(r"\b(" + _MONTHS + r")\.?$", re.IGNORECASE)
# A year only counts as a date when it follows a month, a day number or a date preposition.
_YEAR_CONTEXT_RE = re.compile(
    r"(\b(" + _MONTHS + r")\.?|\b\d{1,2}(st|nd|rd|th)?,?|\b(in|by|of|since|before|after|until|during|q[1-4]|fy))$",
    re.IGNORECASE,
)
_BELOW_RE = re.compile(
    r"\b(below|under|less than|lower than|beneath|drops?|falls?)\b", re.IGNORECASE
)


@dataclass(frozen=True)
class Asset:
    """Price asset with identifiers used by the built-in price endpoints."""

    symbol: str
    coin_id: str
    kraken_pair: str


ASSETS = {
    "BTC": Asset(symbol="BTC", coin_id="bitcoin", kraken_pair="XXBTZUSD"),
    "ETH": Asset(symbol="ETH", coin_id="ethereum", kraken_pair="XETHZUSD"),
    "SOL": Asset(symbol="SOL", coin_id="solana", kraken_pair="SOLUSD"),
}
_ASSET_RES = (
    ("ETH", re.compile(r"\b(eth|ether|ethereum)\b", re.IGNORECASE)),
    ("SOL", re.compile(r"\b(sol|solana)\b", re.IGNORECASE)),
    ("BTC", re.compile(r"\b(btc|bitcoin|xbt)\b", re.IGNORECASE)),
)


def _to_number(digits: str, suffix: str | None) -> float | None:
    try:
        value = float(digits.replace(",", ""))
    except ValueError:
        return None
    if suffix:
        value *= _SUFFIX[suffix.lower()]
    return value


def _follows_month(question: str, start: int) -> bool:
    return bool(_MONTH_END_RE.search(question[:start].rstrip()))


def _is_year(question: str, digits: str, start: int) -> bool:
    return bool(_YEAR_RE.match(digits)) and bool(_YEAR_CONTEXT_RE.search(question[:start].rstrip()))


def extract_threshold(question: str) -> float | None:
    """Return the numeric threshold named in the question, or None.

    Dollar amounts win over bare numbers. Bare numbers are skipped when they
    are a calendar day after a month name, or a year in date position
    ("March 1, 2026", "in 2025"). "above 2000" is a threshold.
    """
    match = _DOLLAR_RE.search(question)
    if match:
        return _to_number(match.group(1), match.group(2))
    for match in _PLAIN_RE.finditer(question):
        digits, suffix = match.group(1), match.group(2)
        if not suffix and _is_year(question, digits, match.start()):
            continue
        if not suffix and _follows_month(question, match.start()):
            continue
        return _to_number(digits, suffix)
    return None


def extract_direction(question: str) -> str:
    """'below' when the question asks for a value under the threshold, else 'above'."""
    return "below" if _BELOW_RE.search(question) else "above"


def detect_asset(question: str) -> Asset | None:
    """Asset the question names, or None when it names no supported asset."""
    for symbol, pattern in _ASSET_RES:
        if pattern.search(question):
            return ASSETS[symbol]
    return None
