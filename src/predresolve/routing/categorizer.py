"""Rule-based question categorizer.

Rules are checked in a fixed priority order and the first match wins:

    price > news > social > onchain > weather > general

Keywords overlap between categories ("BTC launch" is both price and news,
"launch" can read as news or on-chain), so the order is part of the
contract. General is the fallback; categorization is total.
"""

from __future__ import annotations

import re

from predresolve.models import Category

CATEGORY_RULES: tuple[tuple[Category, re.Pattern[str]], ...] = (
    (
        Category.PRICE,
        re.compile(
            r"\b(btc|bitcoin|eth|ether|sol|solana|price[sd]?|stocks?|market cap|trading|usd|eur)\b"
            r"|\$\s?\d",
            re.IGNORECASE,
        ),
    ),
    (
        Category.NEWS,
        re.compile(r"\b(announc|launch|releas|happen|occur|appoint|resign)\w*", re.IGNORECASE),
    ),
    (
        Category.SOCIAL,
        re.compile(
            r"\b(tweet\w*|twitter|posts?|posted|instagram|tiktok|facebook|reddit|social)\b",
            re.IGNORECASE,
        ),
    ),
    (
        Category.ONCHAIN,
        re.compile(
            r"\b(deploy\w*|contracts?|blockchain|transactions?|wallets?|gas|gwei|blocks?|"
            r"ethereum|polygon|arbitrum|on-?chain)\b",
            re.IGNORECASE,
        ),
    ),
    (
        Category.WEATHER,
        re.compile(
            r"\b(weather|rain\w*|snow\w*|temperature|storms?|hurricanes?|celsius|fahrenheit)\b"
            r"|\d\s?°\s?[cf]\b",
            re.IGNORECASE,
        ),
    ),
)


def categorize(question: str) -> Category:
    """Return exactly one category for the question text. Pure and deterministic."""
    for category, pattern in CATEGORY_RULES:
        if pattern.search(question or ""):
            return category
    return Category.GENERAL
