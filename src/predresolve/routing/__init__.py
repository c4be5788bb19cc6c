"""Question routing: categorization, pattern extraction, feasibility."""

from predresolve.routing.categorizer import CATEGORY_RULES, categorize
from predresolve.routing.extract import Asset, detect_asset, extract_direction, extract_threshold

__all__ = [
    "CATEGORY_RULES",
    "categorize",
    "Asset",
    "detect_asset",
    "extract_direction",
    "extract_threshold",
]
