"""Pre-creation feasibility analysis: can this question be verified, and how."""

from __future__ import annotations

import re

from predresolve.models import Category, VerificationStrategy
from predresolve.routing.categorizer import categorize
from predresolve.routing.extract import ASSETS
from predresolve.sources.discovery import StaticDiscovery
from predresolve.sources.registry import VERIFICATION_METHODS, SourceRegistry

CONSENSUS_THRESHOLD = 0.8
MIN_QUESTION_LENGTH = 20

_CRITERIA_RE = re.compile(r"(above|below|exceed|reach|over|under|\d+)", re.IGNORECASE)
_DATE_RE = re.compile(r"\b(on|before|after|by) \w+ \d+", re.IGNORECASE)
_YEAR_RE = re.compile(r"\d{4}")


def strategy_confidence(reliabilities: list[int], category: Category, target: int = 5) -> float:
    """Average reliability, +10 for a specific category, +5 for a full source set. Capped at 100."""
    if not reliabilities:
        return 0.0
    score = sum(reliabilities) / len(reliabilities)
    if category is not Category.GENERAL:
        score += 10
    if len(reliabilities) >= target:
        score += 5
    return min(100.0, score)


def analyze_question(
    question: str,
    registry: SourceRegistry | None = None,
    target: int = 5,
) -> VerificationStrategy:
    """Categorize, pick sources and list what would make the question easier to settle."""
    registry = registry or SourceRegistry()
    category = categorize(question)
    sources = StaticDiscovery(registry, target=target).select(question, category)
    confidence = strategy_confidence([s.reliability for s in sources], category, target)
    suggestions: list[str] = []

    if not sources and category is Category.PRICE:
        suggestions.append(f"Name a supported asset ({', '.join(ASSETS)})")
    if category is Category.GENERAL:
        suggestions.append("Consider making question more specific for better accuracy")
    if not _CRITERIA_RE.search(question):
        suggestions.append('Add clear threshold (e.g., "above $60,000")')
        confidence -= 10
    if not _DATE_RE.search(question) and not _YEAR_RE.search(question):
        suggestions.append("Specify exact date/time for verification")
        confidence -= 5
    feasible = confidence > 60
    if len(question.strip()) < MIN_QUESTION_LENGTH:
        suggestions.append("Add more details for reliable verification")
        feasible = False

    return VerificationStrategy(
        question=question,
        category=category.value,
        sources=[s.name for s in sources],
        method=VERIFICATION_METHODS.get(category, "Multi-source consensus verification"),
        consensus_threshold=CONSENSUS_THRESHOLD,
        confidence=max(0.0, confidence),
        feasible=feasible,
        suggestions=suggestions,
    )
