"""Source discovery: static table lookup or collaborator-backed dynamic discovery."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any

import structlog

from predresolve.errors import CollaboratorFailure
from predresolve.fetchers.interpreter import SourceSuggester
from predresolve.models import Category, SourceDescriptor
from predresolve.sources.registry import SourceRegistry

_KEYWORD_RE = re.compile(r"\b\w{4,}\b")


def relevance_score(question: str, source: SourceDescriptor) -> int:
    """Reliability plus 10 per question keyword (4+ letters) found in the source name."""
    name = source.name.lower()
    return source.reliability + sum(10 for kw in _KEYWORD_RE.findall(question.lower()) if kw in name)


def rank_sources(question: str, sources: list[SourceDescriptor]) -> list[SourceDescriptor]:
    """Sort by relevance, highest first. Stable for ties."""
    return sorted(sources, key=lambda s: relevance_score(question, s), reverse=True)


class SourceDiscoveryStrategy(ABC):
    """Chooses the sources to dispatch for one question."""

    name: str = ""

    @abstractmethod
    async def discover(self, question: str, category: Category) -> list[SourceDescriptor]:
        ...


class StaticDiscovery(SourceDiscoveryStrategy):
    """Registry lookup, ranked by relevance, truncated to the target set size."""

    name = "static"

    def __init__(self, registry: SourceRegistry, target: int = 5) -> None:
        self.registry = registry
        self.target = target

    def select(self, question: str, category: Category) -> list[SourceDescriptor]:
        return rank_sources(question, self.registry.for_question(question, category))[: self.target]

    async def discover(self, question: str, category: Category) -> list[SourceDescriptor]:
        return self.select(question, category)


class DynamicDiscovery(SourceDiscoveryStrategy):
    """Asks a SourceSuggester for sources; falls back to static on any bad reply."""

    name = "dynamic"

    def __init__(
        self,
        suggester: SourceSuggester,
        fallback: StaticDiscovery,
        target: int = 5,
        log: Any = None,
    ) -> None:
        self.suggester = suggester
        self.fallback = fallback
        self.target = target
        self.log = log or structlog.get_logger(__name__)

    async def discover(self, question: str, category: Category) -> list[SourceDescriptor]:
        try:
            raw = await self.suggester.suggest_sources(question, category.value, limit=self.target)
        except CollaboratorFailure as e:
            self.log.warning("dynamic_discovery_failed", error=str(e), fallback="static")
            return await self.fallback.discover(question, category)
        sources: list[SourceDescriptor] = []
        for entry in raw:
            try:
                sources.append(SourceDescriptor.model_validate(entry))
            except ValueError as e:
                self.log.debug("discovered_source_invalid", entry=entry, error=str(e))
        if not sources:
            self.log.warning("dynamic_discovery_empty", category=category.value, fallback="static")
            return await self.fallback.discover(question, category)
        return rank_sources(question, sources)[: self.target]
