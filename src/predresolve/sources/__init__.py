"""Source registry and discovery strategies."""

from predresolve.sources.discovery import (
    DynamicDiscovery,
    SourceDiscoveryStrategy,
    StaticDiscovery,
    rank_sources,
)
from predresolve.sources.registry import DEFAULT_SOURCES, VERIFICATION_METHODS, SourceRegistry

__all__ = [
    "DEFAULT_SOURCES",
    "VERIFICATION_METHODS",
    "SourceRegistry",
    "SourceDiscoveryStrategy",
    "StaticDiscovery",
    "DynamicDiscovery",
    "rank_sources",
]
