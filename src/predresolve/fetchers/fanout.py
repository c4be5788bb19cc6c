"""Concurrent per-source fetch for one market: one task per source, all awaited."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog

from predresolve.fetchers.base import SourceFetcher
from predresolve.fetchers.interpreter import TextInterpreter
from predresolve.fetchers.interpretive import InterpretiveFetcher
from predresolve.fetchers.price import PriceFetcher
from predresolve.fetchers.rest import GenericRestFetcher
from predresolve.models import Category, Observation, SourceDescriptor


class FetcherSet:
    """Picks the fetcher variant for a (category, source) pair."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        interpreter: TextInterpreter | None = None,
        min_confidence: float = 60.0,
        log: Any = None,
    ) -> None:
        self.price = PriceFetcher(client, log=log)
        self.interpretive = InterpretiveFetcher(client, interpreter, min_confidence=min_confidence, log=log)
        self.rest = GenericRestFetcher(client, self.interpretive, log=log)

    def select(self, category: Category, source: SourceDescriptor) -> SourceFetcher:
        if category.numeric:
            return self.price
        if source.interpretive:
            return self.interpretive
        return self.rest


async def fan_out(
    fetchers: FetcherSet,
    category: Category,
    sources: list[SourceDescriptor],
    question: str,
    timeout: float,
    log: Any = None,
) -> list[Observation]:
    """Fetch all sources concurrently and wait for every one (success or failure).

    Results are in source order; each task fills only its own slot.
    """
    log = log or structlog.get_logger(__name__)
    tasks = [fetchers.select(category, s).fetch(s, question, timeout) for s in sources]
    results = await asyncio.gather(*tasks, return_exceptions=True)
    observations: list[Observation] = []
    for source, result in zip(sources, results):
        if isinstance(result, Observation):
            observations.append(result)
        elif isinstance(result, asyncio.CancelledError):
            raise result
        else:
            log.warning("fetch_escaped_boundary", source=source.name, error=repr(result))
            observations.append(Observation.failed(source.name, f"unexpected error: {type(result).__name__}"))
    return observations
