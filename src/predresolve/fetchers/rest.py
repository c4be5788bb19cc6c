"""Generic REST fetcher: structured extraction first, interpretive fallback."""

from __future__ import annotations

import json
from typing import Any

import httpx

from predresolve.fetchers.base import FetchValue, SourceFetcher
from predresolve.fetchers.extraction import ExtractionMiss, extract_path, extract_selector, to_claim
from predresolve.fetchers.interpretive import InterpretiveFetcher
from predresolve.models import SourceDescriptor


class GenericRestFetcher(SourceFetcher):
    """GET (or POST for RPC/GraphQL), apply the extraction rule, coerce to a yes/no claim.

    HTML sources are read with a CSS selector, everything else with a JSON
    path. Falls back to the interpretive fetcher when the body does not
    parse, the selector or path misses, or the extracted value does not
    decide the question.
    """

    kind = "rest"

    def __init__(self, client: httpx.AsyncClient, interpretive: InterpretiveFetcher, log: Any = None) -> None:
        super().__init__(client, log=log)
        self.interpretive = interpretive

    def _extract(self, source: SourceDescriptor, resp: httpx.Response) -> Any:
        if source.selector:
            return extract_selector(resp.text, source.extraction_path)
        return extract_path(resp.json(), source.extraction_path)

    async def _fetch(self, source: SourceDescriptor, question: str, timeout: float) -> FetchValue:
        resp = await self._request(source, timeout)
        if source.interpretive:
            return await self.interpretive.interpret(source, question, resp.text)
        try:
            value = self._extract(source, resp)
        except (ValueError, ExtractionMiss) as e:
            self.log.debug("structured_extraction_failed", source=source.name, error=str(e))
            return await self.interpretive.interpret(source, question, resp.text)
        claim = to_claim(value, question)
        if claim is None:
            snippet = value if isinstance(value, str) else json.dumps(value, default=str)
            return await self.interpretive.interpret(source, question, snippet)
        return claim, f"{source.extraction_path} = {value}"
