"""SourceFetcher contract: one source query in, one Observation out, never an exception."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any

import httpx
import structlog

from predresolve.errors import CollaboratorFailure, SourceFailure
from predresolve.fetchers.extraction import ExtractionMiss
from predresolve.models import FetchKind, Observation, SourceDescriptor

FetchValue = tuple[float | bool | str, str | None]  # (value, detail)


class SourceFetcher(ABC):
    """Executes one source query. Failures come back as failed Observations."""

    kind: str = ""

    def __init__(self, client: httpx.AsyncClient, log: Any = None) -> None:
        self.client = client
        self.log = log or structlog.get_logger(__name__)

    @abstractmethod
    async def _fetch(self, source: SourceDescriptor, question: str, timeout: float) -> FetchValue:
        """Return (value, detail) or raise. Subclasses may raise anything."""
        ...

    async def fetch(self, source: SourceDescriptor, question: str, timeout: float) -> Observation:
        """Query source with its own timeout. Never raises (except cancellation)."""
        try:
            value, detail = await asyncio.wait_for(self._fetch(source, question, timeout), timeout)
        except asyncio.TimeoutError:
            return self._failed(source, f"timeout after {timeout:g}s")
        except SourceFailure as e:
            return self._failed(source, e.reason)
        except httpx.HTTPStatusError as e:
            return self._failed(source, f"HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            return self._failed(source, f"network error: {type(e).__name__}")
        except ExtractionMiss as e:
            return self._failed(source, f"extraction miss: {e}")
        except CollaboratorFailure as e:
            return self._failed(source, str(e))
        except (ValueError, TypeError, KeyError) as e:
            return self._failed(source, f"malformed payload: {e}")
        except Exception as e:
            self.log.exception("fetch_unexpected_error", source=source.name)
            return self._failed(source, f"unexpected error: {type(e).__name__}")
        self.log.debug("fetch_ok", source=source.name, fetcher=self.kind, value=value)
        return Observation.ok(source.name, value, detail=detail)

    def _failed(self, source: SourceDescriptor, reason: str) -> Observation:
        self.log.info("fetch_failed", source=source.name, fetcher=self.kind, reason=reason)
        return Observation.failed(source.name, reason)

    async def _request(self, source: SourceDescriptor, timeout: float) -> httpx.Response:
        """Issue the HTTP call for source. GET for REST/scrape, POST body for RPC/GraphQL."""
        if source.kind in (FetchKind.RPC, FetchKind.GRAPHQL):
            resp = await self.client.post(source.url, json=source.params or None, timeout=timeout)
        else:
            resp = await self.client.get(source.url, params=source.params or None, timeout=timeout)
        resp.raise_for_status()
        return resp
