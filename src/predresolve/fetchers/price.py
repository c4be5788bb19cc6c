"""Price fetcher: numeric endpoint + fixed JSON path (or CSS selector for HTML pages) -> float."""

from __future__ import annotations

from predresolve.errors import SourceFailure
from predresolve.fetchers.base import FetchValue, SourceFetcher
from predresolve.fetchers.extraction import extract_path, extract_selector, to_number
from predresolve.models import SourceDescriptor


class PriceFetcher(SourceFetcher):
    """GET a price endpoint and read one numeric field."""

    kind = "price"

    async def _fetch(self, source: SourceDescriptor, question: str, timeout: float) -> FetchValue:
        if not source.extraction_path:
            raise SourceFailure(source.name, "price source has no extraction path")
        resp = await self._request(source, timeout)
        if source.selector:
            raw = extract_selector(resp.text, source.extraction_path)
        else:
            try:
                data = resp.json()
            except ValueError:
                raise SourceFailure(source.name, "malformed body: not JSON") from None
            raw = extract_path(data, source.extraction_path)
        try:
            return to_number(raw), None
        except (TypeError, ValueError):
            raise SourceFailure(source.name, f"non-numeric price {raw!r}") from None
