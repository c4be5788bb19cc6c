"""Static category -> ranked source list, overridable from config."""

from __future__ import annotations

import re
from typing import Any

from predresolve.models import Category, FetchKind, SourceDescriptor
from predresolve.routing.extract import Asset, detect_asset


def _src(name: str, url: str, path: str | None, reliability: int, **kw: Any) -> SourceDescriptor:
    return SourceDescriptor(name=name, url=url, extraction_path=path, reliability=reliability, **kw)


# Price endpoints are templated on the asset ({coin_id}, {symbol}, {kraken_pair}).
DEFAULT_SOURCES: dict[Category, tuple[SourceDescriptor, ...]] = {
    Category.PRICE: (
        _src(
            "CoinGecko",
            "https://api.coingecko.com/api/v3/simple/price",
            "$.{coin_id}.usd",
            95,
            params={"ids": "{coin_id}", "vs_currencies": "usd"},
        ),
        _src(
            "Binance",
            "https://api.binance.com/api/v3/ticker/price",
            "$.price",
            98,
            params={"symbol": "{symbol}USDT"},
        ),
        _src("Coinbase", "https://api.coinbase.com/v2/prices/{symbol}-USD/spot", "$.data.amount", 97),
        _src(
            "Kraken",
            "https://api.kraken.com/0/public/Ticker",
            "$.result.{kraken_pair}.c[0]",
            96,
            params={"pair": "{kraken_pair}"},
        ),
        _src("CoinCap", "https://api.coincap.io/v2/assets/{coin_id}", "$.data.priceUsd", 93),
        _src(
            "CryptoCompare",
            "https://min-api.cryptocompare.com/data/price",
            "$.USD",
            94,
            params={"fsym": "{symbol}", "tsyms": "USD"},
        ),
    ),
    Category.WEATHER: (
        _src("OpenWeatherMap", "https://api.openweathermap.org/data/2.5/weather", "$.weather[0].main", 96),
        _src("WeatherAPI", "https://api.weatherapi.com/v1/current.json", "$.current.condition.text", 95),
        _src("AccuWeather", "https://dataservice.accuweather.com/currentconditions/v1", "$[0].WeatherText", 97),
        _src("NOAA", "https://api.weather.gov/gridpoints", "$.properties.temperature.value", 98),
        _src(
            "Tomorrow.io",
            "https://api.tomorrow.io/v4/timelines",
            "$.data.timelines[0].intervals[0].values.temperature",
            94,
        ),
    ),
    Category.SOCIAL: (
        _src("Twitter API", "https://api.twitter.com/2/tweets/search/recent", "$.data", 90),
        _src("Nitter", "https://nitter.net", None, 85, kind=FetchKind.SCRAPE, response_format="html"),
        _src("Archive.org", "https://web.archive.org/cdx/search/cdx", None, 95),
        _src("NewsAPI", "https://newsapi.org/v2/everything", "$.articles", 92),
        _src("Google Search", "https://www.googleapis.com/customsearch/v1", "$.items", 88),
    ),
    Category.NEWS: (
        _src("Reuters", "https://www.reuters.com/arc/outboundfeeds", None, 98),
        _src("Associated Press", "https://afs-prod.appspot.com/api/v2", None, 99),
        _src("BBC News", "https://www.bbc.com/news", None, 97, kind=FetchKind.SCRAPE, response_format="html"),
        _src("NewsAPI", "https://newsapi.org/v2/top-headlines", "$.articles", 93),
        _src("Google News", "https://news.google.com/rss", None, 90, response_format="xml"),
    ),
    Category.ONCHAIN: (
        _src("Etherscan", "https://api.etherscan.io/api", "$.result", 98),
        _src("Infura", "https://mainnet.infura.io/v3", "$.result", 97, kind=FetchKind.RPC),
        _src("Alchemy", "https://eth-mainnet.g.alchemy.com/v2", "$.result", 98, kind=FetchKind.RPC),
        _src("QuickNode", "https://endpoints.omniatech.io/v1/eth/mainnet", "$.result", 96, kind=FetchKind.RPC),
        _src("Chainstack", "https://ethereum-mainnet.core.chainstack.com", "$.result", 95, kind=FetchKind.RPC),
    ),
    Category.GENERAL: (
        _src("Google Search", "https://www.googleapis.com/customsearch/v1", "$.items", 92),
        _src("Bing Search", "https://api.bing.microsoft.com/v7.0/search", "$.webPages.value", 90),
        _src("DuckDuckGo", "https://api.duckduckgo.com", "$.RelatedTopics", 88),
        _src("Brave Search", "https://api.search.brave.com/res/v1/web/search", "$.web.results", 89),
        _src("Wikipedia", "https://en.wikipedia.org/w/api.php", "$.query.pages", 95),
    ),
}

_PLACEHOLDER_RE = re.compile(r"\{(symbol|coin_id|kraken_pair)\}")

VERIFICATION_METHODS: dict[Category, str] = {
    Category.PRICE: "Median price across 5 exchanges",
    Category.WEATHER: "Consensus on weather condition across 5 APIs",
    Category.SOCIAL: "Presence verification across 5 platforms",
    Category.NEWS: "Event confirmation across 5 news sources",
    Category.ONCHAIN: "Blockchain state verification across 5 RPC providers",
    Category.GENERAL: "Search result consensus across 5 engines",
}


def _fill(value: Any, fields: dict[str, str]) -> Any:
    if isinstance(value, str):
        return _PLACEHOLDER_RE.sub(lambda m: fields[m.group(1)], value)
    if isinstance(value, dict):
        return {k: _fill(v, fields) for k, v in value.items()}
    if isinstance(value, list):
        return [_fill(v, fields) for v in value]
    return value


def is_templated(source: SourceDescriptor) -> bool:
    """True when the source needs an asset bound before it can be queried."""
    return any(
        _PLACEHOLDER_RE.search(part or "")
        for part in (source.url, source.extraction_path, *map(str, source.params.values()))
    )


def bind_asset(source: SourceDescriptor, asset: Asset) -> SourceDescriptor:
    """Return a copy of source with asset placeholders substituted."""
    fields = {"symbol": asset.symbol, "coin_id": asset.coin_id, "kraken_pair": asset.kraken_pair}
    return source.model_copy(
        update={
            "url": _fill(source.url, fields),
            "extraction_path": _fill(source.extraction_path, fields),
            "params": _fill(dict(source.params), fields),
        }
    )


class SourceRegistry:
    """Maps a category to its candidate sources. Looked up, never mutated, per resolution."""

    def __init__(
        self,
        table: dict[Category, tuple[SourceDescriptor, ...]] | None = None,
        overrides: dict[Category, list[SourceDescriptor]] | None = None,
    ) -> None:
        merged = dict(table if table is not None else DEFAULT_SOURCES)
        for category, sources in (overrides or {}).items():
            merged[category] = tuple(sources)
        self._table = merged

    def candidates(self, category: Category) -> tuple[SourceDescriptor, ...]:
        """All registered sources for category, falling back to general."""
        return self._table.get(category) or self._table.get(Category.GENERAL, ())

    def for_question(self, question: str, category: Category) -> list[SourceDescriptor]:
        """Candidates for category, with price templates bound to the question's asset.

        Templated price sources are dropped when the question names no
        supported asset; they are never bound to a guessed one.
        """
        sources = self.candidates(category)
        if category is not Category.PRICE:
            return list(sources)
        asset = detect_asset(question)
        if asset is None:
            return [s for s in sources if not is_templated(s)]
        return [bind_asset(s, asset) for s in sources]
