"""Source registry, relevance ranking, discovery strategies and feasibility."""

import asyncio

import pytest

from predresolve.errors import CollaboratorFailure
from predresolve.models import Category, SourceDescriptor
from predresolve.routing.feasibility import analyze_question, strategy_confidence
from predresolve.sources import DEFAULT_SOURCES, DynamicDiscovery, SourceRegistry, StaticDiscovery, rank_sources
from predresolve.sources.discovery import relevance_score


def _source(name, reliability):
    return SourceDescriptor(name=name, url=f"https://{name.lower()}.test", extraction_path="$.x", reliability=reliability)


class FakeSuggester:
    def __init__(self, reply=None, error=None):
        self.reply = reply or []
        self.error = error
        self.calls = 0

    async def suggest_sources(self, question, category, limit=5):
        self.calls += 1
        if self.error:
            raise self.error
        return self.reply


def test_every_category_has_sources():
    for category in Category:
        assert len(DEFAULT_SOURCES[category]) >= 5


def test_price_sources_bound_to_asset():
    registry = SourceRegistry()
    btc = {s.name: s for s in registry.for_question("Will BTC close above $60,000?", Category.PRICE)}
    assert btc["Binance"].params["symbol"] == "BTCUSDT"
    assert btc["CoinGecko"].extraction_path == "$.bitcoin.usd"
    assert btc["Coinbase"].url.endswith("/BTC-USD/spot")
    eth = {s.name: s for s in registry.for_question("Will ETH trade above $4,000?", Category.PRICE)}
    assert eth["Kraken"].extraction_path == "$.result.XETHZUSD.c[0]"
    # the shared table stays templated
    assert "{coin_id}" in DEFAULT_SOURCES[Category.PRICE][0].extraction_path


def test_overrides_replace_one_category():
    override = [_source("Local", 70)]
    registry = SourceRegistry(overrides={Category.WEATHER: override})
    assert [s.name for s in registry.candidates(Category.WEATHER)] == ["Local"]
    assert registry.candidates(Category.NEWS) == DEFAULT_SOURCES[Category.NEWS]


def test_missing_category_falls_back_to_general():
    registry = SourceRegistry(table={Category.GENERAL: (_source("Search", 90),)})
    assert [s.name for s in registry.candidates(Category.SOCIAL)] == ["Search"]


def test_keyword_in_name_boosts_relevance():
    question = "Will Binance list a new token by June 1?"
    assert relevance_score(question, _source("Binance", 80)) == 90
    ranked = rank_sources(question, [_source("Kraken", 85), _source("Binance", 80), _source("Coinbase", 82)])
    assert [s.name for s in ranked] == ["Binance", "Kraken", "Coinbase"]


def test_rank_is_stable_for_ties():
    sources = [_source("A", 90), _source("B", 90), _source("C", 90)]
    assert [s.name for s in rank_sources("anything", sources)] == ["A", "B", "C"]


def test_static_truncates_to_target():
    chosen = StaticDiscovery(SourceRegistry(), target=5).select("Will BTC close above $60,000?", Category.PRICE)
    assert len(chosen) == 5
    assert "CoinCap" not in [s.name for s in chosen]


def test_dynamic_uses_suggested_sources():
    reply = [
        {"name": "Alpha", "url": "https://alpha.test", "extraction_path": "$.v", "reliability": 80},
        {"name": "Beta", "url": "https://beta.test", "reliability": 90},
        {"name": "Broken", "reliability": 500},
    ]
    suggester = FakeSuggester(reply=reply)
    dynamic = DynamicDiscovery(suggester, StaticDiscovery(SourceRegistry()), target=5)
    chosen = asyncio.run(dynamic.discover("Will it rain in Paris on May 3?", Category.WEATHER))
    assert [s.name for s in chosen] == ["Beta", "Alpha"]
    assert chosen[0].interpretive


@pytest.mark.parametrize("suggester", [FakeSuggester(error=CollaboratorFailure("down")), FakeSuggester(reply=[])])
def test_dynamic_falls_back_to_static(suggester):
    static = StaticDiscovery(SourceRegistry())
    dynamic = DynamicDiscovery(suggester, static, target=5)
    question = "Will it rain in Paris on May 3?"
    chosen = asyncio.run(dynamic.discover(question, Category.WEATHER))
    assert suggester.calls == 1
    assert chosen == static.select(question, Category.WEATHER)


def test_strategy_confidence_bonuses():
    assert strategy_confidence([], Category.PRICE) == 0
    assert strategy_confidence([80, 80], Category.GENERAL) == 80
    assert strategy_confidence([80, 80], Category.NEWS) == 90
    assert strategy_confidence([80] * 5, Category.NEWS) == 95
    assert strategy_confidence([98] * 5, Category.PRICE) == 100


def test_analyze_price_question_feasible():
    strategy = analyze_question("Will BTC close above $60,000 on March 1?")
    assert strategy.category == "price"
    assert len(strategy.sources) == 5
    assert strategy.confidence == 100
    assert strategy.feasible
    assert strategy.suggestions == []
    assert strategy.method == "Median price across 5 exchanges"


def test_analyze_vague_general_question():
    strategy = analyze_question("Will it work?")
    assert strategy.category == "general"
    assert not strategy.feasible
    assert "Consider making question more specific for better accuracy" in strategy.suggestions
    assert 'Add clear threshold (e.g., "above $60,000")' in strategy.suggestions
    assert "Specify exact date/time for verification" in strategy.suggestions
    assert "Add more details for reliable verification" in strategy.suggestions


def test_unsupported_asset_drops_templated_price_sources():
    registry = SourceRegistry()
    assert registry.for_question("Will DOGE trade above $1?", Category.PRICE) == []
    fixed = _source("StockQuotes", 90)
    registry = SourceRegistry(overrides={Category.PRICE: [fixed, *DEFAULT_SOURCES[Category.PRICE]]})
    assert registry.for_question("Will Tesla stock close above $300?", Category.PRICE) == [fixed]


def test_solana_sources_bound():
    sol = {s.name: s for s in SourceRegistry().for_question("Will SOL be above $200?", Category.PRICE)}
    assert sol["Binance"].params["symbol"] == "SOLUSDT"
    assert sol["CoinGecko"].extraction_path == "$.solana.usd"


def test_analyze_unsupported_asset_not_feasible():
    strategy = analyze_question("Will DOGE trade above $1 on March 1?")
    assert strategy.category == "price"
    assert strategy.sources == []
    assert not strategy.feasible
    assert "Name a supported asset (BTC, ETH, SOL)" in strategy.suggestions
