"""End-to-end resolution scenarios with mocked sources."""

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from predresolve.consensus import ConsensusAggregator
from predresolve.errors import CollaboratorFailure, ConsensusBelowThreshold, InsufficientData
from predresolve.fetchers import FetcherSet
from predresolve.models import Category, Decision, Market, MarketState, SourceDescriptor, SubmissionReceipt
from predresolve.resolution import ResolutionEngine, ResolutionGate, ResolutionWriter
from predresolve.sources import SourceRegistry, StaticDiscovery

BTC_QUESTION = "Will BTC close above $60,000 on March 1?"
NEWS_QUESTION = "Will SpaceX launch Starship on June 1?"
DEADLINE = datetime(2026, 3, 1, tzinfo=timezone.utc)


class FakeSink:
    def __init__(self, fail_for=()):
        self.submissions = []
        self.fail_for = set(fail_for)

    async def submit_resolution(self, market_id, outcome, confidence, evidence_digest):
        if market_id in self.fail_for:
            raise CollaboratorFailure("chain write reverted")
        self.submissions.append((market_id, outcome, confidence, evidence_digest))
        return SubmissionReceipt(market_id=market_id, ok=True, reference="0xabc")


class FakeMarkets:
    def __init__(self, markets):
        self.markets = markets

    async def list_pending_markets(self):
        return list(self.markets)


def _price_sources(n=5):
    return tuple(
        SourceDescriptor(name=f"Exchange{i}", url=f"https://px.test/e{i}", extraction_path="$.price", reliability=90)
        for i in range(n)
    )


def _news_sources(n=5):
    return tuple(
        SourceDescriptor(name=f"Wire{i}", url=f"https://news.test/w{i}", extraction_path="$.confirmed", reliability=90)
        for i in range(n)
    )


def _price_handler(prices):
    """prices: list of float | 'timeout' | 'error', indexed by exchange number."""

    async def handler(request):
        i = int(request.url.path.rsplit("e", 1)[1])
        value = prices[i]
        if value == "timeout":
            await asyncio.sleep(5)
        if value == "error":
            return httpx.Response(502)
        return httpx.Response(200, json={"price": str(value)})

    return handler


def _news_handler(claims):
    async def handler(request):
        value = claims[int(request.url.path.rsplit("w", 1)[1])]
        if value == "error":
            return httpx.Response(500)
        return httpx.Response(200, json={"confirmed": value})

    return handler


def _engine(client, sink=None, timeout=0.2, table=None):
    registry = SourceRegistry(table=table or {Category.PRICE: _price_sources(), Category.NEWS: _news_sources()})
    return ResolutionEngine(
        StaticDiscovery(registry, target=5),
        FetcherSet(client),
        ConsensusAggregator(min_successes=3),
        ResolutionGate(threshold=80),
        ResolutionWriter(sink) if sink is not None else None,
        fetch_timeout_sec=timeout,
    )


def _resolve(handler, market, sink):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await _engine(client, sink).resolve_market(market)

    return asyncio.run(go())


def test_tight_prices_accepted_true():
    sink = FakeSink()
    market = Market(market_id="m1", question=BTC_QUESTION, deadline=DEADLINE)
    outcome = _resolve(_price_handler([60000, 60050, 59980, 60010, 60005]), market, sink)
    result = outcome.evaluation.result
    assert outcome.evaluation.category is Category.PRICE
    assert result.median == pytest.approx(60005)
    assert result.spread == pytest.approx(0.1167, abs=1e-3)
    assert result.confidence == 95
    assert result.outcome is True
    assert outcome.evaluation.decision.decision is Decision.ACCEPTED
    assert outcome.state is MarketState.RESOLVED
    assert len(sink.submissions) == 1
    market_id, submitted_outcome, confidence, digest = sink.submissions[0]
    assert (market_id, submitted_outcome, confidence) == ("m1", True, 95)
    assert isinstance(digest, bytes) and len(digest) == 32


def test_one_timeout_false_outcome_still_accepted():
    sink = FakeSink()
    market = Market(market_id="m2", question=BTC_QUESTION, deadline=DEADLINE)
    outcome = _resolve(_price_handler([59000, "timeout", 59050, 58990, 59010]), market, sink)
    result = outcome.evaluation.result
    assert result.succeeded == 4
    assert result.dispatched == 5
    assert result.failed_sources == ("Exchange1",)
    assert result.median == pytest.approx(59005)
    assert result.spread == pytest.approx(0.1017, abs=1e-3)
    assert result.confidence == 95
    assert result.outcome is False
    assert outcome.state is MarketState.RESOLVED
    assert sink.submissions[0][1] is False


def test_two_successes_insufficient_no_write():
    sink = FakeSink()
    market = Market(market_id="m3", question=BTC_QUESTION, deadline=DEADLINE)
    outcome = _resolve(_price_handler([60000, "error", "timeout", 60010, "error"]), market, sink)
    assert outcome.evaluation.result.insufficient_data
    assert outcome.evaluation.decision.decision is Decision.INSUFFICIENT_DATA
    assert outcome.state is MarketState.PENDING
    assert sink.submissions == []


def test_agreement_three_of_five_rejected():
    sink = FakeSink()
    market = Market(market_id="m4", question=NEWS_QUESTION, deadline=DEADLINE)
    outcome = _resolve(_news_handler([True, "error", True, "error", True]), market, sink)
    result = outcome.evaluation.result
    assert outcome.evaluation.category is Category.NEWS
    assert result.mode == "agreement"
    assert result.outcome is True
    assert result.confidence == 60
    assert outcome.evaluation.decision.decision is Decision.REJECTED
    assert outcome.state is MarketState.PENDING
    assert sink.submissions == []


def test_default_threshold_used_when_question_has_no_number():
    async def go():
        handler = _price_handler([61000, 61010, 61020, 61030, 61040])
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await _engine(client).evaluate("Will the BTC price be higher?")

    evaluation = asyncio.run(go())
    assert evaluation.result.threshold == 60000
    assert evaluation.result.outcome is True


def test_cycle_isolates_market_failures():
    sink = FakeSink(fail_for={"bad"})
    markets = FakeMarkets(
        [
            Market(market_id="bad", question=BTC_QUESTION, deadline=DEADLINE),
            Market(market_id="good", question=BTC_QUESTION, deadline=DEADLINE),
            Market(market_id="news", question=NEWS_QUESTION, deadline=DEADLINE),
        ]
    )

    async def handler(request):
        if request.url.host == "news.test":
            return httpx.Response(500)
        return httpx.Response(200, json={"price": "60500"})

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await _engine(client, sink).run_cycle(markets)

    report = asyncio.run(go())
    assert report.resolved == ["good"]
    assert [m for m, _ in report.failed] == ["bad"]
    assert "chain write reverted" in report.failed[0][1]
    assert [m for m, _ in report.insufficient] == ["news"]
    assert report.processed == 3
    assert not report.deadline_exceeded
    assert [s[0] for s in sink.submissions] == ["good"]


def test_cycle_deadline_abandons_in_flight_market():
    sink = FakeSink()
    markets = FakeMarkets([Market(market_id="slow", question=BTC_QUESTION, deadline=DEADLINE)])

    async def handler(request):
        await asyncio.sleep(2)
        return httpx.Response(200, json={"price": "60500"})

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await _engine(client, sink, timeout=5.0).run_cycle(markets, deadline_sec=0.1)

    report = asyncio.run(go())
    assert report.deadline_exceeded
    assert report.processed == 0
    assert sink.submissions == []


def test_cycle_market_source_failure_is_reported():
    class BrokenMarkets:
        async def list_pending_markets(self):
            raise RuntimeError("rpc unavailable")

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200))) as client:
            return await _engine(client, FakeSink()).run_cycle(BrokenMarkets())

    with pytest.raises(CollaboratorFailure):
        asyncio.run(go())


def test_accepted_without_writer_is_a_failure_not_a_write():
    markets = FakeMarkets([Market(market_id="m", question=BTC_QUESTION, deadline=DEADLINE)])

    async def go():
        handler = _price_handler([60100] * 5)
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await _engine(client, sink=None).run_cycle(markets)

    report = asyncio.run(go())
    assert [m for m, _ in report.failed] == ["m"]


def _accepted_result():
    from predresolve.models import ConsensusResult

    return ConsensusResult(
        mode="numeric",
        outcome=True,
        confidence=95,
        contributing_sources=("A", "B", "C"),
        evidence=("A: 60000.00", "B: 60010.00", "C: 60005.00"),
        dispatched=3,
        succeeded=3,
    )


def test_evidence_digest_is_32_bytes_and_deterministic():
    from predresolve.resolution import evidence_digest

    result = _accepted_result()
    first = evidence_digest(result, 1_700_000_000_000)
    assert len(first) == 32
    assert first == evidence_digest(result, 1_700_000_000_000)
    assert first != evidence_digest(result, 1_700_000_000_001)


def test_writer_refuses_non_accepted_decision():
    from predresolve.models import GateDecision

    sink = FakeSink()
    writer = ResolutionWriter(sink)
    market = Market(market_id="m", question=BTC_QUESTION, deadline=DEADLINE)
    rejected = GateDecision(decision=Decision.REJECTED, confidence=75, threshold=80)
    with pytest.raises(ConsensusBelowThreshold, match="confidence 75 below threshold 80"):
        asyncio.run(writer.write(market, _accepted_result(), rejected))
    assert sink.submissions == []


def test_writer_refuses_insufficient_data():
    from predresolve.models import ConsensusResult, GateDecision

    sink = FakeSink()
    writer = ResolutionWriter(sink)
    market = Market(market_id="m", question=BTC_QUESTION, deadline=DEADLINE)
    result = ConsensusResult(mode="numeric", dispatched=5, succeeded=2, insufficient_data=True, required=3)
    decision = GateDecision(decision=Decision.INSUFFICIENT_DATA, confidence=0, threshold=80)
    with pytest.raises(InsufficientData) as excinfo:
        asyncio.run(writer.write(market, result, decision))
    assert (excinfo.value.succeeded, excinfo.value.required, excinfo.value.dispatched) == (2, 3, 5)
    assert sink.submissions == []


def test_writer_raises_when_sink_rejects():
    from predresolve.models import GateDecision

    class RefusingSink:
        async def submit_resolution(self, market_id, outcome, confidence, evidence_digest):
            return SubmissionReceipt(market_id=market_id, ok=False, reason="already resolved")

    writer = ResolutionWriter(RefusingSink())
    market = Market(market_id="m", question=BTC_QUESTION, deadline=DEADLINE)
    accepted = GateDecision(decision=Decision.ACCEPTED, confidence=95, threshold=80)
    with pytest.raises(CollaboratorFailure, match="already resolved"):
        asyncio.run(writer.write(market, _accepted_result(), accepted))


def test_cycle_against_local_ledger(tmp_path):
    from predresolve.storage.attempts import list_attempts
    from predresolve.storage.db import get_connection, init_schema
    from predresolve.storage.ledger import Ledger
    from predresolve.storage.markets import add_market, get_market

    conn = get_connection(tmp_path / "ledger.duckdb")
    init_schema(conn)
    add_market(conn, BTC_QUESTION, DEADLINE, market_id="btc")
    add_market(conn, NEWS_QUESTION, DEADLINE, market_id="news")
    ledger = Ledger(conn, now=datetime(2026, 3, 2, tzinfo=timezone.utc))

    async def handler(request):
        if request.url.host == "news.test":
            return httpx.Response(500)
        return httpx.Response(200, json={"price": "60500"})

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            engine = _engine(client, ledger)
            engine.recorder = ledger
            return await engine.run_cycle(ledger)

    try:
        report = asyncio.run(go())
        assert report.resolved == ["btc"]
        row = get_market(conn, "btc")
        assert row["resolved"] is True
        assert row["outcome"] is True
        assert row["confidence"] == 95
        assert row["evidence_digest"].startswith("0x") and len(row["evidence_digest"]) == 66
        assert get_market(conn, "news")["resolved"] is False
        decisions = {a["market_id"]: a["decision"] for a in list_attempts(conn)}
        assert decisions == {"btc": "resolved", "news": "insufficient_data"}
    finally:
        conn.close()


def test_relay_sink_posts_resolve_call():
    from predresolve.resolution import HttpRelaySink

    seen = {}

    async def handler(request):
        import json

        seen.update(json.loads(request.content))
        return httpx.Response(200, json={"ok": True, "tx_hash": "0xfeed"})

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            sink = HttpRelaySink(client, "http://relay.test/submit", "0xoracle", "ethereum-testnet-sepolia")
            return await sink.submit_resolution("m1", True, 95, b"\x01" * 32)

    receipt = asyncio.run(go())
    assert receipt.ok
    assert receipt.reference == "0xfeed"
    assert seen["function"] == "resolveMarket"
    assert seen["receiver"] == "0xoracle"
    assert seen["args"] == ["m1", True, 95, "0x" + "01" * 32]


def test_relay_sink_http_error_is_collaborator_failure():
    from predresolve.resolution import HttpRelaySink

    async def go():
        transport = httpx.MockTransport(lambda r: httpx.Response(503))
        async with httpx.AsyncClient(transport=transport) as client:
            sink = HttpRelaySink(client, "http://relay.test/submit", "0xoracle", "sepolia")
            return await sink.submit_resolution("m1", True, 95, b"\x00" * 32)

    with pytest.raises(CollaboratorFailure):
        asyncio.run(go())


def _templated_price_sources(n=5):
    return tuple(
        SourceDescriptor(
            name=f"Venue{i}",
            url=f"https://venue{i}.test/{{symbol}}",
            extraction_path="$.price",
            params={"pair": "{symbol}USD"},
            reliability=90,
        )
        for i in range(n)
    )


def _run_templated(question, price, sink):
    requested = []

    async def handler(request):
        requested.append((request.url.path, request.url.params.get("pair")))
        return httpx.Response(200, json={"price": str(price)})

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            engine = _engine(client, sink, table={Category.PRICE: _templated_price_sources()})
            market = Market(market_id="m", question=question, deadline=DEADLINE)
            return await engine.resolve_market(market)

    return asyncio.run(go()), requested


def test_year_shaped_threshold_is_used_not_default():
    sink = FakeSink()
    outcome, _ = _run_templated("Will ETH be above 2000 on March 1?", 2500, sink)
    assert outcome.evaluation.result.threshold == 2000
    assert outcome.evaluation.result.outcome is True
    assert [s[:3] for s in sink.submissions] == [("m", True, 95)]


def test_price_sources_query_the_named_asset():
    sink = FakeSink()
    outcome, requested = _run_templated("Will SOL be above $200 on March 1?", 210, sink)
    assert len(requested) == 5
    assert all(path == "/SOL" and pair == "SOLUSD" for path, pair in requested)
    assert outcome.evaluation.result.outcome is True


def test_unsupported_asset_is_insufficient_not_resolved():
    sink = FakeSink()
    outcome, requested = _run_templated("Will DOGE trade above $1 on March 1?", 60500, sink)
    assert requested == []
    assert outcome.evaluation.sources == []
    assert outcome.evaluation.decision.decision is Decision.INSUFFICIENT_DATA
    assert outcome.state is MarketState.PENDING
    assert sink.submissions == []


def test_write_in_flight_at_deadline_is_reported_resolved():
    class SlowSink(FakeSink):
        async def submit_resolution(self, market_id, outcome, confidence, evidence_digest):
            await asyncio.sleep(0.3)
            return await super().submit_resolution(market_id, outcome, confidence, evidence_digest)

    sink = SlowSink()
    markets = FakeMarkets(
        [
            Market(market_id="first", question=BTC_QUESTION, deadline=DEADLINE),
            Market(market_id="second", question=BTC_QUESTION, deadline=DEADLINE),
        ]
    )

    async def go():
        handler = _price_handler([60100] * 5)
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await _engine(client, sink).run_cycle(markets, deadline_sec=0.1)

    report = asyncio.run(go())
    assert report.deadline_exceeded
    assert report.resolved == ["first"]
    assert [s[0] for s in sink.submissions] == ["first"]
