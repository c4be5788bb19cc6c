"""Consensus over independent observations."""

from predresolve.consensus.aggregator import ConsensusAggregator
from predresolve.consensus.stats import confidence_from_spread, median, spread_pct

__all__ = ["ConsensusAggregator", "confidence_from_spread", "median", "spread_pct"]
